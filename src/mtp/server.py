# server.py
# HTTP surface for an executor: discovery plus task submission.
#
# Transport only. Authentication, validation and signing all happen inside
# Executor.execute_task(); this layer never inspects a task.
#
# Run: uvicorn "mtp.server:app_from_env" --factory

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from mtp import config
from mtp.executor import Executor
from mtp.identity import Identity
from mtp.policy import ReplayWindow


def create_app(executor: Executor) -> FastAPI:
    app = FastAPI(title="Machine Task Protocol Executor")
    app.state.executor = executor

    @app.get("/discovery")
    def discovery() -> dict:
        return executor.public_info().to_wire()

    @app.post("/submit-task")
    async def submit_task(request: Request) -> JSONResponse:
        try:
            body = await request.json()
        except ValueError:
            return JSONResponse({"error": "Request body is not valid JSON."}, status_code=400)

        try:
            result = await executor.execute_task(body)
        except Exception as exc:
            return JSONResponse({"error": str(exc) or type(exc).__name__}, status_code=500)
        return JSONResponse(result.to_wire())

    return app


def executor_from_env() -> Executor:
    """Executor configured from MTP_* environment variables, with no capabilities."""
    name = config.executor_name()
    private_key = config.executor_private_key()
    identity = Identity.from_private_key(private_key, name=name) if private_key else None
    window = config.replay_window_ms()
    return Executor(
        name,
        identity=identity,
        policy=ReplayWindow(window) if window else None,
    )


def app_from_env() -> FastAPI:
    return create_app(executor_from_env())
