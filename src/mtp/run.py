# run.py
# Entry point. Config and wiring only, no logic lives here.
#
#   mtp-demo                 in-process executor + requester round trip
#   mtp-demo --serve         serve the demo executor over HTTP
#   mtp-demo --url URL       run the requester against a remote executor

import argparse
import asyncio

from pydantic import BaseModel, Field

from mtp import config, display
from mtp.client import ExecutorClient
from mtp.executor import Executor
from mtp.requester import Requester
from mtp.server import create_app, executor_from_env

CAPABILITY_NAME = "MathAdd"
PAYLOAD = {"a": 50, "b": 75}


class AddInput(BaseModel):
    a: float = Field(..., description="First number")
    b: float = Field(..., description="Second number")


class AddOutput(BaseModel):
    answer: float = Field(..., description="The sum of a and b")


async def add(payload: dict) -> dict:
    # Simulated latency.
    await asyncio.sleep(0.1)
    return {"answer": payload["a"] + payload["b"]}


def build_executor() -> Executor:
    executor = executor_from_env()
    executor.add_capability(CAPABILITY_NAME, AddInput, AddOutput, add, constraints={"timeout_ms": 1000})
    display.banner("Executor", executor.identity.id, executor.identity.public_key)
    return executor


def run_local() -> None:
    executor = build_executor()
    client = Requester(config.requester_name())

    info = executor.public_info()
    display.discovery(info)
    target = next(c for c in info.capabilities.capabilities if c.name == CAPABILITY_NAME)

    task = client.create_task(target.id, PAYLOAD)
    result = asyncio.run(executor.execute_task(task))
    verified = client.accept_result(result, info.identity.public_key, task=task)
    display.final_result(verified.to_wire())


def run_remote(url: str) -> None:
    client = Requester(config.requester_name())
    with ExecutorClient(url) as remote:
        info = remote.discover()
        display.discovery(info)
        target = next(
            (c for c in info.capabilities.capabilities if c.name == CAPABILITY_NAME), None
        )
        if target is None:
            raise SystemExit(f"Executor does not advertise {CAPABILITY_NAME}.")

        task = client.create_task(target.id, PAYLOAD)
        body = remote.submit(task)

    verified = client.accept_result(body, info.identity.public_key, task=task)
    display.final_result(verified.to_wire())


def serve() -> None:
    import uvicorn

    app = create_app(build_executor())
    display.serving(config.host(), config.port())
    uvicorn.run(app, host=config.host(), port=config.port())


def main() -> None:
    parser = argparse.ArgumentParser(description="Machine Task Protocol demo")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--serve", action="store_true", help="Serve the demo executor over HTTP")
    mode.add_argument("--url", help="Run the requester against a remote executor")
    args = parser.parse_args()

    if args.serve:
        serve()
    elif args.url:
        run_remote(args.url)
    else:
        run_local()


if __name__ == "__main__":
    main()
