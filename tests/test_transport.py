from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi.testclient import TestClient
from pydantic import BaseModel

from mtp.client import ExecutorClient
from mtp.executor import AUTH_FAILED, Executor
from mtp.identity import Identity
from mtp.policy import ReplayWindow
from mtp.requester import Requester
from mtp.server import create_app, executor_from_env


class AddInput(BaseModel):
    a: float
    b: float


class AddOutput(BaseModel):
    answer: float


@pytest.fixture
def executor():
    node = Executor("AlphaNode")
    node.add_capability("MathAdd", AddInput, AddOutput, lambda p: {"answer": p["a"] + p["b"]})
    return node


@pytest.fixture
def http(executor):
    return TestClient(create_app(executor))


def _bridge(test_client: TestClient) -> httpx.MockTransport:
    """Route an httpx.Client through the in-process app."""

    def handler(request: httpx.Request) -> httpx.Response:
        response = test_client.request(
            request.method,
            request.url.path,
            content=request.content,
            headers={"content-type": request.headers.get("content-type", "application/json")},
        )
        return httpx.Response(
            response.status_code,
            content=response.content,
            headers={"content-type": response.headers.get("content-type", "application/json")},
        )

    return httpx.MockTransport(handler)

# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------

def test_discovery_endpoint(http, executor):
    response = http.get("/discovery")
    assert response.status_code == 200
    body = response.json()
    assert body["identity"]["publicKey"] == executor.identity.public_key
    assert body["capabilities"]["capabilities"][0]["name"] == "MathAdd"

def test_submit_task_round_trip(http, executor):
    requester = Requester("ClientOne")
    cap_id = http.get("/discovery").json()["capabilities"]["capabilities"][0]["id"]
    task = requester.create_task(cap_id, {"a": 50, "b": 75})

    response = http.post("/submit-task", json=task.to_wire())
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    assert body["result"]["answer"] == 125
    assert requester.verify_result(body, executor.identity.public_key) is True

def test_submit_tampered_task_gets_signed_rejection(http, executor):
    requester = Requester("ClientOne")
    cap_id = http.get("/discovery").json()["capabilities"]["capabilities"][0]["id"]
    wire = requester.create_task(cap_id, {"a": 1, "b": 2}).to_wire()
    wire["payload"] = {"a": 100, "b": 2}

    body = http.post("/submit-task", json=wire).json()
    assert body["status"] == "failure"
    assert body["error"] == AUTH_FAILED
    assert requester.verify_result(body, executor.identity.public_key) is True

def test_submit_invalid_json(http):
    response = http.post("/submit-task", content=b"{not json", headers={"content-type": "application/json"})
    assert response.status_code == 400
    assert "error" in response.json()

def test_unexpected_executor_error_is_500(executor):
    executor.execute_task = AsyncMock(side_effect=RuntimeError("crypto backend unavailable"))
    response = TestClient(create_app(executor)).post("/submit-task", json={"taskId": "t"})
    assert response.status_code == 500
    assert response.json() == {"error": "crypto backend unavailable"}

# ---------------------------------------------------------------------------
# Environment wiring
# ---------------------------------------------------------------------------

def test_executor_from_env_uses_configured_key(monkeypatch):
    stored = Identity.generate("persisted")
    monkeypatch.setenv("MTP_EXECUTOR_NAME", "BetaNode")
    monkeypatch.setenv("MTP_EXECUTOR_PRIVATE_KEY", stored.export_private_key())
    monkeypatch.setenv("MTP_REPLAY_WINDOW_MS", "30000")

    node = executor_from_env()
    assert node.identity.public_key == stored.public_key
    assert node.identity.id.startswith("did:mtp:BetaNode:")
    assert isinstance(node.policy, ReplayWindow)
    assert node.policy.window_ms == 30000

def test_executor_from_env_defaults(monkeypatch):
    monkeypatch.delenv("MTP_EXECUTOR_PRIVATE_KEY", raising=False)
    monkeypatch.delenv("MTP_REPLAY_WINDOW_MS", raising=False)
    node = executor_from_env()
    assert node.policy is None
    assert len(node.registry) == 0

# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

def test_client_discover_and_submit(http, executor):
    requester = Requester("ClientOne")
    with ExecutorClient("http://testserver", transport=_bridge(http)) as remote:
        info = remote.discover()
        target = info.capabilities.capabilities[0]
        task = requester.create_task(target.id, {"a": 2, "b": 3})
        body = remote.submit(task)

    assert info.identity.public_key == executor.identity.public_key
    verified = requester.accept_result(body, info.identity.public_key, task=task)
    assert verified.result == {"answer": 5.0}

def test_client_raises_on_http_error():
    transport = httpx.MockTransport(lambda request: httpx.Response(500, json={"error": "boom"}))
    requester = Requester("ClientOne")
    with ExecutorClient("http://executor", transport=transport) as remote:
        with pytest.raises(httpx.HTTPStatusError):
            remote.submit(requester.create_task("cap_x", {}))
