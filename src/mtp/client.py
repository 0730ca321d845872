# client.py
# HTTP client for a remote executor.
#
# submit() hands back the raw response body so the requester verifies exactly
# the bytes the executor signed, not a re-serialized copy.

from typing import Any

import httpx

from mtp import config
from mtp.models import DiscoveryDocument, Task


class ExecutorClient:
    """
    Thin httpx wrapper around an executor's /discovery and /submit-task.

    Example:
        with ExecutorClient("http://localhost:3000") as remote:
            info = remote.discover()
            body = remote.submit(task)
    """

    def __init__(
        self,
        base_url: str,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(
            base_url=base_url,
            timeout=timeout if timeout is not None else config.http_timeout(),
            transport=transport,
        )

    def discover(self) -> DiscoveryDocument:
        response = self._client.get("/discovery")
        response.raise_for_status()
        return DiscoveryDocument.model_validate(response.json())

    def submit(self, task: Task) -> dict[str, Any]:
        """POST a signed task; returns the signed result body. Raises httpx.HTTPStatusError."""
        response = self._client.post("/submit-task", json=task.to_wire())
        response.raise_for_status()
        return response.json()

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "ExecutorClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
