# requester.py
# Client-side actor: builds signed tasks and verifies signed results.
#
# A result that fails verification is a security event, not a transient
# error. verify_result() reports it as False; accept_result() raises.

import time
import uuid
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ValidationError

from mtp import display
from mtp.errors import VerificationFailure
from mtp.identity import Identity
from mtp.models import Result, Task, signable_task


class Requester:
    """
    Issues tasks against executor capabilities.

    Example:
        client = Requester("ClientOne")
        task = client.create_task(capability_id, {"a": 2, "b": 3})
        result = await executor.execute_task(task)
        client.verify_result(result, executor_public_key)  # True
    """

    def __init__(self, name: str = "anonymous", identity: Identity | None = None) -> None:
        self.identity = identity or Identity.generate(name)

    def create_task(self, capability_id: str, payload: Any) -> Task:
        """
        Signed task ready for submission.

        Raises CanonicalizationError if the payload has no canonical form.
        """
        if isinstance(payload, BaseModel):
            payload = payload.model_dump(mode="json", by_alias=True)
        body = signable_task(
            task_id=str(uuid.uuid4()),
            requester_id=self.identity.id,
            capability_id=capability_id,
            payload=payload,
            timestamp=int(time.time() * 1000),
        )
        signature = self.identity.sign(body)
        display.task_created(body["taskId"], capability_id)
        return Task(
            task_id=body["taskId"],
            requester_id=body["requesterId"],
            capability_id=capability_id,
            payload=payload,
            timestamp=body["timestamp"],
            signature=signature,
            public_key=self.identity.public_key,
        )

    @staticmethod
    def _parse(result: Result | Mapping[str, Any]) -> Result | None:
        if isinstance(result, Result):
            return result
        try:
            return Result.model_validate(result)
        except ValidationError:
            return None

    def verify_result(self, result: Result | Mapping[str, Any], executor_public_key: str) -> bool:
        """True if `result` is authentic and untampered under `executor_public_key`."""
        parsed = self._parse(result)
        if parsed is None:
            return False
        if isinstance(result, Mapping):
            # Verify what was actually received, not a re-serialized model.
            body = {key: value for key, value in result.items() if key != "signature"}
        else:
            body = parsed.signable()
        return Identity.verify(body, parsed.signature, executor_public_key)

    def accept_result(
        self,
        result: Result | Mapping[str, Any],
        executor_public_key: str,
        task: Task | None = None,
    ) -> Result:
        """
        Verified Result, or VerificationFailure.

        When `task` is given the result must also echo its task id.
        """
        parsed = self._parse(result)
        task_id = parsed.task_id if parsed is not None else "<unparseable>"

        if parsed is None or not self.verify_result(result, executor_public_key):
            reason = f"Result for task '{task_id}' failed signature verification."
            display.result_verification_failed(task_id, reason)
            raise VerificationFailure(reason)

        if task is not None and parsed.task_id != task.task_id:
            reason = f"Result answers task '{parsed.task_id}', expected '{task.task_id}'."
            display.result_verification_failed(task_id, reason)
            raise VerificationFailure(reason)

        display.result_verified(parsed.task_id)
        return parsed
