# executor.py
# Executor runtime: authenticates, routes, validates, runs and signs tasks.
#
# Pipeline per task (single pass, no retries):
#   RECEIVED → AUTHENTICATED → [policy] → ROUTED → VALIDATED → EXECUTED → SIGNED
# Any step may divert to REJECTED. Every exit, success or failure, is a
# Result signed by this executor. The only await point is the handler call.
#
# Handlers and capabilities are registered during setup and treated as
# read-only afterwards, so execute_task() may run concurrently.

import inspect
import time
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from pydantic import BaseModel, ValidationError

from mtp import display
from mtp.canonical import canonicalize
from mtp.capabilities import Capability, CapabilityRegistry, Schema
from mtp.errors import (
    AuthenticationFailure,
    CanonicalizationError,
    CapabilityNotFound,
    HandlerExecutionError,
    MTPError,
    OutputValidationError,
    PolicyRejection,
    SchemaValidationError,
)
from mtp.identity import Identity
from mtp.models import DiscoveryDocument, ErrorKind, Result, Task, signable_result
from mtp.policy import TaskPolicy

Handler = Callable[[Any], Any | Awaitable[Any]]

AUTH_FAILED = "Invalid Task Signature: Auth Failed"
UNKNOWN_TASK_ID = "unknown"

# Most specific first: OutputValidationError is a SchemaValidationError.
_ERROR_KINDS: list[tuple[type[MTPError], ErrorKind]] = [
    (AuthenticationFailure, "authentication"),
    (PolicyRejection, "policy"),
    (CapabilityNotFound, "capability_not_found"),
    (OutputValidationError, "output_validation"),
    (SchemaValidationError, "schema_validation"),
    (HandlerExecutionError, "handler_execution"),
]


def _now_ms() -> int:
    return int(time.time() * 1000)


def _error_kind(exc: MTPError) -> ErrorKind:
    for cls, kind in _ERROR_KINDS:
        if isinstance(exc, cls):
            return kind
    return "handler_execution"


def _handler_message(exc: Exception) -> str:
    return str(exc) or type(exc).__name__


# ---------------------------------------------------------------------------
# Executor
# ---------------------------------------------------------------------------


class Executor:
    """
    An autonomous service node that accepts signed tasks.

    Example:
        executor = Executor("AlphaNode")
        cap = executor.add_capability("Add", AddInput, AddOutput, add)
        result = await executor.execute_task(signed_task)
    """

    def __init__(
        self,
        name: str = "anonymous",
        identity: Identity | None = None,
        policy: TaskPolicy | None = None,
        enforce_output_schema: bool = False,
    ) -> None:
        self.identity = identity or Identity.generate(name)
        self.registry = CapabilityRegistry(self.identity.public())
        self.handlers: dict[str, Handler] = {}
        self.policy = policy
        self.enforce_output_schema = enforce_output_schema

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def add_capability(
        self,
        name: str,
        input_schema: Schema | type[BaseModel],
        output_schema: Schema | type[BaseModel],
        handler: Handler,
        constraints: dict[str, Any] | None = None,
        description: str | None = None,
    ) -> Capability:
        """Register a capability's public definition and its implementation."""
        capability = self.registry.register(
            name, input_schema, output_schema, constraints=constraints, description=description
        )
        self.handlers[capability.id] = handler
        return capability

    def public_info(self) -> DiscoveryDocument:
        """Discovery document: who we are and what we can do."""
        return DiscoveryDocument(identity=self.identity.public(), capabilities=self.registry.describe())

    # ------------------------------------------------------------------
    # Pipeline stages
    # ------------------------------------------------------------------

    def _authenticate(self, task: Task) -> None:
        if task.public_key is None or not Identity.verify(
            task.signable(), task.signature, task.public_key
        ):
            raise AuthenticationFailure(AUTH_FAILED)
        display.task_authenticated(task.requester_id)

    def _apply_policy(self, task: Task) -> None:
        if self.policy is None:
            return
        reason = self.policy(task)
        if reason is not None:
            raise PolicyRejection(f"Task Rejected By Policy: {reason}")

    def _route(self, task: Task) -> Handler:
        handler = self.handlers.get(task.capability_id)
        if handler is None:
            raise CapabilityNotFound(
                f"Capability '{task.capability_id}' not supported by this executor."
            )
        return handler

    def _validate(self, task: Task) -> Any:
        try:
            return self.registry.validate(task.capability_id, task.payload)
        except SchemaValidationError as exc:
            raise SchemaValidationError(f"Schema Validation Failed: {exc}") from exc

    async def _invoke(self, handler: Handler, payload: Any) -> Any:
        try:
            value = handler(payload)
            if inspect.isawaitable(value):
                value = await value
        except Exception as exc:
            raise HandlerExecutionError(_handler_message(exc)) from exc
        return value

    def _check_output(self, task: Task, value: Any) -> Any:
        if not self.enforce_output_schema:
            return value
        try:
            return self.registry.validate_output(task.capability_id, value)
        except OutputValidationError as exc:
            raise OutputValidationError(f"Output Validation Failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def execute_task(self, task: Task | Mapping[str, Any]) -> Result:
        """
        Run one task through the full pipeline and return a signed Result.

        Protocol errors never escape: they become signed failures. Anything
        else (a broken crypto backend, cancellation) propagates.
        """
        parsed = self._parse(task)
        if parsed is None:
            task_id = task.get("taskId") if isinstance(task, Mapping) else None
            task_id = task_id if isinstance(task_id, str) else UNKNOWN_TASK_ID
            display.task_received(task_id, "<malformed>")
            return self._reject(task_id, AuthenticationFailure(AUTH_FAILED))

        display.task_received(parsed.task_id, parsed.capability_id)
        try:
            self._authenticate(parsed)
            self._apply_policy(parsed)
            handler = self._route(parsed)
            payload = self._validate(parsed)
            value = await self._invoke(handler, payload)
            value = self._check_output(parsed, value)
        except MTPError as exc:
            return self._reject(parsed.task_id, exc)

        try:
            canonicalize(value)
        except CanonicalizationError as exc:
            return self._reject(parsed.task_id, OutputValidationError(f"Output Validation Failed: {exc}"))

        result = self._signed_result(parsed.task_id, "success", result=value)
        display.task_completed(parsed.task_id)
        return result

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _parse(task: Task | Mapping[str, Any]) -> Task | None:
        if isinstance(task, Task):
            return task
        if not isinstance(task, Mapping):
            return None
        try:
            return Task.model_validate(task)
        except ValidationError:
            return None

    def _reject(self, task_id: str, exc: MTPError) -> Result:
        kind = _error_kind(exc)
        message = str(exc)
        display.task_rejected(task_id, kind, message)
        return self._signed_result(task_id, "failure", error=message, error_kind=kind)

    def _signed_result(
        self,
        task_id: str,
        status: str,
        result: Any = None,
        error: str | None = None,
        error_kind: ErrorKind | None = None,
    ) -> Result:
        body = signable_result(
            task_id,
            self.identity.id,
            status,
            _now_ms(),
            result=result,
            error=error,
            error_kind=error_kind,
        )
        signature = self.identity.sign(body)
        return Result(
            task_id=task_id,
            executor_id=self.identity.id,
            status=status,
            result=result,
            error=error,
            error_kind=error_kind,
            timestamp=body["timestamp"],
            signature=signature,
        )
