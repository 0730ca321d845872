# models.py
# Wire contracts for the task protocol.
# No business logic lives here, only schema and validation.
#
# Attributes are snake_case; the wire (and signed) field names are camelCase.

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

ErrorKind = Literal[
    "authentication",
    "capability_not_found",
    "schema_validation",
    "policy",
    "handler_execution",
    "output_validation",
]


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict using wire field names."""
        return self.model_dump(mode="json", by_alias=True)


class SignedModel(WireModel):
    # Strict: a signed field must arrive with the exact type it was signed as.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, strict=True)


# ---------------------------------------------------------------------------
# Task
# ---------------------------------------------------------------------------


class Task(SignedModel):
    """A signed request to invoke one capability with a payload."""

    task_id: str
    requester_id: str
    capability_id: str
    payload: Any = None
    timestamp: int = Field(..., description="Creation time, milliseconds since epoch.")
    signature: str
    public_key: str | None = Field(default=None, description="Requester public key (hex).")

    def signable(self) -> dict[str, Any]:
        """The exact field set covered by the signature."""
        return signable_task(
            self.task_id, self.requester_id, self.capability_id, self.payload, self.timestamp
        )

    def to_wire(self) -> dict[str, Any]:
        wire = {**self.signable(), "signature": self.signature}
        if self.public_key is not None:
            wire["publicKey"] = self.public_key
        return wire


def signable_task(
    task_id: str, requester_id: str, capability_id: str, payload: Any, timestamp: int
) -> dict[str, Any]:
    return {
        "taskId": task_id,
        "requesterId": requester_id,
        "capabilityId": capability_id,
        "payload": payload,
        "timestamp": timestamp,
    }


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


class Result(SignedModel):
    """
    Signed outcome of a task.

    Exactly one of `result` / `error` is carried, selected by `status`.
    """

    task_id: str
    executor_id: str
    status: Literal["success", "failure"]
    result: Any = None
    error: str | None = None
    error_kind: ErrorKind | None = None
    timestamp: int
    signature: str

    @model_validator(mode="after")
    def _status_selects_body(self) -> "Result":
        if self.status == "success":
            if self.error is not None or self.error_kind is not None:
                raise ValueError("A success result cannot carry an error.")
        else:
            if self.error is None:
                raise ValueError("A failure result must carry an error message.")
            if self.result is not None:
                raise ValueError("A failure result cannot carry a result value.")
        return self

    @property
    def ok(self) -> bool:
        return self.status == "success"

    def signable(self) -> dict[str, Any]:
        return signable_result(
            self.task_id,
            self.executor_id,
            self.status,
            self.timestamp,
            result=self.result,
            error=self.error,
            error_kind=self.error_kind,
        )

    def to_wire(self) -> dict[str, Any]:
        return {**self.signable(), "signature": self.signature}


def signable_result(
    task_id: str,
    executor_id: str,
    status: str,
    timestamp: int,
    result: Any = None,
    error: str | None = None,
    error_kind: str | None = None,
) -> dict[str, Any]:
    body: dict[str, Any] = {
        "taskId": task_id,
        "executorId": executor_id,
        "status": status,
        "timestamp": timestamp,
    }
    if status == "success":
        body["result"] = result
    else:
        body["error"] = error
        if error_kind is not None:
            body["errorKind"] = error_kind
    return body


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


class PublicIdentity(WireModel):
    id: str
    public_key: str


class CapabilityDescriptor(WireModel):
    """Public view of a capability: everything except the schema handles."""

    id: str
    name: str
    description: str
    constraints: dict[str, Any] = Field(default_factory=dict)
    schema_description: dict[str, Any] | str


class CapabilityCatalogue(WireModel):
    executor_id: str
    capabilities: list[CapabilityDescriptor]
    timestamp: int


class DiscoveryDocument(WireModel):
    identity: PublicIdentity
    capabilities: CapabilityCatalogue
