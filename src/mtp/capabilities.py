# capabilities.py
# Capability registry: what an executor advertises, and the schema gate in
# front of every handler.
#
# Entries are only ever added. A capability's schemas never change after
# registration; registering the same name again yields a new id.

import re
import secrets
import time
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ValidationError

from mtp import display
from mtp.errors import CapabilityNotFound, OutputValidationError, SchemaValidationError
from mtp.models import CapabilityCatalogue, CapabilityDescriptor, PublicIdentity

INTERNAL_SCHEMA_NOTE = "Validators are internal to Executor instance"


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------


@runtime_checkable
class Schema(Protocol):
    """Anything that can validate a value and hand back its normalized form."""

    def validate(self, value: Any) -> Any:
        """Return the normalized value or raise SchemaValidationError."""
        ...


def _format_errors(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "<root>"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


class ModelSchema:
    """
    Schema backed by a pydantic model.

    Unknown fields are dropped on success so handlers only ever see what the
    model declares.
    """

    def __init__(self, model: type[BaseModel]) -> None:
        self.model = model

    def validate(self, value: Any) -> dict[str, Any]:
        try:
            return self.model.model_validate(value).model_dump(mode="json")
        except ValidationError as exc:
            raise SchemaValidationError(_format_errors(exc)) from exc

    def describe(self) -> dict[str, Any]:
        return self.model.model_json_schema()

    def __repr__(self) -> str:
        return f"ModelSchema({self.model.__name__})"


def as_schema(schema: Schema | type[BaseModel]) -> Schema:
    if isinstance(schema, type) and issubclass(schema, BaseModel):
        return ModelSchema(schema)
    if isinstance(schema, Schema):
        return schema
    raise TypeError(f"Expected a Schema or a pydantic model class, got {schema!r}.")


# ---------------------------------------------------------------------------
# Capability
# ---------------------------------------------------------------------------


def _describe(schema: Schema) -> dict[str, Any] | None:
    describe = getattr(schema, "describe", None)
    return describe() if callable(describe) else None


def _capability_id(name: str) -> str:
    slug = re.sub(r"\s+", "_", name.strip().lower())
    return f"cap_{slug}_{int(time.time() * 1000)}_{secrets.token_hex(4)}"


@dataclass(frozen=True)
class Capability:
    id: str
    name: str
    input_schema: Schema = field(repr=False)
    output_schema: Schema = field(repr=False)
    description: str = ""
    constraints: dict[str, Any] = field(default_factory=dict)

    def schema_description(self) -> dict[str, Any] | str:
        described = {
            "input": _describe(self.input_schema),
            "output": _describe(self.output_schema),
        }
        if described["input"] is None and described["output"] is None:
            return INTERNAL_SCHEMA_NOTE
        return described

    def descriptor(self) -> CapabilityDescriptor:
        return CapabilityDescriptor(
            id=self.id,
            name=self.name,
            description=self.description,
            constraints=dict(self.constraints),
            schema_description=self.schema_description(),
        )


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class CapabilityRegistry:
    """Holds an executor's capabilities and gates payloads through their schemas."""

    def __init__(self, owner: PublicIdentity) -> None:
        self.owner = owner
        self._capabilities: dict[str, Capability] = {}

    def register(
        self,
        name: str,
        input_schema: Schema | type[BaseModel],
        output_schema: Schema | type[BaseModel],
        constraints: dict[str, Any] | None = None,
        description: str | None = None,
    ) -> Capability:
        capability_id = _capability_id(name)
        while capability_id in self._capabilities:
            capability_id = _capability_id(name)

        capability = Capability(
            id=capability_id,
            name=name,
            input_schema=as_schema(input_schema),
            output_schema=as_schema(output_schema),
            description=description or f"Capability for {name}",
            constraints=dict(constraints or {}),
        )
        self._capabilities[capability_id] = capability
        display.capability_registered(name, capability_id)
        return capability

    def get(self, capability_id: str) -> Capability:
        try:
            return self._capabilities[capability_id]
        except KeyError:
            raise CapabilityNotFound(f"Capability not found: {capability_id}") from None

    def validate(self, capability_id: str, value: Any) -> Any:
        """Validated, normalized input. Raises CapabilityNotFound / SchemaValidationError."""
        schema = self.get(capability_id).input_schema
        try:
            return schema.validate(value)
        except SchemaValidationError:
            raise
        except Exception as exc:
            # Third-party engines raise their own error types.
            raise SchemaValidationError(str(exc) or type(exc).__name__) from exc

    def validate_output(self, capability_id: str, value: Any) -> Any:
        capability = self.get(capability_id)
        try:
            return capability.output_schema.validate(value)
        except Exception as exc:
            raise OutputValidationError(str(exc) or type(exc).__name__) from exc

    def describe(self) -> CapabilityCatalogue:
        """Public catalogue: every capability minus its schema handles."""
        return CapabilityCatalogue(
            executor_id=self.owner.id,
            capabilities=[cap.descriptor() for cap in self._capabilities.values()],
            timestamp=int(time.time() * 1000),
        )

    def __contains__(self, capability_id: object) -> bool:
        return capability_id in self._capabilities

    def __len__(self) -> int:
        return len(self._capabilities)

    def __iter__(self):
        return iter(self._capabilities.values())
