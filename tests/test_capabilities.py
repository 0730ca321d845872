from unittest.mock import MagicMock

import pytest
from pydantic import BaseModel

from mtp.capabilities import INTERNAL_SCHEMA_NOTE, CapabilityRegistry, ModelSchema
from mtp.errors import CapabilityNotFound, OutputValidationError, SchemaValidationError
from mtp.identity import Identity


class AddInput(BaseModel):
    a: float
    b: float


class AddOutput(BaseModel):
    answer: float


class Point(BaseModel):
    x: int
    y: int


class Shape(BaseModel):
    name: str
    points: list[Point]
    label: str | None = None


@pytest.fixture
def registry():
    return CapabilityRegistry(Identity.generate("executor").public())

# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------

def test_register_returns_capability_with_derived_id(registry):
    cap = registry.register("Image Resize", AddInput, AddOutput, constraints={"timeout_ms": 500})
    assert cap.id.startswith("cap_image_resize_")
    assert cap.name == "Image Resize"
    assert cap.description == "Capability for Image Resize"
    assert cap.constraints == {"timeout_ms": 500}
    assert cap.id in registry
    assert registry.get(cap.id) is cap

def test_reregistering_a_name_yields_a_new_id(registry):
    first = registry.register("Add", AddInput, AddOutput)
    second = registry.register("Add", AddInput, AddOutput)
    assert first.id != second.id
    assert len(registry) == 2
    assert registry.get(first.id) is first

def test_constraints_default_to_empty(registry):
    assert registry.register("Add", AddInput, AddOutput).constraints == {}

def test_register_rejects_non_schema(registry):
    with pytest.raises(TypeError):
        registry.register("Bad", dict, AddOutput)

# ---------------------------------------------------------------------------
# Validation gate
# ---------------------------------------------------------------------------

def test_validate_returns_normalized_payload(registry):
    cap = registry.register("Add", AddInput, AddOutput)
    assert registry.validate(cap.id, {"a": 2, "b": 3}) == {"a": 2.0, "b": 3.0}

def test_validate_strips_unknown_fields(registry):
    cap = registry.register("Add", AddInput, AddOutput)
    assert registry.validate(cap.id, {"a": 1, "b": 2, "rm": "-rf /"}) == {"a": 1.0, "b": 2.0}

def test_validate_nested_and_optional_fields(registry):
    cap = registry.register("Shape", Shape, AddOutput)
    value = registry.validate(cap.id, {"name": "tri", "points": [{"x": 0, "y": 0}, {"x": 1, "y": 2}]})
    assert value == {"name": "tri", "points": [{"x": 0, "y": 0}, {"x": 1, "y": 2}], "label": None}

    with pytest.raises(SchemaValidationError, match="points.1.y"):
        registry.validate(cap.id, {"name": "tri", "points": [{"x": 0, "y": 0}, {"x": 1}]})

def test_validate_rejects_wrong_types(registry):
    cap = registry.register("Add", AddInput, AddOutput)
    with pytest.raises(SchemaValidationError, match="a"):
        registry.validate(cap.id, {"a": "two", "b": 3})

def test_validate_rejects_non_object_payload(registry):
    cap = registry.register("Add", AddInput, AddOutput)
    with pytest.raises(SchemaValidationError):
        registry.validate(cap.id, [1, 2])

def test_validate_unknown_capability(registry):
    with pytest.raises(CapabilityNotFound, match="cap_missing"):
        registry.validate("cap_missing", {})

def test_validate_output(registry):
    cap = registry.register("Add", AddInput, AddOutput)
    assert registry.validate_output(cap.id, {"answer": 5, "extra": 1}) == {"answer": 5.0}
    with pytest.raises(OutputValidationError):
        registry.validate_output(cap.id, {"wrong": 5})

def test_custom_schema_objects_are_accepted(registry):
    schema = MagicMock(spec=["validate"])
    schema.validate.return_value = {"ok": True}
    cap = registry.register("Custom", schema, schema)
    assert registry.validate(cap.id, {"anything": 1}) == {"ok": True}
    schema.validate.assert_called_once_with({"anything": 1})

# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------

def test_describe_exposes_public_fields_only(registry):
    cap = registry.register("Add", AddInput, AddOutput, constraints={"cost": 1})
    catalogue = registry.describe()

    assert catalogue.executor_id == registry.owner.id
    assert len(catalogue.capabilities) == 1
    entry = catalogue.capabilities[0]
    assert entry.id == cap.id
    assert entry.constraints == {"cost": 1}
    assert entry.schema_description["input"] == AddInput.model_json_schema()
    assert entry.schema_description["output"] == AddOutput.model_json_schema()

    wire = catalogue.to_wire()
    assert set(wire) == {"executorId", "capabilities", "timestamp"}
    assert set(wire["capabilities"][0]) == {"id", "name", "description", "constraints", "schemaDescription"}

def test_describe_falls_back_when_schemas_cannot_describe(registry):
    schema = MagicMock(spec=["validate"])
    registry.register("Opaque", schema, schema)
    assert registry.describe().capabilities[0].schema_description == INTERNAL_SCHEMA_NOTE

def test_model_schema_repr():
    assert repr(ModelSchema(AddInput)) == "ModelSchema(AddInput)"
