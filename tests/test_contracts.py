import pytest

from models.contracts import (
    AUDIT_CONTRACT,
    BOM_CONTRACT,
    PART_SEARCH_CONTRACT,
    get_contract,
)
from models.errors import SchemaViolation
from models.task import TaskKind

pytestmark = pytest.mark.unit


def test_every_task_has_a_contract():
    for task in TaskKind:
        assert get_contract(task).task is task


def test_audit_schema_derivation():
    schema = AUDIT_CONTRACT.response_schema()
    assert schema["type"] == "OBJECT"
    assert schema["required"] == ["summary", "sections", "suggestedFixes"]

    section = schema["properties"]["sections"]["items"]
    assert section["type"] == "OBJECT"
    assert section["properties"]["status"]["enum"] == ["pass", "fail", "warning", "info"]
    assert section["properties"]["boundingBox"]["items"] == {"type": "NUMBER"}
    assert "boundingBox" not in section["required"]
    assert schema["properties"]["missingDatasheet"]["type"] == "BOOLEAN"


def test_required_fields():
    assert BOM_CONTRACT.required_fields == ["items", "totalEstimatedCost", "currency"]
    assert "specs" in PART_SEARCH_CONTRACT.required_fields


def test_optional_fields_may_be_absent_or_null(audit_payload):
    audit_payload.pop("missingDatasheet")
    audit_payload["sections"][0]["datasheetImageUri"] = None
    assert AUDIT_CONTRACT.validate(audit_payload) is audit_payload


def test_bounding_box_must_have_four_numbers(audit_payload):
    audit_payload["sections"][0]["boundingBox"] = [1, 2, 3]
    with pytest.raises(SchemaViolation) as exc:
        AUDIT_CONTRACT.validate(audit_payload)
    assert exc.value.field == "sections[0].boundingBox"


def test_unknown_status_rejected(audit_payload):
    audit_payload["sections"][0]["status"] = "critical"
    with pytest.raises(SchemaViolation):
        AUDIT_CONTRACT.validate(audit_payload)


def test_boolean_is_not_a_number(bom_payload):
    bom_payload["totalEstimatedCost"] = True
    with pytest.raises(SchemaViolation):
        BOM_CONTRACT.validate(bom_payload)


def test_specs_values_must_be_scalar(part_payload):
    part_payload["specs"]["Package"] = ["SOIC-8", "DIP-8"]
    with pytest.raises(SchemaViolation) as exc:
        PART_SEARCH_CONTRACT.validate(part_payload)
    assert exc.value.field == "specs.Package"


def test_non_object_rejected():
    with pytest.raises(SchemaViolation) as exc:
        BOM_CONTRACT.validate([])
    assert exc.value.field == "$"
