"""
Response contracts for the four tasks.

Each contract is declared once as a table of FieldSpec entries. The same
table produces the `response_schema` sent to the model when schema
enforcement is on and the runtime validator applied to every parsed reply,
so the two can never drift apart.
"""

from dataclasses import dataclass
from typing import Any

from models.errors import SchemaViolation
from models.task import TaskKind

STRING = "string"
NUMBER = "number"
BOOLEAN = "boolean"
OBJECT = "object"
ARRAY = "array"
MAP = "map"  # object with free-form string keys and scalar values

_SCHEMA_TYPES = {
    STRING: "STRING",
    NUMBER: "NUMBER",
    BOOLEAN: "BOOLEAN",
    OBJECT: "OBJECT",
    ARRAY: "ARRAY",
    MAP: "OBJECT",
}


@dataclass(frozen=True)
class FieldSpec:
    name: str
    kind: str
    required: bool = False
    description: str | None = None
    enum: tuple[str, ...] = ()
    item_kind: str | None = None
    fields: tuple["FieldSpec", ...] = ()
    length: int | None = None


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return BOOLEAN
    if isinstance(value, (int, float)):
        return NUMBER
    if isinstance(value, str):
        return STRING
    if isinstance(value, list):
        return ARRAY
    if isinstance(value, dict):
        return OBJECT
    return type(value).__name__


def _matches(kind: str, value: Any) -> bool:
    actual = _type_name(value)
    if kind == MAP:
        return actual == OBJECT
    return actual == kind


def _schema_for(kind: str, *, fields=(), item_kind=None, enum=(), description=None) -> dict[str, Any]:
    schema: dict[str, Any] = {"type": _SCHEMA_TYPES[kind]}
    if description:
        schema["description"] = description
    if enum:
        schema["enum"] = list(enum)
    if kind == OBJECT and fields:
        schema["properties"] = {f.name: _field_schema(f) for f in fields}
        required = [f.name for f in fields if f.required]
        if required:
            schema["required"] = required
    if kind == ARRAY:
        schema["items"] = _schema_for(item_kind or STRING, fields=fields)
    return schema


def _field_schema(spec: FieldSpec) -> dict[str, Any]:
    return _schema_for(
        spec.kind,
        fields=spec.fields,
        item_kind=spec.item_kind,
        enum=spec.enum,
        description=spec.description,
    )


@dataclass(frozen=True)
class ResponseContract:
    task: TaskKind
    fields: tuple[FieldSpec, ...]

    @property
    def required_fields(self) -> list[str]:
        return [f.name for f in self.fields if f.required]

    def response_schema(self) -> dict[str, Any]:
        """Schema object for structured-output mode (Gemini OpenAPI subset)."""
        return _schema_for(OBJECT, fields=self.fields)

    def validate(self, data: Any) -> dict[str, Any]:
        """
        Check parsed JSON against the contract.

        Optional fields that are absent or null are accepted. Required fields
        must be present and of the declared type.

        Raises:
            SchemaViolation: naming the dotted path of the first offending field
        """
        if not isinstance(data, dict):
            raise SchemaViolation("$", reason=f"expected object, got {_type_name(data)}")
        self._validate_object(data, self.fields, prefix="")
        return data

    def _validate_object(self, data: dict, fields: tuple[FieldSpec, ...], prefix: str) -> None:
        for spec in fields:
            path = f"{prefix}{spec.name}"
            if spec.name not in data or (data[spec.name] is None and not spec.required):
                if spec.required:
                    raise SchemaViolation(path)
                continue
            self._validate_value(data[spec.name], spec, path)

    def _validate_value(self, value: Any, spec: FieldSpec, path: str) -> None:
        if not _matches(spec.kind, value):
            raise SchemaViolation(
                path, reason=f"expected {spec.kind}, got {_type_name(value)}"
            )
        if spec.enum and value not in spec.enum:
            raise SchemaViolation(path, reason=f"value {value!r} not in {list(spec.enum)}")
        if spec.kind == OBJECT:
            self._validate_object(value, spec.fields, prefix=f"{path}.")
        elif spec.kind == MAP:
            for key, item in value.items():
                if _type_name(item) not in (STRING, NUMBER, BOOLEAN):
                    raise SchemaViolation(
                        f"{path}.{key}", reason=f"expected scalar, got {_type_name(item)}"
                    )
        elif spec.kind == ARRAY:
            if spec.length is not None and len(value) != spec.length:
                raise SchemaViolation(
                    path, reason=f"expected {spec.length} items, got {len(value)}"
                )
            item_kind = spec.item_kind or STRING
            for index, item in enumerate(value):
                item_path = f"{path}[{index}]"
                if not _matches(item_kind, item):
                    raise SchemaViolation(
                        item_path, reason=f"expected {item_kind}, got {_type_name(item)}"
                    )
                if item_kind == OBJECT:
                    self._validate_object(item, spec.fields, prefix=f"{item_path}.")


SECTION_STATUSES = ("pass", "fail", "warning", "info")

AUDIT_CONTRACT = ResponseContract(
    task=TaskKind.AUDIT,
    fields=(
        FieldSpec("summary", STRING, required=True),
        FieldSpec(
            "missingDatasheet",
            BOOLEAN,
            description=(
                "Set to true if you CANNOT find the datasheet, OR if the found part does not "
                "match the schematic symbol (pin count/labels mismatch). Otherwise false."
            ),
        ),
        FieldSpec(
            "sections",
            ARRAY,
            required=True,
            item_kind=OBJECT,
            fields=(
                FieldSpec("title", STRING, required=True),
                FieldSpec("status", STRING, required=True, enum=SECTION_STATUSES),
                FieldSpec("content", STRING, required=True),
                FieldSpec(
                    "boundingBox",
                    ARRAY,
                    item_kind=NUMBER,
                    length=4,
                    description=(
                        "A single bounding box [ymin, xmin, ymax, xmax] normalized to 0-1000 "
                        "representing the schematic region of interest."
                    ),
                ),
                FieldSpec("datasheetImageUri", STRING),
                FieldSpec("datasheetPageRef", NUMBER),
                FieldSpec("correctData", STRING),
            ),
        ),
        FieldSpec("suggestedFixes", ARRAY, required=True, item_kind=STRING),
    ),
)

# An audit that reports missingDatasheet=true may stop after the summary;
# whatever sections or fixes it carries are discarded.
UNMATCHED_AUDIT_CONTRACT = ResponseContract(
    task=TaskKind.AUDIT,
    fields=(
        FieldSpec("summary", STRING, required=True),
        FieldSpec("missingDatasheet", BOOLEAN, required=True),
    ),
)

BOM_CONTRACT = ResponseContract(
    task=TaskKind.BOM,
    fields=(
        FieldSpec(
            "items",
            ARRAY,
            required=True,
            item_kind=OBJECT,
            fields=(
                FieldSpec("partNumber", STRING, required=True),
                FieldSpec("description", STRING, required=True),
                FieldSpec("manufacturer", STRING, required=True),
                FieldSpec("quantity", NUMBER, required=True),
                FieldSpec("designators", STRING, required=True),
                FieldSpec("estimatedUnitPrice", NUMBER, required=True),
                FieldSpec("totalPrice", NUMBER, required=True),
                FieldSpec(
                    "cadLinks",
                    OBJECT,
                    required=True,
                    fields=(
                        FieldSpec("model3d", STRING),
                        FieldSpec("footprint", STRING),
                        FieldSpec("symbol", STRING),
                    ),
                ),
            ),
        ),
        FieldSpec("totalEstimatedCost", NUMBER, required=True),
        FieldSpec("currency", STRING, required=True),
    ),
)

PART_SEARCH_CONTRACT = ResponseContract(
    task=TaskKind.PART_SEARCH,
    fields=(
        FieldSpec("partNumber", STRING, required=True),
        FieldSpec("manufacturer", STRING, required=True),
        FieldSpec("description", STRING, required=True),
        FieldSpec("imageUri", STRING),
        FieldSpec("specs", MAP, required=True),
        FieldSpec("datasheetUri", STRING),
        FieldSpec(
            "cadLinks",
            OBJECT,
            required=True,
            fields=(
                FieldSpec("model3d", STRING),
                FieldSpec("footprint", STRING),
                FieldSpec("provider", STRING),
            ),
        ),
        FieldSpec(
            "pricing",
            ARRAY,
            required=True,
            item_kind=OBJECT,
            fields=(
                FieldSpec("distributor", STRING, required=True),
                FieldSpec("price", STRING, required=True),
                FieldSpec("stock", STRING, required=True),
                FieldSpec("link", STRING, required=True),
            ),
        ),
        FieldSpec("alternatives", ARRAY, required=True, item_kind=STRING),
    ),
)

FIRMWARE_CONTRACT = ResponseContract(
    task=TaskKind.FIRMWARE,
    fields=(
        FieldSpec("filename", STRING, required=True),
        FieldSpec("language", STRING, required=True),
        FieldSpec("architecture", STRING, required=True),
        FieldSpec("description", STRING, required=True),
        FieldSpec("code", STRING, required=True),
    ),
)

CONTRACTS: dict[TaskKind, ResponseContract] = {
    TaskKind.AUDIT: AUDIT_CONTRACT,
    TaskKind.BOM: BOM_CONTRACT,
    TaskKind.PART_SEARCH: PART_SEARCH_CONTRACT,
    TaskKind.FIRMWARE: FIRMWARE_CONTRACT,
}


def get_contract(task: TaskKind) -> ResponseContract:
    return CONTRACTS[task]
