"""
Task inputs for one schematic run.

Everything here is immutable: a TaskRequest is built fresh per run and the
attachments it owns are discarded when the run completes.
"""

import mimetypes
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class TaskKind(str, Enum):
    AUDIT = "audit"
    BOM = "bom"
    PART_SEARCH = "part_search"
    FIRMWARE = "firmware"


class CapabilityMode(str, Enum):
    """Backend capability profiles. The two are never combined in one call."""

    DOCUMENT_REASONING = "document_reasoning"
    GROUNDED_SEARCH = "grounded_search"


@dataclass(frozen=True)
class Attachment:
    """A binary payload (schematic or datasheet) with its declared media type."""

    data: bytes = field(repr=False)
    mime_type: str
    name: str | None = None

    def __post_init__(self):
        if not self.data:
            raise ValueError("Attachment payload is empty")
        if not self.mime_type:
            raise ValueError("Attachment media type is required")

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_path(cls, path: str | Path, mime_type: str | None = None) -> "Attachment":
        file_path = Path(path)
        guessed, _ = mimetypes.guess_type(file_path.name)
        return cls(
            data=file_path.read_bytes(),
            mime_type=mime_type or guessed or "application/octet-stream",
            name=file_path.name,
        )


def _clean(value: str | None) -> str:
    return (value or "").strip()


@dataclass(frozen=True)
class TaskRequest:
    """
    One "run" action.

    Attributes:
        kind: Which of the four tasks to perform
        schematic: Primary diagram (required for every task except part search)
        datasheet: Secondary supporting document (audit only)
        target_part: Part number to verify (audit); blank means full scan
        notes: Free-text design notes or firmware requirements
        pin_mapping: User-declared connections for firmware generation
        query: Part number or keywords for part search
        want_datasheet / want_cad / want_pricing: Part search extras
    """

    kind: TaskKind
    schematic: Attachment | None = None
    datasheet: Attachment | None = None
    target_part: str = ""
    notes: str = ""
    pin_mapping: str = ""
    query: str = ""
    want_datasheet: bool = True
    want_cad: bool = True
    want_pricing: bool = True

    def __post_init__(self):
        object.__setattr__(self, "target_part", _clean(self.target_part))
        object.__setattr__(self, "notes", _clean(self.notes))
        object.__setattr__(self, "pin_mapping", _clean(self.pin_mapping))
        object.__setattr__(self, "query", _clean(self.query))

        if self.kind is TaskKind.PART_SEARCH:
            if not self.query:
                raise ValueError("Part search requires a query")
        elif self.schematic is None:
            raise ValueError(f"{self.kind.value} requires a schematic attachment")

        if self.datasheet is not None and self.kind is not TaskKind.AUDIT:
            raise ValueError("Only the audit task accepts a datasheet")

    @property
    def has_supporting_document(self) -> bool:
        return self.datasheet is not None

    @property
    def has_target_identifier(self) -> bool:
        return bool(self.target_part)

    @property
    def attachments(self) -> tuple[Attachment, ...]:
        """Attachments in the order {primary diagram, secondary document}."""
        return tuple(a for a in (self.schematic, self.datasheet) if a is not None)


@dataclass(frozen=True)
class StrategyDecision:
    mode: CapabilityMode
    enforce_schema: bool


@dataclass(frozen=True)
class PromptBundle:
    """Instruction text followed by zero, one, or two binary attachments."""

    instruction_text: str
    attachments: tuple[Attachment, ...] = ()
    template: str = "default"

    @property
    def parts(self) -> list[str | Attachment]:
        return [self.instruction_text, *self.attachments]
