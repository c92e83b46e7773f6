"""
Typed results for the four tasks.

Instances are built from JSON that already passed its ResponseContract, so
`from_dict` trusts required keys and only defaults the optional ones.
`to_dict` emits the exact camelCase wire names consumers of exported data
rely on; optional fields that are unset are left out rather than nulled.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Union

from models.task import TaskKind


def _drop_none(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


@dataclass(frozen=True)
class WebSource:
    uri: str
    title: str

    def to_dict(self) -> dict[str, str]:
        return {"uri": self.uri, "title": self.title}


def _sources_to_list(sources: tuple[WebSource, ...] | None) -> list[dict[str, str]] | None:
    if sources is None:
        return None
    return [s.to_dict() for s in sources]


@dataclass(frozen=True)
class AuditSection:
    title: str
    status: str  # pass | fail | warning | info
    content: str
    bounding_box: tuple[float, float, float, float] | None = None
    datasheet_image_uri: str | None = None
    datasheet_page_ref: float | None = None
    correct_data: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AuditSection":
        box = data.get("boundingBox")
        return cls(
            title=data["title"],
            status=data["status"],
            content=data["content"],
            bounding_box=tuple(box) if box else None,
            datasheet_image_uri=data.get("datasheetImageUri"),
            datasheet_page_ref=data.get("datasheetPageRef"),
            correct_data=data.get("correctData"),
        )

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "title": self.title,
                "status": self.status,
                "content": self.content,
                "boundingBox": list(self.bounding_box) if self.bounding_box else None,
                "datasheetImageUri": self.datasheet_image_uri,
                "datasheetPageRef": self.datasheet_page_ref,
                "correctData": self.correct_data,
            }
        )


@dataclass(frozen=True)
class AuditResult:
    summary: str
    sections: tuple[AuditSection, ...] = ()
    suggested_fixes: tuple[str, ...] = ()
    missing_datasheet: bool | None = None
    sources: tuple[WebSource, ...] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AuditResult":
        return cls(
            summary=data["summary"],
            sections=tuple(AuditSection.from_dict(s) for s in data["sections"]),
            suggested_fixes=tuple(data["suggestedFixes"]),
            missing_datasheet=data.get("missingDatasheet"),
        )

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "summary": self.summary,
                "missingDatasheet": self.missing_datasheet,
                "sections": [s.to_dict() for s in self.sections],
                "suggestedFixes": list(self.suggested_fixes),
                "sources": _sources_to_list(self.sources),
            }
        )


@dataclass(frozen=True)
class CadLinks:
    model3d: str | None = None
    footprint: str | None = None
    symbol: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CadLinks":
        return cls(
            model3d=data.get("model3d") or None,
            footprint=data.get("footprint") or None,
            symbol=data.get("symbol") or None,
        )

    def to_dict(self) -> dict[str, str]:
        return _drop_none(
            {"model3d": self.model3d, "footprint": self.footprint, "symbol": self.symbol}
        )


@dataclass(frozen=True)
class BOMItem:
    part_number: str
    description: str
    manufacturer: str
    quantity: float
    designators: str
    estimated_unit_price: float
    total_price: float
    cad_links: CadLinks = field(default_factory=CadLinks)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BOMItem":
        return cls(
            part_number=data["partNumber"],
            description=data["description"],
            manufacturer=data["manufacturer"],
            quantity=data["quantity"],
            designators=data["designators"],
            estimated_unit_price=data["estimatedUnitPrice"],
            total_price=data["totalPrice"],
            cad_links=CadLinks.from_dict(data["cadLinks"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "partNumber": self.part_number,
            "description": self.description,
            "manufacturer": self.manufacturer,
            "quantity": self.quantity,
            "designators": self.designators,
            "estimatedUnitPrice": self.estimated_unit_price,
            "totalPrice": self.total_price,
            "cadLinks": self.cad_links.to_dict(),
        }


@dataclass(frozen=True)
class BOMResult:
    items: tuple[BOMItem, ...]
    total_estimated_cost: float
    currency: str
    sources: tuple[WebSource, ...] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BOMResult":
        return cls(
            items=tuple(BOMItem.from_dict(item) for item in data["items"]),
            total_estimated_cost=data["totalEstimatedCost"],
            currency=data["currency"],
        )

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "items": [item.to_dict() for item in self.items],
                "totalEstimatedCost": self.total_estimated_cost,
                "currency": self.currency,
                "sources": _sources_to_list(self.sources),
            }
        )


@dataclass(frozen=True)
class PartCadLinks:
    model3d: str | None = None
    footprint: str | None = None
    provider: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PartCadLinks":
        return cls(
            model3d=data.get("model3d") or None,
            footprint=data.get("footprint") or None,
            provider=data.get("provider") or None,
        )

    def to_dict(self) -> dict[str, str]:
        return _drop_none(
            {"model3d": self.model3d, "footprint": self.footprint, "provider": self.provider}
        )


@dataclass(frozen=True)
class DistributorPrice:
    distributor: str
    price: str
    stock: str
    link: str

    def to_dict(self) -> dict[str, str]:
        return {
            "distributor": self.distributor,
            "price": self.price,
            "stock": self.stock,
            "link": self.link,
        }


@dataclass(frozen=True)
class PartSearchResult:
    part_number: str
    manufacturer: str
    description: str
    specs: dict[str, str]
    cad_links: PartCadLinks
    pricing: tuple[DistributorPrice, ...] = ()
    alternatives: tuple[str, ...] = ()
    image_uri: str | None = None
    datasheet_uri: str | None = None
    sources: tuple[WebSource, ...] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PartSearchResult":
        return cls(
            part_number=data["partNumber"],
            manufacturer=data["manufacturer"],
            description=data["description"],
            # scalar spec values such as 5.5 are kept as their text form
            specs={str(k): str(v) for k, v in data["specs"].items()},
            cad_links=PartCadLinks.from_dict(data["cadLinks"]),
            pricing=tuple(
                DistributorPrice(
                    distributor=p["distributor"], price=p["price"], stock=p["stock"], link=p["link"]
                )
                for p in data["pricing"]
            ),
            alternatives=tuple(data["alternatives"]),
            image_uri=data.get("imageUri") or None,
            datasheet_uri=data.get("datasheetUri") or None,
        )

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "partNumber": self.part_number,
                "manufacturer": self.manufacturer,
                "description": self.description,
                "imageUri": self.image_uri,
                "specs": dict(self.specs),
                "datasheetUri": self.datasheet_uri,
                "cadLinks": self.cad_links.to_dict(),
                "pricing": [p.to_dict() for p in self.pricing],
                "alternatives": list(self.alternatives),
                "sources": _sources_to_list(self.sources),
            }
        )


@dataclass(frozen=True)
class CodeResult:
    filename: str
    language: str
    architecture: str
    description: str
    code: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CodeResult":
        return cls(
            filename=data["filename"],
            language=data["language"],
            architecture=data["architecture"],
            description=data["description"],
            code=data["code"],
        )

    def to_dict(self) -> dict[str, str]:
        return {
            "filename": self.filename,
            "language": self.language,
            "architecture": self.architecture,
            "description": self.description,
            "code": self.code,
        }


TaskResult = Union[AuditResult, BOMResult, PartSearchResult, CodeResult]

RESULT_TYPES: dict[TaskKind, type] = {
    TaskKind.AUDIT: AuditResult,
    TaskKind.BOM: BOMResult,
    TaskKind.PART_SEARCH: PartSearchResult,
    TaskKind.FIRMWARE: CodeResult,
}


def result_from_dict(task: TaskKind, data: dict[str, Any]) -> TaskResult:
    return RESULT_TYPES[task].from_dict(data)


def with_sources(result: TaskResult, sources: tuple[WebSource, ...]) -> TaskResult:
    """Attach provenance when the result type carries it and the list is non-empty."""
    if not sources or not hasattr(result, "sources"):
        return result
    return replace(result, sources=tuple(sources))


@dataclass(frozen=True)
class GroundedResult:
    """Result of a web-grounded call; an empty `sources` means nothing was found."""

    result: TaskResult
    sources: tuple[WebSource, ...] = ()

    grounded = True


@dataclass(frozen=True)
class UngroundedResult:
    """Result of a document-reasoning call; grounding was never attempted."""

    result: TaskResult

    grounded = False


ResultEnvelope = Union[GroundedResult, UngroundedResult]


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCESS = "success"
    AMBIGUOUS_MATCH = "ambiguous_match"
    FAILED = "failed"


@dataclass(frozen=True)
class TaskOutcome:
    """
    Terminal answer of one run: Success, AmbiguousMatch or Failed, never partial.

    `failure_reason` is the internal error classification; it is logged and
    available to tests but never shown to end users.
    """

    task: TaskKind
    state: RunState
    request_id: str
    envelope: ResultEnvelope | None = None
    message: str | None = None
    failure_reason: str | None = None

    @property
    def result(self) -> TaskResult | None:
        return self.envelope.result if self.envelope is not None else None

    @property
    def sources(self) -> tuple[WebSource, ...] | None:
        if isinstance(self.envelope, GroundedResult):
            return self.envelope.sources
        return None

    @property
    def is_success(self) -> bool:
        return self.state is RunState.SUCCESS

    @property
    def is_ambiguous(self) -> bool:
        return self.state is RunState.AMBIGUOUS_MATCH

    @property
    def is_failed(self) -> bool:
        return self.state is RunState.FAILED
