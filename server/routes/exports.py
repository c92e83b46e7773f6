"""Export endpoints: BOM as CSV, generated firmware as a source file."""

from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import Response

from models.contracts import get_contract
from models.errors import SchemaViolation
from models.results import BOMResult, CodeResult
from models.task import TaskKind
from server.dependencies import get_api_key
from server.schemas.requests import BOMExportRequest, FirmwareExportRequest
from utils.exporters import bom_export_filename, bom_to_csv, firmware_file

router = APIRouter(prefix="/v1/export", tags=["Export"], dependencies=[Depends(get_api_key)])


def _validated(task: TaskKind, payload: dict) -> dict:
    try:
        get_contract(task).validate(payload)
    except SchemaViolation as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        ) from exc
    return payload


def _attachment(filename: str) -> dict[str, str]:
    """Content-Disposition with an ASCII `filename` fallback and the UTF-8 `filename*` form."""
    fallback = "".join(
        c if c.isascii() and c.isprintable() and c not in '"\\' else "_" for c in filename
    )
    return {
        "Content-Disposition": (
            f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"
        )
    }


@router.post("/bom.csv")
async def export_bom(request: BOMExportRequest):
    """Render a BOM result as CSV."""
    data = _validated(TaskKind.BOM, request.model_dump())
    csv_text = bom_to_csv(BOMResult.from_dict(data))
    return Response(
        content=csv_text,
        media_type="text/csv",
        headers=_attachment(bom_export_filename()),
    )


@router.post("/firmware")
async def export_firmware(request: FirmwareExportRequest):
    """Return the generated code as a downloadable file, byte for byte."""
    data = _validated(TaskKind.FIRMWARE, request.model_dump())
    filename, payload = firmware_file(CodeResult.from_dict(data))
    return Response(
        content=payload,
        media_type="text/plain",
        headers=_attachment(filename),
    )
