"""Task endpoints: audit, BOM, part search, firmware generation."""

import asyncio
from collections.abc import Callable

from fastapi import APIRouter, Depends, File, Form, Header, HTTPException, Request, UploadFile, status

from models.results import TaskOutcome
from orchestrator.core import SchematicOrchestrator
from server.dependencies import (
    get_api_key,
    get_max_upload_bytes,
    get_orchestrator,
    get_session_guard,
)
from server.schemas.requests import PartSearchRequest
from server.schemas.responses import TaskResponseDTO
from server.session_guard import SessionBusyError, SessionGuard
from server.utils import read_upload
from utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/v1", tags=["Tasks"], dependencies=[Depends(get_api_key)])


async def _run_guarded(
    http_request: Request,
    guard: SessionGuard,
    session_id: str | None,
    run: Callable[[], TaskOutcome],
) -> TaskResponseDTO:
    middleware_request_id = getattr(http_request.state, "request_id", "unknown")
    try:
        with guard.claim(session_id):
            outcome = await asyncio.to_thread(run)
    except SessionBusyError as exc:
        logger.warning(
            "Rejected run: session already has a run in flight",
            extra={
                "extra_fields": {
                    "request_id": middleware_request_id,
                    "session_id": session_id,
                }
            },
        )
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

    logger.info(
        "Run finished",
        extra={
            "extra_fields": {
                "request_id": middleware_request_id,
                "run_id": outcome.request_id,
                "task": outcome.task.value,
                "state": outcome.state.value,
            }
        },
    )
    return TaskResponseDTO.from_outcome(outcome)


@router.post("/audit", response_model=TaskResponseDTO)
async def audit(
    http_request: Request,
    schematic: UploadFile = File(...),
    datasheet: UploadFile | None = File(None),
    target_part: str = Form(""),
    notes: str = Form(""),
    x_session_id: str | None = Header(None),
    orchestrator: SchematicOrchestrator = Depends(get_orchestrator),
    guard: SessionGuard = Depends(get_session_guard),
    max_bytes: int = Depends(get_max_upload_bytes),
):
    """Audit a schematic, optionally against a supplied datasheet."""
    schematic_file = await read_upload(schematic, max_bytes)
    datasheet_file = await read_upload(datasheet, max_bytes)
    return await _run_guarded(
        http_request,
        guard,
        x_session_id,
        lambda: orchestrator.run_audit(
            schematic_file, target_part=target_part, datasheet=datasheet_file, notes=notes
        ),
    )


@router.post("/bom", response_model=TaskResponseDTO)
async def bom(
    http_request: Request,
    schematic: UploadFile = File(...),
    x_session_id: str | None = Header(None),
    orchestrator: SchematicOrchestrator = Depends(get_orchestrator),
    guard: SessionGuard = Depends(get_session_guard),
    max_bytes: int = Depends(get_max_upload_bytes),
):
    """Extract a bill of materials with estimated pricing."""
    schematic_file = await read_upload(schematic, max_bytes)
    return await _run_guarded(
        http_request, guard, x_session_id, lambda: orchestrator.run_bom(schematic_file)
    )


@router.post("/part-search", response_model=TaskResponseDTO)
async def part_search(
    request: PartSearchRequest,
    http_request: Request,
    x_session_id: str | None = Header(None),
    orchestrator: SchematicOrchestrator = Depends(get_orchestrator),
    guard: SessionGuard = Depends(get_session_guard),
):
    """Look up a component by part number or keywords."""
    if not request.query.strip():
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="query must not be blank"
        )
    return await _run_guarded(
        http_request,
        guard,
        x_session_id,
        lambda: orchestrator.run_part_search(
            request.query,
            want_datasheet=request.want_datasheet,
            want_cad=request.want_cad,
            want_pricing=request.want_pricing,
        ),
    )


@router.post("/firmware", response_model=TaskResponseDTO)
async def firmware(
    http_request: Request,
    schematic: UploadFile = File(...),
    notes: str = Form(""),
    pin_mapping: str = Form(""),
    x_session_id: str | None = Header(None),
    orchestrator: SchematicOrchestrator = Depends(get_orchestrator),
    guard: SessionGuard = Depends(get_session_guard),
    max_bytes: int = Depends(get_max_upload_bytes),
):
    """Generate firmware for the microcontroller in the schematic."""
    schematic_file = await read_upload(schematic, max_bytes)
    return await _run_guarded(
        http_request,
        guard,
        x_session_id,
        lambda: orchestrator.run_firmware_gen(
            schematic_file, notes=notes, manual_pin_mapping=pin_mapping
        ),
    )
