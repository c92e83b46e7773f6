"""
SchematicOrchestrator - the four task pipelines.

Each run goes strategy -> prompt -> backend -> normalizer -> enricher -> typed
result and ends in exactly one of Success, AmbiguousMatch (audit only) or
Failed. Key guarantees:
- Backend and normalization failures never bubble up from run_*(); they
  become a Failed outcome with one generic user-facing message, and the
  internal detail goes to the log
- Invalid input (e.g. a blank part-search query) raises ValueError when the
  TaskRequest is built, before any backend call
- An audit reply with missingDatasheet=true only needs a summary; it ends in
  AmbiguousMatch whatever else the reply carries
- No automatic retries and no partial results
- The orchestrator keeps no per-run state, so runs are independent
"""

import uuid

from api.base_client import BaseAIClient
from models.contracts import UNMATCHED_AUDIT_CONTRACT, get_contract
from models.errors import BackendInvocationError, NormalizationError, SchemaViolation
from models.results import (
    AuditResult,
    GroundedResult,
    RunState,
    TaskOutcome,
    UngroundedResult,
    result_from_dict,
)
from models.task import Attachment, CapabilityMode, TaskKind, TaskRequest
from orchestrator.prompt_builder import build_prompt
from orchestrator.response_normalizer import ResponseNormalizer
from orchestrator.result_enricher import enrich
from orchestrator.strategy import select_strategy
from utils.logger import get_logger

logger = get_logger(__name__)

SCHEMATIC_FAILURE_MESSAGE = (
    "Failed to process the schematic. Please ensure the file is clear and readable."
)
PART_SEARCH_FAILURE_MESSAGE = "Failed to find part information. Please verify the part number."

FAILURE_MESSAGES = {
    TaskKind.AUDIT: SCHEMATIC_FAILURE_MESSAGE,
    TaskKind.BOM: SCHEMATIC_FAILURE_MESSAGE,
    TaskKind.FIRMWARE: SCHEMATIC_FAILURE_MESSAGE,
    TaskKind.PART_SEARCH: PART_SEARCH_FAILURE_MESSAGE,
}

AMBIGUOUS_MATCH_TEMPLATE = (
    'Automatic lookup failed. The part "{part}" could not be confidently matched to the '
    "schematic symbol using online sources (DigiKey, Mouser, etc.). This might be due to a "
    "pin count mismatch or variant ambiguity."
)
AMBIGUOUS_MATCH_HINT = "Upload the datasheet or pinout for this part and run the audit again."


def ambiguous_match_summary(target_part: str) -> str:
    return AMBIGUOUS_MATCH_TEMPLATE.format(part=target_part or "identified in schematic")


class SchematicOrchestrator:
    def __init__(self, client: BaseAIClient, normalizer: ResponseNormalizer | None = None):
        self._client = client
        self._normalizer = normalizer or ResponseNormalizer()

    # ---------- public entry points ----------

    def run_audit(
        self,
        schematic: Attachment,
        target_part: str | None = None,
        datasheet: Attachment | None = None,
        notes: str = "",
    ) -> TaskOutcome:
        return self.run(
            TaskRequest(
                kind=TaskKind.AUDIT,
                schematic=schematic,
                datasheet=datasheet,
                target_part=target_part or "",
                notes=notes,
            )
        )

    def run_bom(self, schematic: Attachment) -> TaskOutcome:
        return self.run(TaskRequest(kind=TaskKind.BOM, schematic=schematic))

    def run_part_search(
        self,
        query: str,
        want_datasheet: bool = True,
        want_cad: bool = True,
        want_pricing: bool = True,
    ) -> TaskOutcome:
        return self.run(
            TaskRequest(
                kind=TaskKind.PART_SEARCH,
                query=query,
                want_datasheet=want_datasheet,
                want_cad=want_cad,
                want_pricing=want_pricing,
            )
        )

    def run_firmware_gen(
        self, schematic: Attachment, notes: str = "", manual_pin_mapping: str = ""
    ) -> TaskOutcome:
        return self.run(
            TaskRequest(
                kind=TaskKind.FIRMWARE,
                schematic=schematic,
                notes=notes,
                pin_mapping=manual_pin_mapping,
            )
        )

    def run(self, request: TaskRequest) -> TaskOutcome:
        """Execute one task request and return its terminal outcome."""
        request_id = str(uuid.uuid4())
        decision = select_strategy(
            request.kind, request.has_supporting_document, request.has_target_identifier
        )
        prompt = build_prompt(request)
        contract = get_contract(request.kind)

        log_fields = {
            "request_id": request_id,
            "task": request.kind.value,
            "mode": decision.mode.value,
            "schema_enforced": decision.enforce_schema,
            "template": prompt.template,
            "attachments": len(prompt.attachments),
        }
        logger.info(
            "Run started",
            extra={"extra_fields": {**log_fields, "state": RunState.RUNNING.value}},
        )

        try:
            reply = self._client.generate(
                prompt,
                decision.mode,
                enforce_schema=decision.enforce_schema,
                response_schema=contract.response_schema() if decision.enforce_schema else None,
            )
            logger.debug(
                "Backend reply received",
                extra={"extra_fields": {**log_fields, "reply": reply.text}},
            )
            data = self._normalizer.extract(reply.text, enforce_schema=decision.enforce_schema)
            unmatched = request.kind is TaskKind.AUDIT and data.get("missingDatasheet") is True
            checked = UNMATCHED_AUDIT_CONTRACT if unmatched else contract
            checked.validate(data)
        except BackendInvocationError as exc:
            logger.error(
                "Backend invocation failed",
                extra={
                    "extra_fields": {
                        **log_fields,
                        "error_code": exc.code,
                        "error_message": exc.error.message,
                    }
                },
            )
            return self._failed(request, request_id, reason=exc.code)
        except NormalizationError as exc:
            fields = {**log_fields, "error_kind": exc.kind, "error_message": str(exc)}
            if isinstance(exc, SchemaViolation):
                fields["field"] = exc.field
            logger.error("Response normalization failed", extra={"extra_fields": fields})
            return self._failed(request, request_id, reason=exc.kind)

        if unmatched:
            # sections and fixes are discarded whatever the backend put there
            result = AuditResult(
                summary=ambiguous_match_summary(request.target_part),
                sections=(),
                suggested_fixes=(),
                missing_datasheet=True,
            )
        else:
            result = result_from_dict(request.kind, data)

        if decision.mode is CapabilityMode.GROUNDED_SEARCH:
            result = enrich(result, reply.grounding_chunks)
            envelope = GroundedResult(result=result, sources=getattr(result, "sources", None) or ())
        else:
            envelope = UngroundedResult(result=result)

        if unmatched:
            return self._ambiguous(request, request_id, envelope, data, log_fields)

        logger.info(
            "Run succeeded",
            extra={
                "extra_fields": {
                    **log_fields,
                    "state": RunState.SUCCESS.value,
                    "latency_ms": reply.latency_ms,
                    "tokens": reply.token_usage.total_tokens,
                    "sources": len(envelope.sources) if envelope.grounded else None,
                }
            },
        )
        return TaskOutcome(
            task=request.kind,
            state=RunState.SUCCESS,
            request_id=request_id,
            envelope=envelope,
        )

    # ---------- terminal states ----------

    def _ambiguous(
        self, request: TaskRequest, request_id: str, envelope, data: dict, log_fields
    ) -> TaskOutcome:
        sections = data.get("sections")
        logger.warning(
            "Audit could not match the part to the schematic symbol",
            extra={
                "extra_fields": {
                    **log_fields,
                    "state": RunState.AMBIGUOUS_MATCH.value,
                    "target_part": request.target_part or None,
                    "discarded_sections": len(sections) if isinstance(sections, list) else 0,
                }
            },
        )
        return TaskOutcome(
            task=request.kind,
            state=RunState.AMBIGUOUS_MATCH,
            request_id=request_id,
            envelope=envelope,
            message=AMBIGUOUS_MATCH_HINT,
        )

    def _failed(self, request: TaskRequest, request_id: str, reason: str) -> TaskOutcome:
        return TaskOutcome(
            task=request.kind,
            state=RunState.FAILED,
            request_id=request_id,
            message=FAILURE_MESSAGES[request.kind],
            failure_reason=reason,
        )
