"""
Orchestrator tests against a scripted FakeBackend.

The four end-to-end scenarios cover the audit template/strategy branches,
the ambiguous-match outcome and verbatim firmware export.
"""

import json
from pathlib import Path

import pytest

from models.backend_reply import NormalizedError
from models.errors import BackendInvocationError, BackendTimeoutError
from models.results import (
    AuditResult,
    BOMResult,
    CodeResult,
    GroundedResult,
    PartSearchResult,
    RunState,
    UngroundedResult,
    WebSource,
)
from models.task import CapabilityMode, TaskKind, TaskRequest
from orchestrator import prompt_builder
from orchestrator.core import (
    PART_SEARCH_FAILURE_MESSAGE,
    SCHEMATIC_FAILURE_MESSAGE,
    SchematicOrchestrator,
    ambiguous_match_summary,
)
from utils.exporters import write_firmware

pytestmark = pytest.mark.unit


def _backend_error(code="provider_error"):
    return BackendInvocationError(
        NormalizedError(code=code, message="upstream exploded", provider="fake")
    )


# ---------- end-to-end scenarios ----------


def test_full_scan_audit_succeeds_with_sources(make_backend, fenced_reply, audit_payload, chunk, schematic):
    backend = make_backend(
        (fenced_reply(audit_payload), [chunk("https://www.ti.com/lm358", "TI LM358")])
    )
    outcome = SchematicOrchestrator(backend).run_audit(schematic)

    call = backend.calls[0]
    assert call["prompt"].template == prompt_builder.FULL_SCAN
    assert call["mode"] is CapabilityMode.GROUNDED_SEARCH
    assert call["enforce_schema"] is False
    assert call["response_schema"] is None

    assert outcome.state is RunState.SUCCESS
    assert isinstance(outcome.envelope, GroundedResult)
    assert len(outcome.result.sections) == 2
    assert outcome.result.sections[0].bounding_box == (120, 340, 180, 420)
    assert outcome.sources == (WebSource(uri="https://www.ti.com/lm358", title="TI LM358"),)
    assert outcome.result.sources == outcome.sources


def test_audit_with_datasheet_parses_raw_json(make_backend, audit_payload, schematic, datasheet):
    backend = make_backend(json.dumps(audit_payload))
    outcome = SchematicOrchestrator(backend).run_audit(
        schematic, target_part="LM317", datasheet=datasheet
    )

    call = backend.calls[0]
    assert call["mode"] is CapabilityMode.DOCUMENT_REASONING
    assert call["enforce_schema"] is True
    assert call["response_schema"]["required"] == ["summary", "sections", "suggestedFixes"]
    assert call["prompt"].attachments == (schematic, datasheet)

    assert outcome.is_success
    assert isinstance(outcome.envelope, UngroundedResult)
    assert outcome.sources is None
    assert outcome.result.summary == audit_payload["summary"]


def test_missing_datasheet_yields_ambiguous_match(make_backend, fenced_reply, audit_payload, chunk, schematic):
    audit_payload["missingDatasheet"] = True
    backend = make_backend((fenced_reply(audit_payload), [chunk("https://mouser.com/xyz999")]))
    outcome = SchematicOrchestrator(backend).run_audit(schematic, target_part="XYZ999")

    assert backend.calls[0]["prompt"].template == prompt_builder.GROUNDED_SEARCH
    assert outcome.state is RunState.AMBIGUOUS_MATCH
    result = outcome.result
    assert isinstance(result, AuditResult)
    assert result.sections == ()
    assert result.suggested_fixes == ()
    assert result.missing_datasheet is True
    assert result.summary == ambiguous_match_summary("XYZ999")
    assert '"XYZ999"' in result.summary
    assert [s.uri for s in result.sources] == ["https://mouser.com/xyz999"]
    assert outcome.message


def test_firmware_code_exported_verbatim(make_backend, firmware_payload, schematic, tmp_path):
    firmware_payload["code"] = "#define LED_STATUS PA5  // User Mapping\n\tint main(void) { return 0; }\n"
    firmware_payload["filename"] = "main.c"
    backend = make_backend(json.dumps(firmware_payload))
    outcome = SchematicOrchestrator(backend).run_firmware_gen(
        schematic, notes="status LED", manual_pin_mapping="LED_STATUS -> PA5"
    )

    call = backend.calls[0]
    assert call["mode"] is CapabilityMode.DOCUMENT_REASONING
    assert call["enforce_schema"] is True
    assert "LED_STATUS -> PA5" in call["prompt"].instruction_text

    assert outcome.is_success
    path = write_firmware(outcome.result, tmp_path)
    assert path == Path(tmp_path) / "main.c"
    assert path.read_bytes() == firmware_payload["code"].encode("utf-8")


# ---------- ambiguous-match details ----------


def test_ambiguous_full_scan_names_schematic(make_backend, fenced_reply, audit_payload, schematic):
    audit_payload["missingDatasheet"] = True
    outcome = SchematicOrchestrator(make_backend(fenced_reply(audit_payload))).run_audit(schematic)
    assert outcome.is_ambiguous
    assert '"identified in schematic"' in outcome.result.summary
    # grounding was attempted but nothing came back
    assert outcome.sources == ()
    assert outcome.result.sources is None


def test_missing_datasheet_false_is_success(make_backend, fenced_reply, audit_payload, schematic):
    outcome = SchematicOrchestrator(make_backend(fenced_reply(audit_payload))).run_audit(
        schematic, target_part="LM358"
    )
    assert outcome.is_success


def test_missing_datasheet_reply_without_sections(make_backend, fenced_reply, chunk, schematic):
    # the grounded prompt tells the model to stop once it sets missingDatasheet
    reply = fenced_reply({"summary": "Could not match XYZ999", "missingDatasheet": True})
    backend = make_backend((reply, [chunk("https://www.digikey.com/xyz999", "DigiKey")]))
    outcome = SchematicOrchestrator(backend).run_audit(schematic, target_part="XYZ999")

    assert outcome.state is RunState.AMBIGUOUS_MATCH
    assert outcome.failure_reason is None
    assert outcome.result.sections == ()
    assert outcome.result.suggested_fixes == ()
    assert outcome.result.summary == ambiguous_match_summary("XYZ999")
    assert [s.title for s in outcome.sources] == ["DigiKey"]


def test_missing_datasheet_reply_still_needs_summary(make_backend, fenced_reply, schematic):
    backend = make_backend(fenced_reply({"missingDatasheet": True}))
    outcome = SchematicOrchestrator(backend).run_audit(schematic, target_part="XYZ999")
    assert outcome.is_failed
    assert outcome.failure_reason == "schema_violation"


def test_missing_datasheet_only_short_circuits_audits(make_backend, fenced_reply, schematic):
    outcome = SchematicOrchestrator(
        make_backend(fenced_reply({"summary": "n/a", "missingDatasheet": True}))
    ).run_bom(schematic)
    assert outcome.is_failed
    assert outcome.failure_reason == "schema_violation"


def test_blank_query_raises_before_backend_call(make_backend):
    backend = make_backend()
    with pytest.raises(ValueError):
        SchematicOrchestrator(backend).run_part_search("  ")
    assert backend.calls == []


# ---------- failures ----------


def test_backend_error_is_failed_with_generic_message(make_backend, schematic):
    backend = make_backend(_backend_error("rate_limit"))
    outcome = SchematicOrchestrator(backend).run_bom(schematic)

    assert outcome.state is RunState.FAILED
    assert outcome.message == SCHEMATIC_FAILURE_MESSAGE
    assert outcome.failure_reason == "rate_limit"
    assert outcome.result is None
    assert "upstream exploded" not in outcome.message


def test_timeout_is_failed_with_timeout_reason(make_backend, schematic, datasheet):
    timeout = BackendTimeoutError(
        NormalizedError(code="timeout", message="Request timed out after 1s", provider="fake")
    )
    outcome = SchematicOrchestrator(make_backend(timeout)).run_audit(
        schematic, target_part="LM358", datasheet=datasheet
    )
    assert outcome.is_failed
    assert outcome.failure_reason == "timeout"


def test_malformed_reply_is_failed(make_backend, schematic):
    outcome = SchematicOrchestrator(make_backend("I could not read the image.")).run_bom(schematic)
    assert outcome.is_failed
    assert outcome.failure_reason == "malformed_response"
    assert outcome.message == SCHEMATIC_FAILURE_MESSAGE


def test_schema_violation_is_failed(make_backend, fenced_reply, audit_payload, schematic):
    del audit_payload["summary"]
    outcome = SchematicOrchestrator(make_backend(fenced_reply(audit_payload))).run_audit(schematic)
    assert outcome.is_failed
    assert outcome.failure_reason == "schema_violation"


def test_part_search_failure_message(make_backend):
    outcome = SchematicOrchestrator(make_backend(_backend_error())).run_part_search("LM358")
    assert outcome.message == PART_SEARCH_FAILURE_MESSAGE


def test_no_retry_after_failure(make_backend, schematic, fenced_reply, bom_payload):
    backend = make_backend(_backend_error(), fenced_reply(bom_payload))
    SchematicOrchestrator(backend).run_bom(schematic)
    assert len(backend.calls) == 1
    assert len(backend.replies) == 1


# ---------- the other tasks ----------


def test_bom_success_attaches_sources(make_backend, fenced_reply, bom_payload, chunk, schematic):
    backend = make_backend((fenced_reply(bom_payload), [chunk("https://lcsc.com", "LCSC")]))
    outcome = SchematicOrchestrator(backend).run_bom(schematic)

    assert backend.calls[0]["mode"] is CapabilityMode.GROUNDED_SEARCH
    assert isinstance(outcome.result, BOMResult)
    assert outcome.result.items[0].cad_links.model3d is None
    assert outcome.result.to_dict()["sources"] == [{"uri": "https://lcsc.com", "title": "LCSC"}]


def test_part_search_flags_reach_prompt(make_backend, fenced_reply, part_payload):
    backend = make_backend(fenced_reply(part_payload))
    outcome = SchematicOrchestrator(backend).run_part_search("LM358", want_pricing=False)

    assert backend.calls[0]["prompt"].attachments == ()
    assert "Pricing and Stock" not in backend.calls[0]["prompt"].instruction_text
    assert isinstance(outcome.result, PartSearchResult)
    assert outcome.result.specs["Channels"] == "2"


def test_run_dispatches_on_request_kind(make_backend, firmware_payload, schematic):
    backend = make_backend(json.dumps(firmware_payload))
    outcome = SchematicOrchestrator(backend).run(
        TaskRequest(kind=TaskKind.FIRMWARE, schematic=schematic)
    )
    assert outcome.task is TaskKind.FIRMWARE
    assert isinstance(outcome.result, CodeResult)


def test_runs_are_independent(make_backend, fenced_reply, bom_payload, schematic):
    backend = make_backend(_backend_error(), fenced_reply(bom_payload))
    orchestrator = SchematicOrchestrator(backend)
    first = orchestrator.run_bom(schematic)
    second = orchestrator.run_bom(schematic)
    assert first.is_failed
    assert second.is_success
    assert first.request_id != second.request_id
