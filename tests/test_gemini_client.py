"""
Tests for the Gemini backend client.

google.genai.Client is mocked, so these run offline; they check the request
each capability mode builds and how replies and errors are mapped.
"""

import time
from types import SimpleNamespace
from unittest.mock import Mock, patch

import pytest
from google.genai import types

from api.google_gemini_client import GeminiClient
from models.errors import BackendInvocationError, BackendTimeoutError
from models.task import CapabilityMode, PromptBundle
from orchestrator.model_registry import ModelRegistry

pytestmark = pytest.mark.unit


def _response(text="{}", chunks=None, with_grounding=False):
    grounding = SimpleNamespace(grounding_chunks=chunks) if with_grounding else None
    response = Mock()
    response.text = text
    response.usage_metadata = Mock(
        prompt_token_count=10, candidates_token_count=20, total_token_count=30
    )
    response.candidates = [Mock(finish_reason="STOP", grounding_metadata=grounding)]
    return response


def _client(mock_genai, response=None, **kwargs):
    mock_genai.return_value.models.generate_content.return_value = response or _response()
    return GeminiClient(api_key="test-key", registry=ModelRegistry.from_yaml(), **kwargs)


def _sent(mock_genai):
    return mock_genai.return_value.models.generate_content.call_args.kwargs


class TestGeminiRequestBuilding:
    @patch("google.genai.Client")
    def test_document_reasoning_enforces_schema(self, mock_genai, schematic, datasheet):
        client = _client(mock_genai)
        schema = {"type": "OBJECT", "properties": {"summary": {"type": "STRING"}}}
        client.generate(
            PromptBundle("Audit this", attachments=(schematic, datasheet)),
            CapabilityMode.DOCUMENT_REASONING,
            enforce_schema=True,
            response_schema=schema,
        )

        sent = _sent(mock_genai)
        assert sent["model"] == "gemini-3-pro-preview"
        config = sent["config"]
        assert config.response_mime_type == "application/json"
        assert config.tools is None
        assert config.thinking_config.thinking_budget == 4096
        assert sent["contents"][0] == "Audit this"
        assert len(sent["contents"]) == 3

    @patch("google.genai.Client")
    def test_grounded_search_uses_google_search_tool(self, mock_genai, schematic):
        client = _client(mock_genai)
        client.generate(PromptBundle("BOM", attachments=(schematic,)), CapabilityMode.GROUNDED_SEARCH)

        sent = _sent(mock_genai)
        assert sent["model"] == "gemini-2.5-flash"
        config = sent["config"]
        assert config.tools[0].google_search is not None
        assert config.response_schema is None
        assert config.response_mime_type is None

    @patch("google.genai.Client")
    def test_grounded_search_rejects_schema(self, mock_genai):
        client = _client(mock_genai)
        with pytest.raises(ValueError):
            client.generate(PromptBundle("x"), CapabilityMode.GROUNDED_SEARCH, enforce_schema=True)

    @patch("google.genai.Client")
    def test_registry_overrides_apply(self, mock_genai):
        mock_genai.return_value.models.generate_content.return_value = _response()
        registry = ModelRegistry.from_yaml().with_overrides(search_model="gemini-2.5-pro")
        GeminiClient(api_key="k", registry=registry).generate(
            PromptBundle("q"), CapabilityMode.GROUNDED_SEARCH
        )
        assert _sent(mock_genai)["model"] == "gemini-2.5-pro"

    @patch("google.genai.Client")
    def test_http_timeout_in_milliseconds(self, mock_genai):
        _client(mock_genai, timeout_s=30)
        http_options = mock_genai.call_args.kwargs["http_options"]
        assert isinstance(http_options, types.HttpOptions)
        assert http_options.timeout == 30000

    def test_api_key_required(self):
        with pytest.raises(ValueError):
            GeminiClient(api_key="", registry=ModelRegistry.from_yaml())


class TestGeminiReplies:
    @patch("google.genai.Client")
    def test_reply_fields(self, mock_genai):
        client = _client(mock_genai, _response(text='{"a": 1}'))
        reply = client.generate(PromptBundle("q"), CapabilityMode.DOCUMENT_REASONING)

        assert reply.text == '{"a": 1}'
        assert reply.provider == "gemini"
        assert reply.token_usage.total_tokens == 30
        assert reply.finish_reason == "stop"
        assert reply.grounding_chunks is None

    @patch("google.genai.Client")
    def test_grounding_chunks_passed_through(self, mock_genai):
        chunk = SimpleNamespace(web=SimpleNamespace(uri="https://ti.com", title="TI"))
        client = _client(mock_genai, _response(chunks=[chunk], with_grounding=True))
        reply = client.generate(PromptBundle("q"), CapabilityMode.GROUNDED_SEARCH)
        assert reply.grounding_chunks == [chunk]

    @patch("google.genai.Client")
    def test_empty_grounding_is_empty_list(self, mock_genai):
        client = _client(mock_genai, _response(chunks=None, with_grounding=True))
        reply = client.generate(PromptBundle("q"), CapabilityMode.GROUNDED_SEARCH)
        assert reply.grounding_chunks == []

    @patch("google.genai.Client")
    def test_empty_text_is_provider_error(self, mock_genai):
        client = _client(mock_genai, _response(text=""))
        with pytest.raises(BackendInvocationError) as exc:
            client.generate(PromptBundle("q"), CapabilityMode.DOCUMENT_REASONING)
        assert exc.value.code == "provider_error"


class TestGeminiErrors:
    @pytest.mark.parametrize(
        "message,code",
        [
            ("Request timed out", "timeout"),
            ("401 Unauthorized: API key not valid", "auth"),
            ("429 RESOURCE_EXHAUSTED", "rate_limit"),
            ("400 INVALID_ARGUMENT", "bad_request"),
            ("503 UNAVAILABLE", "provider_error"),
            ("something odd", "unknown"),
        ],
    )
    @patch("google.genai.Client")
    def test_sdk_errors_normalized(self, mock_genai, message, code):
        client = _client(mock_genai)
        mock_genai.return_value.models.generate_content.side_effect = Exception(message)
        with pytest.raises(BackendInvocationError) as exc:
            client.generate(PromptBundle("q"), CapabilityMode.DOCUMENT_REASONING)
        assert exc.value.code == code

    @patch("google.genai.Client")
    def test_client_side_deadline(self, mock_genai):
        client = _client(mock_genai, timeout_s=0.05)
        mock_genai.return_value.models.generate_content.side_effect = (
            lambda **kwargs: time.sleep(0.5) or _response()
        )
        with pytest.raises(BackendTimeoutError) as exc:
            client.generate(PromptBundle("q"), CapabilityMode.DOCUMENT_REASONING)
        assert exc.value.code == "timeout"
