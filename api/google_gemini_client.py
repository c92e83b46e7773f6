import time
from typing import Any

from google import genai
from google.genai import types

from models.backend_reply import BackendReply, NormalizedError, TokenUsage
from models.errors import BackendInvocationError, BackendTimeoutError
from models.task import CapabilityMode, PromptBundle
from orchestrator.model_registry import ModelRegistry
from utils.logger import get_logger

from .base_client import BaseAIClient

logger = get_logger(__name__)


class GeminiClient(BaseAIClient):
    """
    Client for the Google Gemini API (google-genai package).

    Document-reasoning calls run on the reasoning model with structured output
    and a thinking budget. Grounded-search calls run on the search model with
    the Google Search tool, which the API does not allow together with a
    response schema.
    """

    provider_name = "gemini"

    def __init__(
        self,
        api_key: str,
        registry: ModelRegistry | None = None,
        timeout_s: float | None = 120.0,
        **kwargs,
    ):
        """
        Initialize the Gemini client.

        Args:
            api_key: The Google Gemini API key
            registry: Capability profiles (model per mode); loaded from YAML if omitted
            timeout_s: Client-side deadline per call, None to wait indefinitely
            **kwargs: Additional keyword arguments
        """
        super().__init__(api_key, timeout_s=timeout_s, **kwargs)

        if not api_key:
            raise ValueError("API key is required for Gemini")

        self.registry = registry or ModelRegistry.from_yaml()
        http_options = None
        if timeout_s:
            # the SDK expects milliseconds
            http_options = types.HttpOptions(timeout=int(timeout_s * 1000))
        self.client = genai.Client(api_key=api_key, http_options=http_options)

    def _build_contents(self, prompt: PromptBundle) -> list[Any]:
        contents: list[Any] = [prompt.instruction_text]
        for attachment in prompt.attachments:
            contents.append(
                types.Part.from_bytes(data=attachment.data, mime_type=attachment.mime_type)
            )
        return contents

    def _build_config(
        self,
        mode: CapabilityMode,
        enforce_schema: bool,
        response_schema: dict[str, Any] | None,
    ) -> types.GenerateContentConfig:
        profile = self.registry.profile(mode)
        config: dict[str, Any] = {}
        if profile.temperature is not None:
            config["temperature"] = profile.temperature

        if mode is CapabilityMode.GROUNDED_SEARCH:
            if enforce_schema:
                raise ValueError("Schema enforcement is unavailable together with web search")
            config["tools"] = [types.Tool(google_search=types.GoogleSearch())]
        else:
            if enforce_schema:
                config["response_mime_type"] = "application/json"
                if response_schema:
                    config["response_schema"] = response_schema
            if profile.thinking_budget is not None:
                config["thinking_config"] = types.ThinkingConfig(
                    thinking_budget=profile.thinking_budget
                )

        return types.GenerateContentConfig(**config)

    def _grounding_chunks(self, response: Any) -> list[Any] | None:
        candidates = getattr(response, "candidates", None) or []
        if not candidates:
            return None
        metadata = getattr(candidates[0], "grounding_metadata", None)
        if metadata is None:
            return None
        chunks = getattr(metadata, "grounding_chunks", None)
        return list(chunks) if chunks else []

    def _finish_reason(self, response: Any) -> str | None:
        candidates = getattr(response, "candidates", None) or []
        if not candidates:
            return None
        reason = getattr(candidates[0], "finish_reason", None)
        if reason is None:
            return None
        return str(getattr(reason, "name", reason)).lower()

    def _token_usage(self, response: Any) -> TokenUsage:
        usage = getattr(response, "usage_metadata", None)
        if usage is None:
            return TokenUsage()
        return TokenUsage(
            prompt_tokens=getattr(usage, "prompt_token_count", 0) or 0,
            completion_tokens=getattr(usage, "candidates_token_count", 0) or 0,
            total_tokens=getattr(usage, "total_token_count", 0) or 0,
        )

    def generate(
        self,
        prompt: PromptBundle,
        mode: CapabilityMode,
        *,
        enforce_schema: bool = False,
        response_schema: dict[str, Any] | None = None,
    ) -> BackendReply:
        request_id = self._generate_request_id()
        model = self.registry.model_for(mode)
        config = self._build_config(mode, enforce_schema, response_schema)
        contents = self._build_contents(prompt)
        start_time = time.time()

        try:
            response = self._call_with_deadline(
                lambda: self.client.models.generate_content(
                    model=model, contents=contents, config=config
                ),
                self.timeout_s,
            )
        except BackendTimeoutError:
            logger.error(
                "Gemini call timed out",
                extra={
                    "extra_fields": {
                        "request_id": request_id,
                        "model": model,
                        "mode": mode.value,
                        "timeout_s": self.timeout_s,
                    }
                },
            )
            raise
        except Exception as e:
            error = self._normalize_error(e)
            logger.error(
                f"Gemini call failed: {error.code}",
                extra={
                    "extra_fields": {
                        "request_id": request_id,
                        "model": model,
                        "mode": mode.value,
                        "error_code": error.code,
                        "error_message": error.message,
                        "retryable": error.retryable,
                    }
                },
            )
            raise BackendInvocationError(error) from e

        latency_ms = self._measure_latency(start_time)
        text = getattr(response, "text", None)
        if not text or not str(text).strip():
            raise BackendInvocationError(
                NormalizedError(
                    code="provider_error",
                    message="No response text generated",
                    provider=self.provider_name,
                    details={"finish_reason": self._finish_reason(response)},
                )
            )

        reply = BackendReply(
            request_id=request_id,
            text=str(text),
            provider=self.provider_name,
            model=model,
            latency_ms=latency_ms,
            token_usage=self._token_usage(response),
            grounding_chunks=self._grounding_chunks(response),
            finish_reason=self._finish_reason(response),
        )

        logger.info(
            "Gemini call successful",
            extra={
                "extra_fields": {
                    "request_id": request_id,
                    "model": model,
                    "mode": mode.value,
                    "schema_enforced": enforce_schema,
                    "attachments": len(prompt.attachments),
                    "latency_ms": latency_ms,
                    "tokens": reply.token_usage.total_tokens,
                    "grounding_chunks": None
                    if reply.grounding_chunks is None
                    else len(reply.grounding_chunks),
                }
            },
        )
        return reply
