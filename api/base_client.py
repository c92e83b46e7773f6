import concurrent.futures
import time
import uuid
from abc import ABC, abstractmethod
from typing import Any, Callable, TypeVar

from models.backend_reply import BackendReply, NormalizedError
from models.errors import BackendTimeoutError
from models.task import CapabilityMode, PromptBundle

T = TypeVar("T")


class BaseAIClient(ABC):
    """
    Abstract base class for the hosted model backend.

    Concrete clients implement `generate`, which sends one multimodal prompt in
    one capability mode and returns a BackendReply, or raises
    BackendInvocationError (BackendTimeoutError when the deadline expires).
    """

    provider_name: str = "unknown"

    @abstractmethod
    def __init__(self, api_key: str, **kwargs):
        """
        Initialize the AI client.

        Args:
            api_key: API key for the AI service
            **kwargs: Additional client-specific parameters
                - timeout_s: client-side deadline per call in seconds
        """
        self.api_key = api_key
        self.timeout_s = kwargs.get("timeout_s")

    @abstractmethod
    def generate(
        self,
        prompt: PromptBundle,
        mode: CapabilityMode,
        *,
        enforce_schema: bool = False,
        response_schema: dict[str, Any] | None = None,
    ) -> BackendReply:
        """
        Invoke the backend once.

        Args:
            prompt: Instruction text plus attachments, in order
            mode: Capability profile (document reasoning or grounded search)
            enforce_schema: Ask the backend to guarantee `response_schema`
            response_schema: Schema object for structured-output mode

        Returns:
            BackendReply with the raw text and any grounding metadata
        """

    # ---------- helpers shared by concrete clients ----------

    def _generate_request_id(self) -> str:
        return str(uuid.uuid4())

    def _measure_latency(self, start_time: float) -> int:
        return int((time.time() - start_time) * 1000)

    def _call_with_deadline(self, fn: Callable[[], T], timeout_s: float | None) -> T:
        """
        Run `fn` under a client-side deadline.

        The worker thread is abandoned, not killed, when the deadline expires;
        its eventual result is discarded.
        """
        if not timeout_s:
            return fn()

        executor = concurrent.futures.ThreadPoolExecutor(max_workers=1)
        future = executor.submit(fn)
        try:
            return future.result(timeout=timeout_s)
        except concurrent.futures.TimeoutError as exc:
            future.cancel()
            raise BackendTimeoutError(
                NormalizedError(
                    code="timeout",
                    message=f"Request timed out after {timeout_s}s",
                    provider=self.provider_name,
                    retryable=True,
                    details={"timeout_seconds": timeout_s},
                )
            ) from exc
        finally:
            executor.shutdown(wait=False)

    def _normalize_error(self, exc: Exception, provider: str | None = None) -> NormalizedError:
        """Classify a transport or SDK exception."""
        provider = provider or self.provider_name
        message = str(exc) or type(exc).__name__
        lowered = message.lower()
        details = {"exception_type": type(exc).__name__}

        if isinstance(exc, TimeoutError) or "timed out" in lowered or "deadline" in lowered:
            code, retryable = "timeout", True
        elif any(k in lowered for k in ("401", "403", "unauthorized", "permission_denied", "api key")):
            code, retryable = "auth", False
        elif any(k in lowered for k in ("429", "too many requests", "rate limit", "resource_exhausted", "quota")):
            code, retryable = "rate_limit", True
        elif any(k in lowered for k in ("400", "bad request", "invalid_argument")):
            code, retryable = "bad_request", False
        elif any(k in lowered for k in ("500", "502", "503", "504", "unavailable", "internal")):
            code, retryable = "provider_error", True
        else:
            code, retryable = "unknown", False

        return NormalizedError(
            code=code, message=message, provider=provider, retryable=retryable, details=details
        )
