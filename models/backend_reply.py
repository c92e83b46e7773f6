from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True)
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def __post_init__(self):
        if self.total_tokens == 0 and (self.prompt_tokens > 0 or self.completion_tokens > 0):
            object.__setattr__(self, "total_tokens", self.prompt_tokens + self.completion_tokens)


@dataclass(frozen=True)
class NormalizedError:
    code: str
    message: str
    provider: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        valid_codes = {"timeout", "auth", "rate_limit", "bad_request", "provider_error", "unknown"}
        if self.code not in valid_codes:
            object.__setattr__(self, "code", "unknown")


@dataclass(frozen=True)
class BackendReply:
    """
    Unprocessed output of one backend invocation.

    grounding_chunks is None when the backend reported no grounding metadata
    at all, and a (possibly empty) list when it did.
    """

    request_id: str
    text: str
    provider: str
    model: str
    latency_ms: int = 0
    token_usage: TokenUsage = field(default_factory=TokenUsage)
    grounding_chunks: list[Any] | None = None
    finish_reason: str | None = None

    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "request_id": self.request_id,
            "text": self.text if len(self.text) <= 200 else self.text[:200] + "...",
            "provider": self.provider,
            "model": self.model,
            "latency_ms": self.latency_ms,
            "token_usage": {
                "prompt_tokens": self.token_usage.prompt_tokens,
                "completion_tokens": self.token_usage.completion_tokens,
                "total_tokens": self.token_usage.total_tokens,
            },
            "grounding_chunks": None if self.grounding_chunks is None else len(self.grounding_chunks),
            "finish_reason": self.finish_reason,
            "timestamp": self.timestamp,
        }
