"""
Models package: task inputs, response contracts, typed results and errors.
"""

from .backend_reply import BackendReply, NormalizedError, TokenUsage
from .contracts import ResponseContract, get_contract
from .errors import (
    BackendInvocationError,
    BackendTimeoutError,
    MalformedResponse,
    NormalizationError,
    SchemaViolation,
)
from .results import (
    AuditResult,
    BOMResult,
    CodeResult,
    GroundedResult,
    PartSearchResult,
    RunState,
    TaskOutcome,
    UngroundedResult,
    WebSource,
)
from .task import Attachment, CapabilityMode, PromptBundle, StrategyDecision, TaskKind, TaskRequest

__all__ = [
    "Attachment",
    "AuditResult",
    "BOMResult",
    "BackendInvocationError",
    "BackendReply",
    "BackendTimeoutError",
    "CapabilityMode",
    "CodeResult",
    "GroundedResult",
    "MalformedResponse",
    "NormalizationError",
    "NormalizedError",
    "PartSearchResult",
    "PromptBundle",
    "ResponseContract",
    "RunState",
    "SchemaViolation",
    "StrategyDecision",
    "TaskKind",
    "TaskOutcome",
    "TaskRequest",
    "TokenUsage",
    "UngroundedResult",
    "WebSource",
    "get_contract",
]
