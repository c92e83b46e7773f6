"""Pydantic response models (DTOs) for FastAPI endpoints."""

from typing import Any

from pydantic import BaseModel, Field

from models.results import TaskOutcome


class WebSourceDTO(BaseModel):
    uri: str
    title: str


class TaskResponseDTO(BaseModel):
    request_id: str
    task: str
    state: str
    message: str | None = None
    result: dict[str, Any] | None = None
    grounded: bool = False
    sources: list[WebSourceDTO] = Field(default_factory=list)

    @classmethod
    def from_outcome(cls, outcome: TaskOutcome):
        """Convert TaskOutcome to DTO."""
        envelope = outcome.envelope
        return cls(
            request_id=outcome.request_id,
            task=outcome.task.value,
            state=outcome.state.value,
            message=outcome.message,
            result=envelope.result.to_dict() if envelope else None,
            grounded=bool(envelope and envelope.grounded),
            sources=[
                WebSourceDTO(uri=s.uri, title=s.title) for s in (outcome.sources or ())
            ],
        )


class HealthResponseDTO(BaseModel):
    status: str
    timestamp: str
    version: str
