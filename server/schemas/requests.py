"""Pydantic request models for FastAPI endpoints."""

from typing import Any

from pydantic import BaseModel, Field


class PartSearchRequest(BaseModel):
    query: str = Field(..., min_length=1, max_length=500)
    want_datasheet: bool = True
    want_cad: bool = True
    want_pricing: bool = True


class BOMExportRequest(BaseModel):
    """A BOM result as returned by /v1/bom (camelCase keys)."""

    items: list[dict[str, Any]]
    totalEstimatedCost: float
    currency: str


class FirmwareExportRequest(BaseModel):
    """A code result as returned by /v1/firmware (camelCase keys)."""

    filename: str = Field(..., min_length=1)
    language: str
    architecture: str
    description: str
    code: str
