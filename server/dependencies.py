"""FastAPI dependencies for authentication, configuration and orchestrator access."""

import os

from fastapi import Header, HTTPException, Request, status

from server.session_guard import SessionGuard
from server.utils import redact_sensitive_headers
from utils.logger import get_logger

logger = get_logger(__name__)


async def get_api_key(request: Request, x_api_key: str | None = Header(None)):
    """Validate API key from X-API-Key header."""
    valid_keys_str = os.getenv("API_KEYS", "")
    request_id = getattr(request.state, "request_id", "unknown")
    redacted_headers = redact_sensitive_headers(dict(request.headers))

    if not valid_keys_str:
        logger.error(
            "API authentication not configured",
            extra={"extra_fields": {"request_id": request_id, "headers": redacted_headers}},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="API authentication not configured",
        )

    valid_keys = [k.strip() for k in valid_keys_str.split(",") if k.strip()]

    if not x_api_key or x_api_key not in valid_keys:
        logger.warning(
            "API authentication failed",
            extra={"extra_fields": {"request_id": request_id, "headers": redacted_headers}},
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or missing API key"
        )

    return x_api_key


def get_config():
    """Dependency to get the Config instance (singleton pattern)."""
    from config.config import Config

    if not hasattr(get_config, "_instance"):
        get_config._instance = Config()
    return get_config._instance


def get_orchestrator():
    """Dependency to get orchestrator instance (singleton pattern)."""
    from api.google_gemini_client import GeminiClient
    from orchestrator.core import SchematicOrchestrator
    from orchestrator.model_registry import ModelRegistry

    if not hasattr(get_orchestrator, "_instance"):
        config = get_config()
        registry = ModelRegistry.from_yaml(config.MODEL_REGISTRY_PATH).with_overrides(
            reasoning_model=config.REASONING_MODEL,
            search_model=config.SEARCH_MODEL,
            thinking_budget=config.THINKING_BUDGET,
        )
        client = GeminiClient(
            api_key=config.GOOGLE_GEMINI_API_KEY,
            registry=registry,
            timeout_s=config.BACKEND_TIMEOUT_S,
        )
        get_orchestrator._instance = SchematicOrchestrator(client)
    return get_orchestrator._instance


def get_session_guard() -> SessionGuard:
    if not hasattr(get_session_guard, "_instance"):
        get_session_guard._instance = SessionGuard()
    return get_session_guard._instance


def get_max_upload_bytes() -> int:
    return get_config().MAX_UPLOAD_BYTES
