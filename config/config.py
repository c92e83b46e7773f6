import os
from pathlib import Path

from dotenv import load_dotenv

from utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_BACKEND_TIMEOUT_S = 120.0
DEFAULT_MAX_UPLOAD_MB = 20


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring non-numeric {name}={raw!r}; using {default}")
        return default


class Config:
    """Configuration management for the application."""

    def __init__(self):
        """Initialize configuration with environment variables."""
        env_path = Path(__file__).parent.parent / ".env"
        if env_path.exists():
            load_dotenv(dotenv_path=env_path)

        # Backend
        self.GOOGLE_GEMINI_API_KEY = os.getenv("GOOGLE_GEMINI_API_KEY")
        self.REASONING_MODEL = os.getenv("REASONING_MODEL") or None
        self.SEARCH_MODEL = os.getenv("SEARCH_MODEL") or None
        self.MODEL_REGISTRY_PATH = os.getenv("MODEL_REGISTRY_PATH") or None
        self.BACKEND_TIMEOUT_S = _float_env("BACKEND_TIMEOUT_S", DEFAULT_BACKEND_TIMEOUT_S)
        thinking_budget = os.getenv("THINKING_BUDGET")
        self.THINKING_BUDGET = int(thinking_budget) if thinking_budget else None

        # HTTP layer
        self.API_KEYS = [k.strip() for k in os.getenv("API_KEYS", "").split(",") if k.strip()]
        self.MAX_UPLOAD_BYTES = int(
            _float_env("MAX_UPLOAD_MB", DEFAULT_MAX_UPLOAD_MB) * 1024 * 1024
        )

    def validate(self) -> bool:
        """
        Check that the settings needed for a real backend call are present.

        Returns:
            bool: True if configuration is valid, False otherwise
        """
        if not self.GOOGLE_GEMINI_API_KEY:
            logger.error("GOOGLE_GEMINI_API_KEY is not set. Please set it in the .env file.")
            return False
        if self.BACKEND_TIMEOUT_S <= 0:
            logger.error(f"BACKEND_TIMEOUT_S must be positive, got {self.BACKEND_TIMEOUT_S}")
            return False
        return True

    def get_model_info(self) -> str:
        reasoning = self.REASONING_MODEL or "registry default"
        search = self.SEARCH_MODEL or "registry default"
        return f"Google Gemini (reasoning: {reasoning}, search: {search})"
