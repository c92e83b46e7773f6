"""
Logging setup for the schematic auditor.

Records are written as JSON lines to rotating files under LOG_DIR:
- app.log    INFO and above
- error.log  ERROR and above
- debug.log  everything, only when LOG_LEVEL=DEBUG

Structured context goes through `extra={"extra_fields": {...}}` and is merged
into the JSON record. Set LOG_TO_CONSOLE=true to mirror warnings and errors
to stderr in a human-readable format.
"""

import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

MAX_FIELD_CHARS = 2000


class JsonFormatter(logging.Formatter):
    """Render a record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, dict):
            for key, value in extra_fields.items():
                # model replies can be huge; keep log lines bounded
                if isinstance(value, str) and len(value) > MAX_FIELD_CHARS:
                    value = value[:MAX_FIELD_CHARS] + "...[truncated]"
                log_data[key] = value

        return json.dumps(log_data, default=str)


class LoggerConfig:
    LOG_DIR = Path(os.getenv("LOG_DIR", "logs"))
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_TO_CONSOLE = os.getenv("LOG_TO_CONSOLE", "false").lower() == "true"
    MAX_BYTES = 10 * 1024 * 1024
    BACKUP_COUNT = 5

    _initialized = False

    @classmethod
    def _file_handler(cls, filename: str, level: int) -> logging.Handler:
        handler = logging.handlers.RotatingFileHandler(
            cls.LOG_DIR / filename,
            maxBytes=cls.MAX_BYTES,
            backupCount=cls.BACKUP_COUNT,
            encoding="utf-8",
        )
        handler.setLevel(level)
        handler.setFormatter(JsonFormatter())
        return handler

    @classmethod
    def setup_logging(cls) -> None:
        """Configure the root logger once per process."""
        if cls._initialized:
            return

        root_logger = logging.getLogger()
        root_logger.setLevel(getattr(logging, cls.LOG_LEVEL, logging.INFO))
        root_logger.handlers.clear()

        try:
            cls.LOG_DIR.mkdir(parents=True, exist_ok=True)
            root_logger.addHandler(cls._file_handler("app.log", logging.INFO))
            root_logger.addHandler(cls._file_handler("error.log", logging.ERROR))
            if cls.LOG_LEVEL == "DEBUG":
                root_logger.addHandler(cls._file_handler("debug.log", logging.DEBUG))
        except OSError as exc:
            # read-only checkout: fall back to stderr only
            cls.LOG_TO_CONSOLE = True
            sys.stderr.write(f"File logging disabled ({exc}); using console\n")

        if cls.LOG_TO_CONSOLE:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(logging.WARNING)
            console_handler.setFormatter(
                logging.Formatter(
                    fmt="[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
                    datefmt="%Y-%m-%d %H:%M:%S",
                )
            )
            root_logger.addHandler(console_handler)

        cls._initialized = True

        logging.getLogger(__name__).info(
            "Logging system initialized",
            extra={
                "extra_fields": {
                    "log_level": cls.LOG_LEVEL,
                    "log_dir": str(cls.LOG_DIR),
                    "console_logging": cls.LOG_TO_CONSOLE,
                }
            },
        )

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        if not cls._initialized:
            cls.setup_logging()
        return logging.getLogger(name)


def get_logger(name: str) -> logging.Logger:
    """
    Get a configured logger instance.

    Example:
        >>> from utils.logger import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.info("Audit finished", extra={"extra_fields": {"request_id": "abc"}})
    """
    return LoggerConfig.get_logger(name)
