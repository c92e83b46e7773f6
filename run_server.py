#!/usr/bin/env python3
"""HTTP entry point: serves the schematic auditor API with uvicorn."""

import argparse
import os

import uvicorn
from dotenv import load_dotenv

load_dotenv()


def main():
    parser = argparse.ArgumentParser(description="Schematic Auditor API server")
    parser.add_argument("--host", default=os.getenv("HOST", "127.0.0.1"), help="Host to bind to")
    parser.add_argument(
        "--port", type=int, default=int(os.getenv("PORT", "8000")), help="Port to bind to"
    )
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "info").lower(),
        choices=["critical", "error", "warning", "info", "debug"],
        help="uvicorn log level",
    )
    args = parser.parse_args()

    # one worker: the per-session in-flight guard lives in process memory
    uvicorn.run(
        "server.app:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()
