import json
import os

import pytest
from dotenv import load_dotenv

# Load environment variables from .env file for tests
load_dotenv()
os.environ.setdefault("LOG_TO_CONSOLE", "false")

from api.base_client import BaseAIClient  # noqa: E402
from models.backend_reply import BackendReply, TokenUsage  # noqa: E402
from models.task import Attachment  # noqa: E402

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
PDF_BYTES = b"%PDF-1.7\n" + b"\x00" * 32


class FakeBackend(BaseAIClient):
    """
    Scripted backend. Each queued reply is one of:
    - str: reply text, no grounding metadata
    - (str, chunks): reply text plus grounding chunks
    - Exception: raised from generate()
    """

    provider_name = "fake"

    def __init__(self, replies=(), api_key="fake-key", **kwargs):
        super().__init__(api_key, **kwargs)
        self.replies = list(replies)
        self.calls = []

    def generate(self, prompt, mode, *, enforce_schema=False, response_schema=None):
        self.calls.append(
            {
                "prompt": prompt,
                "mode": mode,
                "enforce_schema": enforce_schema,
                "response_schema": response_schema,
            }
        )
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        text, chunks = reply if isinstance(reply, tuple) else (reply, None)
        return BackendReply(
            request_id=f"fake_{len(self.calls)}",
            text=text,
            provider=self.provider_name,
            model="fake-model",
            latency_ms=5,
            token_usage=TokenUsage(prompt_tokens=10, completion_tokens=20),
            grounding_chunks=chunks,
            finish_reason="stop",
        )


def fenced(payload: dict, prose: str = "Here is the result:") -> str:
    return f"{prose}\n```json\n{json.dumps(payload, indent=2)}\n```\nLet me know if you need more."


def web_chunk(uri: str, title: str | None = None) -> dict:
    return {"web": {"uri": uri, "title": title}}


@pytest.fixture
def make_backend():
    """Build a FakeBackend with the given scripted replies."""
    return lambda *replies: FakeBackend(replies)


@pytest.fixture
def fenced_reply():
    return fenced


@pytest.fixture
def chunk():
    return web_chunk


@pytest.fixture
def schematic():
    return Attachment(data=PNG_BYTES, mime_type="image/png", name="board.png")


@pytest.fixture
def datasheet():
    return Attachment(data=PDF_BYTES, mime_type="application/pdf", name="lm358.pdf")


@pytest.fixture
def audit_payload():
    return {
        "summary": "Two issues found around U1.",
        "missingDatasheet": False,
        "sections": [
            {
                "title": "Power pins",
                "status": "fail",
                "content": "VCC on pin 8 is left floating.",
                "boundingBox": [120, 340, 180, 420],
                "correctData": "Pin 8 is V+ (3V to 32V).",
            },
            {"title": "Decoupling", "status": "pass", "content": "100nF present near U1."},
        ],
        "suggestedFixes": ["Connect pin 8 to the 5V rail."],
    }


@pytest.fixture
def bom_payload():
    return {
        "items": [
            {
                "partNumber": "RC0603FR-0710KL",
                "description": '10k 1% 0603 resistor, 6" wire lead',
                "manufacturer": "Yageo",
                "quantity": 3,
                "designators": "R1, R2, R3",
                "estimatedUnitPrice": 0.0123,
                "totalPrice": 0.0369,
                "cadLinks": {"model3d": None, "footprint": None},
            },
            {
                "partNumber": "STM32F103C8T6",
                "description": "MCU ARM Cortex-M3",
                "manufacturer": "STMicroelectronics",
                "quantity": 1,
                "designators": "U1",
                "estimatedUnitPrice": 2.5,
                "totalPrice": 2.5,
                "cadLinks": {
                    "model3d": "https://www.snapeda.com/parts/STM32F103C8T6/view-part/",
                    "footprint": "https://www.ultralibrarian.com/search?query=STM32F103C8T6",
                },
            },
        ],
        "totalEstimatedCost": 2.5369,
        "currency": "USD",
    }


@pytest.fixture
def part_payload():
    return {
        "partNumber": "LM358",
        "manufacturer": "Texas Instruments",
        "description": "Dual operational amplifier",
        "imageUri": "https://example.com/lm358.png",
        "specs": {"Supply Voltage": "3V-32V", "Channels": 2},
        "datasheetUri": "https://www.ti.com/lit/ds/symlink/lm358.pdf",
        "cadLinks": {"model3d": None, "footprint": None, "provider": None},
        "pricing": [
            {
                "distributor": "DigiKey",
                "price": "$0.45",
                "stock": "12000",
                "link": "https://www.digikey.com/lm358",
            }
        ],
        "alternatives": ["LM2904", "MCP6002"],
    }


@pytest.fixture
def firmware_payload():
    return {
        "filename": "main.cpp",
        "language": "C++",
        "architecture": "Arduino (AVR)",
        "description": "Blinks the status LED on D13.",
        "code": "void setup() {\n  pinMode(13, OUTPUT);  // User Mapping\n}\n\nvoid loop() {}\n",
    }
