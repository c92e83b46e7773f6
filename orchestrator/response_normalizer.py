import json
import re
from typing import Any, Protocol

from models.contracts import ResponseContract
from models.errors import MalformedResponse
from utils.logger import get_logger

logger = get_logger(__name__)


def _loads_object(text: str) -> dict[str, Any] | None:
    try:
        value = json.loads(text)
    except (ValueError, RecursionError):
        return None
    return value if isinstance(value, dict) else None


class ParserStrategy(Protocol):
    name: str
    schema_mode_only: bool

    def parse(self, text: str) -> dict[str, Any] | None: ...


class DirectJsonParser:
    """The whole reply is the JSON object (structured-output mode)."""

    name = "direct"
    schema_mode_only = True

    def parse(self, text: str) -> dict[str, Any] | None:
        return _loads_object(text.strip())


class FencedBlockParser:
    """First markdown code block tagged with `tag`."""

    schema_mode_only = False

    def __init__(self, tag: str = "json"):
        self.tag = tag
        self.name = f"fenced_{tag}"
        self._pattern = re.compile(r"```" + re.escape(tag) + r"\s*([\s\S]*?)\s*```")

    def parse(self, text: str) -> dict[str, Any] | None:
        match = self._pattern.search(text)
        if not match:
            return None
        return _loads_object(match.group(1))


class BraceSpanParser:
    """Substring from the first `{` to the last `}` inclusive."""

    name = "brace_span"
    schema_mode_only = False

    def parse(self, text: str) -> dict[str, Any] | None:
        start = text.find("{")
        end = text.rfind("}")
        if start == -1 or end < start:
            return None
        return _loads_object(text[start : end + 1])


DEFAULT_PARSERS: tuple[ParserStrategy, ...] = (
    DirectJsonParser(),
    FencedBlockParser("json"),
    BraceSpanParser(),
)


class ResponseNormalizer:
    """
    Extract one JSON object from a model reply and check it against a contract.

    Parsers are tried in order and the first one that yields an object wins.
    Each parser is total: it returns None instead of raising, so the chain
    can be extended without changing the failure classification.
    """

    def __init__(self, parsers: tuple[ParserStrategy, ...] | list[ParserStrategy] | None = None):
        self._parsers = tuple(parsers) if parsers is not None else DEFAULT_PARSERS

    @property
    def parsers(self) -> tuple[ParserStrategy, ...]:
        return self._parsers

    def extract(self, raw_text: str | None, *, enforce_schema: bool = False) -> dict[str, Any]:
        """
        Raises:
            MalformedResponse: when no parser produced a JSON object
        """
        text = raw_text or ""
        if not text.strip():
            raise MalformedResponse("Backend reply is empty")

        for parser in self._parsers:
            if parser.schema_mode_only and not enforce_schema:
                continue
            data = parser.parse(text)
            if data is not None:
                logger.debug(
                    "Reply parsed",
                    extra={"extra_fields": {"parser": parser.name, "chars": len(text)}},
                )
                return data

        logger.debug(
            "No parser could extract JSON",
            extra={"extra_fields": {"chars": len(text), "head": text[:200]}},
        )
        raise MalformedResponse("No JSON object could be extracted from the backend reply")

    def normalize(
        self, raw_text: str | None, contract: ResponseContract, *, enforce_schema: bool = False
    ) -> dict[str, Any]:
        """
        Raises:
            MalformedResponse: no JSON object could be extracted
            SchemaViolation: the object does not satisfy the contract
        """
        data = self.extract(raw_text, enforce_schema=enforce_schema)
        return contract.validate(data)


_default_normalizer = ResponseNormalizer()


def normalize(
    raw_text: str | None, contract: ResponseContract, *, enforce_schema: bool = False
) -> dict[str, Any]:
    return _default_normalizer.normalize(raw_text, contract, enforce_schema=enforce_schema)
