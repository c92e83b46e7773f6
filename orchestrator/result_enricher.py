"""Provenance for web-grounded calls."""

from typing import Any, Iterable

from models.results import TaskResult, WebSource, with_sources


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def extract_sources(grounding_chunks: Iterable[Any] | None) -> tuple[WebSource, ...]:
    """
    Map grounding chunks to WebSource records.

    Accepts SDK objects (`chunk.web.uri`) and plain dicts (`chunk["web"]["uri"]`).
    Chunks without a web reference or URI are dropped, repeated URIs collapse
    to the first occurrence, and malformed metadata yields an empty tuple.
    """
    if not grounding_chunks:
        return ()
    try:
        chunks = list(grounding_chunks)
    except TypeError:
        return ()

    sources: list[WebSource] = []
    seen: set[str] = set()
    for chunk in chunks:
        web = _field(chunk, "web")
        if web is None:
            continue
        uri = _field(web, "uri")
        if not isinstance(uri, str) or not uri or uri in seen:
            continue
        title = _field(web, "title")
        seen.add(uri)
        sources.append(WebSource(uri=uri, title=title if isinstance(title, str) and title else uri))
    return tuple(sources)


def enrich(result: TaskResult, grounding_chunks: Iterable[Any] | None) -> TaskResult:
    """Attach sources when any were found; otherwise the field stays absent."""
    return with_sources(result, extract_sources(grounding_chunks))
