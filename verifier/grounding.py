# verifier/grounding.py
# Converte i grounding chunks (canale laterale della chiamata con Google Search)
# in coppie {uri, title}. Accetta sia dict sia oggetti dell'SDK.
from typing import Any, Iterable, List, Optional

from verifier.models.schema import (
    DEFAULT_SOURCE_TITLE,
    NO_GROUNDING,
    Grounded,
    Grounding,
    Source,
)


def _get(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _to_source(chunk: Any) -> Optional[Source]:
    web = _get(chunk, "web")
    uri = _get(web, "uri")
    if not isinstance(uri, str) or not uri.strip():
        return None
    title = _get(web, "title")
    if not isinstance(title, str) or not title.strip():
        title = DEFAULT_SOURCE_TITLE
    return Source(uri=uri.strip(), title=title.strip())


def sources_from_chunks(chunks: Optional[Iterable[Any]]) -> List[Source]:
    if not chunks:
        return []
    out: List[Source] = []
    for chunk in chunks:
        src = _to_source(chunk)
        if src is not None:
            out.append(src)
    return out


def grounding_from_chunks(chunks: Optional[Iterable[Any]]) -> Grounding:
    sources = sources_from_chunks(chunks)
    if not sources:
        return NO_GROUNDING
    return Grounded(sources=sources)
