"""Helpers to pull text, images and citations out of generate_content results."""

import base64
from typing import Any, List, Optional

from models.chat_models import Source


def _first_candidate(response: Any) -> Any:
    candidates = getattr(response, "candidates", None) or []
    return candidates[0] if candidates else None


def extract_text(response: Any) -> Optional[str]:
    """Return the concatenated response text, or None when the model sent none."""
    try:
        text = getattr(response, "text", None)
    except ValueError:
        text = None
    return text or None


def extract_image_data_url(response: Any) -> Optional[str]:
    """Return the first inline image of the first candidate as a data URI."""
    candidate = _first_candidate(response)
    content = getattr(candidate, "content", None)
    for part in getattr(content, "parts", None) or []:
        inline = getattr(part, "inline_data", None)
        if inline is None or not getattr(inline, "data", None):
            continue
        data = inline.data
        if isinstance(data, (bytes, bytearray)):
            data = base64.b64encode(bytes(data)).decode("ascii")
        mime_type = getattr(inline, "mime_type", None) or "image/png"
        return f"data:{mime_type};base64,{data}"
    return None


def extract_sources(response: Any) -> List[Source]:
    """Return web citations from the grounding metadata of the first candidate."""
    candidate = _first_candidate(response)
    metadata = getattr(candidate, "grounding_metadata", None)
    sources: List[Source] = []
    for chunk in getattr(metadata, "grounding_chunks", None) or []:
        web = getattr(chunk, "web", None)
        if web is None:
            continue
        sources.append(Source(title=getattr(web, "title", None), uri=getattr(web, "uri", None)))
    return sources
