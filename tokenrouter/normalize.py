# tokenrouter/normalize.py
"""
Response normalisation.

The service returns output as a list of items; most callers only want the
text. ``derive_output_text`` walks output items, then their content blocks,
in order and concatenates every ``output_text`` block. The result is
attached once as ``output_text`` before a Response model is built.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

from .constants import EVENT_RESPONSE_COMPLETED


def _get(obj: Any, key: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(key)
    return getattr(obj, key, None)


def derive_output_text(response: Mapping[str, Any] | BaseModel) -> str:
    """Concatenate the text of every output_text block inside message items."""
    output = _get(response, "output")
    if not isinstance(output, (list, tuple)):
        return ""
    pieces: list[str] = []
    for item in output:
        if _get(item, "type") != "message":
            continue
        content = _get(item, "content")
        if not isinstance(content, (list, tuple)):
            continue
        for block in content:
            if _get(block, "type") == "output_text":
                text = _get(block, "text")
                if isinstance(text, str):
                    pieces.append(text)
    return "".join(pieces)


def with_output_text(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Return a shallow copy of *payload* carrying the derived output_text."""
    return {**payload, "output_text": derive_output_text(payload)}


def normalize_response_event(event: Mapping[str, Any]) -> dict[str, Any]:
    """Attach output_text to the response of a completed stream event."""
    event = dict(event)
    response = event.get("response")
    if event.get("type") == EVENT_RESPONSE_COMPLETED and isinstance(response, Mapping):
        event["response"] = with_output_text(response)
    return event
