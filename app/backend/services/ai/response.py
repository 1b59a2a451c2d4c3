"""
Normalization of provider responses into a plain JSON object.

Providers and SDK versions disagree on where the generated text lives,
and models do not always return bare JSON even when asked to. This module
pulls the text out of whichever shape arrives and locates the JSON object
inside it.
"""

import json
import logging
import re
from collections.abc import Mapping
from typing import Any

from .exceptions import BlockedResponseError, EmptyResponseError, ResponseParseError

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)
_JSON_START_RE = re.compile(r"[{\[]")

# Single-key envelopes some models wrap the payload in
WRAPPER_KEYS = ("data", "extracted_data", "extractedData", "result", "medicalData")


def _field(obj: Any, name: str) -> Any:
    """Read an attribute or mapping key, treating failing accessors as absent."""
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(name)
    try:
        return getattr(obj, name, None)
    except ValueError:
        # Older SDKs raise from .text when the candidate was blocked
        return None


def _first(items: Any) -> Any:
    if isinstance(items, (list, tuple)) and items:
        return items[0]
    return None


def _join_text_parts(parts: Any) -> str | None:
    if not isinstance(parts, (list, tuple)):
        return None
    texts = []
    for part in parts:
        if isinstance(part, str):
            texts.append(part)
            continue
        text = _field(part, "text")
        if isinstance(text, str):
            texts.append(text)
    joined = "".join(texts)
    return joined or None


def extract_response_text(response: Any) -> str | None:
    """
    Return the generated text of a provider response, or None.

    Handles plain strings and bytes, a convenience ``text`` or ``output_text``
    accessor, Gemini-style ``candidates[0].content.parts`` and OpenAI-style
    ``choices[0].message.content`` (string or list of parts). Objects and
    dictionaries are treated alike.
    """
    if response is None:
        return None
    if isinstance(response, (bytes, bytearray)):
        response = response.decode("utf-8", errors="replace")
    if isinstance(response, str):
        return response if response.strip() else None

    for accessor in ("text", "output_text"):
        text = _field(response, accessor)
        if isinstance(text, str) and text.strip():
            return text

    candidate = _first(_field(response, "candidates"))
    if candidate is not None:
        text = _join_text_parts(_field(_field(candidate, "content"), "parts"))
        if text and text.strip():
            return text

    choice = _first(_field(response, "choices"))
    if choice is not None:
        content = _field(_field(choice, "message"), "content")
        if isinstance(content, str) and content.strip():
            return content
        text = _join_text_parts(content)
        if text and text.strip():
            return text

    return None


def _as_object(value: Any) -> dict[str, Any] | None:
    if isinstance(value, dict):
        return value
    if isinstance(value, list):
        for item in value:
            if isinstance(item, dict):
                return item
    return None


def find_json_payload(text: str | None) -> dict[str, Any]:
    """
    Locate and parse the JSON object embedded in a block of text.

    Tries the whole text, then fenced code blocks, then decodes from every
    ``{`` or ``[`` in order. A top-level array yields its first object.

    Raises:
        EmptyResponseError: If the text is empty.
        ResponseParseError: If no JSON object can be found.
    """
    if text is None or not text.strip():
        raise EmptyResponseError("Response text is empty")

    candidates = [text.strip()]
    candidates.extend(match.group(1).strip() for match in _FENCE_RE.finditer(text))
    for candidate in candidates:
        try:
            payload = _as_object(json.loads(candidate))
        except json.JSONDecodeError:
            continue
        if payload is not None:
            return payload

    decoder = json.JSONDecoder()
    for match in _JSON_START_RE.finditer(text):
        try:
            value, _ = decoder.raw_decode(text, match.start())
        except json.JSONDecodeError:
            continue
        payload = _as_object(value)
        if payload is not None:
            return payload

    logger.error("No JSON object found in response: %s", text[:500])
    raise ResponseParseError("No JSON object found in response text")


def unwrap_payload(payload: dict[str, Any]) -> dict[str, Any]:
    """Strip a single-key envelope such as ``{"data": {...}}``."""
    if len(payload) == 1:
        key, inner = next(iter(payload.items()))
        if key in WRAPPER_KEYS and isinstance(inner, dict):
            logger.warning("Unwrapping '%s' envelope from model response", key)
            return inner
    return payload


def _block_reason(response: Any) -> Any:
    feedback = _field(response, "prompt_feedback")
    if feedback is None:
        feedback = _field(response, "promptFeedback")
    reason = _field(feedback, "block_reason")
    if reason is None:
        reason = _field(feedback, "blockReason")
    return reason


def normalize_response(response: Any) -> dict[str, Any]:
    """
    Turn a provider response of any supported shape into a dict.

    Uses an SDK-parsed object when present, otherwise the response text.

    Raises:
        BlockedResponseError: If the provider blocked the request.
        EmptyResponseError: If the response carries no text.
        ResponseParseError: If the text holds no JSON object.
    """
    if isinstance(response, (str, bytes, bytearray)):
        return unwrap_payload(find_json_payload(extract_response_text(response)))

    parsed = _as_object(_field(response, "parsed"))
    if parsed is not None:
        return unwrap_payload(parsed)

    text = extract_response_text(response)
    if text is None:
        reason = _block_reason(response)
        if reason:
            raise BlockedResponseError(f"Request blocked by provider: {reason}")
        raise EmptyResponseError("No data returned from the model")

    return unwrap_payload(find_json_payload(text))
