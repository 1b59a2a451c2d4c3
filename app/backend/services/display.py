"""
Display formatting for extracted medical data.

Turns whatever structure the model emitted into label/value rows for the
extracted-data card. Nothing is validated or reinterpreted; values are only
rendered as text.
"""

import json
import re
from typing import Any

from ..models import DisplayField, ExtractedMedicalData

NOT_PROVIDED = "Not provided"
NO_DATA = "No data"
NOTHING_EXTRACTED = "No medical information was extracted."

# Keys the front end attaches to results for its own bookkeeping
INTERNAL_KEYS = frozenset({"fileB64", "mimeType"})

_CAMEL_BOUNDARY_RE = re.compile(r"([A-Z])")
_INLINE_ENTRY_LIMIT = 3
_INDENT = "  "


def format_key(key: str) -> str:
    """Convert snake_case and camelCase keys to Title Case words."""
    spaced = _CAMEL_BOUNDARY_RE.sub(r" \1", key.replace("_", " "))
    return " ".join(word[:1].upper() + word[1:].lower() for word in spaced.split())


def _is_missing(value: Any) -> bool:
    return value is None or value == ""


def render_value(value: Any, depth: int = 0) -> str:
    """
    Render an extracted value as display text.

    Lists become one "- item" line per element, small nested objects are
    written inline, larger objects as indented "Key:" blocks.
    """
    if _is_missing(value):
        return NOT_PROVIDED

    if isinstance(value, (list, tuple)):
        if not value:
            return NO_DATA
        lines = []
        for item in value:
            rendered = render_value(item, depth + 1).splitlines() or [""]
            lines.append(f"- {rendered[0]}")
            lines.extend(f"{_INDENT}{line}" for line in rendered[1:])
        return "\n".join(lines)

    if isinstance(value, dict):
        if not value:
            return NO_DATA
        if len(value) <= _INLINE_ENTRY_LIMIT and depth > 0:
            return "; ".join(
                f"{format_key(str(k))}: {_inline(v)}" for k, v in value.items()
            )
        lines = []
        for k, v in value.items():
            lines.append(f"{format_key(str(k))}:")
            lines.extend(
                f"{_INDENT}{line}" for line in render_value(v, depth + 1).splitlines()
            )
        return "\n".join(lines)

    if isinstance(value, bool):
        return "Yes" if value else "No"

    return str(value)


def _inline(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def build_display_fields(data: ExtractedMedicalData | dict[str, Any]) -> list[DisplayField]:
    """Build display rows in the order the model emitted the keys."""
    if isinstance(data, ExtractedMedicalData):
        data = data.emitted()

    return [
        DisplayField(
            key=key,
            label=format_key(key),
            value=render_value(value),
            empty=_is_missing(value) or value in ([], {}),
        )
        for key, value in data.items()
        if key not in INTERNAL_KEYS
    ]
