"""Tolerant parser for JSON and ``{key=value}`` pseudo-JSON text.

Upstream data entry and import produce structured fields in three shapes:

  - genuine JSON:        ``{"mild": "Nausea", "severe": ["Rash", "Fever"]}``
  - fenced JSON:         ```` ```json {...} ``` ```` with prose around it
  - pseudo-JSON:         ``{mild=Nausea, severe=[Rash, Fever]}``

Public API
----------
    try_parse(text)            -> dict | list | None
    convert_pseudo_json(text)  -> str | None      (valid JSON text)
    dump_pseudo_json(record)   -> str
    split_top_level(text, ",") -> list[str]

Nothing here raises on malformed input: absence of structured data is
reported as ``None``.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)

ParsedValue = Union[dict, list]

# ---------------------------------------------------------------------------
# Compiled regex patterns
# ---------------------------------------------------------------------------

# Opening fence with optional language tag, and any bare closing fence
_CODE_FENCE_RE = re.compile(r"```[a-zA-Z]*")

# Outermost {...} region, used to recover JSON embedded in prose
_OBJECT_REGION_RE = re.compile(r"\{[\s\S]*\}")

_OPENERS = "[{"
_CLOSERS = "]}"


# ---------------------------------------------------------------------------
# Depth-aware splitting
# ---------------------------------------------------------------------------

def split_top_level(text: str, separator: str = ",") -> list[str]:
    """
    Split *text* on *separator* only when it is NOT nested inside brackets
    or braces.  Segments are stripped; empty segments are dropped.

        split_top_level("a=1, b=[x, y], c={d=2, e=3}")
        -> ["a=1", "b=[x, y]", "c={d=2, e=3}"]
    """
    segments: list[str] = []
    current: list[str] = []
    depth = 0
    for ch in text:
        if ch in _OPENERS:
            depth += 1
            current.append(ch)
        elif ch in _CLOSERS:
            depth = max(depth - 1, 0)
            current.append(ch)
        elif ch == separator and depth == 0:
            segments.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
    tail = "".join(current).strip()
    if tail:
        segments.append(tail)
    return [s for s in segments if s]


# ---------------------------------------------------------------------------
# Pseudo-JSON conversion
# ---------------------------------------------------------------------------

def _is_json_literal(value: str) -> bool:
    try:
        json.loads(value)
    except (ValueError, RecursionError):
        return False
    return True


def _convert_value(value: str) -> str:
    """Render one pseudo-JSON value as JSON text."""
    if not value:
        return '""'

    if value.startswith("[") and value.endswith("]"):
        if _is_json_literal(value):
            return value
        items = split_top_level(value[1:-1])
        return "[" + ", ".join(_convert_value(item) for item in items) + "]"

    if value.startswith("{") and value.endswith("}"):
        if _is_json_literal(value):
            return value
        converted = convert_pseudo_json(value)
        return converted if converted is not None else json.dumps(value, ensure_ascii=False)

    # Plain scalar text: quote and escape
    return json.dumps(value, ensure_ascii=False)


def convert_pseudo_json(text: str) -> Optional[str]:
    """
    Convert ``{key=value, key2=[a, b]}`` text into valid JSON text.

    Fields are separated by commas at nesting depth 0 only, so list and
    record values keep their inner commas.  Each field is split on its
    first ``=``; fields without ``=`` are dropped.

    Returns ``None`` when *text* is not brace-delimited pseudo-JSON
    or nests too deeply to convert.
    """
    if not isinstance(text, str):
        return None
    stripped = text.strip()
    if "=" not in stripped or not stripped.startswith("{"):
        return None

    match = _OBJECT_REGION_RE.search(stripped)
    if not match:
        return None
    content = match.group(0)[1:-1]

    pairs: list[str] = []
    try:
        for segment in split_top_level(content):
            key, sep, value = segment.partition("=")
            if not sep:
                continue
            key = key.strip().strip('"').strip("'")
            pairs.append(f"{json.dumps(key, ensure_ascii=False)}: {_convert_value(value.strip())}")
    except RecursionError:
        logger.debug("convert_pseudo_json: nesting too deep in %r", text[:80])
        return None

    return "{" + ", ".join(pairs) + "}"


def dump_pseudo_json(record: dict[str, Any]) -> str:
    """Render a flat *record* in the ``{key=value, ...}`` notation."""
    parts = []
    for key, value in record.items():
        if isinstance(value, (list, tuple)):
            rendered = "[" + ", ".join(str(v) for v in value) + "]"
        else:
            rendered = "" if value is None else str(value)
        parts.append(f"{key}={rendered}")
    return "{" + ", ".join(parts) + "}"


# ---------------------------------------------------------------------------
# Public try_parse() entry point
# ---------------------------------------------------------------------------

def _strip_code_fences(text: str) -> str:
    return _CODE_FENCE_RE.sub("", text).strip()


def _loads_structured(text: str) -> Optional[ParsedValue]:
    """Strict parse; scalars are not structured data."""
    try:
        value = json.loads(text)
    except (ValueError, RecursionError):
        return None
    return value if isinstance(value, (dict, list)) else None


def try_parse(text: Any) -> Optional[ParsedValue]:
    """
    Parse *text* as JSON, fenced JSON, or pseudo-JSON.

    Strategy
    --------
    1. Strip markdown code fences
    2. Strict JSON parse of the whole text
    3. Strict JSON parse of the outermost ``{...}`` region
    4. Pseudo-JSON conversion when the region contains ``=``
    5. ``None``
    """
    if not isinstance(text, str) or not text.strip():
        return None

    cleaned = _strip_code_fences(text)

    parsed = _loads_structured(cleaned)
    if parsed is not None:
        return parsed

    match = _OBJECT_REGION_RE.search(cleaned)
    if not match:
        return None
    region = match.group(0)

    if region != cleaned:
        parsed = _loads_structured(region)
        if parsed is not None:
            return parsed

    if "=" not in region:
        logger.debug("try_parse: no structured data in %r", text[:80])
        return None

    converted = convert_pseudo_json(region)
    if converted is None:
        return None
    parsed = _loads_structured(converted)
    if parsed is None:
        logger.debug("try_parse: pseudo-JSON conversion failed for %r", text[:80])
    return parsed
