"""Normalization of free-text household and medicine fields.

Data typed by people or read off packaging is messy:
  - "Penicillin, Aspirin; Lactose" vs ``["penicillin", "aspirin"]``
  - Placeholder text standing in for "no data": "not visible on packaging",
    "—", "null", "не указано"
  - List fields stored as JSON text, pseudo-JSON or ``[a, b]``

This module turns all of those into ordered ``list[str]`` values and plain
``str | None`` values.  Comparisons elsewhere in the engine use the
lower-cased form returned by ``normalize_terms``.
"""
from __future__ import annotations

import re
from typing import Any, Iterable, Optional

from medsafety.core import config
from medsafety.services.pseudo_json import split_top_level, try_parse

__all__ = [
    "PLACEHOLDER_MARKERS",
    "clean_text",
    "display_case",
    "is_placeholder",
    "normalize_list",
    "normalize_terms",
    "parse_list_field",
    "split_top_level",
]

# ---------------------------------------------------------------------------
# Placeholder markers
# ---------------------------------------------------------------------------

PLACEHOLDER_MARKERS: tuple[str, ...] = (
    "not visible on packaging",
    "not visible",
    "not specified on packaging",
    "not specified",
    "no data",
    "не видно на упаковке",
    "не указано на упаковке",
    "не указано",
    "информация не указана",
    "—",
    "-",
    "null",
    "undefined",
    "n/a",
    "",
)

# Prefix/suffix matching only applies to markers longer than this
_MIN_AFFIX_MARKER_LEN = 3
# ...and only to texts shorter than this
_MAX_AFFIX_TEXT_LEN = 50

# Keys under which a record inside a list carries its display name
_RECORD_NAME_KEYS = ("name", "medicineName", "medicine_name", "food", "title")


def _markers() -> tuple[str, ...]:
    return PLACEHOLDER_MARKERS + config.EXTRA_PLACEHOLDERS


def is_placeholder(text: Any) -> bool:
    """
    Return ``True`` when *text* is a "no data" marker rather than real content.

    Rules, evaluated on the trimmed lower-cased text:
      1. exact equality with any marker (``None`` and blank text included)
      2. for markers longer than 3 characters, and texts shorter than 50
         characters: the text starts or ends with the marker

    Non-string values are never placeholders.
    """
    if text is None:
        return True
    if not isinstance(text, str):
        return False

    lowered = text.strip().lower()
    markers = _markers()

    # 1 – exact match
    if lowered in markers:
        return True

    # 2 – short text wrapped around a long marker
    if len(lowered) >= _MAX_AFFIX_TEXT_LEN:
        return False
    for marker in markers:
        if len(marker) <= _MIN_AFFIX_MARKER_LEN:
            continue
        if lowered.startswith(marker) or lowered.endswith(marker):
            return True
    return False


def clean_text(raw: Any) -> Optional[str]:
    """Trimmed text, or ``None`` for absent and placeholder values."""
    if raw is None:
        return None
    text = str(raw).strip()
    if is_placeholder(text):
        return None
    return text


def display_case(term: str) -> str:
    """``"ibuprofen"`` -> ``"Ibuprofen"``; the rest of the term is kept."""
    return term[:1].upper() + term[1:]


# ---------------------------------------------------------------------------
# List normalization
# ---------------------------------------------------------------------------

def _delimiter_pattern() -> re.Pattern[str]:
    return re.compile("[" + re.escape(config.LIST_DELIMITERS) + "]")


_END = object()


def _record_name(record: dict) -> Optional[str]:
    for key in _RECORD_NAME_KEYS:
        value = record.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return None


def _flatten(items: Iterable[Any]) -> list[str]:
    # Explicit stack: nesting depth is unbounded in parsed input
    out: list[str] = []
    stack = [iter(items)]
    while stack:
        item = next(stack[-1], _END)
        if item is _END:
            stack.pop()
            continue
        if item is None:
            continue
        if isinstance(item, dict):
            name = _record_name(item)
            if name is not None:
                out.append(name)
            continue
        if isinstance(item, (list, tuple)):
            stack.append(iter(item))
            continue
        out.append(str(item))
    return out


def normalize_list(raw: Any) -> list[str]:
    """
    Split a raw list value into its ordered, trimmed items.

    Strings are split on the configured delimiters (``,`` ``;`` and newline
    by default).  Lists are flattened item by item; records inside a list
    are reduced to their name field.  Empty and placeholder tokens are
    dropped.  Original casing is preserved.
    """
    if raw is None:
        return []

    if isinstance(raw, str):
        tokens = _delimiter_pattern().split(raw)
    elif isinstance(raw, dict):
        name = _record_name(raw)
        tokens = [name] if name is not None else []
    elif isinstance(raw, (list, tuple, set, frozenset)):
        tokens = _flatten(raw)
    else:
        tokens = [str(raw)]

    result: list[str] = []
    for token in tokens:
        token = token.strip().strip('"').strip("'").strip()
        if token and not is_placeholder(token):
            result.append(token)
    return result


def normalize_terms(raw: Any) -> list[str]:
    """Lower-cased, duplicate-free comparison form of ``normalize_list``."""
    seen: set[str] = set()
    terms: list[str] = []
    for item in normalize_list(raw):
        term = item.lower()
        if term not in seen:
            seen.add(term)
            terms.append(term)
    return terms


def parse_list_field(raw: Any) -> list[str]:
    """
    Turn any raw list field into the canonical item list.

    Accepted shapes:
      - Python lists (records reduced to their name)
      - JSON array text: ``'["Aspirin", "Warfarin"]'``
      - pseudo-JSON / bracketed text: ``"[Aspirin, Warfarin]"``
      - delimited text: ``"Aspirin; Warfarin"``
      - placeholders and ``None`` -> ``[]``
    """
    if raw is None:
        return []
    if not isinstance(raw, str):
        return normalize_list(raw)

    text = raw.strip()
    if is_placeholder(text):
        return []

    if text.startswith(("[", "{", "`")):
        parsed = try_parse(text)
        if isinstance(parsed, list):
            return normalize_list(parsed)
        if isinstance(parsed, dict):
            name = _record_name(parsed)
            return normalize_list(name if name is not None else list(parsed.values()))
        if text.startswith("[") and text.endswith("]"):
            return normalize_list(split_top_level(text[1:-1]))

    return normalize_list(text)
