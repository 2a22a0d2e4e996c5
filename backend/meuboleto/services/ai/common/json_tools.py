"""Robust JSON extraction from LLM responses using sliding brace-balancing."""

from __future__ import annotations

import json
import logging
import re

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"```(?:json|JSON)?")


def strip_code_fences(text: str) -> str:
    return _CODE_FENCE.sub("", text or "").strip()


def find_object_span(text: str) -> str | None:
    """Return the first brace-balanced ``{...}`` substring of *text*, unparsed."""
    stripped = strip_code_fences(text)
    start = stripped.find("{")
    while start != -1:
        end = _balanced_end(stripped, start, "{", "}")
        if end is not None:
            return stripped[start : end + 1]
        start = stripped.find("{", start + 1)
    return None


def extract_json_object(text: str) -> dict | None:
    """Parse the first brace-balanced substring that is a valid JSON object."""
    if not text or not text.strip():
        return None
    stripped = strip_code_fences(text)
    for i, ch in enumerate(stripped):
        if ch != "{":
            continue
        result = _extract_balanced(stripped, i, "{", "}")
        if isinstance(result, dict):
            return result
    return None


def _balanced_end(text: str, start: int, open_ch: str, close_ch: str) -> int | None:
    """Index of the character closing the bracket opened at *start*."""
    depth = 0
    in_string = False
    escape = False

    for i in range(start, len(text)):
        ch = text[i]

        if escape:
            escape = False
            continue

        if ch == "\\":
            if in_string:
                escape = True
            continue

        if ch == '"':
            in_string = not in_string
            continue

        if in_string:
            continue

        if ch == open_ch:
            depth += 1
        elif ch == close_ch:
            depth -= 1
            if depth == 0:
                return i

    return None


def _extract_balanced(
    text: str, start: int, open_ch: str, close_ch: str
) -> dict | list | None:
    """Extract a brace-balanced substring starting at *start* and parse it."""
    end = _balanced_end(text, start, open_ch, close_ch)
    if end is None:
        return None
    candidate = text[start : end + 1]
    try:
        return json.loads(candidate)
    except ValueError:
        return None
