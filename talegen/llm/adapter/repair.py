"""JSON recovery for backend replies.

Models wrap JSON in markdown fences, leave trailing commas, or put a line
of prose before the object. These helpers recover the object when the
intent is unambiguous and give up otherwise.
"""

import json
import re
from typing import Any

# Markdown code fences, stripped from the whole reply
_FENCE_PATTERNS: list[tuple[str, str]] = [
    (r"^```(?:json)?\s*", ""),
    (r"\s*```$", ""),
]

# (pattern, replacement) applied in order, never inside string literals
JSON_REPAIR_PATTERNS: list[tuple[str, str]] = [
    # Trailing commas before closing braces/brackets
    (r",\s*}", "}"),
    (r",\s*]", "]"),
    # Unquoted keys (simple cases only)
    (r"(\{|,)\s*([a-zA-Z_][a-zA-Z0-9_]*)\s*:", r'\1"\2":'),
]

_STRING_LITERAL = re.compile(r'"(?:\\.|[^"\\])*"')

_PREFIXES = (
    "here is the json:",
    "here's the json:",
    "json output:",
    "output:",
    "result:",
)


def _balanced_object(content: str) -> str | None:
    """Return the first brace-balanced {...} span, ignoring braces in strings."""
    start = content.find("{")
    if start < 0:
        return None
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(content)):
        char = content[i]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return content[start : i + 1]
    return None


def _sub_outside_strings(pattern: str, replacement: str, text: str) -> str:
    """re.sub applied only to the text between double-quoted strings."""
    parts = []
    last = 0
    for match in _STRING_LITERAL.finditer(text):
        parts.append(re.sub(pattern, replacement, text[last : match.start()]))
        parts.append(match.group())
        last = match.end()
    parts.append(re.sub(pattern, replacement, text[last:]))
    return "".join(parts)


def _loads(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return None


def repair_json(content: str) -> dict[str, Any] | None:
    """Attempt to recover a JSON object from malformed text.

    After each cleanup pattern, tries the whole text and then the first
    balanced object in it.

    Args:
        content: Raw content that failed JSON parsing.

    Returns:
        Parsed dict if repair succeeded, None otherwise.

    Example:
        >>> repair_json('```json\\n{"className": "Mage",}\\n```')
        {'className': 'Mage'}
    """
    cleaned = content.strip()
    for pattern, replacement in _FENCE_PATTERNS:
        cleaned = re.sub(pattern, replacement, cleaned, flags=re.MULTILINE)
    data = _recover(cleaned)
    if data is not None:
        return data

    # One pattern at a time, so unquoted keys are only rewritten when the
    # comma cleanup was not enough.
    for pattern, replacement in JSON_REPAIR_PATTERNS:
        cleaned = _sub_outside_strings(pattern, replacement, cleaned)
        data = _recover(cleaned)
        if data is not None:
            return data
    return None


def _recover(cleaned: str) -> dict[str, Any] | None:
    candidates = [cleaned]
    lowered = cleaned.lower()
    for prefix in _PREFIXES:
        if lowered.startswith(prefix):
            candidates.append(cleaned[len(prefix) :].strip())
            break
    span = _balanced_object(cleaned)
    if span is not None:
        candidates.append(span)

    for text in candidates:
        data = _loads(text)
        if isinstance(data, dict):
            return data
    return None


def parse_json_object(content: str, *, repair: bool = True) -> tuple[Any, bool]:
    """Parse a backend reply.

    Strict parsing is tried first. The parsed value is returned whatever its
    type, since judging its shape is the contract's job.

    Args:
        content: Raw reply text.
        repair: Whether to fall back to repair_json.

    Returns:
        Tuple of (parsed value, whether repair was needed).

    Raises:
        ValueError: If the text cannot be parsed or repaired.
    """
    try:
        return json.loads(content), False
    except json.JSONDecodeError as e:
        if repair:
            repaired = repair_json(content)
            if repaired is not None:
                return repaired, True
        raise ValueError(f"Cannot parse response as JSON: {e}") from e


__all__ = ["JSON_REPAIR_PATTERNS", "repair_json", "parse_json_object"]
