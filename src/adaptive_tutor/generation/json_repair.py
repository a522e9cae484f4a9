"""
Cleaning and best-effort repair of JSON returned by the language model.

Model output is often wrapped in markdown fences or cut off mid-object when the token
limit is reached. `repair_json` applies a fixed sequence of small patches, each of which
only edits text outside string literals, and stops at the first parseable result.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, List

from .errors import StructuralError

logger = logging.getLogger(__name__)

PLACEHOLDER_THRESHOLD = 100
MAX_TRUNCATION_ATTEMPTS = 50

_LEADING_FENCE_RE = re.compile(r"\A\s*```(?:json|JSON)?[ \t]*\n?")
_TRAILING_FENCE_RE = re.compile(r"\n?[ \t]*```\s*\Z")
_UNQUOTED_KEY_RE = re.compile(r"([{,]\s*)([A-Za-z_][A-Za-z0-9_]*)(\s*:)")
_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")


class UnrecoverableJSONError(StructuralError):
    """Raised when no repair yields parseable JSON."""


def clean_json_response(text: str) -> str:
    """Strip one leading and one trailing markdown fence plus surrounding whitespace.

    Fences inside the payload (code samples in string values) are left alone.
    """
    text = _LEADING_FENCE_RE.sub("", text, count=1)
    return _TRAILING_FENCE_RE.sub("", text, count=1).strip()


def parse_json(text: str) -> Any:
    """Decode model output, repairing it only when it does not parse as given."""
    return json.loads(repair_json(text))


def repair_json(text: str) -> str:
    """
    Return text that `json.loads` accepts, repairing truncation where possible.

    Valid input is returned unchanged; fenced valid input is returned without its
    fences. Short unrecoverable input becomes a placeholder content object; anything
    longer raises UnrecoverableJSONError.
    """
    if _parses(text):
        return text

    candidate = clean_json_response(text)
    if _parses(candidate):
        return candidate
    for patch in _PATCHES:
        candidate = patch(candidate)
    if _parses(candidate):
        logger.debug("Repaired malformed JSON response")
        return candidate

    truncated = _truncate_to_complete_object(candidate)
    if truncated is not None:
        logger.debug("Recovered JSON by truncating to the last complete object")
        return truncated

    if len(text) < PLACEHOLDER_THRESHOLD:
        logger.warning("Replacing short unparseable response with placeholder content")
        return json.dumps({"type": "placeholder", "data": {"text": text.strip()}})

    raise UnrecoverableJSONError(f"Could not repair JSON response ({len(text)} chars)")


def _parses(text: str) -> bool:
    try:
        json.loads(text)
    except (ValueError, TypeError):
        return False
    return True


def _segments(text: str) -> List[tuple]:
    """Split text into (is_string, chunk) pairs; an unterminated string runs to the end."""
    segments = []
    buffer = []
    in_string = False
    escaped = False
    for char in text:
        if in_string:
            buffer.append(char)
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                segments.append((True, "".join(buffer)))
                buffer = []
                in_string = False
        elif char == '"':
            if buffer:
                segments.append((False, "".join(buffer)))
            buffer = [char]
            in_string = True
        else:
            buffer.append(char)
    if buffer:
        segments.append((in_string, "".join(buffer)))
    return segments


def _outside_strings(text: str, transform: Callable[[str], str]) -> str:
    return "".join(chunk if is_string else transform(chunk) for is_string, chunk in _segments(text))


def _ends_inside_string(text: str) -> bool:
    segments = _segments(text)
    if not segments:
        return False
    is_string, chunk = segments[-1]
    if not is_string:
        return False
    # A closed string ends with an unescaped quote.
    if len(chunk) < 2 or not chunk.endswith('"'):
        return True
    backslashes = len(chunk[:-1]) - len(chunk[:-1].rstrip("\\"))
    return backslashes % 2 == 1


def _drop_dangling_comma(text: str) -> str:
    stripped = text.rstrip()
    if stripped.endswith(",") and not _ends_inside_string(stripped):
        return stripped[:-1]
    return text


def _close_unterminated_string(text: str) -> str:
    if not _ends_inside_string(text):
        return text
    if text.endswith("\\"):
        text = text[:-1]
    return text + '"'


def _quote_unquoted_keys(text: str) -> str:
    return _outside_strings(text, lambda chunk: _UNQUOTED_KEY_RE.sub(r'\1"\2"\3', chunk))


def _strip_trailing_commas(text: str) -> str:
    return _outside_strings(text, lambda chunk: _TRAILING_COMMA_RE.sub(r"\1", chunk))


def _balance_brackets(text: str) -> str:
    """Append closers for every bracket or brace still open, innermost first."""
    stack: List[str] = []
    for is_string, chunk in _segments(text):
        if is_string:
            continue
        for char in chunk:
            if char in "{[":
                stack.append("}" if char == "{" else "]")
            elif char in "}]" and stack and stack[-1] == char:
                stack.pop()
    stripped = text.rstrip()
    # A key or value cut off right after ':' has nothing to close against.
    if stack and stripped.endswith(":"):
        stripped += " null"
    return stripped + "".join(reversed(stack))


_PATCHES: List[Callable[[str], str]] = [
    _drop_dangling_comma,
    _close_unterminated_string,
    _quote_unquoted_keys,
    _strip_trailing_commas,
    _balance_brackets,
]


def _truncate_to_complete_object(text: str) -> str | None:
    """Cut back to each earlier closing brace or comma and re-balance until something parses."""
    cut_points = sorted(
        [match.start() + 1 for match in re.finditer(r"}", text)]
        + [match.start() for match in re.finditer(r",", text)],
        reverse=True,
    )
    for attempt, cut in enumerate(cut_points):
        if attempt >= MAX_TRUNCATION_ATTEMPTS:
            break
        prefix = text[:cut]
        candidate = _balance_brackets(_strip_trailing_commas(prefix))
        if _parses(candidate):
            return candidate
    return None
