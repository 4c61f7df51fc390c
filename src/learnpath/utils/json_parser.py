"""Helpers for pulling JSON out of AI completion output."""

from __future__ import annotations

import json
from typing import Any, Iterator

_FENCE = "```"


def extract_json(text: str) -> dict | list:
    """Extract a JSON object or array from completion text.

    Candidates are tried in order: the whole text, the text with markdown
    code fences removed, the outermost ``{...}`` span, the outermost
    ``[...]`` span, and finally the object with unbalanced closers appended
    (completions cut off at the token limit).
    """
    text = (text or "").strip()
    for candidate in _candidates(text):
        try:
            value = json.loads(candidate)
        except (json.JSONDecodeError, TypeError):
            continue
        if isinstance(value, (dict, list)):
            return value

    raise ValueError(f"Could not extract JSON from text: {text[:200]}...")


def coerce_completion(value: Any) -> Any:
    """Normalise a completion result to parsed JSON where possible.

    Structured values pass through unchanged. Strings are parsed when they
    contain JSON and otherwise returned stripped, so callers can fall back
    to text handling.
    """
    if not isinstance(value, str):
        return value
    try:
        return extract_json(value)
    except ValueError:
        return value.strip()


def _candidates(text: str) -> Iterator[str]:
    yield text

    unfenced = _strip_code_fences(text)
    if unfenced != text:
        yield unfenced
    else:
        unfenced = text

    for body in (unfenced, text):
        span = _span(body, "{", "}")
        if span:
            yield span
    for body in (unfenced, text):
        span = _span(body, "[", "]")
        if span:
            yield span

    repaired = _close_truncated(unfenced)
    if repaired:
        yield repaired


def _strip_code_fences(text: str) -> str:
    lines = text.splitlines()
    start = next((i for i, line in enumerate(lines) if line.strip().startswith(_FENCE)), None)
    if start is None:
        return text
    body = lines[start + 1:]
    end = next((i for i, line in enumerate(body) if line.strip() == _FENCE), len(body))
    return "\n".join(body[:end]).strip()


def _span(text: str, opener: str, closer: str) -> str | None:
    start = text.find(opener)
    end = text.rfind(closer)
    if start == -1 or end <= start:
        return None
    return text[start:end + 1]


def _close_truncated(text: str) -> str | None:
    start = text.find("{")
    if start == -1:
        return None
    body = text[start:].rstrip()

    # Cut back to the last complete string value when the tail is mid-token
    if body.count('"') % 2:
        body = body[: body.rfind('"')].rstrip()
    body = body.rstrip(",:").rstrip()

    stack: list[str] = []
    in_string = False
    escaped = False
    for ch in body:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch in "{[":
            stack.append("}" if ch == "{" else "]")
        elif ch in "}]" and stack:
            stack.pop()

    if not stack:
        return None
    return body + "".join(reversed(stack))
