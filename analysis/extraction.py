"""Recover a JSON object from free-form model output.

Model answers arrive wrapped in markdown fences, surrounded by commentary,
sprinkled with trailing commas, or cut off when the model runs out of output
budget. ``extract_json_object`` tries a ladder of parse stages, from the most
faithful to the most aggressive, and returns the first object that parses.
Each stage is a pure ``str -> dict`` function so it can be tested on its own.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Optional

from common.errors import UnparsableAnalysis

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 200

_FENCE_RE = re.compile(r"```[A-Za-z0-9_+-]*")
_TRAILING_COMMA_RE = re.compile(r"\s*,\s*([}\]])")

_CLOSERS = {"{": "}", "[": "]"}


def strip_fences(text: str) -> str:
    return _FENCE_RE.sub("", text).strip()


def drop_trailing_commas(text: str) -> str:
    return _TRAILING_COMMA_RE.sub(r"\1", text)


def _loads_object(text: str) -> dict[str, Any]:
    value = json.loads(text)
    if not isinstance(value, dict):
        raise ValueError(f"expected a JSON object, got {type(value).__name__}")
    return value


@dataclass
class Frame:
    opener: str
    member_start: int  # leading comma included
    value_start: Optional[int] = None  # set once an object member has its colon


def scan_containers(text: str) -> tuple[list[Frame], bool]:
    """Return the containers still open at the end of ``text``, outermost first,
    and whether the text ends inside a string literal."""
    stack: list[Frame] = []
    in_string = escaped = False
    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in _CLOSERS:
            stack.append(Frame(ch, i + 1))
        elif ch in "}]":
            if stack:
                stack.pop()
        elif ch == "," and stack:
            stack[-1].member_start = i
            stack[-1].value_start = None
        elif ch == ":" and stack:
            stack[-1].value_start = i + 1
    return stack, in_string


def _is_complete_value(text: str) -> bool:
    value = text.strip()
    if not value:
        return False
    if value[0] in '"{[':
        # the scanner already saw the closing quote or bracket
        return True
    try:
        json.loads(value)
    except ValueError:
        return False
    return True


def _last_member_complete(text: str, frame: Frame, in_string: bool) -> bool:
    if in_string:
        return False
    if frame.opener == "{":
        return frame.value_start is not None and _is_complete_value(text[frame.value_start:])
    return _is_complete_value(text[frame.member_start:].lstrip().removeprefix(","))


def close_truncated(text: str) -> str:
    """Drop a cut-off last member and close every container left open.

    Only an unfinished member goes: a key without a value, a string cut
    before its closing quote, a partial literal, or a trailing comma.
    Containers are closed innermost first.
    """
    start = text.find("{")
    if start < 0:
        raise ValueError("no JSON object start found")
    body = text[start:]
    stack, in_string = scan_containers(body)
    if not stack:
        return body
    innermost = stack[-1]
    if not _last_member_complete(body, innermost, in_string):
        body = body[:innermost.member_start]
    return body + "".join(_CLOSERS[frame.opener] for frame in reversed(stack))


def parse_direct(text: str) -> dict[str, Any]:
    return _loads_object(strip_fences(text))


def parse_without_trailing_commas(text: str) -> dict[str, Any]:
    return _loads_object(drop_trailing_commas(strip_fences(text)))


def parse_outermost_object(text: str) -> dict[str, Any]:
    cleaned = drop_trailing_commas(strip_fences(text))
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start < 0 or end <= start:
        raise ValueError("no enclosing braces found")
    return _loads_object(cleaned[start:end + 1])


def parse_truncated(text: str) -> dict[str, Any]:
    cleaned = drop_trailing_commas(strip_fences(text))
    return _loads_object(close_truncated(cleaned))


REPAIR_STAGES: tuple[Callable[[str], dict[str, Any]], ...] = (
    parse_direct,
    parse_without_trailing_commas,
    parse_outermost_object,
    parse_truncated,
)


def extract_json_object(text: str) -> dict[str, Any]:
    """Return the JSON object embedded in ``text`` or raise UnparsableAnalysis."""
    if not isinstance(text, str) or not text.strip():
        raise UnparsableAnalysis(repr(text)[:PREVIEW_CHARS])

    for stage in REPAIR_STAGES:
        try:
            result = stage(text)
        except ValueError:
            continue
        if stage is not parse_direct:
            logger.info("Recovered analysis JSON with %s", stage.__name__)
        return result

    logger.error("Could not extract JSON from: %s", text[:500])
    raise UnparsableAnalysis(text[:PREVIEW_CHARS])
