from __future__ import annotations

import json
import re
from typing import Any, Iterator

from agent.errors import MalformedOutput, NoJsonFound


_CODE_FENCE_PATTERN = re.compile(r"```[A-Za-z0-9_-]*")
_JSON_START_PATTERN = re.compile(r"[{\[]")


def strip_code_fences(text: str) -> str:
    return _CODE_FENCE_PATTERN.sub("", text or "")


def extract_json(text: str) -> Any:
    """Recover the JSON value an LLM meant to send.

    Layers, cheapest first: direct parse from the first bracket, parse of the
    prefix up to the decoder's error offset (valid JSON followed by prose),
    then a brace-depth scan for the first balanced object that parses.
    """
    if not isinstance(text, str):
        raise NoJsonFound("LLM output is not text")

    cleaned = strip_code_fences(text).strip()
    match = _JSON_START_PATTERN.search(cleaned)
    if not match:
        raise NoJsonFound("No JSON object found in LLM output")

    candidate = cleaned[match.start():]
    try:
        return json.loads(candidate)
    except json.JSONDecodeError as exc:
        error_offset = exc.pos

    if error_offset > 0:
        try:
            return json.loads(candidate[:error_offset])
        except json.JSONDecodeError:
            pass

    for start, end in _balanced_object_spans(candidate):
        try:
            return json.loads(candidate[start:end])
        except json.JSONDecodeError:
            continue

    raise MalformedOutput("Could not parse JSON from LLM output")


def extract_json_object(text: str) -> dict[str, Any]:
    parsed = extract_json(text)
    if not isinstance(parsed, dict):
        raise MalformedOutput(f"Expected a JSON object, got {type(parsed).__name__}")
    return parsed


def _balanced_object_spans(text: str) -> Iterator[tuple[int, int]]:
    depth = 0
    start = -1
    in_string = False
    escaped = False
    for index, char in enumerate(text):
        if depth > 0 and in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"' and depth > 0:
            in_string = True
        elif char == "{":
            if depth == 0:
                start = index
            depth += 1
        elif char == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                yield start, index + 1
