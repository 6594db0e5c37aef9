#!/usr/bin/env python3
"""
Parse-then-validate for model output.

Models wrap JSON in markdown fences, prepend chatter or append notes. The
parser strips fences, takes the first balanced {...} block, decodes it and
validates it against GenerationResult. Ordinary malformed output yields a
failed AttemptResult rather than an exception.
"""

import json
import re
from typing import Optional

from pydantic import ValidationError

from ...shared.types.results import AttemptResult, GenerationResult

_FENCE = re.compile(r'```[a-zA-Z]*')


def strip_code_fences(text: str) -> str:
    return _FENCE.sub('', text or '').strip()


def extract_json_object(text: str) -> Optional[str]:
    """Return the first balanced {...} block, ignoring braces inside JSON strings."""
    start = text.find('{')
    if start < 0:
        return None

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == '\\':
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == '{':
            depth += 1
        elif char == '}':
            depth -= 1
            if depth == 0:
                return text[start:index + 1]
    return None


def parse_generation(text: Optional[str]) -> AttemptResult[GenerationResult]:
    if not text or not text.strip():
        return AttemptResult.failure("empty response")

    block = extract_json_object(strip_code_fences(text))
    if block is None:
        return AttemptResult.failure("no JSON object in response")

    try:
        # strict=False tolerates raw newlines inside strings
        data = json.loads(block, strict=False)
    except json.JSONDecodeError as e:
        return AttemptResult.failure(f"invalid JSON: {e.msg} at position {e.pos}")

    if not isinstance(data, dict):
        return AttemptResult.failure("JSON payload is not an object")

    try:
        result = GenerationResult.model_validate(data)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err['loc']) for err in e.errors())
        return AttemptResult.failure(f"incomplete article ({fields})")

    return AttemptResult.success(result)
