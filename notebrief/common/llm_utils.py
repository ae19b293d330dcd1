"""Shared utilities for parsing LLM responses."""

from __future__ import annotations

import json
import re

from .errors import JsonExtractionFailed

_JSON_FENCE_RE = re.compile(r"```json\s*([\s\S]*?)```", re.IGNORECASE)
_ANY_FENCE_RE = re.compile(r"```[\w-]*\s*([\s\S]*?)```")
_BRACE_SPAN_RE = re.compile(r"\{[\s\S]*\}")


def _parses(candidate: str) -> bool:
    try:
        json.loads(candidate)
    except (json.JSONDecodeError, ValueError):
        return False
    return True


def extract_json(raw: str) -> str:
    """Locate a JSON document inside free-form LLM output.

    Tries in order:
    1. A fenced block tagged ```json
    2. Any fenced block
    3. The greedy span from the first '{' to the last '}'
    4. The whole trimmed text

    A candidate is only accepted if it parses as JSON.

    Raises:
        JsonExtractionFailed: None of the candidates parse
    """
    if not raw or not raw.strip():
        raise JsonExtractionFailed("empty model output")

    for pattern in (_JSON_FENCE_RE, _ANY_FENCE_RE):
        match = pattern.search(raw)
        if match:
            candidate = match.group(1).strip()
            if _parses(candidate):
                return candidate

    match = _BRACE_SPAN_RE.search(raw)
    if match and _parses(match.group(0)):
        return match.group(0)

    text = raw.strip()
    if _parses(text):
        return text

    raise JsonExtractionFailed("no JSON found in model output")
