"""Recover the plan JSON from free-form model output.

Each strategy is a pure function `text -> object | None`; `extract_json` tries
them in order and keeps the first hit. A bare `null` counts as a miss.
"""
import json
import re
from typing import Any, Callable, List, Optional

from rescuemind.errors import ExtractionError

FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.I)


def _loads(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return None


def parse_whole(text: str) -> Any:
    return _loads(text)


def parse_fenced(text: str) -> Any:
    m = FENCE_RE.search(text)
    return _loads(m.group(1)) if m else None


def parse_outer_braces(text: str) -> Any:
    first, last = text.find("{"), text.rfind("}")
    if first == -1 or last <= first:
        return None
    return _loads(text[first:last + 1])


def parse_trimmed(text: str) -> Any:
    # Shrink from the end one character at a time, anchored at the first "{".
    first = text.find("{")
    if first == -1:
        return None
    for end in range(len(text), first, -1):
        obj = _loads(text[first:end])
        if obj is not None:
            return obj
    return None


STRATEGIES: List[Callable[[str], Any]] = [parse_whole, parse_fenced, parse_outer_braces, parse_trimmed]


def extract_json(text: Optional[str]) -> Any:
    if not isinstance(text, str) or not text:
        raise ExtractionError("")
    for strategy in STRATEGIES:
        obj = strategy(text)
        if obj is not None:
            return obj
    raise ExtractionError(text)
