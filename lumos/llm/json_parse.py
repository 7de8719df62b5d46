import json
import re
from typing import Any, Callable, Iterator

from lumos.core.errors import PlanParseError


_JSON_FENCE = re.compile(r"```json\s*([\s\S]*?)\s*```", re.IGNORECASE)
_ANY_FENCE = re.compile(r"```[a-zA-Z0-9_-]*\s*([\s\S]*?)\s*```")


def _strip_think(s: str) -> str:
    # reasoning models sometimes prefix the answer with <think>...</think>
    if "</think>" in s:
        s = s.split("</think>")[-1]
    return s.strip()


def _whole(text: str) -> Iterator[str]:
    yield text


def _json_fence(text: str) -> Iterator[str]:
    m = _JSON_FENCE.search(text)
    if m:
        yield m.group(1)


def _any_fence(text: str) -> Iterator[str]:
    for m in _ANY_FENCE.finditer(text):
        yield m.group(1)


def _brace_scan(text: str) -> Iterator[str]:
    """
    First balanced {...} starting at the first opening brace, then the
    greedy first-to-last brace span for objects with trailing garbage.
    """
    start = text.find("{")
    if start == -1:
        return
    try:
        _, end = json.JSONDecoder().raw_decode(text[start:])
        yield text[start : start + end]
    except json.JSONDecodeError:
        pass
    last = text.rfind("}")
    if last > start:
        yield text[start : last + 1]


LAYERS: list[tuple[str, Callable[[str], Iterator[str]]]] = [
    ("direct", _whole),
    ("json_fence", _json_fence),
    ("any_fence", _any_fence),
    ("brace_scan", _brace_scan),
]


def extract_json_object(text: str) -> tuple[dict[str, Any], str]:
    """
    Pull a JSON object out of free-form model text.

    Layers are tried in order until one parses to an object:
    the whole text, the first ```json fence, any fence, the first {...}.
    Returns (object, layer_name). Raises PlanParseError when every layer fails.
    """
    candidate = _strip_think(text or "")
    if not candidate:
        raise PlanParseError("Empty response, no JSON found")

    for layer, extract in LAYERS:
        for chunk in extract(candidate):
            try:
                parsed = json.loads(chunk)
            except json.JSONDecodeError:
                continue
            if isinstance(parsed, dict):
                return parsed, layer

    raise PlanParseError(f"No JSON object found in response: {candidate[:200]}")
