"""
Narrow adapter for free-form inference output.

Everything that turns model text into data goes through ``parse_json_object``
or ``parse_json_array``. Both return ``ParseOk`` or ``ParseFallback`` and
never raise, so the rest of the pipeline never branches on raw text shape.

Tolerated shapes: code-fenced JSON, JSON embedded in prose, and arrays
wrapped in an object under a known key.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Union

from src.utils import strip_code_fence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParseOk:
    value: Any


@dataclass(frozen=True)
class ParseFallback:
    reason: str


ParseResult = Union[ParseOk, ParseFallback]


def _extract_block(text: str, opener: str, closer: str) -> Optional[str]:
    start = text.find(opener)
    end = text.rfind(closer)
    if start == -1 or end == -1 or end <= start:
        return None
    return text[start : end + 1]


def _loads(text: str, opener: str, closer: str) -> ParseResult:
    cleaned = strip_code_fence(text or "")
    if not cleaned:
        return ParseFallback("empty response")
    try:
        return ParseOk(json.loads(cleaned))
    except json.JSONDecodeError:
        pass
    block = _extract_block(cleaned, opener, closer)
    if block is None:
        return ParseFallback("response is not JSON")
    try:
        return ParseOk(json.loads(block))
    except json.JSONDecodeError as exc:
        return ParseFallback(f"invalid JSON: {exc.msg}")


def parse_json_object(text: str, required_keys: Iterable[str] = ()) -> ParseResult:
    """Parse a JSON object, requiring each of ``required_keys`` to be present."""
    result = _loads(text, "{", "}")
    if isinstance(result, ParseFallback):
        logger.debug("Object parse fell back: %s", result.reason)
        return result
    if not isinstance(result.value, dict):
        return ParseFallback(f"expected object, got {type(result.value).__name__}")
    missing = [key for key in required_keys if key not in result.value]
    if missing:
        return ParseFallback(f"missing keys: {', '.join(missing)}")
    return result


def parse_json_array(text: str, wrapper_keys: Iterable[str] = ()) -> ParseResult:
    """Parse a JSON array, unwrapping ``{"<key>": [...]}`` for any wrapper key."""
    wrapper_keys = tuple(wrapper_keys)
    result = _loads(text, "[", "]")
    if isinstance(result, ParseFallback) and wrapper_keys:
        result = _loads(text, "{", "}")
    if isinstance(result, ParseFallback):
        logger.debug("Array parse fell back: %s", result.reason)
        return result
    value = result.value
    if isinstance(value, dict):
        for key in wrapper_keys:
            if isinstance(value.get(key), list):
                return ParseOk(value[key])
        return ParseFallback("object has no array under the expected keys")
    if not isinstance(value, list):
        return ParseFallback(f"expected array, got {type(value).__name__}")
    return result
