"""
JSON output helper for model responses.

Every call site that expects JSON from the model goes through
``parse_or_default`` so that malformed output is handled in one place and
the caller always receives a well-formed value tagged with its provenance.
"""
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Optional, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL)
_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Value built from the model's own output."""
    value: T

    @property
    def is_fallback(self) -> bool:
        return False


@dataclass(frozen=True)
class Fallback(Generic[T]):
    """Deterministic substitute used because the model output was unusable."""
    value: T
    reason: str = ""

    @property
    def is_fallback(self) -> bool:
        return True


ParseResult = Union[Ok[T], Fallback[T]]


def extract_json_object(text: str) -> Dict[str, Any]:
    """
    Pull a JSON object out of raw model text.

    Handles markdown code fences, prose around the object and trailing commas.

    Raises:
        ValueError: If no JSON object can be decoded
    """
    candidate = text.strip()

    fence = _FENCE_RE.search(candidate)
    if fence:
        candidate = fence.group(1)

    obj = _OBJECT_RE.search(candidate)
    if obj:
        candidate = obj.group()

    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError:
        parsed = json.loads(_TRAILING_COMMA_RE.sub(r"\1", candidate))

    if not isinstance(parsed, dict):
        raise ValueError(f"Expected a JSON object, got {type(parsed).__name__}")
    return parsed


def parse_or_default(
    text: Optional[str],
    builder: Callable[[Dict[str, Any]], T],
    fallback: Callable[[], T],
) -> ParseResult:
    """
    Parse model text into a typed value, or fall back deterministically.

    Args:
        text: Raw model output; None means the remote call itself failed
        builder: Turns the decoded JSON object into the target value
        fallback: Produces the substitute value

    Returns:
        Ok(value) on success, Fallback(value, reason) otherwise
    """
    if text is None:
        return Fallback(fallback(), "no model output")

    try:
        data = extract_json_object(text)
        return Ok(builder(data))
    except Exception as e:
        # Any failure on model-controlled input (bad JSON, schema errors, overflow, nesting depth)
        logger.warning(f"Failed to parse JSON from model output, using fallback: {text[:100]!r}")
        return Fallback(fallback(), f"{type(e).__name__}: {e}")
