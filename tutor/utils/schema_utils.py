"""
JSON extraction utilities for model output.

Model replies that should be a JSON object sometimes arrive wrapped in a code
fence or surrounded by prose. `extract_json_object` tries an explicit, ordered
chain of strategies; each one reports success or failure as a value, and only
when all of them fail is an error raised.
"""

import json
import logging
import re
from typing import Any, Callable, Optional, Sequence, Type, TypeVar
from pydantic import BaseModel, ValidationError

from tutor.exceptions import AgentOutputError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

_FENCED_RE = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)


class JsonExtraction(BaseModel):
    """Outcome of one extraction strategy."""

    strategy: str
    ok: bool = False
    value: Optional[dict[str, Any]] = None
    error: Optional[str] = None


def _decode_object(strategy: str, candidate: str) -> JsonExtraction:
    try:
        value = json.loads(candidate)
    except json.JSONDecodeError as e:
        return JsonExtraction(strategy=strategy, error=str(e))
    if not isinstance(value, dict):
        return JsonExtraction(strategy=strategy, error=f"expected object, got {type(value).__name__}")
    return JsonExtraction(strategy=strategy, ok=True, value=value)


def extract_strict(text: str) -> JsonExtraction:
    """The whole text is a JSON object."""
    return _decode_object("strict", text.strip())


def extract_fenced(text: str) -> JsonExtraction:
    """A JSON object inside a ``` or ```json code fence."""
    match = _FENCED_RE.search(text)
    if not match:
        return JsonExtraction(strategy="fenced", error="no fenced JSON block")
    return _decode_object("fenced", match.group(1))


def find_balanced_object(text: str) -> Optional[str]:
    """First `{...}` span whose braces balance, ignoring braces inside strings."""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
            elif char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return text[start:index + 1]
        start = text.find("{", start + 1)
    return None


def extract_brace_matched(text: str) -> JsonExtraction:
    """The first balanced object embedded anywhere in the text."""
    candidate = find_balanced_object(text)
    if candidate is None:
        return JsonExtraction(strategy="brace_matched", error="no balanced object")
    return _decode_object("brace_matched", candidate)


DEFAULT_STRATEGIES: tuple[Callable[[str], JsonExtraction], ...] = (
    extract_strict,
    extract_fenced,
    extract_brace_matched,
)


def extract_json_object(
    text: Optional[str],
    agent_name: str = "unknown",
    strategies: Sequence[Callable[[str], JsonExtraction]] = DEFAULT_STRATEGIES,
) -> dict[str, Any]:
    """
    Decode a JSON object from model output.

    Args:
        text: Raw model output
        agent_name: Component name used in errors and logs
        strategies: Extraction strategies, tried in order

    Returns:
        The first successfully decoded object

    Raises:
        AgentOutputError: If every strategy fails
    """
    attempts: list[JsonExtraction] = []
    for strategy in strategies:
        result = strategy(text or "")
        if result.ok:
            if attempts:
                logger.debug(json.dumps({
                    "step": "JSON_EXTRACTION",
                    "agent": agent_name,
                    "strategy": result.strategy,
                    "fallbacks": [a.strategy for a in attempts],
                }))
            return result.value
        attempts.append(result)

    logger.warning(json.dumps({
        "step": "JSON_EXTRACTION",
        "status": "failed",
        "agent": agent_name,
        "attempts": [{"strategy": a.strategy, "error": a.error} for a in attempts],
        "preview": (text or "")[:200],
    }))
    raise AgentOutputError(agent_name=agent_name, expected_schema="JSON object")


def validate_agent_output(
    output: dict[str, Any],
    model: Type[T],
    agent_name: str = "unknown",
) -> T:
    """Validate and parse agent output against a Pydantic model."""
    try:
        return model.model_validate(output)
    except ValidationError as e:
        raise AgentOutputError(
            agent_name=agent_name,
            expected_schema=model.__name__,
        ) from e
