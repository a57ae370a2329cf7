"""Extraction and validation of classification records from model replies.

Both provider transports go through these functions, so the acceptance policy
for a model reply is the same whichever endpoint produced it.
"""

import json
import re
from collections.abc import Callable
from typing import Any, TypeGuard

# ```json ... ``` or a bare ``` ... ``` block
FENCED_BLOCK_PATTERN = re.compile(r"```(?:json)?[ \t]*\n?(.*?)```", re.DOTALL | re.IGNORECASE)

_decoder = json.JSONDecoder()


def _as_record(value: Any) -> dict[str, Any] | None:
    return value if isinstance(value, dict) else None


def parse_whole_text(text: str) -> dict[str, Any] | None:
    """Parse the entire reply as one JSON object."""
    try:
        return _as_record(json.loads(text))
    except ValueError:
        return None


def parse_first_brace_span(text: str) -> dict[str, Any] | None:
    """Decode the JSON object that starts at the first opening brace.

    Anything before the brace (a preamble such as "Here's the JSON:") and
    anything after the decoded object is ignored.
    """
    start = text.find("{")
    if start == -1:
        return None
    try:
        value, _ = _decoder.raw_decode(text, start)
    except ValueError:
        return None
    return _as_record(value)


def parse_fenced_block(text: str) -> dict[str, Any] | None:
    """Parse the content of the first fenced code block."""
    match = FENCED_BLOCK_PATTERN.search(text)
    if not match:
        return None
    return parse_whole_text(match.group(1).strip())


EXTRACTION_STRATEGIES: tuple[Callable[[str], dict[str, Any] | None], ...] = (
    parse_whole_text,
    parse_first_brace_span,
    parse_fenced_block,
)


def extract_json_record(text: str) -> dict[str, Any] | None:
    """Extract a candidate record from raw model text.

    Strategies are tried in order and the first one yielding a JSON object
    wins.

    Args:
        text: Raw reply text from the model

    Returns:
        The decoded object, or None when no strategy found one
    """
    for strategy in EXTRACTION_STRATEGIES:
        record = strategy(text)
        if record is not None:
            return record
    return None


def is_valid_classification(candidate: object) -> TypeGuard[dict[str, Any]]:
    """Check a candidate record against the classification schema.

    ``filename`` must be a string that is non-empty after trimming. ``category``
    is optional but must be a string when present. Never raises.
    """
    if not isinstance(candidate, dict):
        return False

    filename = candidate.get("filename")
    if not isinstance(filename, str) or not filename.strip():
        return False

    return "category" not in candidate or isinstance(candidate["category"], str)
