"""
JSON extraction helpers for LLM summary output.

Summaries are requested as {"bullets": [...]}, but models sometimes wrap
the object in a markdown fence, add a preamble, or ignore the format
entirely. These helpers recover the bullet list where possible.

Example:
    from vispark.utils.json_utils import extract_bullets

    extract_bullets('```json\\n{"bullets": ["a", "b"]}\\n```')  # ["a", "b"]
    extract_bullets("Plain text summary")                     # ["Plain text summary"]
"""

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

_CODE_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
_DECODER = json.JSONDecoder()


def extract_json_object(text: str) -> str:
    """
    Extract the first JSON object from LLM output.

    Handles markdown code blocks and surrounding prose.

    Args:
        text: Raw LLM response

    Returns:
        JSON object string (empty string if no object found)

    Example:
        >>> extract_json_object('Result: {"bullets": ["x"]} done')
        '{"bullets": ["x"]}'
    """
    if not text:
        return ""

    cleaned = text.strip()

    match = _CODE_BLOCK.search(cleaned)
    if match:
        cleaned = match.group(1).strip()

    start_idx = cleaned.find("{")
    if start_idx == -1:
        return ""

    try:
        _, end_idx = _DECODER.raw_decode(cleaned, start_idx)
    except json.JSONDecodeError:
        # Leave the error to the caller's parser
        return cleaned[start_idx:]
    return cleaned[start_idx:end_idx]


def parse_json_safe(json_str: str, default: Any = None) -> Any:
    """
    Parse JSON string, returning default on failure.

    Args:
        json_str: JSON string to parse
        default: Value returned for empty or invalid input

    Returns:
        Parsed JSON data or default
    """
    if not json_str or not json_str.strip():
        return default

    try:
        return json.loads(json_str)
    except json.JSONDecodeError as e:
        preview = json_str[:200] + "..." if len(json_str) > 200 else json_str
        logger.debug(f"Failed to parse JSON: {e}. Input: {preview}")
        return default


def extract_bullets(summary_text: str | None) -> list[str]:
    """
    Split a finished summary into bullet points.

    If the text carries a JSON object with a "bullets" list of strings,
    those are returned. Anything else becomes a single bullet.

    Args:
        summary_text: Final summary text from the stream

    Returns:
        List of bullets (empty for empty input)
    """
    if not summary_text or not summary_text.strip():
        return []

    parsed = parse_json_safe(extract_json_object(summary_text))
    if isinstance(parsed, dict):
        bullets = parsed.get("bullets")
        if isinstance(bullets, list):
            return [str(b).strip() for b in bullets if str(b).strip()]

    return [summary_text.strip()]
