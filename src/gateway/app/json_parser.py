"""Tolerant JSON parsing for model output."""

import json
import logging
import re
from typing import Any, Optional

logger = logging.getLogger(__name__)

_FENCE = re.compile(r'^```(?:json|JSON)?\s*(.*?)\s*```$', re.DOTALL)


def parse_model_json(text: str) -> Any:
    """
    Parse JSON from model output, handling common formatting issues.

    Handles markdown code fences and prose around a single JSON object or
    array.

    Raises:
        json.JSONDecodeError: If no JSON value can be recovered
    """
    if not text or not text.strip():
        raise json.JSONDecodeError("Empty response", text or "", 0)

    cleaned = clean_json_text(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.debug(f"Initial JSON parse failed: {e}")

    extracted = extract_json_value(cleaned)
    if extracted:
        try:
            return json.loads(extracted)
        except json.JSONDecodeError as e:
            logger.debug(f"Extracted JSON parse failed: {e}")

    raise json.JSONDecodeError(
        f"Could not parse JSON from response: {text[:200]}...",
        text, 0
    )


def clean_json_text(text: str) -> str:
    """Strip whitespace and markdown code fences."""
    text = text.strip()
    match = _FENCE.match(text)
    if match:
        text = match.group(1)
    return text.strip().strip('`').strip()


def extract_json_value(text: str) -> Optional[str]:
    """
    Extract the first balanced JSON object or array from mixed content.

    Returns:
        Extracted JSON string or None
    """
    starts = [i for i in (text.find('{'), text.find('[')) if i != -1]
    if not starts:
        return None
    start_idx = min(starts)
    opener = text[start_idx]
    closer = '}' if opener == '{' else ']'

    depth = 0
    in_string = False
    escape_next = False

    for i in range(start_idx, len(text)):
        char = text[i]

        if escape_next:
            escape_next = False
            continue

        if char == '\\':
            escape_next = True
            continue

        if char == '"':
            in_string = not in_string
            continue

        if not in_string:
            if char == opener:
                depth += 1
            elif char == closer:
                depth -= 1
                if depth == 0:
                    return text[start_idx:i + 1]

    return None
