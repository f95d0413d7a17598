"""Shared utility functions for agents."""

import json
from typing import Any, Optional

from core.middleware.logging import get_logger

logger = get_logger(__name__)


def parse_json_response(response: str) -> Optional[Any]:
    """Parse JSON from a model response, tolerating a markdown code fence.

    Args:
        response: Model response text

    Returns:
        Parsed JSON value or None if parsing fails
    """
    text = response.strip()
    if text.startswith("```"):
        first_newline = text.find("\n")
        end = text.rfind("```")
        if first_newline != -1 and end > first_newline:
            text = text[first_newline + 1:end].strip()

    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning(f"Response is not valid JSON: {e}")
        return None
