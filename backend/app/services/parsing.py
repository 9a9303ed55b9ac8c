"""
Parsing of model output into JSON values.

Models asked for JSON still sometimes wrap it in markdown fences or surround
an array with prose, so every parser strips fences first.
"""
import json
import logging
import re
from typing import Any, Dict, List, Sequence

from app.core.errors import AnalysisMalformed, GenerationMalformed

logger = logging.getLogger(__name__)

_FENCE_PATTERN = re.compile(r"```(?:json)?", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """Remove ```json / ``` markers and surrounding whitespace."""
    return _FENCE_PATTERN.sub("", text or "").strip()


def parse_analysis(text: str, required_fields: Sequence[str]) -> Dict[str, Any]:
    """
    Parse a Phase 1 analysis object.

    Args:
        text: Raw model output
        required_fields: Top-level keys the object must contain

    Returns:
        Parsed analysis dict (extra keys preserved)

    Raises:
        AnalysisMalformed: On invalid JSON, a non-object, or a missing field
    """
    cleaned = strip_code_fences(text)
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        logger.error(f"Failed to parse analysis JSON: {text!r}")
        raise AnalysisMalformed() from exc

    if not isinstance(parsed, dict):
        logger.error(f"Analysis is not a JSON object: {text!r}")
        raise AnalysisMalformed()

    missing = [field for field in required_fields if field not in parsed]
    if missing:
        logger.error(f"Analysis JSON missing fields {missing}: {text!r}")
        raise AnalysisMalformed()

    return parsed


def extract_json_array(text: str) -> List[Any]:
    """
    Parse the JSON array embedded in a model response.

    Takes the substring from the first '[' to the last ']'. A response with
    no bracket pair yields an empty list.

    Raises:
        GenerationMalformed: If the bracketed text is not a JSON array
    """
    cleaned = strip_code_fences(text)
    start = cleaned.find("[")
    end = cleaned.rfind("]")
    if start == -1 or end == -1 or end < start:
        return []

    try:
        parsed = json.loads(cleaned[start:end + 1])
    except json.JSONDecodeError as exc:
        logger.error(f"Failed to parse generation JSON: {text!r}")
        raise GenerationMalformed("Failed to generate structured video prompts.") from exc

    if not isinstance(parsed, list):
        raise GenerationMalformed("Failed to generate structured video prompts.")
    return parsed


def parse_json_object(text: str) -> Dict[str, Any]:
    cleaned = strip_code_fences(text)
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        logger.error(f"Failed to parse JSON object: {text!r}")
        raise GenerationMalformed() from exc
    if not isinstance(parsed, dict):
        raise GenerationMalformed()
    return parsed
