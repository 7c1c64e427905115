"""
Parsing of raw model output into an analysis result.

The model is asked for JSON but nothing guarantees it. Output that does not
decode to a JSON object becomes an ``UnstructuredAnalysis`` carrying the raw
text. A JSON object is returned as-is even when it strays from the
``AnalysisPayload`` shape. Parsing never raises.
"""

import json
import logging
import re

from ...models import StructuredAnalysis, UnstructuredAnalysis

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)


def _strip_code_fence(text: str) -> str:
    match = _CODE_FENCE.match(text.strip())
    return match.group(1) if match else text


def parse_analysis(raw: str) -> StructuredAnalysis | UnstructuredAnalysis:
    """
    Turn model output into a tagged analysis result.

    Args:
        raw: Text content returned by the model.

    Returns:
        StructuredAnalysis when the text is a JSON object, otherwise
        UnstructuredAnalysis with the original text.
    """
    try:
        data = json.loads(_strip_code_fence(raw))
    except (json.JSONDecodeError, TypeError) as e:
        logger.warning("Model output is not valid JSON: %s", e)
        return UnstructuredAnalysis(raw=raw or "")

    if not isinstance(data, dict):
        logger.warning("Model output is JSON but not an object (%s)", type(data).__name__)
        return UnstructuredAnalysis(raw=raw)

    result = StructuredAnalysis(data=data)
    if result.payload is None:
        logger.info("Model output deviates from the analysis shape; returning it unchanged")
    return result
