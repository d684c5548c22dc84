# Validates what the model sent back and turns it into an AnalysisResult.
# Once the generation call itself succeeded this never raises: malformed or
# unparseable output becomes a degraded (but well-formed) result instead.
import json
import logging
import re

from analysis_schema import AnalysisResult
from errors import MalformedResponseError
from genai_client import GenerationEnvelope

logger = logging.getLogger(__name__)

PARSE_FAILURE_ANALYSIS = "Failed to parse AI analysis. Please try again or refine your input."

_FENCE_RE = re.compile(r"^\s*```(?:json)?\s*(.*?)\s*```\s*$", re.DOTALL)


def first_candidate_text(envelope: GenerationEnvelope) -> str:
    """Text of the first candidate with non-empty content."""
    for text in envelope.candidates:
        if text and text.strip():
            return text
    raise MalformedResponseError(details=f"{len(envelope.candidates)} candidate(s), none with content")


def degraded_result(reason: str) -> AnalysisResult:
    return AnalysisResult(
        analysis_text=PARSE_FAILURE_ANALYSIS,
        suggestions=(),
        errors_detected=(reason,),
    )


def parse_analysis_text(raw: str) -> AnalysisResult:
    # Models sometimes wrap the object in a ```json fence even in JSON mode
    match = _FENCE_RE.match(raw)
    cleaned = match.group(1) if match else raw

    try:
        data = json.loads(cleaned)
    # ValueError also covers int-digit limits; RecursionError covers absurd nesting
    except (ValueError, RecursionError) as e:
        logger.warning("AI output could not be decoded (%s); returning degraded result", type(e).__name__)
        return degraded_result(f"Invalid AI response format: {raw}")

    if not isinstance(data, dict):
        logger.warning("AI output is JSON but not an object (%s)", type(data).__name__)
        return degraded_result(f"Invalid AI response format: {raw}")

    return AnalysisResult.from_dict(data)


def parse_generation(envelope: GenerationEnvelope) -> AnalysisResult:
    try:
        raw = first_candidate_text(envelope)
    except MalformedResponseError as e:
        logger.warning("Malformed AI response envelope: %s", e.details)
        return degraded_result(f"AI response contained no content ({e.details}).")
    return parse_analysis_text(raw)
