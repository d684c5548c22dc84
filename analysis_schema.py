# The shape both this service and the language model must agree on.
from dataclasses import dataclass, field
from typing import Tuple

# Fixed key order the model is asked to emit.
FIELD_ORDER = ("analysis", "suggestions", "errorsDetected")

# JSON schema handed to the model in schema-constrained mode.
RESPONSE_SCHEMA = {
    "type": "object",
    "properties": {
        "analysis": {
            "type": "string",
            "description": "A general overview of the gameplay and its patterns.",
        },
        "suggestions": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Specific, actionable tips to improve.",
        },
        "errorsDetected": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Clear, identified mistakes or sub-optimal actions.",
        },
    },
    "required": list(FIELD_ORDER),
    "additionalProperties": False,
}

RESPONSE_SCHEMA_NAME = "gameplay_analysis"


@dataclass(frozen=True)
class AnalysisResult:
    analysis_text: str = ""
    suggestions: Tuple[str, ...] = field(default_factory=tuple)
    errors_detected: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        # Keys in FIELD_ORDER; this is also the HTTP response body.
        return {
            "analysis": self.analysis_text,
            "suggestions": list(self.suggestions),
            "errorsDetected": list(self.errors_detected),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AnalysisResult":
        """
        Coerce a decoded JSON object into an AnalysisResult.
        Missing fields become "" / () instead of failing, so small drifts in
        the model output still produce a complete record.
        """
        analysis = data.get("analysis")
        if analysis is None:
            analysis = ""
        elif not isinstance(analysis, str):
            analysis = str(analysis)

        return cls(
            analysis_text=analysis,
            suggestions=_string_list(data.get("suggestions")),
            errors_detected=_string_list(data.get("errorsDetected")),
        )


def _string_list(value) -> Tuple[str, ...]:
    # Make sure list fields are always lists of strings
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,) if value else ()
    if isinstance(value, (list, tuple)):
        return tuple(item if isinstance(item, str) else str(item) for item in value if item is not None)
    return ()
