# Turns a player's gameplay text into a complete, schema-constrained request.
# Pure: no network, no database.
import json
from dataclasses import dataclass
from typing import Optional

from analysis_schema import FIELD_ORDER, RESPONSE_SCHEMA, RESPONSE_SCHEMA_NAME
from errors import InputValidationError

SYSTEM_MSG = (
    "You are an experienced esports coach reviewing gameplay for a competitive player. "
    "You only ever answer with a single JSON object."
)


@dataclass(frozen=True)
class AnalysisRequestPayload:
    system_prompt: str
    user_prompt: str
    response_format: dict
    temperature: float
    max_tokens: int

    def messages(self) -> list:
        return [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": self.user_prompt},
        ]


def schema_description() -> str:
    """Plain-text description of the output shape, mirroring AnalysisResult."""
    example = {
        "analysis": "string",
        "suggestions": ["string", "..."],
        "errorsDetected": ["string", "..."],
    }
    return (
        "Return EXACTLY this JSON shape, with the keys in this order: "
        + ", ".join(FIELD_ORDER)
        + ".\n"
        + json.dumps(example, indent=2)
        + "\n"
        '  "analysis": a general overview of the gameplay and its patterns (string).\n'
        '  "suggestions": an array of specific, actionable tips to improve (array of strings).\n'
        '  "errorsDetected": an array of clear, identified mistakes or sub-optimal actions (array of strings).\n'
        "Do not include any text outside the JSON object."
    )


def build_analysis_request(
    raw_text: str,
    submitter_id: Optional[str] = None,
    temperature: float = 0.7,
    max_tokens: int = 800,
) -> AnalysisRequestPayload:
    """
    Build the request for one gameplay description.

    `submitter_id` only personalises the wording. Empty or whitespace-only
    text raises InputValidationError.
    """
    if raw_text is None or not str(raw_text).strip():
        raise InputValidationError("Gameplay text is required for analysis.")

    lines = [
        "Analyze the following gameplay log/description for a gaming/esports player.",
        "Focus on identifying patterns, specific errors, and providing actionable suggestions for improvement.",
        "Consider the context of a competitive gaming environment.",
    ]
    if submitter_id:
        lines.append(
            f"This analysis is for user ID: {submitter_id}. "
            "Try to tailor advice as if speaking directly to them."
        )

    user_msg = (
        "\n".join(lines)
        + "\n\nGameplay:\n"
        + '"""\n'
        + raw_text
        + '\n"""\n\n'
        + schema_description()
    )

    response_format = {
        "type": "json_schema",
        "json_schema": {
            "name": RESPONSE_SCHEMA_NAME,
            "strict": True,
            "schema": RESPONSE_SCHEMA,
        },
    }

    return AnalysisRequestPayload(
        system_prompt=SYSTEM_MSG,
        user_prompt=user_msg,
        response_format=response_format,
        temperature=temperature,
        max_tokens=max_tokens,
    )
