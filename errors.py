# Error taxonomy for the analysis pipeline.
# Every failure the pipeline reports is one of these classes, so routes can
# translate with a single `except GameplayAnalysisError` and tests can match
# on the exact class.
from typing import Optional


class GameplayAnalysisError(Exception):
    """Base class. Carries the HTTP status and the `{error, details}` payload."""

    status_code = 500
    default_message = "Gameplay analysis failed."

    def __init__(self, message: Optional[str] = None, details: Optional[str] = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_payload(self) -> dict:
        payload = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class InputValidationError(GameplayAnalysisError):
    status_code = 400
    default_message = "Invalid input."


class AuthenticationError(GameplayAnalysisError):
    status_code = 401
    default_message = "Authentication required."


# ---------------- Generation client (C3) ----------------
class GenerationError(GameplayAnalysisError):
    default_message = "Failed to analyze gameplay via AI."


class TransportError(GenerationError):
    default_message = "Could not reach the AI analysis service."


class UpstreamAPIError(GenerationError):
    default_message = "The AI analysis service returned an error."

    def __init__(self, status: int, body: str = "", message: Optional[str] = None):
        self.status = status
        self.body = body
        details = f"status={status}"
        if body:
            details += f" body={body[:500]}"
        super().__init__(message, details)


class ConfigurationError(GenerationError):
    default_message = "AI analysis service is not configured."


# ---------------- Parser (C4) ----------------
class MalformedResponseError(GameplayAnalysisError):
    """Never reaches a caller: the parser turns it into a degraded result."""

    default_message = "AI response contained no usable content."


# ---------------- Store / storage (C5) ----------------
class PersistenceError(GameplayAnalysisError):
    default_message = "Failed to save gameplay log."
