import logging

from flask import Blueprint, request, jsonify
from werkzeug.exceptions import HTTPException

from errors import GameplayAnalysisError, InputValidationError
from identity import current_user_id
from pipeline import submit_gameplay_text
from services import current_services

logger = logging.getLogger(__name__)

bp_ai = Blueprint("ai_bp", __name__, url_prefix="/api")


# ---------------- ANALYZE (text -> AI feedback -> saved log) ----------------
@bp_ai.post("/analyze-gameplay")
async def analyze_gameplay():
    """
    POST JSON (Authorization: Bearer <token>):
    {
      "gameplayText": "died twice to the same flank route"
    }

    200:
    {
      "analysis": "Positioning weakness identified.",
      "suggestions": ["Rotate vision to flank earlier"],
      "errorsDetected": ["Repeated death to identical angle"]
    }
    400 / 401 / 500: {"error": "...", "details": "..."}
    """
    services = current_services()
    try:
        # Auth first: nothing else happens for an anonymous caller
        user_id = current_user_id(services.identity)

        data = request.get_json(force=True, silent=True) or {}
        gameplay_text = data.get("gameplayText")
        if not isinstance(gameplay_text, str) or not gameplay_text.strip():
            raise InputValidationError("Gameplay text is required for analysis.")

        result = await submit_gameplay_text(services, gameplay_text, user_id)
        return jsonify(result.to_dict()), 200

    except GameplayAnalysisError as e:
        if e.status_code >= 500:
            logger.warning("analyze-gameplay failed: %s (%s)", e.message, e.details)
        return jsonify(e.to_payload()), e.status_code
    except HTTPException:
        # 413 and friends go to the app-level JSON handlers
        raise
    except Exception as e:
        logger.exception("analyze-gameplay failed unexpectedly")
        return jsonify({"error": "Failed to analyze gameplay via AI.", "details": str(e)}), 500
