# Gameplay file uploads, plus serving files for the local storage backend.
import logging

from flask import Blueprint, abort, jsonify, request, send_from_directory
from werkzeug.exceptions import HTTPException

from errors import GameplayAnalysisError
from identity import current_user_id
from pipeline import upload_gameplay_file
from services import current_services
from storage import LocalObjectStorage

logger = logging.getLogger(__name__)

bp_upload = Blueprint("upload_bp", __name__, url_prefix="/api")
bp_files = Blueprint("files_bp", __name__)


# ---------------- UPLOAD (file -> storage -> saved log) ----------------
@bp_upload.post("/upload-gameplay")
async def upload_gameplay():
    """
    Multipart form-data (Authorization: Bearer <token>):
      gameplayFile: the gameplay log / replay file

    200: {"message": "File uploaded and metadata saved.", "fileUrl": "..."}
    """
    services = current_services()
    try:
        user_id = current_user_id(services.identity)

        f = request.files.get("gameplayFile")  # Fetches the uploaded file from the http request
        data = f.read() if f else None

        outcome = await upload_gameplay_file(
            services,
            data,
            f.filename if f else None,
            f.mimetype if f else None,
            user_id,
        )
        return jsonify(outcome.to_dict()), 200

    except GameplayAnalysisError as e:
        if e.status_code >= 500:
            logger.warning("upload-gameplay failed: %s (%s)", e.message, e.details)
        return jsonify(e.to_payload()), e.status_code
    except HTTPException:
        # 413 and friends go to the app-level JSON handlers
        raise
    except Exception as e:
        logger.exception("upload-gameplay failed unexpectedly")
        return jsonify({"error": "Failed to upload file.", "details": str(e)}), 500


# ---------------- FILES (local backend only) ----------------
@bp_files.get("/files/<path:key>")
def serve_file(key: str):
    storage = current_services().object_storage
    if not isinstance(storage, LocalObjectStorage):
        abort(404)
    return send_from_directory(storage.root, key)
