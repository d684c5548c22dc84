# app.py
# Flask application entrypoint and factory.
# - Builds the service bundle (DB, AI client, store, storage, identity) once
# - Registers the blueprints
import logging
from typing import Optional

import click
from flask import Flask, jsonify

from config import Settings
from services import EXTENSION_KEY, ServiceBundle, build_services

# Blueprints
from routes_ai import bp_ai
from routes_logs import bp_logs
from routes_upload import bp_files, bp_upload


def configure_logging(settings: Settings):
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def create_app(settings: Optional[Settings] = None, services: Optional[ServiceBundle] = None) -> Flask:
    settings = settings or (services.settings if services else Settings())
    configure_logging(settings)

    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = settings.MAX_UPLOAD_BYTES
    # Keep analysis / suggestions / errorsDetected in the order we built them
    app.json.sort_keys = False

    services = services or build_services(settings)
    app.extensions[EXTENSION_KEY] = services

    # Shows that the app is up
    @app.get("/health")
    def health():
        return jsonify({"status": "ok"}), 200

    # Is another check on the database
    @app.get("/db-check")
    def db_check():
        return jsonify({"gameplay_logs_count": services.result_store.count()}), 200

    # ---------------- CLI ----------------
    @app.cli.command("issue-token")
    @click.argument("user_id")
    def issue_token(user_id):
        """Print a bearer token for USER_ID (dev / operator use)."""
        click.echo(services.identity.issue_token(user_id))

    # ---------------- REGISTER BLUEPRINTS ----------------
    app.register_blueprint(bp_ai)       # /api/analyze-gameplay
    app.register_blueprint(bp_upload)   # /api/upload-gameplay
    app.register_blueprint(bp_logs)     # /api/logs, /api/logs/stream
    app.register_blueprint(bp_files)    # /files/<key> (local storage only)

    @app.errorhandler(404)
    def not_found(_e):
        return jsonify({"error": "not found"}), 404

    @app.errorhandler(413)
    def too_large(_e):
        return jsonify({
            "error": "Uploaded file is too large.",
            "details": f"limit={settings.MAX_UPLOAD_BYTES} bytes",
        }), 413

    return app


if __name__ == "__main__":
    app = create_app()
    app.run(debug=True, port=8000)
