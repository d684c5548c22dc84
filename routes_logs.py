# Read side of the gameplay history: one-shot listing plus a live SSE stream.
import asyncio
import json
import logging

from flask import Blueprint, Response, jsonify, request

from errors import GameplayAnalysisError
from identity import current_user_id
from live_history import LiveHistoryView
from services import current_services

logger = logging.getLogger(__name__)

bp_logs = Blueprint("logs_bp", __name__, url_prefix="/api")

# ---------------- SSE ----------------
# Seconds of silence before the stream sends a keep-alive comment
KEEPALIVE_SECONDS = 15.0


#  READ (LIST)
@bp_logs.get("/logs")
def list_logs():
    """
    GET /api/logs
    The caller's logs, newest first. You can pass ?page=2&per_page=20.
    """
    # Read paging values safely. If someone sends junk, we fall back.
    try:
        page = max(int(request.args.get("page", 1)), 1)
        per_page = min(max(int(request.args.get("per_page", 20)), 1), 100)
    except ValueError:
        page, per_page = 1, 20

    services = current_services()
    try:
        user_id = current_user_id(services.identity)
        records = services.result_store.list_for_owner(user_id)
    except GameplayAnalysisError as e:
        return jsonify(e.to_payload()), e.status_code

    start = (page - 1) * per_page
    return jsonify({
        "page": page,
        "per_page": per_page,
        "total": len(records),
        "items": [r.to_dict() for r in records[start:start + per_page]],
    }), 200


#  READ (ONE)
@bp_logs.get("/logs/<log_id>")
def get_log(log_id: str):
    services = current_services()
    try:
        user_id = current_user_id(services.identity)
        record = services.result_store.get(user_id, log_id)
    except GameplayAnalysisError as e:
        return jsonify(e.to_payload()), e.status_code

    # Other users' logs look exactly like missing ones
    if record is None:
        return jsonify({"error": "not found"}), 404
    return jsonify(record.to_dict()), 200


#  LIVE
@bp_logs.get("/logs/stream")
def stream_logs():
    """
    Server-Sent Events. The first event carries the full current history,
    then one event per change:

      event: snapshot
      data: {"items": [...newest first...], "changed": ["<id>", ...]}
    """
    services = current_services()
    try:
        user_id = current_user_id(services.identity)
    except GameplayAnalysisError as e:
        return jsonify(e.to_payload()), e.status_code

    view = LiveHistoryView(services.result_store, user_id)

    def generate():
        # The view is async; this response runs on a plain WSGI thread,
        # so it gets a private loop for its lifetime.
        loop = asyncio.new_event_loop()
        subscription = view.subscribe(loop=loop)
        try:
            while True:
                try:
                    snapshot = loop.run_until_complete(
                        asyncio.wait_for(subscription.__anext__(), KEEPALIVE_SECONDS)
                    )
                except asyncio.TimeoutError:
                    yield ": keep-alive\n\n"
                    continue
                except StopAsyncIteration:
                    break
                yield f"event: snapshot\ndata: {json.dumps(snapshot.to_dict())}\n\n"
        finally:
            # Client went away (or the stream ended): drop the listener
            subscription.unsubscribe()
            loop.close()
            logger.debug("History stream closed for owner=%s", user_id)

    return Response(generate(), mimetype="text/event-stream", headers={"Cache-Control": "no-cache"})
