import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_LOG_PATH = Path("audit_log.txt")


# Creates timestamped one-line entries in a text log file.
def write_event(event: str, details: dict, path: Optional[str] = None):
    """
    Append a one-line audit entry.
    Example line:
    2025-10-22T12:34:56.789123+00:00 | GAMEPLAY_ANALYSIS_CREATED | id=3f2a... ; owner=u1 ; input_chars=42

    The trail is best-effort: a write failure is logged and never fails the
    operation being audited (the record it describes may already be committed).
    """
    log_path = Path(path) if path else DEFAULT_LOG_PATH
    ts = datetime.now(timezone.utc).isoformat()
    parts = [f"{k}={str(v)[:200]}" for k, v in (details or {}).items()]
    line = f"{ts} | {event} | " + " ; ".join(parts)
    try:
        with log_path.open("a", encoding="utf-8") as f:
            f.write(line + "\n")
    except OSError as e:
        logger.warning("Could not write audit event %s to %s: %s", event, log_path, e)
