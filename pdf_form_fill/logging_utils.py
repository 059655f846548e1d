import json, time, threading, os, logging
from typing import Dict, Any, Optional

from .config import FILL_CYCLE_LOG_FILE, LOG_FORMAT

_LOG_LOCK = threading.Lock()
LOG_FILE = os.path.join(os.getcwd(), FILL_CYCLE_LOG_FILE)


def configure_logging(level: int = logging.INFO):
    logging.basicConfig(level=level, format=LOG_FORMAT)


def log_fill_cycle(session_id: str, values: Dict[str, Any], summary: Optional[Dict[str, Any]],
                   resource_ref: Optional[str], started_ts: float, error: Optional[str] = None,
                   log_file: Optional[str] = None):
    """Append one JSON line describing a finished fill cycle. Never raises."""
    try:
        rec = {
            "ts": time.time(),
            "duration_ms": round((time.time() - started_ts) * 1000, 2),
            "session_id": session_id,
            "field_count": len(values),
            "fields": sorted(values),
            "resource_ref": resource_ref,
            "error": error,
            "summary_meta": {
                "applied_count": len(summary.get("applied", [])) if isinstance(summary, dict) else None,
                "skipped_count": len(summary.get("skipped", {})) if isinstance(summary, dict) else None,
                "unknown_count": len(summary.get("unknown_fields", [])) if isinstance(summary, dict) else None,
            },
        }
        line = json.dumps(rec, ensure_ascii=False)
        with _LOG_LOCK:
            with open(log_file or LOG_FILE, "a", encoding="utf-8") as f:
                f.write(line + "\n")
    except (OSError, TypeError, ValueError) as e:
        logging.getLogger(__name__).debug("Could not write fill cycle record: %s", e)
