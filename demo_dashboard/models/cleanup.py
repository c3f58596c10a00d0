import logging
import time
from datetime import datetime, timezone

from ..utils.constants import (
    CLEANUP_INTERVAL_SECONDS,
    MAX_DEBUG_FILE_LOGS,
    MAX_ERROR_DETAILS,
    STATUS_FOLDERS,
    STATUS_REJECTED,
)
from .demos import file_entries, invalidate_demos_cache

logger = logging.getLogger(__name__)

REJECTED_FOLDER = STATUS_FOLDERS[STATUS_REJECTED]


def parse_server_modified(value):
    """Parse Dropbox's ``2024-01-31T12:00:00Z`` timestamps to epoch seconds."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()


def _iso(epoch):
    return datetime.fromtimestamp(epoch, tz=timezone.utc).isoformat().replace("+00:00", "Z")


def sweep_rejected(dropbox, cache, now=None, interval=CLEANUP_INTERVAL_SECONDS):
    """Delete rejected demo files older than ``interval`` seconds.

    A failed delete is counted and the sweep moves on. The demos cache is
    invalidated once if anything was deleted.
    """
    now = now if now is not None else time.time()
    threshold = now - interval

    entries = file_entries(dropbox.list_folder(REJECTED_FOLDER))

    stale = []
    diagnostics = []
    missing_server_modified = 0
    for entry in entries:
        modified = parse_server_modified(entry.get("server_modified"))
        if modified is None:
            missing_server_modified += 1
        is_stale = modified is not None and modified <= threshold
        if is_stale:
            stale.append(entry)
        diagnostics.append(
            {
                "name": entry["name"],
                "server_modified": entry.get("server_modified"),
                "age_hours": round((now - modified) / 3600, 2) if modified is not None else None,
                "stale": is_stale,
            }
        )

    logger.info(
        f"Rejected cleanup: scanned {len(entries)} files in {REJECTED_FOLDER}, "
        f"{len(stale)} older than {_iso(threshold)}; "
        f"first {MAX_DEBUG_FILE_LOGS}: {diagnostics[:MAX_DEBUG_FILE_LOGS]}"
    )

    deleted = 0
    failed = 0
    errors = []
    for entry in stale:
        path = entry.get("path_lower") or entry.get("path_display")
        if not path:
            path = f"{REJECTED_FOLDER}/{entry['name']}"
        try:
            dropbox.delete(path)
            deleted += 1
        except Exception as e:
            failed += 1
            logger.error(f"Failed to delete {path}: {e}")
            if len(errors) < MAX_ERROR_DETAILS:
                errors.append({"path": path, "message": str(e)})

    if deleted:
        invalidate_demos_cache(cache)

    summary = {
        "status": "success",
        "folder": REJECTED_FOLDER,
        "scanned": len(entries),
        "stale_candidates": len(stale),
        "deleted": deleted,
        "failed": failed,
        "missing_server_modified": missing_server_modified,
        "threshold_iso": _iso(threshold),
        "errors": errors,
    }
    logger.info(f"Rejected cleanup summary: {summary}")
    return summary
