import hashlib
import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

from ..utils.constants import (
    AUDIO_EXTENSIONS,
    CACHE_KEY_DEMOS,
    DEMOS_CACHE_TTL,
    DEMOS_CACHE_VERSION,
    METADATA_SUFFIX,
    STATUS_FOLDERS,
    STATUSES,
    SUBMITTED_AT_FORMAT,
)

logger = logging.getLogger(__name__)

MAX_WORKERS = 8


def is_audio_file(name):
    return name.lower().endswith(AUDIO_EXTENSIONS)


def is_metadata_file(name):
    return name.lower().endswith(METADATA_SUFFIX)


def file_entries(entries):
    return [entry for entry in entries if entry.get(".tag") == "file"]


def folder_digest(entries):
    """Hash of a folder's file names and modification times."""
    lines = sorted(
        f"{entry['name']}|{entry.get('server_modified', '')}" for entry in file_entries(entries)
    )
    return hashlib.sha256("\n".join(lines).encode("utf-8")).hexdigest()


def pair_demo_files(entries):
    """Split a folder listing into (audio, sidecar) pairs and orphans.

    Returns ``(pairs, orphans)`` where ``pairs`` is a list of
    ``(audio entry, sidecar name)`` and ``orphans`` lists audio files without a
    sidecar and sidecars without an audio file.
    """
    files = file_entries(entries)
    names = {entry["name"] for entry in files}
    pairs = []
    orphans = []

    for entry in files:
        name = entry["name"]
        if is_metadata_file(name):
            audio_name = name[: -len(METADATA_SUFFIX)]
            if audio_name not in names:
                orphans.append({"name": name, "problem": "missing_audio"})
        elif is_audio_file(name):
            sidecar = name + METADATA_SUFFIX
            if sidecar in names:
                pairs.append((entry, sidecar))
            else:
                orphans.append({"name": name, "problem": "missing_metadata"})

    return pairs, orphans


def parse_submitted_at(value):
    if not value:
        return None
    try:
        return datetime.strptime(value, SUBMITTED_AT_FORMAT)
    except (TypeError, ValueError):
        pass
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return None


def sort_demos(demos):
    """Newest submission first; unparseable timestamps sort last."""
    return sorted(
        demos,
        key=lambda demo: parse_submitted_at(demo.get("submitted_at")) or datetime.min,
        reverse=True,
    )


def count_by_status(demos):
    counts = {status: 0 for status in STATUSES}
    for demo in demos:
        if demo.get("status") in counts:
            counts[demo["status"]] += 1
    return counts


def list_status_folders(dropbox, statuses=STATUSES):
    """List several status folders concurrently and return ``{status: entries}``.

    Every listing runs to completion; the first failure is raised afterwards.
    """
    with ThreadPoolExecutor(max_workers=len(statuses)) as pool:
        futures = {status: pool.submit(dropbox.list_folder, STATUS_FOLDERS[status]) for status in statuses}

    listings = {}
    errors = []
    for status, future in futures.items():
        try:
            listings[status] = future.result()
        except Exception as e:
            logger.error(f"Failed to list {STATUS_FOLDERS[status]}: {e}")
            errors.append(e)
    if errors:
        raise errors[0]
    return listings


def _build_demo(dropbox, status, audio_entry, sidecar_name):
    folder = STATUS_FOLDERS[status]
    metadata, _ = dropbox.download_json(f"{folder}/{sidecar_name}")
    shared_link = dropbox.get_shared_link(f"{folder}/{audio_entry['name']}")
    return {
        "demo_id": metadata.get("demo_id") or os.path.splitext(audio_entry["name"])[0],
        "track_title": metadata.get("track_title", ""),
        "artist_name": metadata.get("artist_name", ""),
        "shared_link": shared_link,
        "submitted_at": metadata.get("submitted_at", ""),
        "status": status,
        "email": metadata.get("email", ""),
    }


def fetch_demos(dropbox, listings):
    """Download every sidecar and playback link in ``listings``.

    Returns ``(demos, errors)``. One failing demo does not stop the others;
    it is reported in ``errors``.
    """
    jobs = []
    for status in STATUSES:
        pairs, _ = pair_demo_files(listings.get(status, []))
        jobs.extend((status, entry, sidecar) for entry, sidecar in pairs)

    demos = []
    errors = []
    if jobs:
        with ThreadPoolExecutor(max_workers=MAX_WORKERS) as pool:
            futures = [
                (status, entry, pool.submit(_build_demo, dropbox, status, entry, sidecar))
                for status, entry, sidecar in jobs
            ]
        for status, entry, future in futures:
            try:
                demos.append(future.result())
            except Exception as e:
                path = f"{STATUS_FOLDERS[status]}/{entry['name']}"
                logger.error(f"Failed to load demo {path}: {e}")
                errors.append({"path": path, "message": str(e)})

    return sort_demos(demos), errors


# Snapshot cache


def read_snapshot(cache):
    try:
        snapshot = cache.get(CACHE_KEY_DEMOS)
    except Exception as e:
        logger.warning(f"Could not read demos cache: {e}")
        return None
    if not isinstance(snapshot, dict) or snapshot.get("version") != DEMOS_CACHE_VERSION:
        return None
    return snapshot


def write_snapshot(cache, snapshot):
    try:
        cache.set(CACHE_KEY_DEMOS, snapshot, ex=DEMOS_CACHE_TTL)
    except Exception as e:
        logger.warning(f"Could not write demos cache: {e}")


def invalidate_demos_cache(cache):
    cache.delete(CACHE_KEY_DEMOS)
    logger.info("Demos cache invalidated")


def is_snapshot_fresh(snapshot, folder_hashes, now):
    if not snapshot:
        return False
    if snapshot.get("folder_hashes") != folder_hashes:
        return False
    return now - snapshot.get("timestamp", 0) < DEMOS_CACHE_TTL


def get_demos(dropbox, cache, now=None):
    """Return every demo across the four status folders.

    The four folder listings are always taken; the cached snapshot is used
    only when every folder digest still matches and it is younger than the
    cache TTL.
    """
    now = now if now is not None else time.time()
    listings = list_status_folders(dropbox)
    folder_hashes = {status: folder_digest(listings[status]) for status in STATUSES}

    orphans = []
    for status in STATUSES:
        _, folder_orphans = pair_demo_files(listings[status])
        orphans.extend(dict(orphan, status=status) for orphan in folder_orphans)
    if orphans:
        logger.warning(f"Found {len(orphans)} demo files without a partner: {orphans}")

    snapshot = read_snapshot(cache)
    if is_snapshot_fresh(snapshot, folder_hashes, now):
        logger.info("Serving demos from cache")
        demos = snapshot["demos"]
        return {
            "demos": demos,
            "counts": count_by_status(demos),
            "orphans": orphans,
            "errors": [],
            "cached": True,
        }

    logger.info("Demos cache stale or missing, fetching from Dropbox")
    demos, errors = fetch_demos(dropbox, listings)
    if not errors:
        write_snapshot(
            cache,
            {
                "version": DEMOS_CACHE_VERSION,
                "demos": demos,
                "folder_hashes": folder_hashes,
                "timestamp": now,
            },
        )

    return {
        "demos": demos,
        "counts": count_by_status(demos),
        "orphans": orphans,
        "errors": errors,
        "cached": False,
    }


def get_demo_status_from_cache(cache, demo_id):
    snapshot = read_snapshot(cache)
    if not snapshot:
        return None
    for demo in snapshot.get("demos", []):
        if demo.get("demo_id") == demo_id:
            return demo.get("status")
    return None


def _drop_snapshot(cache, reason):
    logger.info(f"Dropping demos cache: {reason}")
    try:
        invalidate_demos_cache(cache)
    except Exception as e:
        logger.warning(f"Could not drop demos cache: {e}")


def update_demo_status_in_cache(dropbox, cache, demo_id, new_status, hashes_before):
    """Patch one demo's status in the cached snapshot.

    ``hashes_before`` maps each folder touched by the move to its digest taken
    just before the move (None if it could not be listed). The patch is only
    safe when the snapshot matched all of them; otherwise the snapshot already
    missed some change and is dropped so the next listing refetches.

    The touched folders are then re-listed so the patched snapshot stays a
    cache hit. If a folder cannot be re-listed its old digest is kept, which
    forces a full refetch on the next listing.
    """
    snapshot = read_snapshot(cache)
    if not snapshot:
        return False

    behind = [
        status
        for status, digest in hashes_before.items()
        if digest is None or snapshot.get("folder_hashes", {}).get(status) != digest
    ]
    if behind:
        _drop_snapshot(cache, f"snapshot was already behind {behind}")
        return False

    for demo in snapshot.get("demos", []):
        if demo.get("demo_id") == demo_id:
            demo["status"] = new_status
            break
    else:
        _drop_snapshot(cache, f"demo {demo_id} missing from snapshot")
        return False

    for status in hashes_before:
        try:
            entries = dropbox.list_folder(STATUS_FOLDERS[status])
        except Exception as e:
            logger.warning(f"Keeping stale digest for {STATUS_FOLDERS[status]}: {e}")
            continue
        snapshot["folder_hashes"][status] = folder_digest(entries)

    snapshot["demos"] = sort_demos(snapshot["demos"])
    write_snapshot(cache, snapshot)
    return True
