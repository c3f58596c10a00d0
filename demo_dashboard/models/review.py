import logging

from ..services.dropbox import DropboxError, DropboxNotFound
from ..services.notifications import send_demo_notification
from ..utils.constants import METADATA_SUFFIX, STATUS_FOLDERS
from .demos import (
    file_entries,
    folder_digest,
    get_demo_status_from_cache,
    is_audio_file,
    update_demo_status_in_cache,
)
from .workflow import InvalidTransition, check_action, source_statuses, transition

logger = logging.getLogger(__name__)


class DemoNotFound(Exception):
    pass


class PartialMoveError(Exception):
    """A demo's audio file and sidecar ended up in different folders."""

    def __init__(self, message, audio_path, metadata_path):
        super().__init__(message)
        self.audio_path = audio_path
        self.metadata_path = metadata_path


def find_demo_files(entries, demo_id):
    """Return ``(audio name, sidecar name)`` for ``demo_id`` in a folder listing, or None.

    Audio files matching ``demo_id`` without a sidecar are skipped.
    """
    names = {entry["name"] for entry in file_entries(entries)}
    for name in sorted(names):
        if not (is_audio_file(name) and demo_id in name):
            continue
        sidecar = name + METADATA_SUFFIX
        if sidecar in names:
            return name, sidecar
        logger.warning(f"Skipping {name}: no metadata file {sidecar}")
    return None


def move_demo_files(dropbox, source_folder, destination_folder, audio_name, metadata_name):
    """Move a demo's audio file and sidecar together.

    If the sidecar cannot follow, the audio file is moved back. When that
    fails too the pair is split across folders and PartialMoveError says where.
    """
    audio_from = f"{source_folder}/{audio_name}"
    audio_to = f"{destination_folder}/{audio_name}"
    metadata_from = f"{source_folder}/{metadata_name}"
    metadata_to = f"{destination_folder}/{metadata_name}"

    dropbox.move(audio_from, audio_to)
    try:
        dropbox.move(metadata_from, metadata_to)
    except DropboxError as e:
        logger.error(f"Moving {metadata_from} failed, moving {audio_name} back: {e}")
        try:
            dropbox.move(audio_to, audio_from)
        except DropboxError as rollback_error:
            raise PartialMoveError(
                f"Demo files split: audio at {audio_to}, metadata at {metadata_from} ({rollback_error})",
                audio_to,
                metadata_from,
            ) from e
        raise


def locate_demo(dropbox, cache, demo_id, action):
    """Find which allowed source folder currently holds ``demo_id``.

    The cached status is tried first. Other allowed folders are probed after
    it, so a stale or missing cache entry still finds the demo.
    """
    candidates = source_statuses(action)
    cached_status = get_demo_status_from_cache(cache, demo_id)
    if cached_status in candidates:
        candidates.remove(cached_status)
        candidates.insert(0, cached_status)
    elif cached_status is None and len(candidates) > 1:
        logger.info(f"Demo {demo_id} not in cache, probing {candidates}")

    for status in candidates:
        folder = STATUS_FOLDERS[status]
        try:
            entries = dropbox.list_folder(folder)
        except DropboxNotFound:
            logger.info(f"{folder} does not exist, skipping")
            continue
        files = find_demo_files(entries, demo_id)
        if files:
            return status, files, entries

    if cached_status is not None and cached_status not in source_statuses(action):
        raise InvalidTransition(cached_status, action)
    folders = ", ".join(STATUS_FOLDERS[status] for status in source_statuses(action))
    raise DemoNotFound(f"Demo not found in expected folder: {folders}")


def _digest_or_none(dropbox, folder):
    try:
        return folder_digest(dropbox.list_folder(folder))
    except DropboxError as e:
        logger.warning(f"Could not list {folder} before move: {e}")
        return None


def perform_action(dropbox, cache, mailer, role, demo_id, action):
    """Apply a review action to a demo and return the response payload."""
    check_action(role, action)

    source, (audio_name, metadata_name), source_entries = locate_demo(dropbox, cache, demo_id, action)
    step = transition(source, action)
    source_folder = STATUS_FOLDERS[step.source]
    destination_folder = STATUS_FOLDERS[step.target]

    hashes_before = {
        step.source: folder_digest(source_entries),
        step.target: _digest_or_none(dropbox, destination_folder),
    }

    move_demo_files(dropbox, source_folder, destination_folder, audio_name, metadata_name)
    logger.info(f"{role} {action}: moved {audio_name} from {source_folder} to {destination_folder}")

    update_demo_status_in_cache(dropbox, cache, demo_id, step.target, hashes_before)

    email_status = {"notification_sent": False, "error": None}
    if step.notification:
        try:
            metadata, _ = dropbox.download_json(f"{destination_folder}/{metadata_name}")
        except Exception as e:
            logger.warning(f"Could not fetch metadata for {demo_id} notification: {e}")
            email_status = {"notification_sent": False, "error": "Could not fetch demo metadata"}
        else:
            email_status = send_demo_notification(mailer, step.notification, metadata)

    return {
        "message": f"Successfully performed {action} on demo",
        "demo_id": demo_id,
        "action": action,
        "status": step.target,
        "email_status": email_status,
    }
