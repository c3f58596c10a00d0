import json
import logging
import threading
import uuid

from ..services.dropbox import DropboxError, DropboxNotFound

logger = logging.getLogger(__name__)

_locks = {}
_locks_guard = threading.Lock()


def _lock_for(path):
    with _locks_guard:
        return _locks.setdefault(path, threading.Lock())


class RecordNotFound(LookupError):
    pass


def new_record_id():
    return uuid.uuid4().hex


class Registry:
    """A list of records kept as ``{key: [...]}`` in one Dropbox JSON file.

    Every record carries a generated ``id``. Writes re-upload the whole file
    against the revision that was read, so a concurrent writer makes the
    upload fail with DropboxConflict instead of being silently overwritten.
    """

    def __init__(self, dropbox, path, key):
        self.dropbox = dropbox
        self.path = path
        self.key = key

    def load(self):
        """Return ``(records, revision)``; a missing file is an empty registry."""
        try:
            data, rev = self.dropbox.download_json(self.path)
        except DropboxNotFound:
            logger.info(f"{self.path} does not exist yet, starting empty")
            return [], None
        return list((data or {}).get(self.key) or []), rev

    def save(self, records, rev):
        body = json.dumps({self.key: records}, indent=2).encode("utf-8")
        self.dropbox.upload(self.path, body, rev=rev)

    def list(self):
        records, rev = self.load()
        if any(not record.get("id") for record in records):
            # Older files were addressed by position; give them ids once
            with _lock_for(self.path):
                records, rev = self.load()
                records = self._with_ids(records)
                try:
                    self.save(records, rev)
                except DropboxError as e:
                    logger.warning(f"Could not save ids for {self.path}, returning unsaved ids: {e}")
                else:
                    logger.info(f"Assigned ids to records in {self.path}")
        return records

    def add(self, fields):
        def append(records):
            record = dict(fields, id=new_record_id())
            return records + [record], record

        return self._mutate(append)

    def replace(self, record_id, fields):
        def update(records):
            index = self._index_of(records, record_id)
            record = dict(fields, id=record_id)
            return records[:index] + [record] + records[index + 1 :], record

        return self._mutate(update)

    def delete(self, record_id):
        def remove(records):
            index = self._index_of(records, record_id)
            return records[:index] + records[index + 1 :], records[index]

        return self._mutate(remove)

    def _mutate(self, change):
        with _lock_for(self.path):
            records, rev = self.load()
            records, result = change(self._with_ids(records))
            self.save(records, rev)
        return result

    def _index_of(self, records, record_id):
        for index, record in enumerate(records):
            if record.get("id") == record_id:
                return index
        raise RecordNotFound(f"No record with id {record_id} in {self.path}")

    @staticmethod
    def _with_ids(records):
        return [record if record.get("id") else dict(record, id=new_record_id()) for record in records]
