"""
Shared fixtures: the Flask app wired to in-memory stand-ins for Dropbox,
the key-value cache, the mailer and the identity provider.
"""

from __future__ import annotations

import json
import posixpath

import pytest

from demo_dashboard.app import create_app
from demo_dashboard.config import Config
from demo_dashboard.services.dropbox import DropboxConflict, DropboxNotFound
from demo_dashboard.services.email import EmailError
from demo_dashboard.utils.constants import METADATA_SUFFIX, STATUS_FOLDERS

ASSISTANT_EMAIL = "assistant@label.test"
OWNER_EMAIL = "owner@label.test"
OUTSIDER_EMAIL = "outsider@example.com"
CRON_SECRET = "cron-secret"

DEFAULT_MODIFIED = "2025-01-01T00:00:00Z"


class FakeDropbox:
    """Dropbox paths held in a dict, with per-call recording and fault injection."""

    def __init__(self):
        self.files = {}
        self.calls = []
        self.failures = {}
        self._rev = 0

    def _next_rev(self):
        self._rev += 1
        return f"rev{self._rev:04d}"

    def _maybe_fail(self, method, path):
        self.calls.append((method, path))
        error = self.failures.get((method, path))
        if error is not None:
            raise error

    def put(self, path, content, server_modified=DEFAULT_MODIFIED):
        if isinstance(content, (dict, list)):
            content = json.dumps(content).encode("utf-8")
        elif isinstance(content, str):
            content = content.encode("utf-8")
        self.files[path] = {
            "content": content,
            "rev": self._next_rev(),
            "server_modified": server_modified,
        }

    def read_json(self, path):
        return json.loads(self.files[path]["content"].decode("utf-8"))

    def names_in(self, folder):
        return sorted(posixpath.basename(p) for p in self.files if posixpath.dirname(p) == folder)

    def add_demo(self, status, demo_id, submitted_at="20250101_120000", ext=".mp3", **metadata):
        folder = STATUS_FOLDERS[status]
        audio_name = f"{submitted_at}_{demo_id}{ext}"
        self.put(f"{folder}/{audio_name}", b"audio-bytes")
        sidecar = {
            "demo_id": demo_id,
            "track_title": metadata.get("track_title", f"Track {demo_id}"),
            "artist_name": metadata.get("artist_name", f"Artist {demo_id}"),
            "email": metadata.get("email", f"{demo_id}@artists.test"),
            "submitted_at": submitted_at,
        }
        self.put(f"{folder}/{audio_name}{METADATA_SUFFIX}", sidecar)
        return audio_name

    def count_calls(self, method):
        return sum(1 for name, _ in self.calls if name == method)

    # DropboxClient interface

    def list_folder(self, path):
        self._maybe_fail("list_folder", path)
        entries = []
        for file_path, record in sorted(self.files.items()):
            if posixpath.dirname(file_path) == path:
                entries.append(
                    {
                        ".tag": "file",
                        "name": posixpath.basename(file_path),
                        "path_lower": file_path.lower(),
                        "path_display": file_path,
                        "server_modified": record["server_modified"],
                        "rev": record["rev"],
                    }
                )
        return entries

    def download(self, path):
        self._maybe_fail("download", path)
        if path not in self.files:
            raise DropboxNotFound(f"path/not_found: {path}", 409, "path/not_found/")
        record = self.files[path]
        return record["content"], {"rev": record["rev"], "server_modified": record["server_modified"]}

    def download_json(self, path):
        content, metadata = self.download(path)
        return json.loads(content.decode("utf-8")), metadata["rev"]

    def upload(self, path, content, rev=None):
        self._maybe_fail("upload", path)
        current = self.files.get(path)
        if rev is None and current is not None:
            raise DropboxConflict("path/conflict/file", 409, "path/conflict/file/")
        if rev is not None and (current is None or current["rev"] != rev):
            raise DropboxConflict("path/conflict/file", 409, "path/conflict/file/")
        self.put(path, content)
        return {"path_display": path, "rev": self.files[path]["rev"]}

    def move(self, from_path, to_path):
        self._maybe_fail("move", from_path)
        if from_path not in self.files:
            raise DropboxNotFound(f"from_lookup/not_found: {from_path}", 409, "from_lookup/not_found/")
        if to_path in self.files:
            raise DropboxConflict(f"to/conflict: {to_path}", 409, "to/conflict/file/")
        self.files[to_path] = self.files.pop(from_path)
        return {"metadata": {"path_display": to_path}}

    def delete(self, path):
        self._maybe_fail("delete", path)
        matches = [p for p in self.files if p.lower() == path.lower()]
        if not matches:
            raise DropboxNotFound(f"path_lookup/not_found: {path}", 409, "path_lookup/not_found/")
        del self.files[matches[0]]
        return {"metadata": {"path_display": matches[0]}}

    def get_shared_link(self, path):
        self._maybe_fail("get_shared_link", path)
        return f"https://www.dropbox.com/s/fake/{posixpath.basename(path)}?dl=0"


class FakeCache:
    """Stores JSON round-tripped copies, like the Redis-backed Cache."""

    def __init__(self):
        self.store = {}
        self.ttls = {}

    def get(self, key):
        if key not in self.store:
            return None
        return json.loads(self.store[key])

    def set(self, key, value, ex=None):
        self.store[key] = json.dumps(value)
        self.ttls[key] = ex

    def delete(self, key):
        self.store.pop(key, None)
        self.ttls.pop(key, None)


class FakeMailer:
    def __init__(self, configured=True):
        self.configured = configured
        self.sent = []
        self.error = None

    def is_configured(self):
        return self.configured

    def send(self, to_email, subject, html_body, text_body=None):
        if self.error:
            raise EmailError(self.error)
        self.sent.append(
            {"to": to_email, "subject": subject, "html": html_body, "text": text_body}
        )
        return f"msg-{len(self.sent)}"


class FakeIdentity:
    def __init__(self, tokens):
        self.tokens = tokens

    def resolve_email(self, token):
        return self.tokens.get(token)


@pytest.fixture
def dropbox():
    return FakeDropbox()


@pytest.fixture
def cache():
    return FakeCache()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def identity():
    return FakeIdentity(
        {
            "assistant-token": ASSISTANT_EMAIL,
            "owner-token": OWNER_EMAIL,
            "outsider-token": OUTSIDER_EMAIL,
        }
    )


@pytest.fixture
def config():
    return Config(
        ALLOWED_EMAILS=[],
        OWNER_EMAILS=[OWNER_EMAIL],
        ASSISTANT_EMAILS=[ASSISTANT_EMAIL],
        CRON_SECRET=CRON_SECRET,
        LABEL_NAME="Test Label",
        CORS_ORIGINS="*",
    )


@pytest.fixture
def app(config, dropbox, cache, mailer, identity):
    app = create_app(config, dropbox=dropbox, cache=cache, mailer=mailer, identity=identity)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def assistant_headers():
    return {"Authorization": "Bearer assistant-token"}


@pytest.fixture
def owner_headers():
    return {"Authorization": "Bearer owner-token"}
