import json
import logging
import time

import requests

from ..utils.constants import CACHE_KEY_DROPBOX_TOKEN, DROPBOX_TOKEN_TTL

logger = logging.getLogger(__name__)

API_URL = "https://api.dropboxapi.com/2"
CONTENT_URL = "https://content.dropboxapi.com/2"
TOKEN_URL = "https://api.dropboxapi.com/oauth2/token"
REQUEST_TIMEOUT = 30


class DropboxError(Exception):
    def __init__(self, message, status_code=None, error_summary=None, error=None):
        super().__init__(message)
        self.status_code = status_code
        self.error_summary = error_summary or ""
        self.error = error or {}


class DropboxNotFound(DropboxError):
    pass


class DropboxConflict(DropboxError):
    """Raised when an upload's revision no longer matches the stored file."""


def _raise_for_response(response, action):
    if response.ok:
        return
    summary = ""
    error = {}
    try:
        body = response.json()
        summary = body.get("error_summary", "")
        error = body.get("error", {})
    except ValueError:
        summary = response.text[:200] if response.text else ""

    message = f"Dropbox {action} failed: {response.status_code} {summary}".strip()
    if response.status_code == 409:
        if "not_found" in summary:
            raise DropboxNotFound(message, response.status_code, summary, error)
        if "conflict" in summary:
            raise DropboxConflict(message, response.status_code, summary, error)
    raise DropboxError(message, response.status_code, summary, error)


class DropboxClient:
    """Thin client for the Dropbox HTTP API.

    Access tokens are short-lived. The current token and its expiry are kept in
    the shared cache so every worker reuses one token; when it is missing or
    expired it is refreshed with the app's refresh token. If the refresh fails
    the static token from configuration is used, which may itself be stale.
    """

    def __init__(self, cache, app_key, app_secret, refresh_token, static_token=None, session=None):
        self.cache = cache
        self.app_key = app_key
        self.app_secret = app_secret
        self.refresh_token = refresh_token
        self.static_token = static_token
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config, cache):
        return cls(
            cache,
            config.DROPBOX_APP_KEY,
            config.DROPBOX_APP_SECRET,
            config.DROPBOX_REFRESH_TOKEN,
            config.DROPBOX_ACCESS_TOKEN,
        )

    # Tokens

    def get_access_token(self):
        cached = None
        try:
            cached = self.cache.get(CACHE_KEY_DROPBOX_TOKEN)
        except Exception as e:
            logger.warning(f"Could not read cached Dropbox token: {e}")

        if cached and time.time() < cached.get("expiry_time", 0):
            return cached["access_token"]

        try:
            token = self._refresh_access_token()
        except Exception as e:
            logger.error(f"Failed to refresh Dropbox token: {e}")
            return self.static_token

        try:
            self.cache.set(
                CACHE_KEY_DROPBOX_TOKEN,
                {"access_token": token, "expiry_time": time.time() + DROPBOX_TOKEN_TTL},
                ex=DROPBOX_TOKEN_TTL,
            )
        except Exception as e:
            logger.warning(f"Could not cache Dropbox token: {e}")
        return token

    def _refresh_access_token(self):
        response = self.session.post(
            TOKEN_URL,
            data={
                "grant_type": "refresh_token",
                "refresh_token": self.refresh_token,
                "client_id": self.app_key,
                "client_secret": self.app_secret,
            },
            timeout=REQUEST_TIMEOUT,
        )
        if not response.ok:
            raise DropboxError(f"Failed to refresh token: {response.status_code}", response.status_code)
        return response.json()["access_token"]

    def _forget_token(self):
        try:
            self.cache.delete(CACHE_KEY_DROPBOX_TOKEN)
        except Exception as e:
            logger.warning(f"Could not drop cached Dropbox token: {e}")

    # Transport

    def _rpc(self, endpoint, payload, action):
        response = self.session.post(
            f"{API_URL}/{endpoint}",
            headers={"Authorization": f"Bearer {self.get_access_token()}"},
            json=payload,
            timeout=REQUEST_TIMEOUT,
        )
        if response.status_code == 401:
            self._forget_token()
        _raise_for_response(response, action)
        return response.json()

    # Files

    def list_folder(self, path):
        """Return every entry in ``path``, following pagination cursors."""
        result = self._rpc("files/list_folder", {"path": path}, "list_folder")
        entries = list(result.get("entries", []))
        while result.get("has_more"):
            result = self._rpc(
                "files/list_folder/continue", {"cursor": result["cursor"]}, "list_folder/continue"
            )
            entries.extend(result.get("entries", []))
        return entries

    def download(self, path):
        """Return ``(content bytes, file metadata)`` for ``path``."""
        response = self.session.post(
            f"{CONTENT_URL}/files/download",
            headers={
                "Authorization": f"Bearer {self.get_access_token()}",
                "Dropbox-API-Arg": json.dumps({"path": path}),
            },
            timeout=REQUEST_TIMEOUT,
        )
        if response.status_code == 401:
            self._forget_token()
        _raise_for_response(response, f"download of {path}")
        metadata = {}
        header = response.headers.get("Dropbox-API-Result")
        if header:
            metadata = json.loads(header)
        return response.content, metadata

    def download_json(self, path):
        """Return ``(parsed JSON, revision)`` for ``path``."""
        content, metadata = self.download(path)
        return json.loads(content.decode("utf-8")), metadata.get("rev")

    def upload(self, path, content, rev=None):
        """Write ``content`` to ``path``.

        With ``rev`` the write only succeeds while the stored file is still at
        that revision; without it the file must not exist yet. Either way a lost
        race raises DropboxConflict instead of overwriting someone else's write.
        """
        if rev:
            mode = {".tag": "update", "update": rev}
        else:
            mode = "add"
        response = self.session.post(
            f"{CONTENT_URL}/files/upload",
            headers={
                "Authorization": f"Bearer {self.get_access_token()}",
                "Content-Type": "application/octet-stream",
                "Dropbox-API-Arg": json.dumps({"path": path, "mode": mode, "autorename": False}),
            },
            data=content,
            timeout=REQUEST_TIMEOUT,
        )
        if response.status_code == 401:
            self._forget_token()
        _raise_for_response(response, f"upload of {path}")
        return response.json()

    def move(self, from_path, to_path):
        return self._rpc(
            "files/move_v2",
            {"from_path": from_path, "to_path": to_path, "autorename": False},
            f"move of {from_path}",
        )

    def delete(self, path):
        return self._rpc("files/delete_v2", {"path": path}, f"delete of {path}")

    # Sharing

    def get_shared_link(self, path):
        """Return a playable link for ``path``.

        An existing shared link is reused, otherwise one is created. If neither
        works a temporary (four hour) link is returned instead.
        """
        try:
            existing = self._rpc(
                "sharing/list_shared_links",
                {"path": path, "direct_only": True},
                "list_shared_links",
            )
            links = existing.get("links", [])
            if links:
                return links[0]["url"]

            created = self._rpc(
                "sharing/create_shared_link_with_settings",
                {"path": path, "settings": {"requested_visibility": "public"}},
                "create_shared_link",
            )
            return created["url"]
        except DropboxError as e:
            # A link created by a concurrent request comes back in the error body
            url = e.error.get("shared_link_already_exists", {}).get("metadata", {}).get("url")
            if url:
                return url
            logger.warning(f"Shared link unavailable for {path}, using temporary link: {e}")

        result = self._rpc("files/get_temporary_link", {"path": path}, "get_temporary_link")
        return result["link"]
