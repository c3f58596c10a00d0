import json
from unittest import mock

import pytest

from demo_dashboard.services.dropbox import (
    CONTENT_URL,
    TOKEN_URL,
    DropboxClient,
    DropboxConflict,
    DropboxError,
    DropboxNotFound,
)
from demo_dashboard.utils.constants import CACHE_KEY_DROPBOX_TOKEN


def _response(status_code=200, body=None, headers=None, content=b""):
    response = mock.Mock(status_code=status_code, ok=200 <= status_code < 300)
    response.json.return_value = body if body is not None else {}
    response.headers = headers or {}
    response.content = content
    response.text = json.dumps(body) if body is not None else ""
    return response


def _client(cache, session):
    return DropboxClient(cache, "key", "secret", "refresh", static_token="static", session=session)


def _urls(session):
    return [c.args[0] for c in session.post.call_args_list]


def test_uses_cached_token(cache):
    cache.set(CACHE_KEY_DROPBOX_TOKEN, {"access_token": "cached", "expiry_time": 9e12})
    session = mock.Mock()

    assert _client(cache, session).get_access_token() == "cached"
    session.post.assert_not_called()


def test_refreshes_expired_token_and_caches_it(cache):
    cache.set(CACHE_KEY_DROPBOX_TOKEN, {"access_token": "old", "expiry_time": 0})
    session = mock.Mock()
    session.post.return_value = _response(body={"access_token": "fresh"})

    assert _client(cache, session).get_access_token() == "fresh"
    assert cache.get(CACHE_KEY_DROPBOX_TOKEN)["access_token"] == "fresh"
    assert _urls(session) == [TOKEN_URL]
    assert session.post.call_args.kwargs["data"]["grant_type"] == "refresh_token"


def test_falls_back_to_static_token(cache):
    session = mock.Mock()
    session.post.return_value = _response(400, {"error": "invalid_grant"})

    assert _client(cache, session).get_access_token() == "static"
    assert cache.get(CACHE_KEY_DROPBOX_TOKEN) is None


def test_unauthorized_call_drops_cached_token(cache):
    cache.set(CACHE_KEY_DROPBOX_TOKEN, {"access_token": "revoked", "expiry_time": 9e12})
    session = mock.Mock()
    session.post.return_value = _response(401, {"error_summary": "expired_access_token/"})

    with pytest.raises(DropboxError):
        _client(cache, session).delete("/demos/rejected/a.mp3")
    assert cache.get(CACHE_KEY_DROPBOX_TOKEN) is None


def test_list_folder_follows_cursor(cache):
    cache.set(CACHE_KEY_DROPBOX_TOKEN, {"access_token": "t", "expiry_time": 9e12})
    session = mock.Mock()
    session.post.side_effect = [
        _response(body={"entries": [{"name": "a"}], "has_more": True, "cursor": "c1"}),
        _response(body={"entries": [{"name": "b"}], "has_more": False}),
    ]

    entries = _client(cache, session).list_folder("/demos/submitted")

    assert [e["name"] for e in entries] == ["a", "b"]
    assert session.post.call_args.kwargs["json"] == {"cursor": "c1"}


@pytest.mark.parametrize(
    "summary,error_class",
    [
        ("path/not_found/..", DropboxNotFound),
        ("path/conflict/file/..", DropboxConflict),
        ("too_many_write_operations/..", DropboxError),
    ],
)
def test_409_errors_are_typed(cache, summary, error_class):
    cache.set(CACHE_KEY_DROPBOX_TOKEN, {"access_token": "t", "expiry_time": 9e12})
    session = mock.Mock()
    session.post.return_value = _response(409, {"error_summary": summary, "error": {}})

    with pytest.raises(error_class) as excinfo:
        _client(cache, session).move("/a", "/b")
    assert excinfo.value.status_code == 409


def test_download_json_returns_revision(cache):
    cache.set(CACHE_KEY_DROPBOX_TOKEN, {"access_token": "t", "expiry_time": 9e12})
    session = mock.Mock()
    session.post.return_value = _response(
        headers={"Dropbox-API-Result": json.dumps({"rev": "015abc"})},
        content=b'{"artists": []}',
    )

    data, rev = _client(cache, session).download_json("/artists/artist_urls.json")

    assert data == {"artists": []}
    assert rev == "015abc"
    assert _urls(session) == [f"{CONTENT_URL}/files/download"]


@pytest.mark.parametrize(
    "rev,mode",
    [(None, "add"), ("015abc", {".tag": "update", "update": "015abc"})],
)
def test_upload_mode(cache, rev, mode):
    cache.set(CACHE_KEY_DROPBOX_TOKEN, {"access_token": "t", "expiry_time": 9e12})
    session = mock.Mock()
    session.post.return_value = _response(body={"rev": "016"})

    _client(cache, session).upload("/events/events.json", b"{}", rev=rev)

    arg = json.loads(session.post.call_args.kwargs["headers"]["Dropbox-API-Arg"])
    assert arg == {"path": "/events/events.json", "mode": mode, "autorename": False}


class TestSharedLink:
    @pytest.fixture
    def session(self, cache):
        cache.set(CACHE_KEY_DROPBOX_TOKEN, {"access_token": "t", "expiry_time": 9e12})
        return mock.Mock()

    def test_reuses_existing_link(self, cache, session):
        session.post.return_value = _response(body={"links": [{"url": "https://db.tt/existing"}]})

        assert _client(cache, session).get_shared_link("/demos/a.mp3") == "https://db.tt/existing"
        assert session.post.call_count == 1

    def test_creates_link_when_none_exist(self, cache, session):
        session.post.side_effect = [
            _response(body={"links": []}),
            _response(body={"url": "https://db.tt/new"}),
        ]

        assert _client(cache, session).get_shared_link("/demos/a.mp3") == "https://db.tt/new"
        assert _urls(session)[1].endswith("sharing/create_shared_link_with_settings")

    def test_uses_link_from_already_exists_error(self, cache, session):
        session.post.side_effect = [
            _response(body={"links": []}),
            _response(
                409,
                {
                    "error_summary": "shared_link_already_exists/..",
                    "error": {"shared_link_already_exists": {"metadata": {"url": "https://db.tt/race"}}},
                },
            ),
        ]

        assert _client(cache, session).get_shared_link("/demos/a.mp3") == "https://db.tt/race"

    def test_falls_back_to_temporary_link(self, cache, session):
        session.post.side_effect = [
            _response(403, {"error_summary": "no_permission/.."}),
            _response(body={"link": "https://dl.dropboxusercontent.com/tmp"}),
        ]

        assert _client(cache, session).get_shared_link("/demos/a.mp3") == "https://dl.dropboxusercontent.com/tmp"
        assert _urls(session)[1].endswith("files/get_temporary_link")
