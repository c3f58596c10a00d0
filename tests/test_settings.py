import pytest

from demo_dashboard.utils.constants import CACHE_KEY_DEMO_SUBMISSION_ENABLED

URL = "/api/settings/demo-submission-enabled"


def test_defaults_to_enabled(client, assistant_headers):
    response = client.get(URL, headers=assistant_headers)

    assert response.status_code == 200
    assert response.get_json() == {"enabled": True}


def test_disabled_flag_persists(client, cache, owner_headers, assistant_headers):
    response = client.patch(URL, json={"enabled": False}, headers=owner_headers)

    assert response.get_json() == {"enabled": False}
    assert cache.ttls[CACHE_KEY_DEMO_SUBMISSION_ENABLED] is None
    for _ in range(2):
        assert client.get(URL, headers=assistant_headers).get_json() == {"enabled": False}


def test_flag_can_be_turned_back_on(client, owner_headers):
    client.patch(URL, json={"enabled": False}, headers=owner_headers)
    client.patch(URL, json={"enabled": True}, headers=owner_headers)

    assert client.get(URL, headers=owner_headers).get_json() == {"enabled": True}


@pytest.mark.parametrize("payload", [{}, {"enabled": "false"}, {"enabled": 0}, {"enabled": None}, []])
def test_invalid_payload_is_400(client, cache, owner_headers, payload):
    response = client.patch(URL, json=payload, headers=owner_headers)

    assert response.status_code == 400
    assert response.get_json()["error"] == 'Invalid payload. "enabled" must be a boolean.'
    assert CACHE_KEY_DEMO_SUBMISSION_ENABLED not in cache.store


def test_requires_login(client):
    assert client.get(URL).status_code == 401
    assert client.patch(URL, json={"enabled": False}).status_code == 401
