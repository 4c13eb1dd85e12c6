import json

import pytest
import requests

from core.models import UserStatus
from core.okta_client import OktaUsersClient


def make_response(body, status_code=200, link=None):
    response = requests.Response()
    response.status_code = status_code
    response._content = json.dumps(body).encode("utf-8")
    if link:
        response.headers["Link"] = link
    return response


@pytest.fixture
def client():
    with OktaUsersClient("https://acme.okta.com/", "secret") as okta_client:
        yield okta_client


def test_session_carries_ssws_token(client):
    assert client.session.headers["Authorization"] == "SSWS secret"
    assert client.base_url == "https://acme.okta.com"


def test_fetch_page_parses_users_and_cursor(client, monkeypatch):
    calls = []

    def fake_get(url, params=None, timeout=None):
        calls.append((url, params))
        return make_response(
            [{"id": "00u1", "status": "PROVISIONED",
              "profile": {"login": "a@example.com", "foreseeId": 10, "clientId": 2}}],
            link='<https://acme.okta.com/api/v1/users?limit=200>; rel="self", '
                 '<https://acme.okta.com/api/v1/users?after=00u1&limit=200>; rel="next"',
        )

    monkeypatch.setattr(client.session, "get", fake_get)

    users, cursor = client.fetch_page(None, 200)

    assert calls == [("https://acme.okta.com/api/v1/users", {"limit": 200})]
    assert [user.id for user in users] == ["00u1"]
    assert users[0].status is UserStatus.PROVISIONED
    assert cursor == "00u1"


def test_fetch_page_sends_cursor(client, monkeypatch):
    seen = []
    monkeypatch.setattr(
        client.session, "get",
        lambda url, params=None, timeout=None: seen.append(params) or make_response([])
    )

    users, cursor = client.fetch_page("00u1", 50)

    assert seen == [{"limit": 50, "after": "00u1"}]
    assert users == []
    assert cursor is None


def test_fetch_page_raises_on_http_error(client, monkeypatch):
    monkeypatch.setattr(
        client.session, "get",
        lambda url, params=None, timeout=None: make_response({"errorCode": "E0000011"}, 401)
    )
    with pytest.raises(requests.HTTPError):
        client.fetch_page(None, 200)


def test_requires_connection():
    with pytest.raises(ConnectionError):
        OktaUsersClient("https://acme.okta.com", "secret").fetch_page(None, 200)


def test_deactivate_user_posts_lifecycle_call(client, monkeypatch):
    posted = []
    monkeypatch.setattr(
        client.session, "post",
        lambda url, timeout=None: posted.append(url) or make_response({})
    )

    client.deactivate_user("00u7")

    assert posted == ["https://acme.okta.com/api/v1/users/00u7/lifecycle/deactivate"]
