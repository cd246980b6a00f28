import json

import pytest
import requests

from piazza_cli.client import PiazzaClient
from piazza_cli.config import API_ENDPOINT, CONTENT_TYPE, LOGIN_URL
from piazza_cli.errors import AuthenticationError, DecodeError, ServiceError, TransportError
from piazza_cli.models import Feed, UserStatus

from conftest import FakeResponse, FakeSession, api_handler, json_response, status_body


LOGIN_PAGE = """
<html><body>
<form id="login-form" action="/class" method="post">
  <input type="hidden" name="from" value="/signup">
  <input type="text" name="email">
  <input type="password" name="password">
</form>
</body></html>
"""


def login_handler(final_status=200, final_text="<html>welcome</html>"):
    def handler(session, method, url, **kwargs):
        if method == "GET":
            return FakeResponse(200, LOGIN_PAGE, LOGIN_URL)
        return FakeResponse(final_status, final_text, url)
    return handler


# --- RPC ---

def test_call_posts_json_envelope(make_client):
    client = make_client(api_handler({"network.get_my_feed": {"result": {"feed": []}}}))

    client.call("network.get_my_feed", {"nid": "c1"}, Feed)

    method, url, kwargs = client.sessions[-1].calls[0]
    assert method == "POST"
    assert url == f"{API_ENDPOINT}?method=network.get_my_feed"
    assert kwargs["headers"]["Content-Type"] == CONTENT_TYPE
    assert json.loads(kwargs["data"]) == {"method": "network.get_my_feed", "params": {"nid": "c1"}}


def test_aid_appended_only_after_status(make_client):
    client = make_client(api_handler({
        "user.status": status_body(aid="abc123"),
        "network.get_my_feed": {"result": {"feed": []}},
    }))
    session = client.sessions[-1]

    client.feed("c1")
    assert "aid=" not in session.calls[-1][1]

    client.user_status()
    assert "aid=" not in session.calls[-1][1]
    assert client.state.aid == "abc123"

    client.feed("c1")
    assert session.calls[-1][1].endswith("method=network.get_my_feed&aid=abc123")


def test_user_status_overwrites_aid(make_client):
    bodies = iter([status_body(aid="first"), status_body(aid="second")])

    def handler(session, method, url, **kwargs):
        return json_response(next(bodies))

    client = make_client(handler)
    client.user_status()
    client.user_status()
    assert client.state.aid == "second"


def test_call_without_result_type_returns_response(make_client):
    client = make_client(api_handler({"user.update": FakeResponse(200, "not json")}))
    resp = client.call("user.update", {"x": 1})
    assert resp.text == "not json"


def test_call_empty_params_default_to_object(make_client):
    client = make_client(api_handler({"user.status": status_body()}))
    client.call("user.status")
    body = json.loads(client.sessions[-1].calls[0][2]["data"])
    assert body["params"] == {}


def test_call_requires_method(make_client):
    client = make_client(api_handler({}))
    with pytest.raises(ValueError):
        client.call("", {})


def test_non_200_is_transport_error_before_decoding(make_client):
    client = make_client(api_handler({"user.status": FakeResponse(500, "{not json")}))
    with pytest.raises(TransportError) as exc:
        client.call("user.status", {}, UserStatus)
    assert exc.value.status_code == 500


def test_network_failure_is_transport_error(make_client):
    def handler(session, method, url, **kwargs):
        raise requests.ConnectionError("boom")

    client = make_client(handler)
    with pytest.raises(TransportError) as exc:
        client.call("user.status", {}, UserStatus)
    assert exc.value.status_code is None
    assert isinstance(exc.value.__cause__, requests.ConnectionError)


def test_decode_error_names_method(make_client):
    client = make_client(api_handler({"user.status": FakeResponse(200, "<html>oops</html>")}))
    with pytest.raises(DecodeError) as exc:
        client.call("user.status", {}, UserStatus)
    assert exc.value.method == "user.status"
    assert "user.status" in str(exc.value)


def test_decode_error_on_wrong_shape(make_client):
    client = make_client(api_handler({"user.status": [1, 2, 3]}))
    with pytest.raises(DecodeError):
        client.call("user.status", {}, UserStatus)


def test_service_error_is_left_to_caller(make_client):
    body = status_body()
    body["error"] = "not logged in"
    client = make_client(api_handler({"user.status": body}))
    status = client.call("user.status", {}, UserStatus)
    assert status.error == "not logged in"


def test_feed_raises_service_error(make_client):
    client = make_client(api_handler({"network.get_my_feed": {"error": "no access", "result": None}}))
    with pytest.raises(ServiceError):
        client.feed("c1")


def test_content_sends_ids(make_client):
    client = make_client(api_handler({"content.get": {"result": {"id": "p1", "history": []}}}))
    post = client.content("c1", "p1")
    assert post.id == "p1"
    body = json.loads(client.sessions[-1].calls[0][2]["data"])
    assert body["params"] == {"cid": "p1", "nid": "c1"}


# --- LOGIN ---

def test_login_submits_form(make_client):
    client = make_client(login_handler())
    client.login("me@example.com", "hunter2")

    session = client.sessions[-1]
    method, url, kwargs = session.calls[1]
    assert method == "POST"
    assert url == "https://piazza.com/class"
    assert kwargs["data"] == {"from": "/signup", "email": "me@example.com", "password": "hunter2"}


def test_login_bad_status(make_client):
    client = make_client(login_handler(final_status=403))
    with pytest.raises(AuthenticationError) as exc:
        client.login("me@example.com", "x")
    assert exc.value.status_code == 403
    assert "StatusCode = 403" in str(exc.value)


def test_login_error_text(make_client):
    page = '<div id="modal_error_text"> Email or password incorrect </div>'
    client = make_client(login_handler(final_text=page))
    with pytest.raises(AuthenticationError) as exc:
        client.login("me@example.com", "x")
    assert str(exc.value) == "Email or password incorrect"
    assert exc.value.status_code is None


def test_login_empty_error_element_is_success(make_client):
    client = make_client(login_handler(final_text='<div id="modal_error_text"></div>'))
    client.login("me@example.com", "x")


def test_login_without_form(make_client):
    def handler(session, method, url, **kwargs):
        return FakeResponse(200, "<html>maintenance</html>", url)

    client = make_client(handler)
    with pytest.raises(AuthenticationError):
        client.login("me@example.com", "x")


def test_relogin_replaces_session(make_client):
    client = make_client(login_handler())
    client.login("a@example.com", "x")
    first = client.state.http
    first.cookies.set("session_id", "old")
    client.state.aid = "stale"

    client.login("b@example.com", "y")
    assert client.state.http is not first
    assert "session_id" not in client.cookies()
    assert client.state.aid is None


def test_login_with_returns_logged_in_client():
    client = PiazzaClient.login_with(
        "me@example.com", "x", session_factory=lambda: FakeSession(login_handler()))
    assert len(client.state.http.calls) == 2


# --- EMAIL ---

def test_opt_out_of_emails(make_client):
    prefs = {
        "c1": {"new": "all", "updates": "all"},
        "c2": {"new": "daily", "updates": "none"},
        "career": {"new": "all"},
    }
    client = make_client(api_handler({
        "user.status": status_body(email_prefs=prefs),
        "user.update": {"result": "OK"},
    }))

    changed = client.opt_out_of_emails()

    assert changed == ["c1", "c2"]
    method, url, kwargs = client.sessions[-1].calls[-1]
    assert "method=user.update" in url
    sent = json.loads(kwargs["data"])["params"]["email_prefs"]
    assert sent == {
        "c1": {"new": "no-emails", "updates": "all"},
        "c2": {"new": "no-emails", "updates": "none"},
    }
