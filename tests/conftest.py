"""
Fake HTTP session and response objects so no test touches the network.
"""
import json
from urllib.parse import parse_qs, urlsplit

import pytest
from requests.cookies import RequestsCookieJar

from piazza_cli.client import PiazzaClient


class FakeResponse:
    def __init__(self, status_code=200, text="", url=""):
        self.status_code = status_code
        self.text = text
        self.url = url


def json_response(body, status_code=200):
    return FakeResponse(status_code=status_code, text=json.dumps(body))


class FakeSession:
    """Stands in for requests.Session; every request goes to ``handler``."""

    def __init__(self, handler):
        self.handler = handler
        self.headers = {}
        self.cookies = RequestsCookieJar()
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        return self.handler(self, method, url, **kwargs)


def rpc_method(url):
    return parse_qs(urlsplit(url).query).get("method", [None])[0]


def api_handler(results, pages=None):
    """Answer API calls from ``results`` (method -> body) and GETs from ``pages``."""
    pages = pages or {}

    def handler(session, method, url, **kwargs):
        if method == "GET":
            page = pages.get(url)
            if page is None:
                return FakeResponse(404, "not found", url)
            if isinstance(page, FakeResponse):
                return page
            return FakeResponse(200, page, url)
        body = results[rpc_method(url)]
        if isinstance(body, FakeResponse):
            return body
        return json_response(body)

    return handler


@pytest.fixture
def make_client():
    """Build a PiazzaClient whose sessions all share one handler."""
    def factory(handler):
        sessions = []

        def session_factory():
            session = FakeSession(handler)
            sessions.append(session)
            return session

        client = PiazzaClient(session_factory=session_factory)
        client.sessions = sessions
        return client

    return factory


def status_body(networks=(), aid="aid-1", email_prefs=None):
    return {
        "aid": aid,
        "error": None,
        "result": {
            "email": "me@example.com",
            "name": "Me",
            "networks": list(networks),
            "config": {"email_prefs": email_prefs or {}},
        },
    }
