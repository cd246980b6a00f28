import json
import logging
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup

from piazza_cli.config import (
    API_ENDPOINT,
    CONTENT_TYPE,
    LOGIN_URL,
    RESOURCE_DATA_MARKER,
    USER_AGENT,
)
from piazza_cli.errors import AuthenticationError, DecodeError, ServiceError, TransportError
from piazza_cli.models import ContentResponse, Feed, Resource, UserStatus

logger = logging.getLogger(__name__)


def _new_session():
    session = requests.Session()
    session.headers.update({"User-Agent": USER_AGENT})
    return session


@dataclass
class SessionState:
    """Cookies of the logged in user plus the ``aid`` from ``user.status``.

    ``login`` replaces ``http`` (and with it the cookie jar). ``user_status``
    is the only writer of ``aid``; every later RPC call reads it.
    """
    http: requests.Session = field(default_factory=_new_session)
    aid: Optional[str] = None


def parse_resources(html):
    """Pull the embedded resource JSON array out of a class page.

    This is a plain text search for the ``this.resource_data = ...;`` script
    statement and breaks whenever Piazza changes that page. No marker means an
    empty body, which fails to decode like any other malformed body.
    """
    soup = BeautifulSoup(html, 'html.parser')
    body = ""
    for script in soup.find_all('script'):
        parts = script.get_text().split(RESOURCE_DATA_MARKER)
        if len(parts) != 2:
            continue
        body = parts[1].split(";\n")[0]

    try:
        data = json.loads(body)
    except ValueError as e:
        raise DecodeError(str(e), method="resources") from e
    if not isinstance(data, list):
        raise DecodeError(f"expected a JSON array, got {type(data).__name__}", method="resources")
    try:
        return [Resource.from_json(r) for r in data]
    except AttributeError as e:
        raise DecodeError(str(e), method="resources") from e


class PiazzaClient:
    """Client for Piazza's internal ``/logic/api`` and its HTML pages.

    Not safe to share between threads; use one client per worker.
    """

    def __init__(self, session_factory=_new_session, timeout=None):
        self.session_factory = session_factory
        self.timeout = timeout
        self.state = SessionState(http=session_factory())

    @classmethod
    def login_with(cls, username, password, **kwargs):
        """Return a new client that is already logged in."""
        client = cls(**kwargs)
        client.login(username, password)
        return client

    def cookies(self):
        return self.state.http.cookies

    # --- AUTH ---
    def login(self, username, password):
        """Log into Piazza with the given email and password.

        Starts from a fresh session, so cookies from an earlier login are
        dropped rather than merged.
        """
        self.state = SessionState(http=self.session_factory())
        resp = self._send('GET', LOGIN_URL)

        soup = BeautifulSoup(resp.text, 'html.parser')
        form = soup.select_one('form#login-form')
        if form is None:
            raise AuthenticationError("login form not found")

        data = {}
        for inp in form.find_all('input'):
            name = inp.get('name')
            if name:
                data[name] = inp.get('value', '')
        data['email'] = username
        data['password'] = password

        action = urljoin(resp.url or LOGIN_URL, form.get('action') or LOGIN_URL)
        method = (form.get('method') or 'POST').upper()
        if method == 'GET':
            resp = self._send('GET', action, params=data)
        else:
            resp = self._send('POST', action, data=data)

        if resp.status_code != 200:
            raise AuthenticationError(f"StatusCode = {resp.status_code}", status_code=resp.status_code)
        err = BeautifulSoup(resp.text, 'html.parser').select_one('#modal_error_text')
        err_text = err.get_text(strip=True) if err else ""
        if err_text:
            raise AuthenticationError(err_text)
        logger.debug("logged in as %s", username)

    # --- RPC ---
    def call(self, method, params=None, result_type=None):
        """POST one API call.

        Without ``result_type`` the raw response is returned. With it, the body
        is decoded into ``result_type.from_json``. The envelope's ``error`` is
        left for the caller to inspect.
        """
        if not method:
            raise ValueError("method must not be empty")
        if params is None:
            params = {}

        url = f"{API_ENDPOINT}?method={method}"
        if self.state.aid:
            url += f"&aid={self.state.aid}"
        body = json.dumps({"method": method, "params": params})

        logger.debug("POST %s", url)
        resp = self._send('POST', url, data=body.encode('utf-8'),
                          headers={"Content-Type": CONTENT_TYPE})
        if resp.status_code != 200:
            raise TransportError(f"method {method!r}: StatusCode = {resp.status_code}",
                                 status_code=resp.status_code)

        if result_type is None:
            return resp
        try:
            return result_type.from_json(json.loads(resp.text))
        except (ValueError, TypeError, AttributeError, KeyError) as e:
            raise DecodeError(str(e), method=method) from e

    def user_status(self):
        """Fetch ``user.status`` and remember the ``aid`` it hands out."""
        status = self.call("user.status", {}, UserStatus)
        self.state.aid = status.aid
        return status

    def feed(self, network_id):
        """Return the thread feed of a class."""
        feed = self.call("network.get_my_feed", {"nid": network_id}, Feed)
        if feed.error:
            raise ServiceError(str(feed.error), method="network.get_my_feed")
        return feed

    def content(self, network_id, content_id):
        """Return a post with all of its replies."""
        resp = self.call("content.get", {"cid": content_id, "nid": network_id}, ContentResponse)
        if resp.error:
            raise ServiceError(str(resp.error), method="content.get")
        return resp.post

    # --- PAGES ---
    def fetch_page(self, url, check_status=True):
        """GET a page with the logged in session and return its body.

        With ``check_status=False`` the body is returned whatever the status;
        only a failed request raises.
        """
        resp = self._send('GET', url)
        if check_status and resp.status_code != 200:
            raise TransportError(f"GET {url}: StatusCode = {resp.status_code}",
                                 status_code=resp.status_code)
        return resp.text

    def fetch_resources(self, class_resource_url):
        """Return every resource listed on a class's resources page."""
        return parse_resources(self.fetch_page(class_resource_url))

    # --- EMAIL ---
    def opt_out_of_emails(self):
        """Set ``new: "no-emails"`` on every class and return the class ids."""
        status = self.user_status()
        if status.error:
            raise ServiceError(str(status.error), method="user.status")
        prefs = dict(status.email_prefs)
        prefs.pop("career", None)
        prefs.pop("careers", None)
        for class_id, pref in prefs.items():
            pref = dict(pref or {})
            pref["new"] = "no-emails"
            prefs[class_id] = pref
        self.call("user.update", {"email_prefs": prefs})
        return sorted(prefs)

    def _send(self, method, url, **kwargs):
        try:
            return self.state.http.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise TransportError(f"{method} {url}: {e}") from e
