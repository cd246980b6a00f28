import logging
import re
from urllib.parse import urlsplit

from piazza_cli.config import PIAZZA_SCHEME
from piazza_cli.errors import PreconditionError, SchemeError, ServiceError, TransportError

logger = logging.getLogger(__name__)

# Scheme is mandatory: "x://" for any scheme, or one of the schemes that are
# written without slashes. Letters before "http" are part of a valid scheme,
# which is how an escaped "\n" in front of a link turns into "nhttp://...".
SCHEME = r'(?:[a-zA-Z][a-zA-Z.+\-]*://|(?:bitcoin|file|magnet|mailto|sms|tel|xmpp):)'
SCHEME_RE = re.compile(SCHEME)
URL_RE = re.compile(SCHEME + r'[^\s<>"\'`{}|\\^]+')
TRAILING_PUNCT = '.,:;!?\'"'
BRACKETS = {')': '(', ']': '['}


def _trim(url):
    while url:
        last = url[-1]
        if last in TRAILING_PUNCT:
            url = url[:-1]
        elif last in BRACKETS and url.count(last) > url.count(BRACKETS[last]):
            url = url[:-1]
        else:
            break
    return url


def extract_links(text):
    """Return every URL in ``text``, in order and with duplicates."""
    links = []
    for match in URL_RE.finditer(text or ""):
        link = _trim(match.group(0))
        if link.startswith("nhttp"):
            link = link[1:]
        scheme = SCHEME_RE.match(link)
        if scheme and len(link) > scheme.end():
            links.append(link)
    return links


def urls_to_html(urls):
    return "".join(f'<a href="{url}">{url}</a>\n' for url in urls)


def flatten_posts(post):
    """Pre-order list of a post and all of its replies."""
    posts = []
    stack = [post]
    while stack:
        p = stack.pop()
        posts.append(p)
        stack.extend(reversed(p.children))
    return posts


class HTMLWrapper:
    """Resolves ``piazza://`` addresses to HTML fragments.

    ``piazza://`` lists the classes, ``piazza://<class>`` lists the class's
    resources page links and threads, ``piazza://<class>/<post>`` renders a
    whole thread. Class metadata is only known after the root listing, so
    the root must be resolved first on every wrapper.
    """

    def __init__(self, client):
        self.client = client
        self.networks = {}

    def get(self, address):
        try:
            u = urlsplit(address)
        except ValueError as e:
            raise SchemeError(f"invalid address {address!r}: {e}") from e
        if u.scheme != PIAZZA_SCHEME:
            raise SchemeError(f"scheme is not {PIAZZA_SCHEME!r}")

        if not u.netloc and len(u.path) <= 1:
            return self._classes()
        if len(u.path) <= 1:
            return self._class(u.netloc)
        content_id = u.path[1:] if u.path.startswith("/") else u.path
        return self._post(u.netloc, content_id)

    def _network(self, class_id):
        network = self.networks.get(class_id)
        if network is None:
            raise PreconditionError(f"need to fetch {PIAZZA_SCHEME}:// before {class_id!r}")
        return network

    def _classes(self):
        status = self.client.user_status()
        if status.error:
            raise ServiceError(str(status.error), method="user.status")
        classes = set()
        for network in status.networks:
            if not network.id:
                continue
            self.networks[network.id] = network
            classes.add(f"{PIAZZA_SCHEME}://{network.id}")
        return urls_to_html(sorted(classes))

    def _class(self, class_id):
        network = self._network(class_id)

        # The resources body is emitted whatever its status; only a failed
        # request leaves it empty, and the feed is still listed.
        try:
            resources = self.client.fetch_page(network.resource_url, check_status=False)
        except TransportError as e:
            logger.warning("resources page for %s unavailable: %s", class_id, e)
            resources = ""

        feed = self.client.feed(class_id)
        links = extract_links(resources)
        for entry in feed.entries:
            if not entry.id:
                continue
            links.append(f"{PIAZZA_SCHEME}://{class_id}/{entry.id}")
        return resources + urls_to_html(links)

    def _post(self, class_id, content_id):
        self._network(class_id)
        post = self.client.content(class_id, content_id)
        out = []
        for p in flatten_posts(post):
            for revision in p.revisions:
                out.append(revision.content)
                out.append(urls_to_html(extract_links(revision.content)))
        return "".join(out)
