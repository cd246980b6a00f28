from piazza_cli.client import PiazzaClient, SessionState, parse_resources
from piazza_cli.errors import (
    AuthenticationError,
    DecodeError,
    PiazzaError,
    PreconditionError,
    SchemeError,
    ServiceError,
    TransportError,
)
from piazza_cli.resolver import HTMLWrapper, extract_links, flatten_posts, urls_to_html

__all__ = [
    "AuthenticationError",
    "DecodeError",
    "HTMLWrapper",
    "PiazzaClient",
    "PiazzaError",
    "PreconditionError",
    "SchemeError",
    "ServiceError",
    "SessionState",
    "TransportError",
    "extract_links",
    "flatten_posts",
    "parse_resources",
    "urls_to_html",
]
