"""Exceptions raised by the Piazza client and the piazza:// resolver."""


class PiazzaError(Exception):
    """Base class for everything this package raises."""


class TransportError(PiazzaError):
    """A request failed on the wire or came back with a non-200 status."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(PiazzaError):
    """Login was rejected, either by status code or by the page's error text."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class DecodeError(PiazzaError):
    """Structured data was expected but the body could not be decoded."""

    def __init__(self, message, method=None):
        if method:
            message = f"method {method!r}: {message}"
        super().__init__(message)
        self.method = method


class ServiceError(PiazzaError):
    """The API answered 200 but reported an error in its envelope."""

    def __init__(self, message, method=None):
        super().__init__(message)
        self.method = method


class PreconditionError(PiazzaError):
    """A class or post address was resolved before the root listing."""


class SchemeError(PiazzaError):
    """The address does not use the piazza:// scheme."""
