"""Exception hierarchy for the daemon."""


class TrafikvaderError(Exception):
    """Base class for all daemon errors."""


class FetchError(TrafikvaderError):
    """Fetching or decoding upstream data failed."""


class TransportError(FetchError):
    """The HTTP request could not be completed."""


class AuthenticationError(FetchError):
    """The API rejected the token."""


class ApiError(FetchError):
    """The API rejected the request with a structured error."""


class StatusError(FetchError):
    """The API answered with an unexpected status code."""

    def __init__(self, status_code: int, reason: str):
        super().__init__(f"got status code: {status_code} {reason}".rstrip())
        self.status_code = status_code
        self.reason = reason


class DecodeError(FetchError):
    """The response body could not be decoded."""


class ResultCountError(DecodeError):
    """The response did not contain exactly one result set."""

    def __init__(self, count: int):
        super().__init__(f"expected 1 query result, got {count}")
        self.count = count


class PublishError(TrafikvaderError):
    """A value could not be published to the broker."""


class StartupError(TrafikvaderError):
    """The daemon could not reach its running state."""
