"""Error types raised inside the review feed client."""

from typing import Optional


class ReviewFeedError(Exception):
    """Base class for review feed failures."""

    retryable = False


class MalformedURLError(ReviewFeedError):
    """The feed URL could not be built from the client's parameters."""


class TransportError(ReviewFeedError):
    """Network level failure (DNS, connection reset, timeout...)."""

    retryable = True


class BadStatusError(ReviewFeedError):
    """Feed answered with a non-2xx status other than 404."""

    retryable = True

    def __init__(self, status: int, message: Optional[str] = None) -> None:
        self.status = status
        super().__init__(message or f"The reviews feed returned HTTP {status}.")


class UnparseableResponseError(ReviewFeedError):
    """Payload is not a JSON object with a ``feed`` member."""

    retryable = True


class NotFoundError(ReviewFeedError):
    """HTTP 404: end of pagination, never surfaced as an error."""


class ReviewParseError(ReviewFeedError):
    """A single feed entry failed validation."""

    def __init__(self, field_path: str, message: Optional[str] = None) -> None:
        self.field_path = field_path
        super().__init__(message or f"Missing or invalid field: {field_path}")
