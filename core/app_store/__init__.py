"""App Store customer reviews feed module."""

from .errors import (
    BadStatusError,
    MalformedURLError,
    NotFoundError,
    ReviewFeedError,
    ReviewParseError,
    TransportError,
    UnparseableResponseError,
)
from .review_feed import FeedState, ReviewFeedClient, build_feed_url
from .review_models import Review, parse_review_entry
from .transport import AiohttpTransport, HttpResponse, Transport

__all__ = [
    "AiohttpTransport",
    "BadStatusError",
    "FeedState",
    "HttpResponse",
    "MalformedURLError",
    "NotFoundError",
    "Review",
    "ReviewFeedClient",
    "ReviewFeedError",
    "ReviewParseError",
    "Transport",
    "TransportError",
    "UnparseableResponseError",
    "build_feed_url",
    "parse_review_entry",
]
