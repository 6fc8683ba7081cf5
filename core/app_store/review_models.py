"""Review records parsed from the App Store customer reviews RSS/JSON feed."""

from __future__ import annotations

import logging
import re
import warnings
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

from bs4 import BeautifulSoup, MarkupResemblesLocatorWarning

from .errors import ReviewParseError, UnparseableResponseError


logger = logging.getLogger(__name__)

DATE_FORMATS = (
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%dT%H:%M:%S%z",
)
MIN_RATING = 0
MAX_RATING = 5
_EXCESS_NEWLINES = re.compile(r"\n{3,}")


@dataclass(frozen=True)
class Review:
    """One customer review. Two reviews are equal when their ids match."""

    review_id: str
    title: str = field(compare=False)
    body: str = field(compare=False)
    rating: int = field(compare=False)
    version: str = field(compare=False)
    author_name: str = field(compare=False)
    updated_at: datetime = field(compare=False)
    raw_entry: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    def to_dict(self, include_raw: bool = False) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "review_id": self.review_id,
            "title": self.title,
            "body": self.body,
            "rating": self.rating,
            "version": self.version,
            "author_name": self.author_name,
            "updated_at": self.updated_at.isoformat(),
        }
        if include_raw:
            data["raw_entry"] = dict(self.raw_entry)
        return data


def parse_feed_date(value: str) -> datetime:
    """Parse an ISO-8601 timestamp with or without fractional seconds."""
    text = value.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise ValueError(f"Unrecognised timestamp: {value!r}")


def decode_html(text: str) -> str:
    """Resolve HTML entities and drop markup, as a browser would render it."""
    if "&" not in text and "<" not in text:
        return text
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", MarkupResemblesLocatorWarning)
        soup = BeautifulSoup(text, "html.parser")
    for br in soup.find_all("br"):
        br.replace_with("\n")
    return soup.get_text()


def clean_review_text(value: str) -> str:
    """Normalize newlines, decode entities and collapse blank-line runs."""
    text = value.strip()
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = decode_html(text)
    text = _EXCESS_NEWLINES.sub("\n\n", text)
    return text.strip()


def _label(entry: Mapping[str, Any], *path: str) -> str:
    """Walk ``entry[path...]['label']`` and return it, or raise ReviewParseError."""
    node: Any = entry
    for key in path:
        if not isinstance(node, Mapping) or key not in node:
            raise ReviewParseError(".".join(path + ("label",)))
        node = node[key]
    if not isinstance(node, Mapping):
        raise ReviewParseError(".".join(path + ("label",)))
    label = node.get("label")
    if not isinstance(label, str):
        raise ReviewParseError(".".join(path + ("label",)))
    return label


def parse_review_entry(entry: Any) -> Review:
    """Validate one raw feed entry and build a Review.

    Raises ReviewParseError when any required field is missing or invalid.
    """
    if not isinstance(entry, Mapping):
        raise ReviewParseError("entry", "Feed entry is not an object")

    review_id = _label(entry, "id")
    title = _label(entry, "title")
    body = _label(entry, "content")
    rating_label = _label(entry, "im:rating")
    version = _label(entry, "im:version")
    author_name = _label(entry, "author", "name")
    updated_label = _label(entry, "updated")

    try:
        rating = int(rating_label.strip())
    except ValueError as exc:
        raise ReviewParseError("im:rating.label", f"Rating is not an integer: {rating_label!r}") from exc
    if not MIN_RATING <= rating <= MAX_RATING:
        raise ReviewParseError("im:rating.label", f"Rating out of range: {rating}")

    try:
        updated_at = parse_feed_date(updated_label)
    except ValueError as exc:
        raise ReviewParseError("updated.label", str(exc)) from exc

    return Review(
        review_id=review_id,
        title=clean_review_text(title),
        body=clean_review_text(body),
        rating=rating,
        version=version,
        author_name=author_name,
        updated_at=updated_at,
        raw_entry=dict(entry),
    )


def extract_entries(payload: Any) -> List[Any]:
    """Return the raw entries of a decoded feed payload as a list.

    ``feed.entry`` may be a single object, a list, or absent (empty page).
    """
    if not isinstance(payload, Mapping):
        raise UnparseableResponseError("The reviews feed did not return a JSON object.")
    feed = payload.get("feed")
    if not isinstance(feed, Mapping):
        raise UnparseableResponseError("The reviews feed response has no 'feed' object.")

    entry = feed.get("entry")
    if entry is None:
        return []
    if isinstance(entry, list):
        return entry
    if isinstance(entry, Mapping):
        return [entry]
    raise UnparseableResponseError("The reviews feed 'entry' field has an unexpected type.")


def parse_feed_entries(entries: List[Any]) -> Tuple[List[Review], List[ReviewParseError]]:
    """Parse every entry, keeping successes and collecting per-entry failures."""
    reviews: List[Review] = []
    failures: List[ReviewParseError] = []
    for entry in entries:
        try:
            reviews.append(parse_review_entry(entry))
        except ReviewParseError as exc:
            failures.append(exc)
    if failures:
        logger.debug("Skipped %d malformed feed entries", len(failures))
    return reviews, failures


def find_review(reviews: List[Review], review_id: Optional[str]) -> Optional[Review]:
    if review_id is None:
        return None
    for review in reviews:
        if review.review_id == review_id:
            return review
    return None
