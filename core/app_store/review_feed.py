"""Paginated, cached client for the App Store customer reviews feed.

The client owns its pagination state and is meant to be driven from a single
event loop. ``load_first_page`` / ``load_next_page_if_needed`` schedule a fetch
and return immediately; ``refresh`` awaits its fetch. The busy flags are the
only re-entrancy gate.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Set, Tuple, Union
from urllib.parse import urlencode

from .config import settings
from .errors import (
    BadStatusError,
    MalformedURLError,
    NotFoundError,
    ReviewFeedError,
    TransportError,
    UnparseableResponseError,
)
from .review_models import Review, extract_entries, parse_feed_entries
from .transport import AiohttpTransport, Transport


logger = logging.getLogger(__name__)

FEED_PATH = "/{country}/rss/customerreviews/id={content_id}/sortBy=mostRecent/json"
MALFORMED_URL_MESSAGE = "Failed to build reviews URL."
_COUNTRY_RE = re.compile(r"^[A-Za-z]{2}$")
_HOST_RE = re.compile(r"^[A-Za-z0-9.-]+(:\d+)?$")


@dataclass(frozen=True)
class FeedState:
    """Read-only snapshot of everything a renderer needs."""

    reviews: Tuple[Review, ...]
    is_loading: bool
    is_refreshing: bool
    current_page: int
    has_more: bool
    last_error: Optional[str]


StateListener = Callable[[FeedState], None]


def build_feed_url(
    content_id: Union[int, str],
    country: str,
    page: int,
    language: Optional[str] = None,
    host: str = settings.feed_host,
) -> str:
    """Return the customer reviews feed URL for one page.

    Raises MalformedURLError when any component cannot form a valid URL.
    """
    content = str(content_id).strip()
    if not (content.isascii() and content.isdigit()) or int(content) <= 0:
        raise MalformedURLError(f"Invalid content id: {content_id!r}")
    if not isinstance(country, str) or not _COUNTRY_RE.match(country):
        raise MalformedURLError(f"Invalid country code: {country!r}")
    if not host or not _HOST_RE.match(host):
        raise MalformedURLError(f"Invalid feed host: {host!r}")
    if page < 1:
        raise MalformedURLError(f"Invalid page number: {page}")

    query = [("page", str(page))]
    if language:
        query.append(("l", language))
    path = FEED_PATH.format(country=country.lower(), content_id=content)
    return f"https://{host}{path}?{urlencode(query)}"


class ReviewFeedClient:
    """Pages through one app's reviews for a (country, language) pair."""

    def __init__(
        self,
        content_id: Union[int, str],
        country: str,
        language: Optional[str] = None,
        transport: Optional[Transport] = None,
        *,
        max_attempts: Optional[int] = None,
        retry_delay: Optional[float] = None,
        cached_pages: Optional[int] = None,
        host: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.content_id = content_id
        self.country = country
        self.language = language
        self._transport: Transport = transport or AiohttpTransport()
        self._max_attempts = max(1, max_attempts if max_attempts is not None else settings.max_attempts)
        self._retry_delay = retry_delay if retry_delay is not None else settings.retry_delay
        self._cached_pages = cached_pages if cached_pages is not None else settings.cached_pages
        self._host = host or settings.feed_host
        self._timeout = timeout if timeout is not None else settings.request_timeout

        self.reviews: List[Review] = []
        self.is_loading = False
        self.is_refreshing = False
        self.current_page = 1
        self.has_more = True
        self.last_error: Optional[str] = None

        self._page_cache: Dict[int, List[Review]] = {}
        self._generation = 0
        self._tasks: Set[asyncio.Task] = set()
        self._listeners: List[StateListener] = []

    # Observation

    def snapshot(self) -> FeedState:
        return FeedState(
            reviews=tuple(self.reviews),
            is_loading=self.is_loading,
            is_refreshing=self.is_refreshing,
            current_page=self.current_page,
            has_more=self.has_more,
            last_error=self.last_error,
        )

    def add_listener(self, listener: StateListener) -> Callable[[], None]:
        """Call ``listener`` with a snapshot after every state change.

        Returns a function that removes the listener.
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _notify(self) -> None:
        if not self._listeners:
            return
        state = self.snapshot()
        for listener in list(self._listeners):
            listener(state)

    @property
    def cached_page_numbers(self) -> List[int]:
        return sorted(self._page_cache)

    # Operations

    def load_first_page(self) -> Optional[asyncio.Task]:
        """Reset and start loading page 1. Must be called from a running loop."""
        if self.is_loading:
            return None
        self._reset(refreshing=False)
        return self._schedule(1)

    def load_next_page_if_needed(self, visible_item: Optional[Review]) -> Optional[asyncio.Task]:
        """Fetch the next page when ``visible_item`` is the last loaded review."""
        if not self.has_more or self.is_loading or self.is_refreshing:
            return None
        if visible_item is None or not self.reviews:
            return None
        # Identity check against the sentinel: equal ids elsewhere do not count.
        if visible_item.review_id != self.reviews[-1].review_id:
            return None
        return self._schedule(self.current_page + 1)

    async def refresh(self) -> None:
        """Reset and reload page 1, awaiting the result."""
        if self.is_loading:
            return
        self._reset(refreshing=True)
        try:
            await self._fetch_page(1, self._generation)
        finally:
            self.is_refreshing = False
            self._notify()

    async def wait_idle(self) -> None:
        """Wait until every scheduled fetch has finished."""
        while self._tasks:
            results = await asyncio.gather(*list(self._tasks), return_exceptions=True)
            for result in results:
                if isinstance(result, BaseException) and not isinstance(result, asyncio.CancelledError):
                    logger.error("Review fetch task crashed", exc_info=result)

    # Internals

    def _reset(self, *, refreshing: bool) -> None:
        self._generation += 1
        # A superseded fetch no longer owns the busy flag.
        self.is_loading = False
        self.last_error = None
        self.is_refreshing = refreshing
        self.reviews = []
        self.current_page = 1
        self.has_more = True
        self._page_cache.clear()
        self._notify()

    def _schedule(self, page: int) -> asyncio.Task:
        # Claim the busy flag before the task first runs so an immediate
        # second call is a no-op.
        self.is_loading = True
        task = asyncio.ensure_future(self._fetch_page(page, self._generation))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self._notify()
        return task

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def _fetch_page(self, page: int, generation: int) -> None:
        if not self._is_current(generation):
            logger.debug("Skipping page %d for a superseded load", page)
            return
        self.is_loading = True
        try:
            cached = self._page_cache.get(page)
            if cached:
                logger.debug("Page %d served from cache (%d reviews)", page, len(cached))
                self._append_reviews(cached, page)
                return

            try:
                url = build_feed_url(self.content_id, self.country, page, self.language, self._host)
            except MalformedURLError as exc:
                logger.error("Cannot build reviews URL: %s", exc)
                self.last_error = MALFORMED_URL_MESSAGE
                self.has_more = False
                return

            self.last_error = None
            self._notify()
            await self._fetch_with_retry(url, page, generation)
        finally:
            if self._is_current(generation):
                self.is_loading = False
                self._notify()

    async def _fetch_with_retry(self, url: str, page: int, generation: int) -> None:
        for attempt in range(1, self._max_attempts + 1):
            try:
                reviews = await self._request_page(url)
            except NotFoundError:
                if self._is_current(generation):
                    logger.info("Reviews feed has no page %d (HTTP 404)", page)
                    self.has_more = False
                return
            except ReviewFeedError as exc:
                if attempt == self._max_attempts or not exc.retryable:
                    logger.warning("Page %d failed after %d attempts: %s", page, attempt, exc)
                    if self._is_current(generation):
                        self.last_error = str(exc)
                    return
                logger.warning("Page %d attempt %d failed, retrying: %s", page, attempt, exc)
                await asyncio.sleep(self._retry_delay)
                continue

            if not self._is_current(generation):
                logger.debug("Discarding page %d from a superseded load", page)
                return
            if page <= self._cached_pages:
                self._page_cache[page] = reviews
            if not reviews:
                self.has_more = False
            self._append_reviews(reviews, page)
            return

    async def _request_page(self, url: str) -> List[Review]:
        logger.debug("Fetching %s", url)
        try:
            response = await self._transport.get(url, timeout=self._timeout)
        except ReviewFeedError:
            raise
        except Exception as exc:
            raise TransportError(f"Network error: {exc}") from exc

        if response.status == 404:
            raise NotFoundError(f"No such page: {url}")
        if not response.ok:
            raise BadStatusError(response.status)

        try:
            payload = json.loads(response.body)
        except (ValueError, UnicodeDecodeError) as exc:
            raise UnparseableResponseError("The reviews feed returned invalid JSON.") from exc

        reviews, _ = parse_feed_entries(extract_entries(payload))
        return reviews

    def _append_reviews(self, incoming: List[Review], page: int) -> None:
        if not incoming:
            return
        existing_ids = {review.review_id for review in self.reviews}
        filtered: List[Review] = []
        for review in incoming:
            if review.review_id in existing_ids:
                continue
            existing_ids.add(review.review_id)
            filtered.append(review)

        if not filtered:
            # Only already-seen content on an empty list would loop forever.
            if not self.reviews:
                self.has_more = False
            return

        self.reviews.extend(filtered)
        self.current_page = page
        logger.debug("Applied page %d: %d new reviews (%d total)", page, len(filtered), len(self.reviews))
        self._notify()
