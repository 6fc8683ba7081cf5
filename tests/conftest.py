"""Shared fixtures: a scripted transport and feed payload builders."""

import asyncio
import json
from typing import Any, Dict, List, Optional, Union
from urllib.parse import parse_qs, urlparse

import pytest

from core.app_store.transport import HttpResponse


def make_entry(review_id: str, **overrides: Any) -> Dict[str, Any]:
    """Build a raw feed entry shaped like the customer reviews feed."""
    entry: Dict[str, Any] = {
        "id": {"label": review_id},
        "title": {"label": f"Title {review_id}"},
        "content": {"label": f"Body of review {review_id}", "attributes": {"type": "text"}},
        "im:rating": {"label": "4"},
        "im:version": {"label": "2.1.0"},
        "author": {"name": {"label": f"user-{review_id}"}, "uri": {"label": "https://example.com"}},
        "updated": {"label": "2024-03-04T10:20:30-07:00"},
    }
    for key, value in overrides.items():
        if value is None:
            entry.pop(key, None)
        else:
            entry[key] = value
    return entry


def feed_payload(entries: Optional[Union[List[Any], Dict[str, Any]]]) -> Dict[str, Any]:
    feed: Dict[str, Any] = {"author": {"name": {"label": "iTunes Store"}}}
    if entries is not None:
        feed["entry"] = entries
    return {"feed": feed}


def ok(entries: Optional[Union[List[Any], Dict[str, Any]]]) -> HttpResponse:
    return HttpResponse(status=200, body=json.dumps(feed_payload(entries)).encode("utf-8"))


def page_of(*review_ids: str) -> HttpResponse:
    return ok([make_entry(review_id) for review_id in review_ids])


NOT_FOUND = HttpResponse(status=404, body=b"")


class FakeTransport:
    """Answers GETs from a per-page script.

    Each page maps to a list of outcomes (HttpResponse or exception) consumed
    in order; the last outcome repeats. Unscripted pages answer 404.
    """

    def __init__(self, script: Optional[Dict[int, List[Any]]] = None) -> None:
        self.script = {page: list(outcomes) for page, outcomes in (script or {}).items()}
        self.calls: List[str] = []
        self.timeouts: List[float] = []
        self.gate: Optional[asyncio.Event] = None

    @staticmethod
    def page_number(url: str) -> int:
        return int(parse_qs(urlparse(url).query)["page"][0])

    def pages_requested(self) -> List[int]:
        return [self.page_number(url) for url in self.calls]

    async def get(self, url: str, *, timeout: float) -> HttpResponse:
        self.calls.append(url)
        self.timeouts.append(timeout)
        if self.gate is not None:
            await self.gate.wait()
        outcomes = self.script.get(self.page_number(url)) or [NOT_FOUND]
        outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def transport():
    return FakeTransport()
