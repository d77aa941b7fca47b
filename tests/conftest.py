import json
from datetime import datetime
from typing import Optional

import pytest

from linkedin_indexer.crawler.base import (
    BaseContentSource,
    ContentDetails,
    RateLimitedError,
    SearchResult,
)
from linkedin_indexer.models import ContentType
from linkedin_indexer.services.data_service import DataService
from linkedin_indexer.services.quota_service import QuotaTracker

FIXED_NOW = datetime(2024, 5, 14, 10, 30, 0)


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def service(tmp_path):
    """DataService on a fresh file-backed SQLite database for each test."""
    svc = DataService(str(tmp_path / "test.db"))
    try:
        yield svc
    finally:
        svc.close()


@pytest.fixture
def quota_factory(service):
    def make(limit: int = 50, now: datetime = FIXED_NOW) -> QuotaTracker:
        return QuotaTracker(service, daily_limit=limit, clock=lambda: now)

    return make


@pytest.fixture
def topics_file(tmp_path):
    path = tmp_path / "topics.json"
    path.write_text(json.dumps({
        "regions": {
            "nz": {"name": "New Zealand", "subregions": ["wellington", "auckland"], "topics": ["rma", "it"]},
            "au": {"name": "Australia", "subregions": None, "topics": ["cloud"]},
        }
    }))
    return path


def make_result(url: str, **fields) -> SearchResult:
    content_type = ContentType.ARTICLE if "/pulse/" in url else ContentType.POST
    return SearchResult(url=url, content_type=content_type, **fields)


class FakeContentSource(BaseContentSource):
    """Scripted content source that records every call it receives.

    Args:
        results: Maps (topic, region, subregion) to a list of results or an
            exception to raise; missing keys return an empty list
        details: Maps url to ContentDetails or an exception to raise
        enter_error: Raised from __aenter__ when set
        gate: asyncio.Event awaited inside search() when set
        enter_gate: asyncio.Event awaited inside __aenter__ when set
    """

    platform = "fake"

    def __init__(
        self,
        results: Optional[dict] = None,
        details: Optional[dict] = None,
        enter_error: Optional[Exception] = None,
        gate=None,
        enter_gate=None,
    ):
        self.results = results or {}
        self.details = details or {}
        self.enter_error = enter_error
        self.gate = gate
        self.enter_gate = enter_gate
        self.enter_calls = 0
        self.searches: list[tuple] = []
        self.detail_calls: list[str] = []
        self.entered = False
        self.exited = False

    async def __aenter__(self):
        self.enter_calls += 1
        if self.enter_gate is not None:
            await self.enter_gate.wait()
        if self.enter_error:
            raise self.enter_error
        self.entered = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.exited = True

    async def search(self, topic, region, subregion=None):
        self.searches.append((topic, region, subregion))
        if self.gate is not None:
            await self.gate.wait()
        outcome = self.results.get((topic, region, subregion), [])
        if isinstance(outcome, Exception):
            raise outcome
        return list(outcome)

    async def fetch_details(self, url) -> Optional[ContentDetails]:
        self.detail_calls.append(url)
        outcome = self.details.get(url)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome
