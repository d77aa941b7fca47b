"""Base content source types.

A content source is the only part of the system that talks to the scraping
target. All implementations should:
1. Return best-effort data: missing fields stay empty, they are not errors
2. Raise RateLimitedError when the target signals throttling
3. Own their browser/session between __aenter__ and __aexit__
"""

from abc import ABC, abstractmethod
from typing import Optional, Self

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from linkedin_indexer.models import ContentType


class ContentSourceError(Exception):
    """A content source call failed."""


class RateLimitedError(ContentSourceError):
    """The target is throttling us (HTTP 429, captcha, auth wall)."""


class SearchResult(BaseModel):
    """Candidate content item from a search results page.

    Attributes:
        url: Full URL of the article or post
        title: Title or first line of the post
        excerpt: Text excerpt, may be empty
        author_name: Display name of the author, may be empty
        author_profile_url: Profile URL of the author, may be empty
        content_type: "article" for /pulse/ URLs, otherwise "post"
        published_date: ISO date string when the source could read one
        likes: Reaction count
        comments: Comment count
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    url: str
    title: str = ""
    excerpt: str = ""
    author_name: str = ""
    author_profile_url: str = ""
    content_type: ContentType = ContentType.POST
    published_date: Optional[str] = None
    likes: int = 0
    comments: int = 0

    # Usually only known after a detail fetch
    author_headline: Optional[str] = None
    author_avatar_url: Optional[str] = None
    full_text: Optional[str] = None

    def with_details(self, details: Optional["ContentDetails"]) -> "SearchResult":
        """Copy of this result with the non-empty detail fields applied."""
        if details is None:
            return self
        updates = {
            key: value
            for key, value in details.model_dump(exclude_none=True).items()
            if value != ""
        }
        return self.model_copy(update=updates)


class ContentDetails(BaseModel):
    """Enrichment from a content detail page. Every field is optional."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: Optional[str] = None
    excerpt: Optional[str] = None
    full_text: Optional[str] = None
    author_name: Optional[str] = None
    author_profile_url: Optional[str] = None
    author_headline: Optional[str] = None
    author_avatar_url: Optional[str] = None
    published_date: Optional[str] = None
    likes: Optional[int] = None
    comments: Optional[int] = None


class BaseContentSource(ABC):
    """Base class for all content sources.

    Usage:
        async with LinkedInSource() as source:
            results = await source.search("rma", "nz", "wellington")
            details = await source.fetch_details(results[0].url)
    """

    platform: str = "unknown"  # Subclasses must override

    @abstractmethod
    async def search(
        self,
        topic: str,
        region: str,
        subregion: Optional[str] = None,
    ) -> list[SearchResult]:
        """Candidate items for a topic/region. May be empty, may raise."""

    @abstractmethod
    async def fetch_details(self, url: str) -> Optional[ContentDetails]:
        """Best-effort enrichment for one URL. May return None, may raise."""

    async def __aenter__(self) -> Self:
        """Default async context manager entry - subclasses can override."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        """Default async context manager exit - subclasses can override."""
        pass
