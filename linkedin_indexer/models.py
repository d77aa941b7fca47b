"""Domain records passed between the fetch job and the data service."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ContentType(str, Enum):
    """Kind of LinkedIn content."""

    ARTICLE = "article"
    POST = "post"


class FetchStatus(str, Enum):
    """Outcome of one scrape attempt in the fetch log."""

    SUCCESS = "success"
    ERROR = "error"
    RATE_LIMITED = "rate_limited"


class AuthorInfo(BaseModel):
    """Author record to persist."""

    id: str
    name: str = "Unknown"
    headline: Optional[str] = None
    profile_url: str
    avatar_url: Optional[str] = None
    fetched_at: datetime


class ContentInfo(BaseModel):
    """Content record to persist. The id is derived from ``url`` on write."""

    url: str
    title: str = ""
    excerpt: str = ""
    full_text: Optional[str] = None
    author_id: Optional[str] = None
    content_type: ContentType = ContentType.POST
    published_at: datetime
    fetched_at: datetime
    likes: int = 0
    comments: int = 0


class TopicTag(BaseModel):
    """Topic/region (and optional subregion) a content item was found under."""

    topic: str
    region: str
    subregion: Optional[str] = None


class ContentQuery(BaseModel):
    """Filters for listing content. Unset fields do not filter."""

    topic: Optional[str] = None
    region: Optional[str] = None
    subregion: Optional[str] = None
    type: Optional[str] = Field(default=None, description="article, post or all")
    author_id: Optional[str] = None
    since: Optional[datetime] = None
    limit: Optional[int] = 20
    offset: int = 0
