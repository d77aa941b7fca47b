"""Data service: the persistence gateway over the SQLite database.

- Authors and content are keyed by URL-derived ids (upserts, no lookup needed)
- Content and its topic tags are written in one transaction
- The fetch log is append-only; quota is derived from it by counting
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Generator, Iterable, Optional

from sqlalchemy import func, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session, joinedload, selectinload

from linkedin_indexer.config import get_settings
from linkedin_indexer.database import Author, Content, ContentTopic, Database, FetchLog
from linkedin_indexer.models import (
    AuthorInfo,
    ContentInfo,
    ContentQuery,
    FetchStatus,
    TopicTag,
)
from linkedin_indexer.utils.dates import as_utc_naive, start_of_utc_day, utcnow
from linkedin_indexer.utils.identity import generate_content_id

logger = logging.getLogger(__name__)


class DataService:
    """Service for reading and writing indexed LinkedIn data.

    Usage:

        service = DataService("data/linkedin.db")
        service.upsert_author(author_info)
        content_id = service.upsert_content(content_info, [TopicTag(topic="rma", region="nz")])
        service.query_content(ContentQuery(topic="rma"))
    """

    def __init__(self, db_path: Optional[str] = None):
        if db_path is None:
            db_path = get_settings().database.path
        self.db = Database(db_path)
        self.db.init_db()

    @contextmanager
    def transaction(self) -> Generator[Session, None, None]:
        """Context manager for database transactions."""
        session = self.db.get_session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def close(self) -> None:
        self.db.dispose()

    # =========================================================================
    # Authors
    # =========================================================================

    def upsert_author(self, author_info: AuthorInfo) -> Author:
        """Insert or replace an author by id."""
        with self.transaction() as session:
            author = session.merge(
                Author(
                    id=author_info.id,
                    name=author_info.name or "Unknown",
                    headline=author_info.headline,
                    profile_url=author_info.profile_url,
                    avatar_url=author_info.avatar_url,
                    fetched_at=as_utc_naive(author_info.fetched_at),
                )
            )
        return author

    def get_author_by_id(self, author_id: str) -> Optional[Author]:
        with self.transaction() as session:
            return session.get(Author, author_id)

    def get_author_by_profile_url(self, profile_url: str) -> Optional[Author]:
        with self.transaction() as session:
            return session.query(Author).filter(Author.profile_url == profile_url).first()

    def list_authors(self) -> list[Author]:
        with self.transaction() as session:
            return session.query(Author).order_by(Author.name, Author.id).all()

    # =========================================================================
    # Content
    # =========================================================================

    def upsert_content(self, content_info: ContentInfo, topics: Iterable[TopicTag]) -> str:
        """Write a content item and its topic tags atomically.

        The content row is overwritten field by field (last write wins); a
        topic tag that already exists for (content, topic, region) is kept.

        Returns:
            The URL-derived content id
        """
        content_id = generate_content_id(content_info.url)

        with self.transaction() as session:
            session.merge(
                Content(
                    id=content_id,
                    url=content_info.url,
                    title=content_info.title,
                    excerpt=content_info.excerpt,
                    full_text=content_info.full_text,
                    author_id=content_info.author_id,
                    content_type=content_info.content_type.value,
                    published_at=as_utc_naive(content_info.published_at),
                    fetched_at=as_utc_naive(content_info.fetched_at),
                    likes=content_info.likes,
                    comments=content_info.comments,
                )
            )
            # Content row must exist before its tags reference it
            session.flush()

            for tag in topics:
                session.execute(
                    sqlite_insert(ContentTopic)
                    .values(
                        content_id=content_id,
                        topic=tag.topic,
                        region=tag.region,
                        subregion=tag.subregion,
                    )
                    .on_conflict_do_nothing(index_elements=["content_id", "topic", "region"])
                )

        return content_id

    def get_content_by_id(self, content_id: str) -> Optional[Content]:
        with self.transaction() as session:
            return (
                session.query(Content)
                .options(selectinload(Content.topics), joinedload(Content.author))
                .filter(Content.id == content_id)
                .first()
            )

    def query_content(self, query: ContentQuery) -> list[Content]:
        """List content matching every set filter, newest published first.

        topic/region/subregion must all match the same topic tag.
        """
        with self.transaction() as session:
            q = session.query(Content).options(
                selectinload(Content.topics), joinedload(Content.author)
            )

            tag_filters = []
            if query.topic:
                tag_filters.append(ContentTopic.topic == query.topic)
            if query.region:
                tag_filters.append(ContentTopic.region == query.region)
            if query.subregion:
                tag_filters.append(ContentTopic.subregion == query.subregion)
            if tag_filters:
                tagged = select(ContentTopic.content_id).where(*tag_filters)
                q = q.filter(Content.id.in_(tagged))

            if query.type and query.type != "all":
                q = q.filter(Content.content_type == query.type)
            if query.since:
                q = q.filter(Content.published_at >= as_utc_naive(query.since))
            if query.author_id:
                q = q.filter(Content.author_id == query.author_id)

            q = q.order_by(Content.published_at.desc(), Content.id)

            if query.offset:
                q = q.offset(query.offset)
            if query.limit:
                q = q.limit(query.limit)

            return q.all()

    def delete_content(self, content_id: str) -> bool:
        """Delete a content item (its topic tags cascade). Returns False if absent."""
        with self.transaction() as session:
            content = session.get(Content, content_id)
            if content is None:
                return False
            session.delete(content)
            return True

    # =========================================================================
    # Fetch log
    # =========================================================================

    def append_fetch_log(
        self,
        topic: str,
        region: str,
        items_found: int,
        status: FetchStatus,
        error_message: Optional[str] = None,
        *,
        subregion: Optional[str] = None,
        duration_ms: Optional[int] = None,
        fetched_at: Optional[datetime] = None,
    ) -> FetchLog:
        with self.transaction() as session:
            entry = FetchLog(
                topic=topic,
                region=region,
                subregion=subregion,
                fetched_at=as_utc_naive(fetched_at) if fetched_at else utcnow(),
                items_found=items_found,
                status=FetchStatus(status).value,
                error_message=error_message,
                duration_ms=duration_ms,
            )
            session.add(entry)
        return entry

    def count_fetch_log_since(
        self,
        since: datetime,
        exclude_statuses: Iterable[FetchStatus] = (),
    ) -> int:
        excluded = [FetchStatus(s).value for s in exclude_statuses]
        with self.transaction() as session:
            q = session.query(func.count(FetchLog.id)).filter(
                FetchLog.fetched_at >= as_utc_naive(since)
            )
            if excluded:
                q = q.filter(FetchLog.status.notin_(excluded))
            return q.scalar() or 0

    def recent_fetch_logs(self, limit: int = 20) -> list[FetchLog]:
        with self.transaction() as session:
            return (
                session.query(FetchLog)
                .order_by(FetchLog.fetched_at.desc(), FetchLog.id.desc())
                .limit(limit)
                .all()
            )

    # =========================================================================
    # Aggregates
    # =========================================================================

    def get_overview(self, now: Optional[datetime] = None) -> dict:
        """Row totals plus content fetched since UTC midnight."""
        today_start = start_of_utc_day(now or utcnow())
        with self.transaction() as session:
            total_content = session.query(func.count(Content.id)).scalar() or 0
            total_authors = session.query(func.count(Author.id)).scalar() or 0
            total_fetches = session.query(func.count(FetchLog.id)).scalar() or 0
            today_content = session.query(func.count(Content.id)).filter(
                Content.fetched_at >= today_start
            ).scalar() or 0

            by_type = dict(
                session.query(Content.content_type, func.count(Content.id))
                .group_by(Content.content_type)
                .all()
            )

        return {
            "total_content": total_content,
            "total_authors": total_authors,
            "total_fetches": total_fetches,
            "today_content": today_content,
            "content_by_type": by_type,
        }
