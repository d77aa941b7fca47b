"""SQLite database models using SQLAlchemy.

Time field conventions:
- fetched_at: When the row was scraped / the attempt was made (naive UTC)
- published_at: Best-effort publish time; falls back to fetched_at

Ids of authors and content are derived from their URLs
(see linkedin_indexer.utils.identity), so writes are keyed upserts.
"""

from pathlib import Path

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    create_engine,
    event,
)
from sqlalchemy.orm import DeclarativeBase, Session, relationship, sessionmaker

from linkedin_indexer.utils.dates import isoformat, utcnow


class Base(DeclarativeBase):
    pass


class Author(Base):
    """Content creator, keyed by an id derived from the profile URL."""

    __tablename__ = "authors"

    id = Column(String(64), primary_key=True)
    name = Column(String(256), nullable=False, default="Unknown")
    headline = Column(Text)
    profile_url = Column(Text, unique=True, nullable=False)
    avatar_url = Column(Text)

    fetched_at = Column(DateTime, nullable=False, default=utcnow)

    # Relationships
    contents = relationship("Content", back_populates="author")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "headline": self.headline,
            "profile_url": self.profile_url,
            "avatar_url": self.avatar_url,
            "fetched_at": isoformat(self.fetched_at),
        }


class Content(Base):
    """A LinkedIn article or post. ``url`` is the dedup key."""

    __tablename__ = "content"

    id = Column(String(32), primary_key=True)
    url = Column(Text, unique=True, nullable=False)

    title = Column(Text)
    excerpt = Column(Text)
    full_text = Column(Text)
    author_id = Column(String(64), ForeignKey("authors.id"))
    content_type = Column(String(16), nullable=False)  # article/post

    published_at = Column(DateTime)
    fetched_at = Column(DateTime, nullable=False, default=utcnow)

    likes = Column(Integer, default=0)
    comments = Column(Integer, default=0)

    # Relationships
    author = relationship("Author", back_populates="contents")
    topics = relationship(
        "ContentTopic",
        back_populates="content",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_content_published_at", "published_at"),
        Index("idx_content_author_id", "author_id"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "url": self.url,
            "title": self.title,
            "excerpt": self.excerpt,
            "full_text": self.full_text,
            "author_id": self.author_id,
            "content_type": self.content_type,
            "published_at": isoformat(self.published_at),
            "fetched_at": isoformat(self.fetched_at),
            "likes": self.likes or 0,
            "comments": self.comments or 0,
            "topics": [t.to_dict() for t in self.topics],
            "author": self.author.to_dict() if self.author else None,
        }


class ContentTopic(Base):
    """Topic tag of a content item.

    One tag per (content, topic, region); subregion refines but does not
    create a second tag.
    """

    __tablename__ = "content_topics"

    content_id = Column(
        String(32),
        ForeignKey("content.id", ondelete="CASCADE"),
        primary_key=True,
    )
    topic = Column(String(128), primary_key=True)
    region = Column(String(64), primary_key=True)
    subregion = Column(String(128))

    content = relationship("Content", back_populates="topics")

    __table_args__ = (
        Index("idx_content_topics_topic", "topic"),
        Index("idx_content_topics_region", "region"),
    )

    def to_dict(self) -> dict:
        return {
            "content_id": self.content_id,
            "topic": self.topic,
            "region": self.region,
            "subregion": self.subregion,
        }


class FetchLog(Base):
    """Append-only log of scrape attempts. Also the daily quota state."""

    __tablename__ = "fetch_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    topic = Column(String(128), nullable=False)
    region = Column(String(64), nullable=False)
    subregion = Column(String(128))

    fetched_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    items_found = Column(Integer, default=0)
    status = Column(String(16), nullable=False)  # success/error/rate_limited
    error_message = Column(Text)
    duration_ms = Column(Integer)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "topic": self.topic,
            "region": self.region,
            "subregion": self.subregion,
            "fetched_at": isoformat(self.fetched_at),
            "items_found": self.items_found or 0,
            "status": self.status,
            "error_message": self.error_message,
            "duration_ms": self.duration_ms,
        }


class Database:
    """Database connection and session management."""

    def __init__(self, db_path: str = "data/linkedin.db"):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self.engine = create_engine(f"sqlite:///{db_path}", echo=False)
        event.listen(self.engine, "connect", _set_sqlite_pragmas)
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)

    def init_db(self):
        """Create all tables."""
        Base.metadata.create_all(self.engine)

    def get_session(self) -> Session:
        """Get a new database session."""
        return self.SessionLocal()

    def dispose(self):
        self.engine.dispose()


def _set_sqlite_pragmas(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()
