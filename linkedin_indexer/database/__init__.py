from linkedin_indexer.database.models import (
    Author,
    Base,
    Content,
    ContentTopic,
    Database,
    FetchLog,
)

__all__ = [
    "Author",
    "Base",
    "Content",
    "ContentTopic",
    "Database",
    "FetchLog",
]
