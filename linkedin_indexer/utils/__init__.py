from linkedin_indexer.utils.dates import (
    as_utc_naive,
    isoformat,
    parse_published_date,
    start_of_utc_day,
    utcnow,
)
from linkedin_indexer.utils.identity import generate_author_id, generate_content_id
from linkedin_indexer.utils.retry import RetryConfig, call_with_retry

__all__ = [
    "RetryConfig",
    "as_utc_naive",
    "call_with_retry",
    "generate_author_id",
    "generate_content_id",
    "isoformat",
    "parse_published_date",
    "start_of_utc_day",
    "utcnow",
]
