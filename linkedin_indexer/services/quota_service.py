"""Daily request budget derived from the fetch log.

There is no stored counter: remaining budget is always
``daily_limit - count(today's non rate_limited fetch log entries)``. Entries are
never updated, so the tracker has no partial-update states to recover from.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from linkedin_indexer.database import FetchLog
from linkedin_indexer.models import FetchStatus
from linkedin_indexer.services.data_service import DataService
from linkedin_indexer.utils.dates import as_utc_naive, start_of_utc_day, utcnow

logger = logging.getLogger(__name__)

# rate_limited entries record that we were throttled; they do not spend budget
NON_CONSUMING_STATUSES = (FetchStatus.RATE_LIMITED,)


class QuotaTracker:
    """Gate checked before every scrape attempt.

    Args:
        service: Data service holding the fetch log
        daily_limit: Attempts allowed per UTC calendar day
        clock: Returns "now"; naive values are taken as UTC
    """

    def __init__(
        self,
        service: DataService,
        daily_limit: int = 50,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.service = service
        self.daily_limit = daily_limit
        self._clock = clock or utcnow

    def now(self) -> datetime:
        return as_utc_naive(self._clock())

    def consumed_today(self) -> int:
        """Budget-consuming attempts since UTC midnight."""
        return self.service.count_fetch_log_since(
            start_of_utc_day(self.now()),
            exclude_statuses=NON_CONSUMING_STATUSES,
        )

    def remaining_budget(self) -> int:
        return max(0, self.daily_limit - self.consumed_today())

    def can_proceed(self) -> bool:
        return self.remaining_budget() > 0

    def record(
        self,
        topic: str,
        region: str,
        items_found: int,
        status: FetchStatus,
        error: Optional[str] = None,
        *,
        subregion: Optional[str] = None,
        duration_ms: Optional[int] = None,
    ) -> FetchLog:
        """Append one attempt to the fetch log, stamped with the tracker's clock."""
        entry = self.service.append_fetch_log(
            topic,
            region,
            items_found,
            status,
            error,
            subregion=subregion,
            duration_ms=duration_ms,
            fetched_at=self.now(),
        )
        logger.debug(f"Recorded fetch {topic}/{region}/{subregion or '-'}: status={entry.status} items={items_found}")
        return entry
