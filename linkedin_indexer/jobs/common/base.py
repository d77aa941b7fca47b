"""Common statistics and helper functions for fetch jobs."""

import asyncio
import logging
import random
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import List, Optional

from linkedin_indexer.utils.dates import isoformat

logger = logging.getLogger(__name__)


# =============================================================================
# Fetch Cycle - Statistics
# =============================================================================

@dataclass
class CycleStats:
    """Statistics for one fetch cycle."""
    tasks_planned: int = 0
    tasks_attempted: int = 0
    tasks_failed: int = 0
    items_found: int = 0
    items_saved: int = 0
    items_failed: int = 0
    authors_created: int = 0
    stop_reason: Optional[str] = None  # "quota", or None when every task ran
    remaining_budget: Optional[int] = None
    error: Optional[str] = None
    errors: List[str] = field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def stopped_by_quota(self) -> bool:
        return self.stop_reason == "quota"

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.started_at is None or self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    def to_dict(self) -> dict:
        data = asdict(self)
        data["started_at"] = isoformat(self.started_at)
        data["completed_at"] = isoformat(self.completed_at)
        data["duration_seconds"] = self.duration_seconds
        return data


# =============================================================================
# Helper Functions
# =============================================================================

class Stopwatch:
    """Elapsed wall time in whole milliseconds."""

    def __init__(self):
        self._start = time.monotonic()

    @property
    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self._start) * 1000)


async def jitter_delay(
    base_seconds: float,
    action: str = "",
    rng: Optional[random.Random] = None,
) -> float:
    """Sleep for ``base + random() * base`` seconds.

    Args:
        base_seconds: Minimum delay; the actual delay is in [base, 2 * base)
        action: Description of what comes next (for logging)
        rng: Random source, module-level random when omitted

    Returns:
        The delay actually slept, in seconds
    """
    delay = base_seconds + (rng or random).random() * base_seconds
    if action:
        logger.info(f"{action} (waiting {delay:.1f}s)")
    await asyncio.sleep(delay)
    return delay
