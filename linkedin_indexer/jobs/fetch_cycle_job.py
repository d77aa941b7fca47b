"""Fetch cycle job.

One cycle walks every configured (region, subregion, topic) combination:
1. Open the content source (browser session)
2. Load the topic config, expand it to tasks, shuffle them
3. For each task, while the daily budget allows:
   - Search for candidate links
   - Fetch details for each candidate (best-effort)
   - Save the author on first sight, then the content with its topic tag
   - Append one fetch log entry for the task
   - Wait a randomized delay before the next task
4. Close the source and log the remaining budget

At most one cycle runs per orchestrator; overlapping triggers are ignored.

Database tables involved:
- authors: first observation of each author
- content: articles and posts (overwritten on re-fetch)
- content_topics: where each item was found
- fetch_log: one row per attempted task, the source of the quota
"""

import asyncio
import logging
import random
import threading
from typing import Callable, Optional

from linkedin_indexer.config import Settings, get_settings
from linkedin_indexer.crawler.base import BaseContentSource, RateLimitedError, SearchResult
from linkedin_indexer.crawler.registry import available_sources, get_source
from linkedin_indexer.jobs.common.base import CycleStats, Stopwatch, jitter_delay
from linkedin_indexer.models import AuthorInfo, ContentInfo, FetchStatus, TopicTag
from linkedin_indexer.services.data_service import DataService
from linkedin_indexer.services.quota_service import QuotaTracker
from linkedin_indexer.topics import FetchTask, TopicConfig, build_fetch_tasks, load_topics_config
from linkedin_indexer.utils.dates import parse_published_date
from linkedin_indexer.utils.identity import generate_author_id

logger = logging.getLogger(__name__)


class FetchOrchestrator:
    """Runs fetch cycles against a content source under the daily quota.

    Args:
        service: Data service for authors and content
        quota: Quota tracker sharing the same fetch log
        source_factory: Returns a fresh, not yet entered content source
        config_loader: Returns the current topic configuration
        delay_base_seconds: Inter-task delay is base + random() * base
        rng: Random source for shuffling and delays
    """

    def __init__(
        self,
        service: DataService,
        quota: QuotaTracker,
        source_factory: Callable[[], BaseContentSource],
        config_loader: Callable[[], TopicConfig],
        delay_base_seconds: float = 5.0,
        rng: Optional[random.Random] = None,
    ):
        self.service = service
        self.quota = quota
        self.source_factory = source_factory
        self.config_loader = config_loader
        self.delay_base_seconds = delay_base_seconds
        self._rng = rng

        # Single permit, never waited on
        self._lock = threading.Lock()
        self._background: set[asyncio.Task] = set()
        self.last_stats: Optional[CycleStats] = None

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    def trigger(self) -> asyncio.Task:
        """Start a cycle in the background and return its task immediately.

        Must be called from a running event loop. If a cycle is already in
        progress the task finishes right away with None.
        """
        task = asyncio.create_task(self.run_cycle())
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def run_cycle(self) -> Optional[CycleStats]:
        """Run one full fetch cycle.

        Returns:
            Statistics for the cycle, or None if another cycle was running
        """
        if not self._lock.acquire(blocking=False):
            logger.info("Fetch cycle already running, ignoring trigger")
            return None

        stats = CycleStats(started_at=self.quota.now())
        try:
            await self._run(stats)
        except Exception as e:
            logger.error(f"Fetch cycle failed: {e}", exc_info=True)
            stats.error = str(e)
        finally:
            stats.completed_at = self.quota.now()
            self.last_stats = stats
            self._lock.release()

        stats.remaining_budget = self.quota.remaining_budget()
        logger.info(
            f"Fetch cycle finished: {stats.tasks_attempted}/{stats.tasks_planned} tasks, "
            f"{stats.items_saved} items saved, {stats.items_failed} failed, "
            f"{stats.remaining_budget} requests remaining today"
        )
        return stats

    async def _run(self, stats: CycleStats) -> None:
        async with self.source_factory() as source:
            tasks = build_fetch_tasks(self.config_loader(), self._rng)
            stats.tasks_planned = len(tasks)
            logger.info(
                f"Starting fetch cycle: {len(tasks)} tasks, "
                f"{self.quota.remaining_budget()} requests remaining today"
            )

            for index, task in enumerate(tasks):
                if not self.quota.can_proceed():
                    stats.stop_reason = "quota"
                    logger.info(
                        f"Daily quota reached, stopping with {len(tasks) - index} tasks left"
                    )
                    break

                if index > 0:
                    await jitter_delay(self.delay_base_seconds, f"Next task: {task.label}", self._rng)

                stats.tasks_attempted += 1
                await self._run_task(source, task, stats)

    async def _run_task(
        self,
        source: BaseContentSource,
        task: FetchTask,
        stats: CycleStats,
    ) -> FetchStatus:
        """Search, process candidates and log the attempt for one task."""
        watch = Stopwatch()
        logger.info(f"Fetching {task.label}")

        try:
            results = await source.search(task.topic, task.region, task.subregion)
        except RateLimitedError as e:
            logger.warning(f"Rate limited on {task.label}: {e}")
            stats.tasks_failed += 1
            stats.errors.append(f"{task.label}: {e}")
            self.quota.record(
                task.topic, task.region, 0, FetchStatus.RATE_LIMITED, str(e),
                subregion=task.subregion, duration_ms=watch.elapsed_ms,
            )
            return FetchStatus.RATE_LIMITED
        except Exception as e:
            logger.error(f"Search failed for {task.label}: {e}")
            stats.tasks_failed += 1
            stats.errors.append(f"{task.label}: {e}")
            self.quota.record(
                task.topic, task.region, 0, FetchStatus.ERROR, str(e),
                subregion=task.subregion, duration_ms=watch.elapsed_ms,
            )
            return FetchStatus.ERROR

        stats.items_found += len(results)
        logger.info(f"  {len(results)} candidates for {task.label}")

        for result in results:
            await self._process_result(source, task, result, stats)

        self.quota.record(
            task.topic, task.region, len(results), FetchStatus.SUCCESS,
            subregion=task.subregion, duration_ms=watch.elapsed_ms,
        )
        return FetchStatus.SUCCESS

    async def _process_result(
        self,
        source: BaseContentSource,
        task: FetchTask,
        result: SearchResult,
        stats: CycleStats,
    ) -> None:
        """Enrich, normalize and persist one candidate. Never raises."""
        try:
            details = await source.fetch_details(result.url)
        except Exception as e:
            logger.debug(f"Detail fetch failed for {result.url}: {e}")
            details = None
        item = result.with_details(details)

        try:
            now = self.quota.now()
            author_id = self._resolve_author(item, stats)
            content = ContentInfo(
                url=item.url,
                title=item.title,
                excerpt=item.excerpt,
                full_text=item.full_text,
                author_id=author_id,
                content_type=item.content_type,
                published_at=parse_published_date(item.published_date) or now,
                fetched_at=now,
                likes=item.likes,
                comments=item.comments,
            )
            tag = TopicTag(topic=task.topic, region=task.region, subregion=task.subregion)
            self.service.upsert_content(content, [tag])
            stats.items_saved += 1
        except Exception as e:
            logger.error(f"Failed to save {item.url}: {e}")
            stats.items_failed += 1
            stats.errors.append(f"{item.url}: {e}")

    def _resolve_author(self, item: SearchResult, stats: CycleStats) -> Optional[str]:
        """Author id for an item, saving the author if never seen before."""
        profile_url = item.author_profile_url
        if not profile_url:
            return None

        author_id = generate_author_id(profile_url)
        if self.service.get_author_by_id(author_id) is not None:
            return author_id
        existing = self.service.get_author_by_profile_url(profile_url)
        if existing is not None:
            return existing.id

        self.service.upsert_author(
            AuthorInfo(
                id=author_id,
                name=item.author_name or "Unknown",
                headline=item.author_headline,
                profile_url=profile_url,
                avatar_url=item.author_avatar_url,
                fetched_at=self.quota.now(),
            )
        )
        stats.authors_created += 1
        return author_id


def build_orchestrator(
    service: DataService,
    settings: Optional[Settings] = None,
) -> FetchOrchestrator:
    """Orchestrator wired from settings: registered source, quota, topic file."""
    # Importing the package registers the LinkedIn source
    import linkedin_indexer.crawler.linkedin  # noqa: F401

    settings = settings or get_settings()
    fetch_settings = settings.fetch

    source_class = get_source(fetch_settings.source)
    if source_class is None:
        raise ValueError(
            f"Unknown content source '{fetch_settings.source}', "
            f"available: {', '.join(available_sources())}"
        )

    topics_path = fetch_settings.topics_config_path
    return FetchOrchestrator(
        service=service,
        quota=QuotaTracker(service, fetch_settings.max_requests_per_day),
        source_factory=source_class,
        config_loader=lambda: load_topics_config(topics_path),
        delay_base_seconds=fetch_settings.delay_base_seconds,
    )
