"""Shared dependencies for API endpoints."""

import logging

from linkedin_indexer.config import get_settings
from linkedin_indexer.jobs.fetch_cycle_job import FetchOrchestrator, build_orchestrator
from linkedin_indexer.scheduler import FetchScheduler
from linkedin_indexer.services.data_service import DataService
from linkedin_indexer.topics import TopicConfig, load_topics_config

logger = logging.getLogger(__name__)

_service: DataService | None = None
_orchestrator: FetchOrchestrator | None = None
_scheduler: FetchScheduler | None = None


async def init_deps() -> None:
    """Initialize shared dependencies (called on app startup)."""
    global _service, _orchestrator, _scheduler
    settings = get_settings()

    _service = DataService(settings.database.path)
    _orchestrator = build_orchestrator(_service, settings)

    if settings.fetch.enable_scheduler:
        _scheduler = FetchScheduler(_orchestrator, settings.fetch.interval_hours)
        _scheduler.start()
    else:
        logger.info("Scheduler disabled (FETCH_ENABLE_SCHEDULER=false)")


async def close_deps() -> None:
    """Close shared dependencies (called on app shutdown)."""
    global _service, _orchestrator, _scheduler
    if _scheduler:
        _scheduler.shutdown()
        _scheduler = None
    _orchestrator = None
    if _service:
        _service.close()
        _service = None


def get_data_service() -> DataService:
    """Get the shared DataService."""
    assert _service is not None, "DataService not initialized, call init_deps() first"
    return _service


def get_orchestrator() -> FetchOrchestrator:
    """Get the shared FetchOrchestrator."""
    assert _orchestrator is not None, "FetchOrchestrator not initialized, call init_deps() first"
    return _orchestrator


def get_scheduler() -> FetchScheduler | None:
    return _scheduler


def get_topic_config() -> TopicConfig:
    """Topic configuration as currently on disk."""
    return load_topics_config(get_settings().fetch.topics_config_path)
