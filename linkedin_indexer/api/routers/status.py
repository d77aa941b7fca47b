"""Health, topic configuration, quota status and manual fetch trigger."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from linkedin_indexer.api.deps import (
    get_data_service,
    get_orchestrator,
    get_scheduler,
    get_topic_config,
)
from linkedin_indexer.jobs.fetch_cycle_job import FetchOrchestrator
from linkedin_indexer.services.data_service import DataService
from linkedin_indexer.utils.dates import isoformat, utcnow

logger = logging.getLogger(__name__)
router = APIRouter(tags=["status"])

RECENT_FETCHES = 10


@router.get("/health")
async def health() -> dict:
    """Basic health check."""
    return {"status": "ok", "timestamp": isoformat(utcnow())}


@router.get("/topics")
def topics() -> dict:
    try:
        config = get_topic_config()
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load topic config: {e}")
        raise HTTPException(status_code=500, detail="Failed to load topics config")
    return config.model_dump()


@router.get("/status")
def status(
    service: DataService = Depends(get_data_service),
    orchestrator: FetchOrchestrator = Depends(get_orchestrator),
) -> dict:
    quota = orchestrator.quota
    scheduler = get_scheduler()
    last = orchestrator.last_stats
    return {
        "remaining_requests_today": quota.remaining_budget(),
        "max_requests_per_day": quota.daily_limit,
        "consumed_today": quota.consumed_today(),
        "is_fetching": orchestrator.is_running,
        "next_scheduled_run": scheduler.next_run_time() if scheduler else None,
        "last_cycle": last.to_dict() if last else None,
        "recent_fetches": [entry.to_dict() for entry in service.recent_fetch_logs(RECENT_FETCHES)],
        "totals": service.get_overview(quota.now()),
    }


@router.post("/fetch", status_code=202)
async def trigger_fetch(orchestrator: FetchOrchestrator = Depends(get_orchestrator)) -> dict:
    """Start a fetch cycle in the background and acknowledge immediately."""
    already_running = orchestrator.is_running
    orchestrator.trigger()
    return {
        "message": "Fetch already in progress" if already_running else "Fetch started",
        "already_running": already_running,
    }
