"""Command line entry point.

Usage:
    python -m linkedin_indexer serve
    python -m linkedin_indexer fetch
    python -m linkedin_indexer status
    python -m linkedin_indexer tasks
    python -m linkedin_indexer search rma-reform nz --subregion wellington
"""

import argparse
import asyncio
import json
import logging
import sys

from linkedin_indexer.config import get_settings

# LOG_LEVEL from the environment or .env
log_level = get_settings().log_level
logging.basicConfig(
    level=getattr(logging, log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    api_settings = get_settings().api
    uvicorn.run(
        "linkedin_indexer.api.main:app",
        host=args.host or api_settings.host,
        port=args.port or api_settings.port,
        log_level=log_level.lower(),
    )
    return 0


def cmd_fetch(args: argparse.Namespace) -> int:
    from linkedin_indexer.jobs.fetch_cycle_job import build_orchestrator
    from linkedin_indexer.services.data_service import DataService

    service = DataService()
    try:
        orchestrator = build_orchestrator(service)
        stats = asyncio.run(orchestrator.run_cycle())
    finally:
        service.close()

    if stats is None:
        return 1
    print(json.dumps(stats.to_dict(), indent=2))
    return 1 if stats.error else 0


def cmd_status(args: argparse.Namespace) -> int:
    from linkedin_indexer.services.data_service import DataService
    from linkedin_indexer.services.quota_service import QuotaTracker

    service = DataService()
    try:
        quota = QuotaTracker(service, get_settings().fetch.max_requests_per_day)
        print(json.dumps({
            "remaining_requests_today": quota.remaining_budget(),
            "max_requests_per_day": quota.daily_limit,
            "consumed_today": quota.consumed_today(),
            "recent_fetches": [e.to_dict() for e in service.recent_fetch_logs(10)],
            "totals": service.get_overview(),
        }, indent=2))
    finally:
        service.close()
    return 0


def cmd_tasks(args: argparse.Namespace) -> int:
    from linkedin_indexer.topics import expand_tasks, load_topics_config

    tasks = expand_tasks(load_topics_config(get_settings().fetch.topics_config_path))
    for task in tasks:
        print(task.label)
    print(f"{len(tasks)} tasks")
    return 0


def cmd_search(args: argparse.Namespace) -> int:
    """One source search with details, nothing persisted, no quota used."""
    from linkedin_indexer.crawler.registry import get_source
    import linkedin_indexer.crawler.linkedin  # noqa: F401  Register linkedin source

    source_class = get_source(get_settings().fetch.source)
    if source_class is None:
        logger.error(f"Unknown content source '{get_settings().fetch.source}'")
        return 1

    async def run() -> list[dict]:
        async with source_class() as source:
            results = await source.search(args.topic, args.region, args.subregion)
            if args.details:
                results = [r.with_details(await source.fetch_details(r.url)) for r in results]
            return [r.model_dump(mode="json") for r in results]

    print(json.dumps(asyncio.run(run()), indent=2, ensure_ascii=False))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="linkedin_indexer",
        description="Index LinkedIn articles and posts by topic and region",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API (and scheduler)")
    serve.add_argument("--host", default=None, help="Bind address (default: API_HOST)")
    serve.add_argument("--port", type=int, default=None, help="Port (default: API_PORT)")
    serve.set_defaults(func=cmd_serve)

    fetch = subparsers.add_parser("fetch", help="Run one fetch cycle in the foreground")
    fetch.set_defaults(func=cmd_fetch)

    status = subparsers.add_parser("status", help="Show quota and recent fetches")
    status.set_defaults(func=cmd_status)

    tasks = subparsers.add_parser("tasks", help="List the tasks the topic config expands to")
    tasks.set_defaults(func=cmd_tasks)

    search = subparsers.add_parser("search", help="Run one search without saving anything")
    search.add_argument("topic")
    search.add_argument("region")
    search.add_argument("--subregion", default=None)
    search.add_argument("--details", action="store_true", help="Also fetch each result's details")
    search.set_defaults(func=cmd_search)

    args = parser.parse_args(argv)
    try:
        return args.func(args)
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
