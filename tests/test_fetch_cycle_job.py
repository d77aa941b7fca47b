import asyncio
import random

from conftest import FIXED_NOW, FakeContentSource, make_result

from linkedin_indexer.crawler.base import ContentDetails, RateLimitedError, SearchResult
from linkedin_indexer.jobs.fetch_cycle_job import FetchOrchestrator
from linkedin_indexer.models import AuthorInfo, ContentQuery
from linkedin_indexer.services.quota_service import QuotaTracker
from linkedin_indexer.topics import RegionConfig, TopicConfig, load_topics_config
from linkedin_indexer.utils.identity import generate_content_id

ONE_TASK = TopicConfig(regions={
    "nz": RegionConfig(name="New Zealand", subregions=["wellington"], topics=["rma"]),
})

RMA_TASK = ("rma", "nz", "wellington")


def make_orchestrator(service, source, config=ONE_TASK, limit=50):
    quota = QuotaTracker(service, daily_limit=limit, clock=lambda: FIXED_NOW)
    return FetchOrchestrator(
        service,
        quota,
        source_factory=lambda: source,
        config_loader=lambda: config,
        delay_base_seconds=0,
        rng=random.Random(1),
    )


def test_cycle_persists_content_authors_and_log(service):
    article = "https://www.linkedin.com/pulse/rma-reform-jane-doe"
    post = "https://www.linkedin.com/posts/bob_rma-activity-1"
    source = FakeContentSource(
        results={RMA_TASK: [
            make_result(article, title="RMA reform"),
            make_result(post, title="Thoughts", author_name="Bob", author_profile_url="https://www.linkedin.com/in/bob"),
        ]},
        details={article: ContentDetails(
            author_name="Jane Doe",
            author_profile_url="https://www.linkedin.com/in/jane-doe",
            excerpt="The reform...",
            published_date="2024-05-01T08:00:00Z",
        )},
    )
    orchestrator = make_orchestrator(service, source)

    stats = asyncio.run(orchestrator.run_cycle())

    assert stats.tasks_planned == 1
    assert stats.tasks_attempted == 1
    assert stats.items_found == 2
    assert stats.items_saved == 2
    assert stats.authors_created == 2
    assert stats.stop_reason is None
    assert stats.remaining_budget == 49
    assert source.entered and source.exited
    assert source.detail_calls == [article, post]

    stored = service.get_content_by_id(generate_content_id(article))
    assert stored.author_id == "jane-doe"
    assert stored.excerpt == "The reform..."
    assert stored.content_type == "article"
    assert stored.published_at.isoformat() == "2024-05-01T08:00:00"
    assert [(t.topic, t.region, t.subregion) for t in stored.topics] == [RMA_TASK]

    stored_post = service.get_content_by_id(generate_content_id(post))
    assert stored_post.content_type == "post"
    assert stored_post.published_at == FIXED_NOW
    assert stored_post.author.name == "Bob"

    [entry] = service.recent_fetch_logs()
    assert (entry.topic, entry.region, entry.subregion) == RMA_TASK
    assert entry.status == "success"
    assert entry.items_found == 2
    assert entry.fetched_at == FIXED_NOW
    assert not orchestrator.is_running


def test_cycle_stops_when_quota_exhausted(service, topics_file):
    source = FakeContentSource()
    orchestrator = make_orchestrator(service, source, load_topics_config(topics_file), limit=2)

    stats = asyncio.run(orchestrator.run_cycle())

    assert stats.tasks_planned == 5
    assert stats.tasks_attempted == 2
    assert stats.stopped_by_quota
    assert len(source.searches) == 2
    assert len(service.recent_fetch_logs(100)) == 2
    assert stats.remaining_budget == 0


def test_cycle_with_no_budget_touches_nothing(service, topics_file):
    source = FakeContentSource()
    orchestrator = make_orchestrator(service, source, load_topics_config(topics_file), limit=0)

    stats = asyncio.run(orchestrator.run_cycle())

    assert stats.tasks_attempted == 0
    assert source.searches == []
    assert service.recent_fetch_logs() == []


def test_search_failure_is_isolated_to_its_task(service, topics_file):
    failing = ("it", "nz", "auckland")
    source = FakeContentSource(results={
        failing: RuntimeError("timeout"),
        ("cloud", "au", None): [make_result("https://www.linkedin.com/posts/x")],
    })
    orchestrator = make_orchestrator(service, source, load_topics_config(topics_file))

    stats = asyncio.run(orchestrator.run_cycle())

    assert stats.tasks_attempted == 5
    assert stats.tasks_failed == 1
    assert stats.items_saved == 1
    entries = service.recent_fetch_logs(100)
    assert len(entries) == 5
    [error] = [e for e in entries if e.status == "error"]
    assert (error.topic, error.region, error.subregion) == failing
    assert error.items_found == 0
    assert error.error_message == "timeout"
    assert len([e for e in entries if e.status == "success"]) == 4


def test_rate_limited_search_is_isolated_and_does_not_spend_quota(service, topics_file):
    config = load_topics_config(topics_file)
    throttled = [("rma", "nz", "wellington"), ("rma", "nz", "auckland"),
                 ("it", "nz", "wellington"), ("it", "nz", "auckland")]
    results = {task: RateLimitedError("HTTP 429") for task in throttled}
    results[("cloud", "au", None)] = [make_result("https://www.linkedin.com/posts/cloud")]
    source = FakeContentSource(results=results)
    orchestrator = make_orchestrator(service, source, config, limit=5)

    stats = asyncio.run(orchestrator.run_cycle())

    assert stats.tasks_attempted == 5
    assert stats.tasks_failed == 4
    assert stats.stop_reason is None
    assert len(source.searches) == 5
    entries = service.recent_fetch_logs(100)
    assert sorted(e.status for e in entries) == ["rate_limited"] * 4 + ["success"]
    assert stats.items_saved == 1
    # Only the successful attempt counts against the daily budget
    assert orchestrator.quota.remaining_budget() == 4


def test_trigger_during_source_acquisition_is_ignored(service):
    async def scenario():
        enter_gate = asyncio.Event()
        source = FakeContentSource(enter_gate=enter_gate)
        orchestrator = make_orchestrator(service, source)

        first = orchestrator.trigger()
        while source.enter_calls == 0:
            await asyncio.sleep(0)

        # First cycle is still inside __aenter__
        assert orchestrator.is_running
        second = await orchestrator.run_cycle()
        searches_during_acquisition = len(source.searches)
        logs_during_acquisition = len(service.recent_fetch_logs())

        enter_gate.set()
        stats = await first
        return source, second, searches_during_acquisition, logs_during_acquisition, stats

    source, second, searches, logs, stats = asyncio.run(scenario())

    assert second is None
    assert searches == 0
    assert logs == 0
    assert source.enter_calls == 1
    assert stats.tasks_attempted == 1
    assert len(service.recent_fetch_logs()) == 1


def test_single_region_cycle_end_to_end(service):
    config = TopicConfig.model_validate(
        {"regions": {"nz": {"name": "NZ", "subregions": None, "topics": ["rma"]}}}
    )
    item = SearchResult.model_validate({
        "url": "https://linkedin.com/posts/1",
        "title": "T",
        "excerpt": "E",
        "authorName": "A",
        "authorProfileUrl": "https://linkedin.com/in/a",
        "contentType": "post",
    })
    source = FakeContentSource(results={("rma", "nz", None): [item]})

    asyncio.run(make_orchestrator(service, source, config).run_cycle())

    [content] = service.query_content(ContentQuery())
    assert content.url == "https://linkedin.com/posts/1"
    assert content.title == "T"
    assert content.excerpt == "E"

    [author] = service.list_authors()
    assert author.profile_url == "https://linkedin.com/in/a"
    assert author.name == "A"
    assert content.author_id == author.id

    assert [(t.topic, t.region, t.subregion) for t in content.topics] == [("rma", "nz", None)]

    [entry] = service.recent_fetch_logs()
    assert entry.status == "success"
    assert entry.items_found == 1


def test_overlapping_cycle_is_ignored(service):
    async def scenario():
        gate = asyncio.Event()
        source = FakeContentSource(gate=gate)
        orchestrator = make_orchestrator(service, source)

        first = asyncio.create_task(orchestrator.run_cycle())
        while not source.searches:
            await asyncio.sleep(0)

        assert orchestrator.is_running
        second = await orchestrator.run_cycle()
        triggered = await orchestrator.trigger()

        gate.set()
        return source, second, triggered, await first

    source, second, triggered, stats = asyncio.run(scenario())

    assert second is None
    assert triggered is None
    assert stats.tasks_attempted == 1
    assert len(source.searches) == 1
    assert len(service.recent_fetch_logs()) == 1


def test_trigger_returns_task_with_stats(service):
    async def scenario():
        orchestrator = make_orchestrator(service, FakeContentSource())
        task = orchestrator.trigger()
        assert isinstance(task, asyncio.Task)
        return await task

    stats = asyncio.run(scenario())
    assert stats.tasks_attempted == 1


def test_source_acquisition_failure_aborts_cycle(service):
    source = FakeContentSource(enter_error=RuntimeError("browser failed to launch"))
    orchestrator = make_orchestrator(service, source)

    stats = asyncio.run(orchestrator.run_cycle())

    assert stats.error == "browser failed to launch"
    assert stats.tasks_attempted == 0
    assert service.recent_fetch_logs() == []
    assert not orchestrator.is_running

    # The lock was released, so the next cycle runs
    source.enter_error = None
    assert asyncio.run(orchestrator.run_cycle()).tasks_attempted == 1


def test_config_load_failure_releases_source(service):
    source = FakeContentSource()
    quota = QuotaTracker(service, clock=lambda: FIXED_NOW)

    def broken_config():
        raise FileNotFoundError("config/topics.json")

    orchestrator = FetchOrchestrator(service, quota, lambda: source, broken_config, delay_base_seconds=0)
    stats = asyncio.run(orchestrator.run_cycle())

    assert "topics.json" in stats.error
    assert source.exited
    assert service.recent_fetch_logs() == []


def test_enrichment_failure_keeps_search_fields(service):
    url = "https://www.linkedin.com/posts/a"
    source = FakeContentSource(
        results={RMA_TASK: [make_result(url, title="From search", excerpt="search excerpt")]},
        details={url: RuntimeError("detail page timeout")},
    )

    stats = asyncio.run(make_orchestrator(service, source).run_cycle())

    assert stats.items_saved == 1
    stored = service.get_content_by_id(generate_content_id(url))
    assert stored.title == "From search"
    assert stored.excerpt == "search excerpt"
    assert stored.author_id is None


def test_empty_detail_fields_do_not_override(service):
    url = "https://www.linkedin.com/posts/a"
    source = FakeContentSource(
        results={RMA_TASK: [make_result(url, title="From search", excerpt="search excerpt", likes=3)]},
        details={url: ContentDetails(title="From page", excerpt="", likes=7)},
    )

    asyncio.run(make_orchestrator(service, source).run_cycle())

    stored = service.get_content_by_id(generate_content_id(url))
    assert stored.title == "From page"
    assert stored.excerpt == "search excerpt"
    assert stored.likes == 7


def test_persistence_failure_does_not_change_logged_count(service, monkeypatch):
    good = "https://www.linkedin.com/posts/good"
    bad = "https://www.linkedin.com/posts/bad"
    source = FakeContentSource(results={RMA_TASK: [make_result(bad), make_result(good)]})

    original = service.upsert_content

    def flaky_upsert(content, topics):
        if content.url == bad:
            raise RuntimeError("database is locked")
        return original(content, topics)

    monkeypatch.setattr(service, "upsert_content", flaky_upsert)

    stats = asyncio.run(make_orchestrator(service, source).run_cycle())

    assert stats.items_saved == 1
    assert stats.items_failed == 1
    [entry] = service.recent_fetch_logs()
    assert entry.status == "success"
    assert entry.items_found == 2
    assert service.get_content_by_id(generate_content_id(good)) is not None


def test_existing_author_is_not_overwritten(service):
    service.upsert_author(AuthorInfo(
        id="jane-doe",
        name="Jane (first seen)",
        headline="Planner",
        profile_url="https://www.linkedin.com/in/jane-doe",
        fetched_at=FIXED_NOW,
    ))
    source = FakeContentSource(results={RMA_TASK: [make_result(
        "https://www.linkedin.com/posts/a",
        author_name="Jane Renamed",
        author_profile_url="https://www.linkedin.com/in/jane-doe",
    )]})

    stats = asyncio.run(make_orchestrator(service, source).run_cycle())

    assert stats.authors_created == 0
    author = service.get_author_by_id("jane-doe")
    assert author.name == "Jane (first seen)"
    assert author.headline == "Planner"
    [item] = service.query_content(ContentQuery(author_id="jane-doe"))
    assert item.url == "https://www.linkedin.com/posts/a"


def test_refetch_overwrites_content_and_keeps_single_row(service):
    url = "https://www.linkedin.com/posts/a"
    source = FakeContentSource(results={RMA_TASK: [make_result(url, title="v1")]})
    orchestrator = make_orchestrator(service, source)
    asyncio.run(orchestrator.run_cycle())

    source.results[RMA_TASK] = [make_result(url, title="v2")]
    asyncio.run(orchestrator.run_cycle())

    items = service.query_content(ContentQuery())
    assert [i.title for i in items] == ["v2"]
    assert len(service.recent_fetch_logs()) == 2
