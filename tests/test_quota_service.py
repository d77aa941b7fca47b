from datetime import datetime, timedelta

from linkedin_indexer.models import FetchStatus
from linkedin_indexer.services.quota_service import QuotaTracker


def test_remaining_budget_counts_todays_attempts(service, quota_factory, now):
    quota = quota_factory(limit=3)
    assert quota.remaining_budget() == 3

    quota.record("rma", "nz", 4, FetchStatus.SUCCESS)
    quota.record("it", "nz", 0, FetchStatus.ERROR, "boom")

    assert quota.consumed_today() == 2
    assert quota.remaining_budget() == 1
    assert quota.can_proceed() is True

    quota.record("cloud", "au", 1, FetchStatus.SUCCESS)
    assert quota.remaining_budget() == 0
    assert quota.can_proceed() is False


def test_rate_limited_entries_do_not_consume(quota_factory):
    quota = quota_factory(limit=1)
    quota.record("rma", "nz", 0, FetchStatus.RATE_LIMITED, "429")
    assert quota.remaining_budget() == 1


def test_remaining_budget_never_negative(service, now):
    for _ in range(3):
        service.append_fetch_log("rma", "nz", 0, FetchStatus.SUCCESS, fetched_at=now)
    assert QuotaTracker(service, daily_limit=2, clock=lambda: now).remaining_budget() == 0


def test_budget_resets_at_utc_midnight(service):
    before_midnight = datetime(2024, 5, 14, 23, 59)
    after_midnight = datetime(2024, 5, 15, 0, 1)

    QuotaTracker(service, daily_limit=1, clock=lambda: before_midnight).record(
        "rma", "nz", 2, FetchStatus.SUCCESS
    )

    assert QuotaTracker(service, daily_limit=1, clock=lambda: before_midnight).can_proceed() is False
    assert QuotaTracker(service, daily_limit=1, clock=lambda: after_midnight).remaining_budget() == 1


def test_record_stamps_clock_time_and_extras(service, quota_factory, now):
    entry = quota_factory().record(
        "rma", "nz", 2, FetchStatus.SUCCESS, subregion="wellington", duration_ms=1500
    )
    assert entry.fetched_at == now
    assert entry.subregion == "wellington"
    assert entry.duration_ms == 1500
    assert entry.status == "success"


def test_entries_older_than_today_are_ignored(service, now):
    service.append_fetch_log("rma", "nz", 0, FetchStatus.SUCCESS, fetched_at=now - timedelta(days=1))
    assert QuotaTracker(service, daily_limit=1, clock=lambda: now).remaining_budget() == 1
