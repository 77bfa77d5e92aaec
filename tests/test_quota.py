# tests/test_quota.py
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

import pytest

from convert_server.quota import (
    DAILY_LIMIT_EXCEEDED,
    MONTHLY_LIMIT_EXCEEDED,
    QuotaLedger,
    UnknownUser,
)


class FixedClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FixedClock(datetime(2024, 5, 14, 12, 0))


@pytest.fixture
def ledger(store, clock):
    return QuotaLedger(store, clock=clock)


@pytest.fixture
def user(make_user):
    user, _ = make_user(usage_day="2024-05-14", usage_month="2024-05")
    return user


def test_reserve_increments_both_counters(ledger, user):
    admission = ledger.reserve(user.id)

    assert admission.allowed is True
    assert admission.usage.daily_usage == 1
    assert admission.usage.monthly_usage == 1


def test_user_one_below_daily_limit_is_admitted(ledger, make_user):
    """At limit - 1 the reserve succeeds and lands exactly on the limit."""
    user, _ = make_user(daily_usage=9, monthly_usage=9, usage_day="2024-05-14", usage_month="2024-05")

    admission = ledger.reserve(user.id)

    assert admission.allowed is True
    assert admission.usage.daily_usage == admission.usage.daily_limit == 10


def test_user_at_daily_limit_is_denied(ledger, make_user, store):
    user, _ = make_user(daily_usage=10, monthly_usage=10, usage_day="2024-05-14", usage_month="2024-05")

    admission = ledger.reserve(user.id)

    assert admission.allowed is False
    assert admission.reason == DAILY_LIMIT_EXCEEDED
    assert store.get_user(user.id).daily_usage == 10


def test_monthly_limit_denies_even_with_daily_room(ledger, make_user):
    user, _ = make_user(daily_usage=0, monthly_usage=100, usage_day="2024-05-14", usage_month="2024-05")

    admission = ledger.reserve(user.id)

    assert admission.allowed is False
    assert admission.reason == MONTHLY_LIMIT_EXCEEDED


def test_concurrent_reserves_count_every_admission(ledger, user, store):
    """Twenty parallel reservations against a limit of ten admit exactly ten."""
    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: ledger.reserve(user.id), range(20)))

    admitted = [r for r in results if r.allowed]
    assert len(admitted) == 10
    assert store.get_user(user.id).daily_usage == 10
    assert store.get_user(user.id).monthly_usage == 10


def test_concurrent_reserves_below_limit_lose_no_updates(ledger, make_user, store):
    user, _ = make_user(daily_limit=1000, monthly_limit=1000, usage_day="2024-05-14", usage_month="2024-05")

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: ledger.reserve(user.id), range(25)))

    assert all(r.allowed for r in results)
    assert store.get_user(user.id).daily_usage == 25


def test_new_day_rolls_daily_counter(ledger, make_user, clock, store):
    user, _ = make_user(daily_usage=10, monthly_usage=10, usage_day="2024-05-14", usage_month="2024-05")
    assert ledger.reserve(user.id).allowed is False

    clock.now = datetime(2024, 5, 15, 0, 1)
    admission = ledger.reserve(user.id)

    assert admission.allowed is True
    assert admission.usage.daily_usage == 1
    assert admission.usage.monthly_usage == 11
    assert store.get_user(user.id).usage_day == "2024-05-15"


def test_new_month_rolls_monthly_counter(ledger, make_user, clock):
    user, _ = make_user(daily_usage=3, monthly_usage=100, usage_day="2024-05-31", usage_month="2024-05")

    clock.now = datetime(2024, 6, 1, 9, 0)
    admission = ledger.reserve(user.id)

    assert admission.allowed is True
    assert admission.usage.daily_usage == 1
    assert admission.usage.monthly_usage == 1


def test_check_admission_does_not_mutate(ledger, make_user, store):
    user, _ = make_user(daily_usage=4, monthly_usage=4, usage_day="2024-05-14", usage_month="2024-05")

    admission = ledger.check_admission(user)

    assert admission.allowed is True
    assert store.get_user(user.id).daily_usage == 4


def test_check_admission_ignores_stale_period(ledger, make_user):
    user, _ = make_user(daily_usage=10, monthly_usage=10, usage_day="2024-05-13", usage_month="2024-05")

    admission = ledger.check_admission(user)

    assert admission.allowed is True
    assert admission.usage.daily_usage == 0


def test_commit_is_unconditional(ledger, make_user, store):
    user, _ = make_user(daily_usage=10, monthly_usage=10, usage_day="2024-05-14", usage_month="2024-05")

    ledger.commit(user.id)

    assert store.get_user(user.id).daily_usage == 11


def test_release_gives_back_a_reservation(ledger, user, store):
    ledger.reserve(user.id)
    ledger.release(user.id)

    assert store.get_user(user.id).daily_usage == 0


def test_release_never_goes_negative(ledger, user, store):
    ledger.release(user.id)

    refreshed = store.get_user(user.id)
    assert refreshed.daily_usage == 0
    assert refreshed.monthly_usage == 0


@pytest.mark.parametrize("scope,expected", [
    ("daily", (0, 7)),
    ("monthly", (5, 0)),
    ("both", (0, 0)),
])
def test_reset_usage_scopes(ledger, make_user, scope, expected):
    user, _ = make_user(daily_usage=5, monthly_usage=7, usage_day="2024-05-14", usage_month="2024-05")

    updated = ledger.reset_usage(user.id, scope)

    assert (updated.daily_usage, updated.monthly_usage) == expected


def test_reset_usage_rejects_unknown_scope(ledger, user):
    with pytest.raises(ValueError):
        ledger.reset_usage(user.id, "weekly")


def test_reset_usage_unknown_user(ledger):
    with pytest.raises(UnknownUser):
        ledger.reset_usage("usr_missing", "daily")


def test_reset_all_covers_every_user(ledger, make_user, store):
    first, _ = make_user("a@example.com", daily_usage=3, usage_day="2024-05-14", usage_month="2024-05")
    second, _ = make_user("b@example.com", daily_usage=8, usage_day="2024-05-14", usage_month="2024-05")

    assert ledger.reset_all("daily") == 2
    assert store.get_user(first.id).daily_usage == 0
    assert store.get_user(second.id).daily_usage == 0


def test_usage_snapshot_remaining(ledger, make_user):
    user, _ = make_user(daily_usage=4, monthly_usage=40, usage_day="2024-05-14", usage_month="2024-05")

    usage = ledger.usage(user.id)

    assert usage.remaining_daily == 6
    assert usage.remaining_monthly == 60
