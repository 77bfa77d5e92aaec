"""Quota ledger: daily and monthly conversion allowance per user.

Admission and commit are combined in `reserve`, a single conditional
increment in the store, so two concurrent submissions can never both pass
against a stale counter.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from convert_server.models import User
from convert_server.store import Store

logger = logging.getLogger(__name__)

DAILY_LIMIT_EXCEEDED = "daily_limit_exceeded"
MONTHLY_LIMIT_EXCEEDED = "monthly_limit_exceeded"

RESET_SCOPES = ("daily", "monthly", "both")


@dataclass(frozen=True)
class UsageSnapshot:
    plan: str
    daily_usage: int
    daily_limit: int
    monthly_usage: int
    monthly_limit: int

    @property
    def remaining_daily(self) -> int:
        return max(0, self.daily_limit - self.daily_usage)

    @property
    def remaining_monthly(self) -> int:
        return max(0, self.monthly_limit - self.monthly_usage)

    @classmethod
    def of(cls, user: User) -> "UsageSnapshot":
        return cls(
            plan=user.plan,
            daily_usage=user.daily_usage,
            daily_limit=user.daily_limit,
            monthly_usage=user.monthly_usage,
            monthly_limit=user.monthly_limit,
        )


@dataclass(frozen=True)
class Admission:
    allowed: bool
    usage: UsageSnapshot
    reason: Optional[str] = None


class UnknownUser(LookupError):
    pass


def period_keys(now: datetime) -> tuple[str, str]:
    return now.strftime("%Y-%m-%d"), now.strftime("%Y-%m")


def evaluate(usage: UsageSnapshot) -> Admission:
    if usage.daily_usage >= usage.daily_limit:
        return Admission(False, usage, DAILY_LIMIT_EXCEEDED)
    if usage.monthly_usage >= usage.monthly_limit:
        return Admission(False, usage, MONTHLY_LIMIT_EXCEEDED)
    return Admission(True, usage)


class QuotaLedger:
    def __init__(self, store: Store, clock: Callable[[], datetime] = datetime.utcnow):
        self._store = store
        self._clock = clock

    def _current(self, user_id: str) -> User:
        """Roll stale counters into the current period and reload the user."""
        day, month = period_keys(self._clock())
        self._store.roll_usage_period(user_id, day, month)
        user = self._store.get_user(user_id)
        if user is None:
            raise UnknownUser(user_id)
        return user

    def check_admission(self, user: User) -> Admission:
        """Pure read: would this user be admitted right now?"""
        day, month = period_keys(self._clock())
        usage = UsageSnapshot.of(user)
        if user.usage_day != day:
            usage = UsageSnapshot(usage.plan, 0, usage.daily_limit, usage.monthly_usage, usage.monthly_limit)
        if user.usage_month != month:
            usage = UsageSnapshot(usage.plan, usage.daily_usage, usage.daily_limit, 0, usage.monthly_limit)
        return evaluate(usage)

    def reserve(self, user_id: str) -> Admission:
        """Atomically admit and count one job, or report why not."""
        for _ in range(3):
            self._current(user_id)
            admitted = self._store.try_increment_usage(user_id)
            usage = UsageSnapshot.of(self._current(user_id))
            if admitted:
                return Admission(True, usage)
            denial = evaluate(usage)
            if not denial.allowed:
                logger.info("Quota denied for user %s: %s", user_id, denial.reason)
                return denial
            # A concurrent release or period rollover freed capacity; try again.
        return Admission(False, usage, DAILY_LIMIT_EXCEEDED)

    def commit(self, user_id: str) -> None:
        self._current(user_id)
        self._store.increment_usage(user_id)

    def release(self, user_id: str) -> None:
        """Give back one reservation when the job could not be created."""
        self._store.decrement_usage(user_id)

    def usage(self, user_id: str) -> UsageSnapshot:
        return UsageSnapshot.of(self._current(user_id))

    def reset_usage(self, user_id: str, scope: str) -> User:
        if scope not in RESET_SCOPES:
            raise ValueError(f"Reset scope must be one of: {', '.join(RESET_SCOPES)}")
        self._current(user_id)
        user = self._store.reset_usage(
            user_id,
            daily=scope in ("daily", "both"),
            monthly=scope in ("monthly", "both"),
        )
        if user is None:
            raise UnknownUser(user_id)
        logger.info("Reset %s usage for user %s", scope, user_id)
        return user

    def reset_all(self, scope: str) -> int:
        count = 0
        for user_id in self._store.list_user_ids():
            self.reset_usage(user_id, scope)
            count += 1
        return count
