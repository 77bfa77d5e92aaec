"""Plan changes and subscription status.

No payment processor is wired in: the free plan can always be selected
through the API, paid plans are assigned by an operator (``convert-admin
set-plan``) and a self-service upgrade is refused with `PaymentUnavailable`.
"""
import logging
from dataclasses import dataclass

from convert_server.models import User
from convert_server.plans import PLAN_LIMITS, Plan, PlanLimits, SubscriptionStatus
from convert_server.quota import UnknownUser
from convert_server.store import Store

logger = logging.getLogger(__name__)


class UnknownPlan(ValueError):
    def __init__(self, plan: str):
        super().__init__(f"Plan must be one of: {', '.join(p.value for p in Plan)}")
        self.plan = plan


class PaymentUnavailable(Exception):
    def __init__(self, plan: str):
        super().__init__(f"Online payment for the {plan} plan is not available")
        self.plan = plan


@dataclass(frozen=True)
class Subscription:
    plan: str
    status: str
    limits: PlanLimits


def parse_plan(value: str) -> Plan:
    try:
        return Plan(value)
    except ValueError:
        raise UnknownPlan(value)


class BillingService:
    def __init__(self, store: Store):
        self._store = store

    def _user(self, user_id: str) -> User:
        user = self._store.get_user(user_id)
        if user is None:
            raise UnknownUser(user_id)
        return user

    def status(self, user_id: str) -> Subscription:
        user = self._user(user_id)
        return Subscription(user.plan, user.subscription_status, PLAN_LIMITS[parse_plan(user.plan)])

    def change_plan(self, user_id: str, plan: str, status: str = SubscriptionStatus.ACTIVE.value) -> User:
        """Assign a plan and its limits. Current usage counters are kept."""
        chosen = parse_plan(plan)
        self._user(user_id)
        limits = PLAN_LIMITS[chosen]
        user = self._store.update_user(
            user_id,
            plan=chosen.value,
            daily_limit=limits.daily,
            monthly_limit=limits.monthly,
            subscription_status=status,
        )
        logger.info("User %s moved to plan %s (%s)", user_id, chosen.value, status)
        return user

    def subscribe(self, user_id: str, plan: str) -> User:
        chosen = parse_plan(plan)
        if chosen is not Plan.FREE:
            raise PaymentUnavailable(chosen.value)
        return self.change_plan(user_id, chosen.value)

    def cancel(self, user_id: str) -> User:
        """Drop back to the free plan."""
        return self.change_plan(user_id, Plan.FREE.value, SubscriptionStatus.CANCELLED.value)
