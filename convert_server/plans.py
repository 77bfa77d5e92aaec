# convert_server/plans.py
from dataclasses import dataclass
from enum import Enum


class Plan(str, Enum):
    FREE = "free"
    STARTER = "starter"
    PRO = "pro"
    ENTERPRISE = "enterprise"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    CANCELLED = "cancelled"
    PAST_DUE = "past_due"


@dataclass(frozen=True)
class PlanLimits:
    daily: int
    monthly: int
    price: int  # cents per month

    @property
    def price_formatted(self) -> str:
        return f"${self.price / 100:.2f}"


PLAN_LIMITS: dict[Plan, PlanLimits] = {
    Plan.FREE: PlanLimits(daily=10, monthly=100, price=0),
    Plan.STARTER: PlanLimits(daily=100, monthly=1_000, price=900),
    Plan.PRO: PlanLimits(daily=1_000, monthly=10_000, price=2_900),
    Plan.ENTERPRISE: PlanLimits(daily=100_000, monthly=1_000_000, price=9_900),
}


def limits_for(plan: str) -> PlanLimits:
    """Limits for a plan name, falling back to free for unknown names."""
    try:
        return PLAN_LIMITS[Plan(plan)]
    except ValueError:
        return PLAN_LIMITS[Plan.FREE]
