# convert_server/accounts.py
from datetime import datetime

from convert_server.auth import hash_password
from convert_server.crypto import generate_api_key, generate_id, get_key_prefix, hash_api_key
from convert_server.models import ApiKey, User
from convert_server.plans import PLAN_LIMITS, Plan, SubscriptionStatus
from convert_server.quota import period_keys


def new_api_key(user_id: str) -> tuple[ApiKey, str]:
    """Build a key record and return it with the secret, which is never stored."""
    secret = generate_api_key()
    record = ApiKey(
        id=generate_id("key"),
        user_id=user_id,
        key_hash=hash_api_key(secret),
        key_prefix=get_key_prefix(secret),
        is_active=True,
        usage_count=0,
        created_at=datetime.utcnow(),
    )
    return record, secret


def new_user(email: str, password: str, plan: Plan = Plan.FREE, is_admin: bool = False) -> User:
    limits = PLAN_LIMITS[plan]
    now = datetime.utcnow()
    day, month = period_keys(now)
    return User(
        id=generate_id("usr"),
        email=email.lower(),
        password_hash=hash_password(password),
        plan=plan.value,
        daily_limit=limits.daily,
        monthly_limit=limits.monthly,
        daily_usage=0,
        monthly_usage=0,
        usage_day=day,
        usage_month=month,
        subscription_status=SubscriptionStatus.ACTIVE.value,
        is_admin=is_admin,
        created_at=now,
    )
