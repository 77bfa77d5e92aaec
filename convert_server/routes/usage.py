# convert_server/routes/usage.py
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query

from convert_server.auth import Identity, require_admin, require_identity
from convert_server.errors import NotFound, envelope
from convert_server.plans import limits_for
from convert_server.quota import UnknownUser
from convert_server.schemas import JobView, PlanView, ResetUsageRequest, UsageView
from convert_server.services import Services, get_services

router = APIRouter(prefix="/api", tags=["usage"])


@router.get("/usage")
def get_usage(
    identity: Identity = Depends(require_identity),
    services: Services = Depends(get_services),
):
    """Current counters and limits for the caller."""
    return envelope(UsageView.of(services.ledger.usage(identity.user_id)).dump())


@router.get("/conversions")
def conversion_history(
    limit: int = Query(20, ge=1, le=100),
    identity: Identity = Depends(require_identity),
    services: Services = Depends(get_services),
):
    jobs = services.registry.list_by_owner(identity.user_id, limit)
    return envelope({
        "conversions": [JobView.of(job).dump() for job in jobs],
        "total": len(jobs),
    })


@router.get("/plan")
def get_plan(
    identity: Identity = Depends(require_identity),
    services: Services = Depends(get_services),
):
    user = services.store.get_user(identity.user_id)
    limits = limits_for(user.plan)
    return envelope(PlanView(
        plan=user.plan,
        subscription_status=user.subscription_status,
        daily_limit=user.daily_limit,
        monthly_limit=user.monthly_limit,
        price=limits.price,
        price_formatted=limits.price_formatted,
    ).dump())


@router.post("/usage/reset")
def reset_usage(
    request: Optional[ResetUsageRequest] = Body(None),
    identity: Identity = Depends(require_admin),
    services: Services = Depends(get_services),
):
    """Operator reset of a user's counters; scheduled resets use `convert-admin reset-usage`."""
    request = request or ResetUsageRequest()
    user_id = request.user_id or identity.user_id
    try:
        services.ledger.reset_usage(user_id, request.scope)
    except UnknownUser:
        raise NotFound("User not found", f"No user with id {user_id}")
    return envelope(UsageView.of(services.ledger.usage(user_id)).dump())
