# convert_server/routes/payment.py
from fastapi import APIRouter, Depends

from convert_server.auth import Identity, require_session
from convert_server.billing import PaymentUnavailable, Subscription, UnknownPlan
from convert_server.errors import NotImplementedYet, ValidationFailed, envelope
from convert_server.schemas import PlanView, SubscriptionRequest
from convert_server.services import Services, get_services

router = APIRouter(prefix="/api/payment", tags=["payment"])


def _view(subscription: Subscription) -> dict:
    return PlanView(
        plan=subscription.plan,
        subscription_status=subscription.status,
        daily_limit=subscription.limits.daily,
        monthly_limit=subscription.limits.monthly,
        price=subscription.limits.price,
        price_formatted=subscription.limits.price_formatted,
    ).dump()


@router.get("/subscription")
def get_subscription(
    identity: Identity = Depends(require_session),
    services: Services = Depends(get_services),
):
    return envelope(_view(services.billing.status(identity.user_id)))


@router.post("/subscription")
def change_subscription(
    request: SubscriptionRequest,
    identity: Identity = Depends(require_session),
    services: Services = Depends(get_services),
):
    """Switch plans. Only the free plan can be chosen without a payment processor."""
    try:
        services.billing.subscribe(identity.user_id, request.plan)
    except UnknownPlan as exc:
        raise ValidationFailed("Invalid plan", str(exc))
    except PaymentUnavailable as exc:
        raise NotImplementedYet("Payment not available", str(exc), plan=exc.plan)
    return envelope(_view(services.billing.status(identity.user_id)))


@router.delete("/subscription")
def cancel_subscription(
    identity: Identity = Depends(require_session),
    services: Services = Depends(get_services),
):
    services.billing.cancel(identity.user_id)
    return envelope(_view(services.billing.status(identity.user_id)))
