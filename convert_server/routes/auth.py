# convert_server/routes/auth.py
from fastapi import APIRouter, Depends
from sqlalchemy.exc import IntegrityError

from convert_server.accounts import new_api_key, new_user
from convert_server.auth import Identity, create_jwt, require_session, verify_password
from convert_server.errors import Conflict, NotFound, Unauthorized, ValidationFailed, envelope
from convert_server.schemas import (
    ApiKeyView, AuthResponse, CreatedApiKey,
    LoginRequest, RegisterRequest,
    UsageView, UserView,
)
from convert_server.services import Services, get_services

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", status_code=201)
def register(request: RegisterRequest, services: Services = Depends(get_services)):
    """Create an account with one default API key."""
    if services.store.get_user_by_email(request.email.lower()):
        raise Conflict("Email already registered", "An account with this email already exists")

    user = new_user(request.email, request.password)
    api_key, secret = new_api_key(user.id)
    try:
        services.store.create_user(user, api_key)
    except IntegrityError:
        # Same email registered concurrently
        raise Conflict("Email already registered", "An account with this email already exists")

    settings = services.settings
    return envelope(AuthResponse(
        user=UserView.of(user),
        token=create_jwt(user.id, settings.jwt_secret, settings.jwt_expiry_seconds),
        expires_in=settings.jwt_expiry_seconds,
        api_key=secret,
    ).dump())


@router.post("/login")
def login(request: LoginRequest, services: Services = Depends(get_services)):
    user = services.store.get_user_by_email(request.email.lower())
    if not user or not verify_password(request.password, user.password_hash):
        raise Unauthorized("Invalid credentials", "Email or password is incorrect")

    settings = services.settings
    return envelope(AuthResponse(
        user=UserView.of(user),
        token=create_jwt(user.id, settings.jwt_secret, settings.jwt_expiry_seconds),
        expires_in=settings.jwt_expiry_seconds,
    ).dump())


@router.get("/profile")
def profile(
    identity: Identity = Depends(require_session),
    services: Services = Depends(get_services),
):
    usage = services.ledger.usage(identity.user_id)
    user = services.store.get_user(identity.user_id)
    return envelope({
        "user": UserView.of(user).dump(),
        "usage": UsageView.of(usage).dump(),
    })


# API key management (session only)

@router.post("/api-keys", status_code=201)
def create_api_key(
    identity: Identity = Depends(require_session),
    services: Services = Depends(get_services),
):
    active = [key for key in services.store.list_api_keys(identity.user_id) if key.is_active]
    limit = services.settings.max_api_keys_per_user
    if len(active) >= limit:
        raise ValidationFailed(
            "API key limit reached",
            f"You can have at most {limit} active API keys. Deactivate one first.",
        )

    record, secret = new_api_key(identity.user_id)
    services.store.create_api_key(record)
    view = ApiKeyView.of(record)
    return envelope(CreatedApiKey(key=secret, **view.model_dump()).dump())


@router.get("/api-keys")
def list_api_keys(
    identity: Identity = Depends(require_session),
    services: Services = Depends(get_services),
):
    keys = services.store.list_api_keys(identity.user_id)
    return envelope([ApiKeyView.of(key).dump() for key in keys])


@router.delete("/api-keys/{key_id}")
def deactivate_api_key(
    key_id: str,
    identity: Identity = Depends(require_session),
    services: Services = Depends(get_services),
):
    """Deactivate a key. Keys are never removed, and deactivation cannot be undone."""
    key = services.store.get_api_key(key_id)
    if key is None or key.user_id != identity.user_id:
        raise NotFound("API key not found")

    services.store.deactivate_api_key(key_id)
    return envelope(ApiKeyView.of(services.store.get_api_key(key_id)).dump())
