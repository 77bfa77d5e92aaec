"""Credential gateway.

Two strategies converge on the same `Identity`: API keys (``sk-`` prefix) for
programmatic conversion, and signed session tokens (JWT) for dashboard and
management calls. `classify_credential` picks the strategy from the token text
alone.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends, Header

from convert_server.crypto import API_KEY_PREFIX, get_key_prefix, hash_api_key, is_valid_api_key_format
from convert_server.errors import Forbidden, QuotaExceeded, Unauthorized
from convert_server.metrics import QUOTA_DENIALS
from convert_server.models import ApiKey, User
from convert_server.quota import Admission, QuotaLedger
from convert_server.rate_limit import ApiKeyThrottle
from convert_server.services import Services, get_services
from convert_server.store import Store

logger = logging.getLogger(__name__)

API_KEY = "api_key"
SESSION = "session"


def hash_password(password: str) -> str:
    """Hash a password with bcrypt."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against its hash."""
    return bcrypt.checkpw(password.encode(), hashed.encode())


def create_jwt(user_id: str, secret: str, expiry_seconds: int) -> str:
    """Create a session token for a user."""
    now = datetime.utcnow()
    payload = {
        "user_id": user_id,
        "exp": now + timedelta(seconds=expiry_seconds),
        "iat": now,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def decode_jwt(token: str, secret: str) -> dict:
    """Decode and verify a session token."""
    try:
        return jwt.decode(token, secret, algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        raise Forbidden("Token expired", "Session token has expired, please log in again")
    except jwt.InvalidTokenError:
        raise Forbidden("Invalid token", "Session token signature is invalid")


def classify_credential(token: str) -> str:
    """API keys are recognized by prefix; everything else is a session token."""
    return API_KEY if token.startswith(API_KEY_PREFIX) else SESSION


def extract_bearer(authorization: Optional[str]) -> Optional[str]:
    """Token from an Authorization header; None when the header is absent."""
    if authorization is None or not authorization.strip():
        return None
    scheme, _, token = authorization.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token or " " in token:
        raise Unauthorized("Malformed credential", "Use 'Authorization: Bearer <token>'")
    return token


def quota_exceeded(admission: Admission) -> QuotaExceeded:
    """Build the 429 for a denied admission and count the denial."""
    QUOTA_DENIALS.labels(reason=admission.reason).inc()
    usage = admission.usage
    return QuotaExceeded(
        "Rate limit exceeded",
        "Daily conversion limit reached" if admission.reason == "daily_limit_exceeded"
        else "Monthly conversion limit reached",
        reason=admission.reason,
        plan=usage.plan,
        limits={
            "dailyUsage": usage.daily_usage,
            "dailyLimit": usage.daily_limit,
            "monthlyUsage": usage.monthly_usage,
            "monthlyLimit": usage.monthly_limit,
        },
    )


@dataclass(frozen=True)
class Identity:
    user: User
    method: str
    api_key: Optional[ApiKey] = None

    @property
    def user_id(self) -> str:
        return self.user.id


class CredentialVerifier(ABC):
    @abstractmethod
    async def verify(self, token: str, enforce_quota: bool = False) -> Identity:
        ...


class ApiKeyVerifier(CredentialVerifier):
    def __init__(self, store: Store, ledger: QuotaLedger, throttle: Optional[ApiKeyThrottle] = None):
        self._store = store
        self._ledger = ledger
        self._throttle = throttle

    async def verify(self, token: str, enforce_quota: bool = False) -> Identity:
        # Format check before any store lookup
        if not is_valid_api_key_format(token):
            raise Unauthorized("Malformed API key", "API keys look like sk- followed by 32 hex characters")

        api_key = self._store.get_api_key_by_hash(hash_api_key(token))
        if api_key is None:
            raise Unauthorized("Invalid API key")
        if not api_key.is_active:
            raise Unauthorized("API key has been deactivated")

        user = self._store.get_user(api_key.user_id)
        if user is None:
            raise Unauthorized("API key is associated with an unknown user")

        if self._throttle is not None:
            await self._throttle.check(api_key.id)

        if enforce_quota:
            admission = self._ledger.check_admission(user)
            if not admission.allowed:
                raise quota_exceeded(admission)

        self._store.record_api_key_use(api_key.id, datetime.utcnow())
        logger.debug("API request from user %s with key %s...", user.id, get_key_prefix(token))
        return Identity(user=user, method=API_KEY, api_key=api_key)


class SessionVerifier(CredentialVerifier):
    def __init__(self, store: Store, secret: str):
        self._store = store
        self._secret = secret

    async def verify(self, token: str, enforce_quota: bool = False) -> Identity:
        payload = decode_jwt(token, self._secret)
        user_id = payload.get("user_id")
        user = self._store.get_user(user_id) if user_id else None
        if user is None:
            raise Unauthorized("User not found")
        return Identity(user=user, method=SESSION)


class CredentialGateway:
    def __init__(self, api_keys: CredentialVerifier, sessions: CredentialVerifier):
        self._verifiers = {API_KEY: api_keys, SESSION: sessions}

    @classmethod
    def from_services(cls, services: Services) -> "CredentialGateway":
        return cls(
            ApiKeyVerifier(services.store, services.ledger, services.throttle),
            SessionVerifier(services.store, services.settings.jwt_secret),
        )

    async def authenticate(
        self,
        authorization: Optional[str],
        *,
        allowed: tuple[str, ...] = (API_KEY, SESSION),
        enforce_quota: bool = False,
    ) -> Identity:
        token = extract_bearer(authorization)
        if token is None:
            raise Unauthorized("Credential required", "Authorization header is required")
        kind = classify_credential(token)
        if kind not in allowed:
            raise Unauthorized(
                "Session token required" if kind == API_KEY else "API key required"
            )
        return await self._verifiers[kind].verify(token, enforce_quota=enforce_quota)


# Dependencies

async def require_session(
    authorization: Optional[str] = Header(None),
    services: Services = Depends(get_services),
) -> Identity:
    return await CredentialGateway.from_services(services).authenticate(
        authorization, allowed=(SESSION,)
    )


async def require_admin(identity: Identity = Depends(require_session)) -> Identity:
    """Session of an operator account."""
    if not identity.user.is_admin:
        raise Forbidden("Admin access required", "Only operator accounts can do this")
    return identity


async def require_identity(
    authorization: Optional[str] = Header(None),
    services: Services = Depends(get_services),
) -> Identity:
    """API key or session token, dispatched by prefix."""
    return await CredentialGateway.from_services(services).authenticate(authorization)


async def optional_identity(
    authorization: Optional[str] = Header(None),
    services: Services = Depends(get_services),
) -> Optional[Identity]:
    """Like require_identity, but None when no credential is sent at all."""
    if extract_bearer(authorization) is None:
        return None
    return await CredentialGateway.from_services(services).authenticate(authorization)


async def conversion_identity(
    authorization: Optional[str] = Header(None),
    services: Services = Depends(get_services),
) -> Optional[Identity]:
    """Submission credential with inline quota admission.

    Returns None only for credential-less requests in anonymous mode.
    """
    if extract_bearer(authorization) is None and services.settings.allow_anonymous_conversion:
        return None
    return await CredentialGateway.from_services(services).authenticate(
        authorization, enforce_quota=True
    )
