# convert_server/services.py
from dataclasses import dataclass

from fastapi import Request

from convert_server.artifacts import ArtifactStore
from convert_server.billing import BillingService
from convert_server.config import Settings
from convert_server.dispatcher import ConversionDispatcher
from convert_server.jobs import JobRegistry
from convert_server.quota import QuotaLedger
from convert_server.rate_limit import ApiKeyThrottle
from convert_server.redis_client import RedisConnector
from convert_server.store import Store


@dataclass
class Services:
    """Components wired together once at startup and shared by every request."""

    settings: Settings
    store: Store
    ledger: QuotaLedger
    registry: JobRegistry
    artifacts: ArtifactStore
    dispatcher: ConversionDispatcher
    billing: BillingService
    redis: RedisConnector
    throttle: ApiKeyThrottle


def get_services(request: Request) -> Services:
    return request.app.state.services
