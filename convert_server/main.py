# convert_server/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app

from convert_server import __version__
from convert_server.artifacts import ArtifactStore
from convert_server.billing import BillingService
from convert_server.config import Settings, get_settings
from convert_server.database import Base, make_engine, make_session_factory
from convert_server.dispatcher import ConversionDispatcher
from convert_server.engine import ConversionEngine, PlaceholderEngine
from convert_server.errors import envelope, install_error_handlers
from convert_server.jobs import JobRegistry
from convert_server.quota import QuotaLedger
from convert_server.rate_limit import ApiKeyThrottle
from convert_server.redis_client import RedisConnector
from convert_server.routes import auth_router, convert_router, payment_router, tools_router, usage_router
from convert_server.schemas import HealthResponse
from convert_server.services import Services
from convert_server.store import SqlStore, Store

logger = logging.getLogger(__name__)


def build_services(
    settings: Settings,
    store: Optional[Store] = None,
    engine: Optional[ConversionEngine] = None,
) -> Services:
    if store is None:
        db_engine = make_engine(settings.database_url)
        Base.metadata.create_all(bind=db_engine)
        store = SqlStore(make_session_factory(db_engine))

    registry = JobRegistry(store)
    artifacts = ArtifactStore(settings.upload_dir)
    redis = RedisConnector(settings.redis_url)
    return Services(
        settings=settings,
        store=store,
        ledger=QuotaLedger(store),
        registry=registry,
        artifacts=artifacts,
        dispatcher=ConversionDispatcher(
            registry,
            artifacts,
            engine or PlaceholderEngine(settings.simulated_processing_seconds),
            max_workers=settings.max_concurrent_jobs,
        ),
        billing=BillingService(store),
        redis=redis,
        throttle=ApiKeyThrottle(redis, settings.api_key_requests_per_minute),
    )


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[Store] = None,
    engine: Optional[ConversionEngine] = None,
) -> FastAPI:
    settings = settings or get_settings()
    settings.validate_secrets()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    services = build_services(settings, store, engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        services.artifacts.ensure_dirs()
        services.registry.recover_interrupted()
        logger.info("Conversion API ready (%d workers)", settings.max_concurrent_jobs)
        yield
        # Shutdown
        services.dispatcher.shutdown(wait=True)
        await services.redis.close()

    app = FastAPI(
        title="PDF Convert API",
        description="Asynchronous document conversion with usage-metered access",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.services = services

    install_error_handlers(app)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Mount Prometheus metrics
    app.mount("/metrics", make_asgi_app())

    # Include routers
    app.include_router(auth_router)
    app.include_router(convert_router)
    app.include_router(tools_router)
    app.include_router(usage_router)
    app.include_router(payment_router)

    @app.get("/api/health")
    def health():
        """Health check endpoint."""
        return envelope(HealthResponse(status="ok", version=__version__).model_dump())

    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
