"""
Merkle Commitment Service - Main Entry Point

Provides APIs for publishing Merkle roots, building inclusion proofs and
verifying values against the trusted root.
"""

import signal
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI
from prometheus_client import Gauge, make_asgi_app
from starlette.responses import Response

from merkle_commit.api.v1 import router as api_v1_router
from merkle_commit.core.auth import APIKeyAuthMiddleware
from merkle_commit.core.config import settings
from merkle_commit.core.logging import setup_logging
from merkle_commit.crypto.hashing import HashCombinator
from merkle_commit.db import close_db, get_session_factory, init_db
from merkle_commit.metrics import get_merkle_metrics
from merkle_commit.services.commitment_service import CommitmentService
from merkle_commit.services.database_root_store import DatabaseRootStore
from merkle_commit.services.root_store import (
    InMemoryRootStore,
    RootNotPublishedError,
    RootStore,
    RootStoreError,
)

setup_logging()
logger = structlog.get_logger(__name__)

# Prometheus metrics
ROOT_STORE_AVAILABLE = Gauge(
    "merkle_root_store_available",
    "Root store reachability (1=reachable, 0=unreachable)",
)


def build_root_store() -> RootStore:
    """Create the root store selected by ROOT_STORE_BACKEND."""
    if settings.ROOT_STORE_BACKEND == "database":
        return DatabaseRootStore(get_session_factory())
    return InMemoryRootStore()


def build_commitment_service(root_store: RootStore) -> CommitmentService:
    """Create the commitment service from settings."""
    return CommitmentService(
        root_store,
        combinator=HashCombinator(settings.HASH_ALGORITHM),
        allow_empty_leaves=settings.ALLOW_EMPTY_LEAVES,
        max_leaves=settings.MAX_LEAVES,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    logger.info(
        "Starting Merkle Commitment Service",
        version=settings.VERSION,
        environment=settings.ENV,
        hash_algorithm=settings.HASH_ALGORITHM,
        root_store=settings.ROOT_STORE_BACKEND,
    )

    uses_database = False
    service: CommitmentService | None = getattr(app.state, "commitment_service", None)
    if service is None:
        if settings.ROOT_STORE_BACKEND == "database":
            await init_db()
            uses_database = True
        service = build_commitment_service(build_root_store())
        app.state.commitment_service = service

    ROOT_STORE_AVAILABLE.set(1)

    if not settings.API_AUTH_ENABLED:
        logger.warning("API key auth disabled - root publication is unrestricted")

    merkle_metrics = get_merkle_metrics()
    merkle_metrics.set_service_info(
        version=settings.VERSION,
        environment=settings.ENV,
        hash_algorithm=service.combinator.algorithm,
        root_store=type(service.root_store).__name__,
    )
    logger.info("Merkle metrics initialized")

    yield

    # Shutdown
    logger.info("Shutting down Merkle Commitment Service")

    await service.root_store.close()
    if uses_database:
        await close_db()

    logger.info("Merkle Commitment Service shutdown complete")


def create_application(commitment_service: CommitmentService | None = None) -> FastAPI:
    """
    Create FastAPI application.

    Args:
        commitment_service: Preconfigured service; built from settings
            at startup when omitted
    """
    app = FastAPI(
        title="Merkle Commitment API",
        description="Publishes Merkle roots and verifies inclusion proofs",
        version=settings.VERSION,
        docs_url="/docs" if settings.ENV != "production" else None,
        redoc_url="/redoc" if settings.ENV != "production" else None,
        lifespan=lifespan,
    )

    if commitment_service is not None:
        app.state.commitment_service = commitment_service

    app.add_middleware(APIKeyAuthMiddleware)

    # Include routers
    app.include_router(api_v1_router, prefix="/api/v1")

    # Metrics endpoint
    if settings.METRICS_ENABLED:
        metrics_app = make_asgi_app()
        app.mount("/metrics", metrics_app)

    # Health endpoints
    @app.get("/health")
    async def health() -> dict:
        """Overall service health check."""
        return {
            "status": "healthy",
            "service": "merkle-commit",
            "version": settings.VERSION,
            "hash_algorithm": settings.HASH_ALGORITHM,
            "root_store": settings.ROOT_STORE_BACKEND,
        }

    @app.get("/ready")
    async def ready() -> Response:
        """
        Readiness probe for Kubernetes.

        Checks that the root store can be read.
        """
        service = getattr(app.state, "commitment_service", None)
        if service is None:
            return Response(status_code=503, content="not ready - service not initialized")
        try:
            await service.root_store.count()
        except RootStoreError as e:
            ROOT_STORE_AVAILABLE.set(0)
            logger.error("Readiness check failed - root store unreachable", error=str(e))
            return Response(status_code=503, content="not ready - root store unavailable")
        ROOT_STORE_AVAILABLE.set(1)
        return Response(status_code=200, content="ready")

    @app.get("/live")
    async def live() -> Response:
        """Liveness probe for Kubernetes."""
        return Response(status_code=200, content="alive")

    @app.get("/status")
    async def status() -> dict:
        """Detailed service status."""
        service = getattr(app.state, "commitment_service", None)
        if service is None:
            return {
                "service": "merkle-commit",
                "version": settings.VERSION,
                "error": "Commitment service not initialized",
            }

        current_root: dict | None = None
        try:
            current_root = (await service.get_current_root()).to_dict()
        except RootNotPublishedError:
            current_root = None
        except RootStoreError as e:
            logger.warning("Status could not read root store", error=str(e))

        return {
            "service": "merkle-commit",
            "version": settings.VERSION,
            "environment": settings.ENV,
            "hash_algorithm": service.combinator.algorithm,
            "root_store": type(service.root_store).__name__,
            "current_root": current_root,
        }

    return app


app = create_application()


def handle_signal(signum: int, frame: object) -> None:
    """Handle shutdown signals."""
    logger.info(f"Received signal {signum}, initiating shutdown")
    sys.exit(0)


def main() -> None:
    """Run the service."""
    signal.signal(signal.SIGTERM, handle_signal)
    signal.signal(signal.SIGINT, handle_signal)

    logger.info(
        "Starting Merkle Commitment service",
        host=settings.HOST,
        port=settings.PORT,
        root_store=settings.ROOT_STORE_BACKEND,
    )

    uvicorn.run(
        "merkle_commit.main:app",
        host=settings.HOST,
        port=settings.PORT,
        workers=settings.WORKERS,
        log_level=settings.LOG_LEVEL.lower(),
        access_log=False,
    )


if __name__ == "__main__":
    main()
