"""FastAPI application wiring for the account service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from psycopg_pool import ConnectionPool

from .api.routes import router as v1_router
from .config import get_settings
from .domain.service import AccountService
from .repository import InMemoryAccountRepository, PostgresAccountRepository

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

logger = logging.getLogger(__name__)

settings = get_settings()


def configure_logging(*, level: str) -> None:
    """Configure process logging with consistent format and runtime level."""
    normalized_level = level.strip().upper() if level.strip() else "INFO"
    logging.basicConfig(
        level=getattr(logging, normalized_level, logging.INFO),
        format=_LOG_FORMAT,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialise the configured storage backend and the account service."""
    configure_logging(level=settings.log_level)
    if settings.storage_backend == "memory":
        logger.info("account storage using in-memory backend")
        app.state.account_service = AccountService(
            InMemoryAccountRepository(), max_per_page=settings.max_per_page
        )
        yield
        return

    pool = ConnectionPool(settings.database_url, open=False)
    pool.open()
    repository = PostgresAccountRepository(pool)
    repository.ensure_schema()
    logger.info("account storage using postgres backend")
    app.state.account_service = AccountService(repository, max_per_page=settings.max_per_page)
    try:
        yield
    finally:
        pool.close()


app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)


@app.get("/healthz", tags=["health"])
def healthz() -> dict[str, str]:
    """Return a minimal readiness indicator used by orchestration systems."""
    return {"status": "ok"}


@app.get("/metrics")
def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


app.include_router(v1_router)
