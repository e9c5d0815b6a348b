"""
api/main.py — punkt wejścia FastAPI.

Lifespan:
  - Tworzy DocumentStore (Postgres albo pamięć) i Matcher (HTTP albo pamięć)
    wg config.Settings
  - Składa PercosertService
  - Przy zamknięciu zamyka połączenia

DSN: config.db_url może mieć prefiks 'postgresql+asyncpg://' (SQLAlchemy-style);
asyncpg oczekuje 'postgresql://'. Prefiks jest tu konwertowany.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from adapters.document_store.memory_document_store import InMemoryDocumentStore
from adapters.matcher.http_percolator import HttpPercolator
from adapters.matcher.memory_matcher import InMemoryMatcher
from api.routers import documents, percosert
from api.schemas import HealthResponse
from config import Settings
from core.percosert import PercosertService

logger = logging.getLogger("percosert")


def _asyncpg_dsn(url: str) -> str:
    """Konwertuje 'postgresql+asyncpg://...' → 'postgresql://...'."""
    return url.replace("postgresql+asyncpg://", "postgresql://", 1)


async def build_document_store(settings: Settings):
    if settings.store_backend == "memory":
        return InMemoryDocumentStore()
    # asyncpg importowany dopiero gdy faktycznie potrzebny
    from adapters.document_store.postgres_document_store import PostgresDocumentStore

    logger.info("Connecting to PostgreSQL...")
    return await PostgresDocumentStore.create(_asyncpg_dsn(settings.db_url))


def build_matcher(settings: Settings):
    if settings.matcher_backend == "memory":
        return InMemoryMatcher()
    return HttpPercolator(settings.percolator_url, timeout_ms=settings.matcher_timeout_ms)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings

    app.state.document_store = await build_document_store(settings)
    app.state.matcher = build_matcher(settings)
    app.state.service = PercosertService(
        matcher=app.state.matcher,
        store=app.state.document_store,
        default_timeout_ms=settings.default_write_timeout_ms,
    )

    logger.info(
        "Percosert API ready (store=%s, matcher=%s).",
        settings.store_backend, settings.matcher_backend,
    )
    yield

    logger.info("Shutting down — closing backends.")
    await app.state.matcher.close()
    await app.state.document_store.close()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()
    logging.basicConfig(level=settings.log_level.upper())

    app = FastAPI(
        title=settings.app_title,
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Health
    @app.get("/health", response_model=HealthResponse, tags=["health"])
    async def health(request: Request):
        store_status = "ok"
        ping = getattr(request.app.state.document_store, "ping", None)
        if ping is not None:
            try:
                await ping()
            except Exception as e:
                store_status = f"error: {e}"

        matcher_status = "ok"
        matcher_ping = getattr(request.app.state.matcher, "ping", None)
        if matcher_ping is not None and not await matcher_ping():
            matcher_status = "unreachable"

        healthy = store_status == "ok" and matcher_status == "ok"
        return HealthResponse(
            status="ok" if healthy else "degraded",
            store=store_status,
            matcher=matcher_status,
            version=settings.app_version,
        )

    # Routers
    app.include_router(percosert.router)
    app.include_router(documents.router)

    # Globalny handler błędów
    @app.exception_handler(KeyError)
    async def key_error_handler(request: Request, exc: KeyError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    return app


app = create_app()
