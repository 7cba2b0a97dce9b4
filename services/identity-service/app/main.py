"""FastAPI application wiring for the identity service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from psycopg_pool import ConnectionPool

from .api.routes import router as v1_router
from .config import Settings, get_settings
from .domain.service import AuthService
from .repository import AccountRepository
from .security.passwords import PasswordHasher
from .security.tokens import TokenIssuer

settings = get_settings()

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    """Install the root handler format and apply ``LOG_LEVEL``; invalid levels raise ``ValueError``."""
    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger().setLevel(settings.log_level)


def build_token_issuer(settings: Settings) -> TokenIssuer:
    """Load the signing configuration once; the issuer is never mutated afterwards."""
    return TokenIssuer(
        secret=settings.jwt_secret,
        ttl_seconds=settings.jwt_ttl_seconds,
        issuer=settings.jwt_issuer,
        algorithm=settings.jwt_algorithm,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialise shared resources (Postgres pool, signing key, services) for the app lifecycle."""
    configure_logging(settings)
    token_issuer = build_token_issuer(settings)
    pool = ConnectionPool(
        settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
        timeout=settings.pool_timeout_seconds,
        open=False,
    )
    pool.open()
    repository = AccountRepository(pool)
    if settings.auto_migrate:
        repository.ensure_schema()
    app.state.pool = pool
    app.state.token_issuer = token_issuer
    app.state.auth_service = AuthService(
        repository,
        PasswordHasher(rounds=settings.bcrypt_rounds),
        token_issuer,
    )
    logger.info("%s %s ready", settings.app_name, settings.version)
    try:
        yield
    finally:
        pool.close()


app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=600,
)


@app.get("/healthz", tags=["health"])
def healthz() -> dict[str, str]:
    """Return a minimal readiness indicator used by orchestration systems."""
    return {"status": "ok"}


@app.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


app.include_router(v1_router)


if __name__ == "__main__":
    configure_logging(settings)
    uvicorn.run(
        "app.main:app",
        host=settings.http_host,
        port=settings.http_port,
        log_level=settings.log_level.lower(),
    )
