from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api import routes
from app.domain.service import AuthService
from app.security.passwords import PasswordHasher
from app.security.tokens import TokenIssuer

from support import TEST_ISSUER, TEST_SECRET, TEST_TTL_SECONDS, FakeClock, FakeRepository


@pytest.fixture()
def repository() -> FakeRepository:
    return FakeRepository()


@pytest.fixture(scope="session")
def hasher() -> PasswordHasher:
    # minimum bcrypt cost keeps the suite fast
    return PasswordHasher(rounds=4)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def token_issuer(clock: FakeClock) -> TokenIssuer:
    return TokenIssuer(
        secret=TEST_SECRET,
        ttl_seconds=TEST_TTL_SECONDS,
        issuer=TEST_ISSUER,
        clock=clock,
    )


@pytest.fixture()
def service(repository: FakeRepository, hasher: PasswordHasher, token_issuer: TokenIssuer) -> AuthService:
    return AuthService(repository, hasher, token_issuer)


def build_test_app(service: AuthService, token_issuer: TokenIssuer) -> FastAPI:
    app = FastAPI()
    app.include_router(routes.router)
    app.state.auth_service = service
    app.state.token_issuer = token_issuer
    return app


@pytest.fixture()
def api_client(service: AuthService, token_issuer: TokenIssuer):
    """Provide a FastAPI test client with isolated state."""
    with TestClient(build_test_app(service, token_issuer)) as client:
        yield client


@pytest.fixture()
def client_for_store(hasher: PasswordHasher, token_issuer: TokenIssuer):
    """Return a factory building a test client around an arbitrary credential store."""
    clients: list[TestClient] = []

    def factory(store) -> TestClient:
        client = TestClient(build_test_app(AuthService(store, hasher, token_issuer), token_issuer))
        client.__enter__()
        clients.append(client)
        return client

    yield factory

    for client in clients:
        client.__exit__(None, None, None)
