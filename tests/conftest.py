"""Shared fixtures: temporary SQLite store, fake identity provider, API client."""
from typing import Dict

import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.context import AppContext
from app.main import create_app
from auth.identity_providers import ExternalIdentity, ExternalIdentityError


class FakeVerifier:
    """In-memory stand-in for the external identity provider."""

    def __init__(self):
        self.identities: Dict[str, ExternalIdentity] = {}
        self.calls = []

    def register(self, token: str, **identity) -> None:
        self.identities[token] = ExternalIdentity(**identity)

    async def verify(self, token: str) -> ExternalIdentity:
        self.calls.append(token)
        try:
            return self.identities[token]
        except KeyError:
            raise ExternalIdentityError("unknown token")


@pytest.fixture
def settings(tmp_path):
    return Settings(
        jwt_secret="test-secret",
        database_url=f"sqlite:///{tmp_path / 'whereisit-test.db'}",
        transaction_max_attempts=3,
    )


@pytest.fixture
def verifier():
    fake = FakeVerifier()
    fake.register("token-a", uid="uid-a", email="a@x.com", name="Alice")
    fake.register("token-b", uid="uid-b", email="b@x.com", name="Bob", picture="https://img.example/b.png")
    fake.register("token-c", uid="uid-c", email="c@x.com", name="Carol")
    return fake


@pytest.fixture
async def ctx(settings, verifier):
    context = AppContext.build(settings, verifier=verifier)
    await context.startup()
    yield context
    await context.shutdown()


@pytest.fixture
async def alice(ctx):
    return await ctx.users.provision(email="a@x.com", name="Alice", uid="uid-a")


@pytest.fixture
async def bob(ctx):
    return await ctx.users.provision(
        email="b@x.com", name="Bob", uid="uid-b", photo_url="https://img.example/b.png"
    )


@pytest.fixture
def wallet():
    return {
        "postType": "lost",
        "thumbnail": "u",
        "title": "Wallet",
        "category": "Accessories",
        "location": "Park",
        "date": "2024-01-01",
    }


@pytest.fixture
def client(settings, verifier):
    app = create_app(context=AppContext.build(settings, verifier=verifier))
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def as_alice():
    return {"Authorization": "Bearer token-a"}


@pytest.fixture
def as_bob():
    return {"Authorization": "Bearer token-b"}
