"""
Shared fixtures for identity service tests.

Each test gets its own SQLite file database, a low-cost hasher and a
clock that only moves when told to.
"""
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from onboarding_platform.identity_service.auth import PasswordHasher, SessionTokenIssuer
from onboarding_platform.identity_service.config import Settings
from onboarding_platform.identity_service.db import init_db, make_engine, make_session_factory
from onboarding_platform.identity_service.main import create_app
from onboarding_platform.identity_service.reset_tokens import ResetTokenService
from onboarding_platform.identity_service.service import IdentityService
from onboarding_platform.identity_service.store import AccountStore

TEST_SIGNING_KEY = "test-signing-key-not-for-production"
TEST_HASH_ROUNDS = 1000


class FakeClock:
    """Naive UTC clock advanced explicitly by tests."""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 1, 15, 10, 30, 0)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class RecordingDelivery:
    """Delivery double that keeps every (email, token) pair it was handed."""

    def __init__(self):
        self.sent = []

    def deliver(self, email, token):
        self.sent.append((email, token))

    @property
    def last_token(self):
        return self.sent[-1][1]


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'identity_test.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def store(session_factory):
    return AccountStore(session_factory)


@pytest.fixture
def hasher():
    return PasswordHasher(rounds=TEST_HASH_ROUNDS)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session_tokens():
    return SessionTokenIssuer(TEST_SIGNING_KEY)


@pytest.fixture
def reset_tokens(store, hasher, clock):
    return ResetTokenService(store, hasher, clock=clock)


@pytest.fixture
def delivery():
    return RecordingDelivery()


@pytest.fixture
def service(store, hasher, session_tokens, reset_tokens, delivery, session_factory):
    return IdentityService(
        store=store,
        hasher=hasher,
        session_tokens=session_tokens,
        reset_tokens=reset_tokens,
        delivery=delivery,
        event_sessions=session_factory,
    )


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'identity_api.db'}",
        JWT_SECRET=TEST_SIGNING_KEY,
        PASSWORD_HASH_ROUNDS=TEST_HASH_ROUNDS,
    )


@pytest.fixture
def client(settings, delivery):
    app = create_app(settings, delivery=delivery)
    with TestClient(app) as c:
        yield c
