import logging
import os
from typing import Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment variables
os.environ.update(
    {
        "DATABASE_URL": "sqlite://",
        "RAZORPAY_WEBHOOK_SECRET": "rzp_whsec_test",
        "ENTITLEMENT_PROVIDER": "razorpay",
        "LOG_LEVEL": "DEBUG",
    }
)

from payhook.core.config import Settings, get_settings

# Import app modules after setting environment variables
from payhook.db import models
from payhook.db.models import Base
from payhook.services.entitlement_store import SqlEntitlementStore, StoreUnavailable
from payhook.services.razorpay_verify import SIGNATURE_HEADER, sign

logger = logging.getLogger(__name__)


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest.fixture
def db_engine() -> Iterator[Engine]:
    # One shared in-memory connection so every session sees the same tables
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(session_factory) -> SqlEntitlementStore:
    return SqlEntitlementStore(session_factory)


class FlakyStore:
    """Wraps a store and fails the first ``failures`` upserts as unavailable."""

    def __init__(self, store, failures: int = 1):
        self.store = store
        self.failures = failures
        self.calls = 0

    def upsert(self, user_id, is_active, provider, now):
        self.calls += 1
        if self.calls <= self.failures:
            raise StoreUnavailable("connection refused")
        self.store.upsert(user_id, is_active, provider, now)

    def get(self, user_id):
        return self.store.get(user_id)


@pytest.fixture
def flaky_store(store) -> FlakyStore:
    return FlakyStore(store)


@pytest.fixture
def app_store(store):
    """Store the app under test writes to; override in a test module to swap it."""
    return store


@pytest.fixture
def client(app_store) -> Iterator[TestClient]:
    from payhook.main import app, get_store

    app.dependency_overrides[get_store] = lambda: app_store
    with TestClient(app) as test_client:
        logger.info("Test client created")
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def signed_headers(settings):
    def _headers(body: bytes, secret: str | None = None) -> dict[str, str]:
        return {
            SIGNATURE_HEADER: sign(body, secret or settings.razorpay_webhook_secret),
            "Content-Type": "application/json",
        }

    return _headers


@pytest.fixture
def subscription_count(session_factory):
    def _count(user_id: str) -> int:
        with session_factory() as db:
            return db.query(models.Subscription).filter_by(user_id=user_id).count()

    return _count
