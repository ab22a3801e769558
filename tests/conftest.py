from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("ENV", "dev")
os.environ.setdefault("AIRWALLEX_WEBHOOK_SECRET", "whsec_test_secret")
os.environ.setdefault("SUPABASE_JWT_SECRET", "jwt_test_secret_0123456789abcdef")
os.environ.setdefault("CORS_ALLOWED_ORIGINS", "https://hivemind-ar.vercel.app,http://localhost:5173,http://localhost:3000")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import gallery_billing.models  # noqa: F401  registers tables
from gallery_billing.api.deps import get_payment_provider
from gallery_billing.db.base import Base
from gallery_billing.db.session import get_db
from gallery_billing.main import app
from tests.testkit import FakePaymentProvider


@pytest.fixture()
def db():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine, autoflush=False, autocommit=False)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture()
def provider() -> FakePaymentProvider:
    return FakePaymentProvider()


@pytest.fixture()
def client(db, provider):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_payment_provider] = lambda: provider
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()
