from __future__ import annotations

import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import leadgen_pipeline.models  # noqa: F401
from leadgen_pipeline.db import Base
import leadgen_pipeline.db as db_module
import leadgen_pipeline.api as api_module
from leadgen_pipeline.processor import BusinessInput, create_processed_business

TEST_API_KEY = "test-mutation-key"


@pytest.fixture(scope="session")
def test_database_url() -> str:
    return os.getenv("LEADGEN_PIPELINE_TEST_DATABASE_URL", "sqlite://")


@pytest.fixture(scope="session")
def test_engine(test_database_url: str):
    if test_database_url.startswith("sqlite"):
        engine = create_engine(
            test_database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(test_database_url, pool_pre_ping=True)
    yield engine
    engine.dispose()


@pytest.fixture(autouse=True)
def _test_env(monkeypatch):
    monkeypatch.setenv("DOMAIN_PROBE_ENABLED", "false")
    monkeypatch.setenv("ENRICHMENT_DELAY_SECONDS", "0")
    monkeypatch.setenv("ALERT_SEND_DELAY_SECONDS", "0")
    monkeypatch.setenv("MUTATION_API_KEY", TEST_API_KEY)
    monkeypatch.setenv("MUTATION_LOCALHOST_BYPASS", "false")
    for key in (
        "INDUSTRY_TABLE_FILE",
        "HUNTER_API_KEY",
        "CLEARBIT_API_KEY",
        "APOLLO_API_KEY",
        "RAPIDAPI_KEY",
        "GOOGLE_PLACES_API_KEY",
        "TELEGRAM_BOT_TOKEN",
        "TELEGRAM_CHAT_ID",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def _bind_test_db(monkeypatch, test_engine):
    TestSessionLocal = sessionmaker(bind=test_engine, expire_on_commit=False)
    monkeypatch.setattr(db_module, "_engine", test_engine, raising=False)
    monkeypatch.setattr(db_module, "SessionLocal", TestSessionLocal, raising=False)
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)
    yield
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def db_session() -> Session:
    session = db_module.SessionLocal()
    try:
        yield session
        session.commit()
    finally:
        session.close()


@pytest.fixture
def make_business(db_session: Session):
    """Create a fully processed business through the processor."""

    def _make(**fields):
        fields.setdefault("business_name", "Acme Corp")
        business = create_processed_business(db_session, BusinessInput(**fields))
        db_session.commit()
        return business

    return _make


@pytest.fixture
def client():
    app = api_module.create_app()
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers() -> dict:
    return {"X-API-Key": TEST_API_KEY}
