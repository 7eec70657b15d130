"""Pytest configuration and fixtures."""
import os
import tempfile

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

# Required configuration must exist before any application module is imported
_TMP_DIR = tempfile.mkdtemp(prefix="survey-tests-")
os.environ["ENVIRONMENT"] = "test"
os.environ["ADMIN_USERNAME"] = "admin"
os.environ["ADMIN_PASSWORD"] = "correct-horse-battery"
os.environ["JWT_SECRET"] = "test-secret-key-with-at-least-thirty-two-bytes"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP_DIR}/app.db"
os.environ["LOG_DIR"] = os.path.join(_TMP_DIR, "logs")

from survey_backend.config import Settings
from survey_backend.database import build_engine, get_db
from survey_backend.migrations import run_migrations

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "correct-horse-battery"


def make_settings(**overrides) -> Settings:
    """Settings for tests: rate limiting off and no login delay unless overridden."""
    values = {
        "environment": "test",
        "admin_username": ADMIN_USERNAME,
        "admin_password": ADMIN_PASSWORD,
        "jwt_secret": "test-secret-key-with-at-least-thirty-two-bytes",
        "rate_limit_disabled": True,
        "login_failure_delay_seconds": 0.0,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
async def test_engine(tmp_path):
    """Engine on a fresh, fully migrated SQLite database."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await run_migrations(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(test_engine):
    """Create test database session."""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()
        await session.close()


@pytest.fixture
def app_factory(test_engine):
    """Build apps bound to the test database; keyword arguments override settings."""
    from survey_backend.main import create_app

    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async def override_get_db():
        async with async_session() as session:
            try:
                yield session
            finally:
                await session.close()

    def _create(**overrides):
        app = create_app(make_settings(**overrides))
        app.dependency_overrides[get_db] = override_get_db
        return app

    return _create


@pytest.fixture
def test_app(app_factory):
    return app_factory()


@pytest.fixture
async def client(test_app):
    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test") as http_client:
        yield http_client


@pytest.fixture
async def admin_headers(client):
    """Authorization header carrying a freshly issued admin token."""
    response = await client.post(
        "/login", json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD}
    )
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def survey_payload():
    """Factory for a valid submission body; keyword arguments override fields."""

    def _payload(**overrides):
        payload = {
            "role": "Editor",
            "cmsUsage": "daily",
            "betaInterest": True,
            "email": "a@b.com",
            "features": {
                "offline": 3,
                "collaboration": 5,
                "assetManagement": 2,
                "pdfHandling": 4,
                "versionControl": 1,
                "workflows": 5,
            },
            "usageFrequency": "Daily",
            "teamSize": "2-5",
            "pricingModel": "Subscription",
            "biggestFrustrations": "Slow publishing",
        }
        payload.update(overrides)
        return payload

    return _payload
