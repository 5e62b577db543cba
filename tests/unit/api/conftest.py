"""Fixtures for API unit tests: app with in-memory backends, lifespan entered, AsyncClient."""

import pytest
from httpx import ASGITransport, AsyncClient

from auditdna.config.settings import AppSettings
from auditdna.main import create_app

ENCRYPTION_KEY = "api-test-encryption-key-at-least-32-chars"


@pytest.fixture
def settings(tmp_path):
    return AppSettings(
        environment="test",
        storage_backend="memory",
        upload_dir=str(tmp_path / "uploads"),
        encryption_key=ENCRYPTION_KEY,
        mock_records_per_engine=20,
        notifications_enabled=False,
    )


@pytest.fixture
async def app(settings):
    """ASGITransport does not run the lifespan; enter it here so app.state is populated."""
    application = create_app(settings)
    async with application.router.lifespan_context(application):
        yield application


@pytest.fixture
async def async_client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def tenant_body():
    return {
        "companyName": "Acme Lending",
        "adminUser": {"email": "admin@acme.com", "password": "s3cret-passw0rd", "firstName": "Ada"},
    }
