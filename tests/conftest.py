import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from httpx import AsyncClient, ASGITransport

from initdata_relay.config import RelayConfig
from initdata_relay.main import create_app

from .helpers import BOT_TOKEN, CLIENT_ID, CLIENT_SECRET


# ─── fixture: explicit config, never read from the environment ─────────
@pytest.fixture
def config():
    return RelayConfig(
        bot_token=BOT_TOKEN,
        client_id=CLIENT_ID,
        client_secret=CLIENT_SECRET,
        allowed_origin="https://example.org",
        rate_limit="1000/second",
    )


@pytest.fixture
def app(config):
    return create_app(config)


# ─── sync TestClient (simple) ──────────────────────────────────────────
@pytest.fixture
def client(app):
    return TestClient(app)


# ─── async client ──────────────────────────────────────────────────────
@pytest_asyncio.fixture
async def async_client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
