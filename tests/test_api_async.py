import pytest

from .helpers import make_signed_init_data


@pytest.mark.asyncio
async def test_rate_limit_header(async_client):
    body = {"initData": make_signed_init_data()}

    res = await async_client.post("/verify", json=body)
    assert res.status_code == 200
    assert res.headers["x-ratelimit-remaining"]


@pytest.mark.asyncio
async def test_cors_preflight(async_client):
    res = await async_client.options(
        "/verify",
        headers={
            "Origin": "https://example.org",
            "Access-Control-Request-Method": "POST",
        },
    )
    assert res.status_code == 200
    assert res.headers["access-control-allow-origin"] == "https://example.org"
