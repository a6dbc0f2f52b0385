import asyncio

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from techstock.shared.core.middleware import RequestIDMiddleware, resolve_request_id
from techstock.shared.core.timeout import TimeoutMiddleware


def test_resolve_request_id_keeps_safe_ids():
    assert resolve_request_id("req-123") == "req-123"


@pytest.mark.parametrize("raw", [None, "", "x" * 65, "bad id\nwith newline"])
def test_resolve_request_id_replaces_unsafe_ids(raw):
    minted = resolve_request_id(raw)
    assert minted != raw
    assert len(minted) == 36


def _slow_app() -> FastAPI:
    app = FastAPI()

    @app.get("/slow")
    async def slow():
        await asyncio.sleep(5)
        return {"ok": True}

    @app.get("/fast")
    async def fast():
        return {"ok": True}

    app.add_middleware(TimeoutMiddleware, timeout_seconds=0.05)
    app.add_middleware(RequestIDMiddleware)
    return app


@pytest.mark.asyncio
async def test_timeout_returns_error_envelope():
    transport = ASGITransport(app=_slow_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/slow")

    assert response.status_code == 504
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == "gateway_timeout"
    assert "X-Request-ID" in response.headers


@pytest.mark.asyncio
async def test_fast_request_passes_through():
    transport = ASGITransport(app=_slow_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/fast", headers={"X-Request-ID": "abc"})

    assert response.status_code == 200
    assert response.headers["X-Request-ID"] == "abc"
