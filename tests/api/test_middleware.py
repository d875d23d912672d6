"""Tests for RequestIDMiddleware."""

import pytest
from uuid import UUID
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.testclient import TestClient

from api.middleware import RequestIDMiddleware


@pytest.fixture
def app():
    """Minimal FastAPI app with RequestIDMiddleware."""
    app = FastAPI()
    app.add_middleware(RequestIDMiddleware)

    @app.get("/echo")
    async def echo(request: Request):
        return JSONResponse({"request_id": request.state.request_id})

    return app


@pytest.fixture
def client(app):
    return TestClient(app)


class TestGeneratedId:
    def test_fresh_uuid_without_inbound_header(self, client):
        response = client.get("/echo")

        UUID(response.headers["X-Request-ID"])

    def test_state_matches_header(self, client):
        response = client.get("/echo")

        assert response.headers["X-Request-ID"] == response.json()["request_id"]

    def test_unique_per_request(self, client):
        assert client.get("/echo").headers["X-Request-ID"] != client.get("/echo").headers["X-Request-ID"]


class TestInboundId:
    def test_safe_inbound_id_reused(self, client):
        response = client.get("/echo", headers={"X-Request-ID": "edge-proxy.42_a"})

        assert response.headers["X-Request-ID"] == "edge-proxy.42_a"
        assert response.json()["request_id"] == "edge-proxy.42_a"

    @pytest.mark.parametrize("inbound", ["has space", "x" * 65, "<script>"])
    def test_unsafe_inbound_id_replaced(self, client, inbound):
        response = client.get("/echo", headers={"X-Request-ID": inbound})

        assert response.headers["X-Request-ID"] != inbound
        UUID(response.headers["X-Request-ID"])
