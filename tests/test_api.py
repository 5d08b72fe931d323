"""
TripPay Backend Tests
API endpoint tests
"""

import pytest
from httpx import AsyncClient


@pytest.mark.anyio
async def test_root(client: AsyncClient):
    """Test root endpoint"""
    response = await client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "TripPay API"
    assert data["status"] == "running"


@pytest.mark.anyio
async def test_health(client: AsyncClient):
    """Test health endpoint"""
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["services"]["arc_pay"] == "ok"


@pytest.mark.anyio
async def test_process_time_header(client: AsyncClient):
    """Every response carries the request duration"""
    response = await client.get("/health")
    assert "x-process-time" in response.headers


@pytest.mark.anyio
async def test_gateway_status(client: AsyncClient, fake_gateway):
    """Gateway status proxies GET /information"""
    response = await client.get("/v1/payments/gateway-status")
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["gatewayOperational"] is True
    assert data["status"] == "OPERATING"


@pytest.mark.anyio
async def test_create_empty_session(client: AsyncClient, fake_gateway):
    """Empty session is created against the merchant session endpoint"""
    response = await client.post("/v1/payments/session")
    assert response.status_code == 200
    assert response.json()["sessionData"]["session"]["id"] == "SESSION0001"
    assert fake_gateway.requests[0].url.path == "/api/rest/version/100/merchant/TESTMERCHANT/session"


@pytest.mark.anyio
async def test_admin_login(client: AsyncClient, monkeypatch):
    """Admin credentials are exchanged for a bearer token"""
    from trippay.config import settings
    from trippay.services.auth_service import auth_service

    monkeypatch.setattr(settings, "admin_password_hash", auth_service.hash_password("correct horse"))

    response = await client.post("/v1/auth/login", json={
        "email": "admin@trippay.travel",
        "password": "correct horse",
    })
    assert response.status_code == 200
    data = response.json()
    assert data["tokenType"] == "bearer"
    assert auth_service.decode_token(data["accessToken"])["role"] == "admin"

    response = await client.post("/v1/auth/login", json={
        "email": "admin@trippay.travel",
        "password": "wrong",
    })
    assert response.status_code == 401


@pytest.mark.anyio
async def test_admin_endpoints_require_token(client: AsyncClient):
    """Admin routes reject requests without a bearer token"""
    response = await client.get("/v1/admin/payments")
    assert response.status_code == 401

    response = await client.get(
        "/v1/admin/payments",
        headers={"Authorization": "Bearer not-a-token"},
    )
    assert response.status_code == 401
