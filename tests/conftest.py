"""
TripPay Backend Tests
Shared fixtures: in-memory database, fake ARC Pay gateway, API client
"""

import json
import os

# Must be set before trippay is imported
os.environ["DATABASE_URL_OVERRIDE"] = "sqlite://"
os.environ["ARC_PAY_MERCHANT_ID"] = "TESTMERCHANT"
os.environ["ARC_PAY_API_PASSWORD"] = "secret"
os.environ["FRONTEND_URL"] = "https://trippay.example"
os.environ["SMTP_HOST"] = ""

import httpx
import pytest
from httpx import AsyncClient, ASGITransport

from trippay.database import Base, engine, SessionLocal
from trippay.main import app
from trippay.services.arc_pay_client import ArcPayClient
from trippay.services.auth_service import auth_service
from trippay.services.checkout_service import checkout_service


class FakeArcPay:
    """
    In-process stand-in for the ARC Pay REST API.

    Tests register the order payload GET /order/{id} should return and
    the transaction operations that should be declined or unreachable.
    """

    def __init__(self):
        self.requests = []
        self.orders = {}
        self.declined_operations = set()
        self.failing_operations = set()
        self.session_error = None
        self._sessions = 0

    def set_order(self, order_id: str, status: str = "CAPTURED", gateway_code: str = "APPROVED", result: str = "SUCCESS"):
        """Register the payload GET /order/{id} returns"""
        self.orders[order_id] = {
            "id": order_id,
            "result": result,
            "status": status,
            "amount": 100.0,
            "currency": "USD",
            "transaction": [{
                "result": result,
                "response": {"gatewayCode": gateway_code},
                "transaction": {"id": f"txn-{order_id}", "type": "PAYMENT"},
            }],
        }
        return self.orders[order_id]

    def _json(self, request):
        return json.loads(request.content) if request.content else {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path.endswith("/information"):
            return httpx.Response(200, json={"status": "OPERATING", "gatewayVersion": "100.0.0"})

        if request.method == "POST" and path.endswith("/session"):
            if self.session_error:
                return httpx.Response(400, json={
                    "result": "ERROR",
                    "error": {"cause": "INVALID_REQUEST", "explanation": self.session_error},
                })
            self._sessions += 1
            return httpx.Response(201, json={
                "result": "SUCCESS",
                "session": {"id": f"SESSION000{self._sessions}", "updateStatus": "SUCCESS"},
                "successIndicator": f"indicator{self._sessions}",
            })

        if request.method == "GET" and "/order/" in path:
            order_id = path.split("/order/")[1].split("/")[0]
            if order_id not in self.orders:
                return httpx.Response(404, json={
                    "result": "ERROR",
                    "error": {"cause": "INVALID_REQUEST", "explanation": "Unable to find order"},
                })
            return httpx.Response(200, json=self.orders[order_id])

        if request.method == "PUT" and "/transaction/" in path:
            body = self._json(request)
            operation = body.get("apiOperation")
            transaction_id = path.rsplit("/", 1)[1]
            if operation in self.failing_operations:
                return httpx.Response(503, json={
                    "result": "ERROR",
                    "error": {"cause": "SERVER_BUSY", "explanation": "Gateway temporarily unavailable"},
                })
            if operation in self.declined_operations:
                return httpx.Response(200, json={
                    "result": "FAILURE",
                    "response": {"gatewayCode": "DECLINED"},
                    "transaction": {"id": transaction_id, "type": operation},
                })
            return httpx.Response(200, json={
                "result": "SUCCESS",
                "response": {"gatewayCode": "APPROVED"},
                "transaction": {"id": transaction_id, "type": operation},
            })

        return httpx.Response(404, json={"result": "ERROR", "error": {"explanation": f"Unexpected {path}"}})

    def calls(self, operation: str):
        """Transaction requests sent with the given apiOperation"""
        return [
            r for r in self.requests
            if r.method == "PUT" and self._json(r).get("apiOperation") == operation
        ]

    def session_bodies(self):
        return [self._json(r) for r in self.requests if r.method == "POST" and r.url.path.endswith("/session")]


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def database():
    """Fresh schema for every test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def fake_gateway(monkeypatch):
    fake = FakeArcPay()
    gateway = ArcPayClient(
        base_url="https://api.arcpay.travel/api/rest",
        merchant_id="TESTMERCHANT",
        api_password="secret",
        api_version=100,
        transport=httpx.MockTransport(fake.handler),
    )
    monkeypatch.setattr(checkout_service, "gateway", gateway)
    return fake


@pytest.fixture
async def client():
    """Create test client"""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def admin_headers():
    token, _ = auth_service.create_access_token("admin@trippay.travel")
    return {"Authorization": f"Bearer {token}"}
