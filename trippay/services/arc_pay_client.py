"""
TripPay Backend - ARC Pay Gateway Client
REST client for the ARC Pay hosted checkout API

Every merchant call authenticates with HTTP Basic auth:
    username = "merchant.<MERCHANT_ID>", password = <API_PASSWORD>

API Docs: https://api.arcpay.travel/api/documentation
"""

import re
import time
import httpx
import logging
from dataclasses import dataclass, field
from typing import Optional, Dict, Any
from urllib.parse import urlsplit

from trippay.config import settings

logger = logging.getLogger(__name__)


class ArcPayError(Exception):
    """Raised when the gateway rejects a request or cannot be reached."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        explanation: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.explanation = explanation
        self.payload = payload or {}

    @property
    def detail(self) -> str:
        return self.explanation or str(self)


@dataclass
class CheckoutSession:
    """A hosted checkout session created by INITIATE_CHECKOUT"""
    session_id: str
    success_indicator: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)


def normalize_base_url(base_url: str, api_version: int) -> str:
    """
    Reduce a configured gateway URL to ".../api/rest/version/<N>".

    Older configs carry the merchant path or an outdated version
    (e.g. ".../version/77/merchant/TESTARC0001"); both are rewritten.
    """
    url = base_url.strip().rstrip("/")
    if "/merchant/" in url:
        url = url.split("/merchant/")[0]
    if re.search(r"/version/\d+$", url):
        return re.sub(r"/version/\d+$", f"/version/{api_version}", url)
    return f"{url}/version/{api_version}"


def _transaction_id(prefix: str) -> str:
    """Merchant-assigned transaction id, unique within an order"""
    return f"{prefix}-{int(time.time() * 1000)}"


class ArcPayClient:
    """
    ARC Pay REST API client

    Wraps session creation, order retrieval and the follow-up
    transaction operations (PAY, CAPTURE, REFUND, VOID).
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        merchant_id: Optional[str] = None,
        api_password: Optional[str] = None,
        api_version: Optional[int] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.merchant_id = merchant_id if merchant_id is not None else settings.arc_pay_merchant_id
        self.api_password = api_password if api_password is not None else settings.arc_pay_api_password
        self.base_url = normalize_base_url(
            base_url or settings.arc_pay_base_url,
            api_version or settings.arc_pay_api_version,
        )
        self.client = httpx.AsyncClient(
            timeout=timeout or settings.arc_pay_timeout,
            auth=httpx.BasicAuth(f"merchant.{self.merchant_id}", self.api_password),
            headers={"Accept": "application/json"},
            transport=transport,
        )

    @property
    def merchant_url(self) -> str:
        return f"{self.base_url}/merchant/{self.merchant_id}"

    def is_configured(self) -> bool:
        return bool(self.merchant_id and self.api_password)

    def payment_page_url(self, session_id: str) -> str:
        """Hosted payment page the browser is redirected to (GET)"""
        parts = urlsplit(self.base_url)
        return f"{parts.scheme}://{parts.netloc}/checkout/pay/{session_id}"

    async def close(self):
        await self.client.aclose()

    async def _request(
        self,
        method: str,
        url: str,
        json: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Send a request and return the decoded JSON body"""
        try:
            response = await self.client.request(method, url, json=json)
        except httpx.TimeoutException as e:
            logger.error(f"ARC Pay request timeout: {method} {url}")
            raise ArcPayError("ARC Pay request timed out") from e
        except httpx.RequestError as e:
            logger.error(f"ARC Pay request error: {method} {url}: {e}")
            raise ArcPayError(f"ARC Pay request failed: {e}") from e

        try:
            data = response.json() if response.content else {}
        except ValueError:
            data = {}

        if response.status_code >= 400:
            error = data.get("error", {}) if isinstance(data, dict) else {}
            explanation = error.get("explanation") if isinstance(error, dict) else None
            logger.warning(f"ARC Pay {method} {url} failed [{response.status_code}]: {explanation or response.text[:500]}")
            raise ArcPayError(
                f"ARC Pay returned status {response.status_code}",
                status_code=response.status_code,
                explanation=explanation,
                payload=data if isinstance(data, dict) else None,
            )

        if not isinstance(data, dict):
            raise ArcPayError("ARC Pay returned an unexpected response", status_code=response.status_code)

        return data

    # ============================================================
    # Gateway / Session
    # ============================================================

    async def check_gateway_status(self) -> Dict[str, Any]:
        """GET /information - gateway availability, e.g. {"status": "OPERATING"}"""
        return await self._request("GET", f"{self.base_url}/information")

    async def create_session(self) -> Dict[str, Any]:
        """Create an empty payment session"""
        return await self._request("POST", f"{self.merchant_url}/session", json={})

    async def initiate_checkout(self, body: Dict[str, Any]) -> CheckoutSession:
        """Create a hosted checkout session from an INITIATE_CHECKOUT body"""
        data = await self._request("POST", f"{self.merchant_url}/session", json=body)

        session = data.get("session") or {}
        session_id = session.get("id") or data.get("sessionId") or data.get("id")
        if not session_id:
            logger.error(f"Missing session id in ARC Pay response: {data}")
            raise ArcPayError("Invalid response from payment gateway", explanation="Session ID not found", payload=data)

        logger.info(f"ARC Pay session created: {session_id} (order {body.get('order', {}).get('id')})")
        return CheckoutSession(
            session_id=session_id,
            success_indicator=data.get("successIndicator"),
            raw=data,
        )

    # ============================================================
    # Orders / Transactions
    # ============================================================

    async def retrieve_order(self, order_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"{self.merchant_url}/order/{order_id}")

    async def retrieve_transaction(self, order_id: str, transaction_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"{self.merchant_url}/order/{order_id}/transaction/{transaction_id}")

    async def pay(
        self,
        order_id: str,
        authentication_transaction_id: str,
        session_id: Optional[str] = None,
        reference: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Complete an order that finished 3-D Secure authentication but was not paid"""
        body: Dict[str, Any] = {
            "apiOperation": "PAY",
            "authentication": {"transactionId": authentication_transaction_id},
        }
        if session_id:
            body["session"] = {"id": session_id}
        if reference:
            body["transaction"] = {"reference": reference}
        url = f"{self.merchant_url}/order/{order_id}/transaction/{_transaction_id('pay')}"
        return await self._request("PUT", url, json=body)

    async def capture(self, order_id: str, amount: str, currency: str) -> Dict[str, Any]:
        body = {
            "apiOperation": "CAPTURE",
            "transaction": {"amount": amount, "currency": currency},
        }
        url = f"{self.merchant_url}/order/{order_id}/transaction/{_transaction_id('capture')}"
        return await self._request("PUT", url, json=body)

    async def refund(self, order_id: str, amount: str, currency: str) -> Dict[str, Any]:
        body = {
            "apiOperation": "REFUND",
            "transaction": {"amount": amount, "currency": currency},
        }
        url = f"{self.merchant_url}/order/{order_id}/transaction/{_transaction_id('refund')}"
        return await self._request("PUT", url, json=body)

    async def void(self, order_id: str, target_transaction_id: str) -> Dict[str, Any]:
        body = {
            "apiOperation": "VOID",
            "transaction": {"targetTransactionId": target_transaction_id},
        }
        url = f"{self.merchant_url}/order/{order_id}/transaction/{_transaction_id('void')}"
        return await self._request("PUT", url, json=body)


# Singleton instance
arc_pay_client = ArcPayClient()
