"""
TripPay Backend - Payment Outcome Resolution
Interprets a retrieved ARC Pay order after the customer returns from the hosted page
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Dict, Any


class OrderOutcome(str, Enum):
    CAPTURED = "captured"        # money taken
    AUTHORIZED = "authorized"    # funds held, capture pending
    NEEDS_PAY = "needs_pay"      # 3DS done, PAY not yet called
    PENDING = "pending"          # customer still authenticating
    FAILED = "failed"


APPROVED_GATEWAY_CODES = {None, "APPROVED", "APPROVED_AUTO"}


@dataclass
class ResolvedOrder:
    outcome: OrderOutcome
    result: Optional[str] = None
    gateway_code: Optional[str] = None
    order_status: Optional[str] = None
    transaction_id: Optional[str] = None
    authentication_transaction_id: Optional[str] = None

    @property
    def failure_reason(self) -> str:
        return self.gateway_code or self.result or "payment_declined"


def _section(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def latest_transaction(order: Dict[str, Any]) -> Dict[str, Any]:
    transactions = order.get("transaction")
    if not isinstance(transactions, list):
        return {}
    entries = [t for t in transactions if isinstance(t, dict)]
    return entries[-1] if entries else {}


def authentication_transaction_id(order: Dict[str, Any]) -> Optional[str]:
    """The 3-D Secure transaction id a PAY call must reference"""
    authentication = _section(order.get("authentication"))
    latest = latest_transaction(order)
    return (
        authentication.get("transactionId")
        or _section(authentication.get("3ds")).get("transactionId")
        or _section(latest.get("authentication")).get("transactionId")
    )


def resolve_order(order: Dict[str, Any]) -> ResolvedOrder:
    """
    Decide what a retrieved order means for the booking.

    Order of checks matters: an order that authenticated but was never
    paid can report result SUCCESS for the authentication transaction.
    """
    latest = latest_transaction(order)
    result = latest.get("result") or order.get("result")
    gateway_code = _section(latest.get("response")).get("gatewayCode") or _section(order.get("response")).get("gatewayCode")
    order_status = order.get("status")
    transaction_id = _section(latest.get("transaction")).get("id")

    resolved = ResolvedOrder(
        outcome=OrderOutcome.FAILED,
        result=result,
        gateway_code=gateway_code,
        order_status=order_status,
        transaction_id=transaction_id,
        authentication_transaction_id=authentication_transaction_id(order),
    )

    if order_status == "AUTHENTICATED":
        resolved.outcome = OrderOutcome.NEEDS_PAY
    elif order_status == "AUTHENTICATION_INITIATED" or result == "PENDING":
        resolved.outcome = OrderOutcome.PENDING
    elif result == "SUCCESS" and gateway_code in APPROVED_GATEWAY_CODES:
        if order_status == "AUTHORIZED":
            resolved.outcome = OrderOutcome.AUTHORIZED
        else:
            resolved.outcome = OrderOutcome.CAPTURED

    return resolved
