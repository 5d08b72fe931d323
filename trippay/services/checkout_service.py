"""
TripPay Backend - Checkout Service
Hosted checkout orchestration: session → redirect → return-URL reconciliation

Flow:
1. start_hosted_checkout / start_quote_checkout create the gateway session
   and persist a pending payment (and booking) before the browser leaves
2. The gateway redirects the customer back to the return URL
3. reconcile_return retrieves the order from the gateway and moves the
   payment, booking and quote to their final state
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional, Dict, Any, List, Tuple
from urllib.parse import urlencode

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from trippay.config import settings
from trippay.database import (
    PaymentDB, BookingDB, QuoteDB,
    PaymentStatus, BookingStatus, QuoteStatus, generate_uuid,
)
from trippay.models import (
    HostedCheckoutRequest, HostedCheckoutResponse, CheckoutOutcome,
    BookingTab, PaymentStatistics,
)
from trippay.services.arc_pay_client import ArcPayClient, ArcPayError, arc_pay_client
from trippay.services.checkout_builder import (
    build_checkout_request, build_airline_data, format_amount,
)
from trippay.services.email_service import EmailService, email_service
from trippay.services.payment_outcome import OrderOutcome, ResolvedOrder, resolve_order

logger = logging.getLogger(__name__)


class CheckoutError(Exception):
    """Business rule violation; status_code is the HTTP status to report"""
    status_code = 400


class NotFoundError(CheckoutError):
    status_code = 404


class InvalidStateError(CheckoutError):
    status_code = 409


# Statuses a return from the hosted page can no longer change
FINAL_PAYMENT_STATUSES = {
    PaymentStatus.COMPLETED.value,
    PaymentStatus.AUTHORIZED.value,
    PaymentStatus.FAILED.value,
    PaymentStatus.REFUNDED.value,
    PaymentStatus.PARTIALLY_REFUNDED.value,
    PaymentStatus.REFUND_PENDING.value,
    PaymentStatus.VOID_PENDING.value,
    PaymentStatus.VOIDED.value,
}

REFUNDABLE_STATUSES = {
    PaymentStatus.COMPLETED.value,
    PaymentStatus.PARTIALLY_REFUNDED.value,
    PaymentStatus.REFUND_PENDING.value,
}

VOIDABLE_STATUSES = {
    PaymentStatus.AUTHORIZED.value,
    PaymentStatus.VOID_PENDING.value,
}


@dataclass
class ReconciliationResult:
    outcome: CheckoutOutcome
    redirect_url: str
    payment_id: Optional[str] = None
    booking_reference: Optional[str] = None
    reason: Optional[str] = None


def normalize_status(status: Optional[str]) -> str:
    """Case-insensitive status comparison ('Cancelled' == 'CANCELLED')"""
    return (status or "").upper()


def _to_decimal(value) -> Decimal:
    return Decimal(format_amount(value if value is not None else 0))


def _require_success(response: Dict[str, Any], operation: str):
    """Follow-up operations answer 200 with result FAILURE when declined"""
    result = response.get("result")
    if result != "SUCCESS":
        gateway_code = (response.get("response") or {}).get("gatewayCode")
        raise ArcPayError(
            f"{operation} was not approved",
            explanation=gateway_code or result or "declined",
            payload=response,
        )


class CheckoutService:
    """
    Orchestrates hosted checkout against the ARC Pay gateway.

    The gateway client and notifier are attributes so tests can
    swap in a client backed by httpx.MockTransport.
    """

    def __init__(self, gateway: ArcPayClient, notifier: EmailService):
        self.gateway = gateway
        self.notifier = notifier

    # ============================================================
    # Redirect URLs
    # ============================================================

    def _frontend(self, path: str, params: Dict[str, Any]) -> str:
        query = urlencode({k: v for k, v in params.items() if v})
        base = f"{settings.frontend_url.rstrip('/')}{path}"
        return f"{base}?{query}" if query else base

    def _success_url(self, payment: PaymentDB, booking: Optional[BookingDB]) -> str:
        return self._frontend("/payment/success", {
            "paymentId": payment.id,
            "bookingReference": booking.booking_reference if booking else None,
        })

    def _pending_url(self, payment: PaymentDB) -> str:
        return self._frontend("/payment/pending", {"paymentId": payment.id})

    def failure_url(self, reason: str, payment: Optional[PaymentDB] = None) -> str:
        return self._frontend("/payment/failed", {
            "reason": reason,
            "paymentId": payment.id if payment else None,
        })

    # ============================================================
    # Session creation
    # ============================================================

    async def start_hosted_checkout(self, db: Session, request: HostedCheckoutRequest) -> HostedCheckoutResponse:
        """
        Create a hosted checkout session for a direct booking.

        The pending booking replaces the state the browser used to keep in
        local storage across the redirect.
        """
        existing = db.query(PaymentDB).filter(PaymentDB.order_id == request.order_id).first()
        if existing:
            raise InvalidStateError(f"Order {request.order_id} already has a payment")

        booking_type = request.booking_type.value
        booking_data = request.booking_data or {}
        amount = _to_decimal(request.amount)
        if amount <= 0:
            raise CheckoutError("Amount must be at least 0.01")

        airline_data = None
        if booking_type == "flight" and settings.arc_enable_airline_data:
            try:
                airline_data = build_airline_data(
                    amount=amount,
                    order_id=request.order_id,
                    customer_name=request.customer_name,
                    flight_data=request.flight_data,
                    booking_data=booking_data,
                )
            except (AttributeError, TypeError, KeyError, IndexError) as e:
                logger.warning(f"Skipping airline data for order {request.order_id}: {e}")

        body = build_checkout_request(
            order_id=request.order_id,
            amount=amount,
            currency=request.currency,
            booking_type=booking_type,
            operation=request.operation.value,
            description=request.description,
            return_url=request.return_url,
            cancel_url=request.cancel_url,
            customer_email=request.customer_email,
            customer_name=request.customer_name,
            customer_phone=request.customer_phone,
            airline_data=airline_data,
        )

        logger.info(f"Creating hosted checkout: order={request.order_id} amount={amount} {request.currency} type={booking_type}")
        session = await self.gateway.initiate_checkout(body)

        passengers = (
            request.passenger_details
            or booking_data.get("passengerData")
            or booking_data.get("travelers")
            or []
        )

        payment = PaymentDB(
            id=generate_uuid(),
            order_id=request.order_id,
            booking_type=booking_type,
            amount=amount,
            currency=request.currency.upper(),
            payment_status=PaymentStatus.PENDING.value,
            session_id=session.session_id,
            success_indicator=session.success_indicator,
            customer_email=request.customer_email,
            customer_name=request.customer_name,
        )
        booking = BookingDB(
            booking_reference=BookingDB.generate_reference(),
            booking_type=booking_type,
            status=BookingStatus.PENDING.value,
            payment_id=payment.id,
            customer_email=request.customer_email,
            total_amount=amount,
            currency=request.currency.upper(),
            booking_details=json.dumps(booking_data),
            passenger_details=json.dumps(passengers),
        )
        db.add(payment)
        db.add(booking)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.warning(f"Order {request.order_id} was stored by a concurrent checkout")
            raise InvalidStateError(f"Order {request.order_id} already has a payment")

        page_url = self.gateway.payment_page_url(session.session_id)
        return HostedCheckoutResponse(
            sessionId=session.session_id,
            successIndicator=session.success_indicator,
            merchantId=self.gateway.merchant_id,
            orderId=payment.order_id,
            paymentId=payment.id,
            bookingReference=booking.booking_reference,
            paymentPageUrl=page_url,
            checkoutUrl=page_url,
        )

    async def start_quote_checkout(
        self,
        db: Session,
        quote_id: str,
        return_url: Optional[str] = None,
        cancel_url: Optional[str] = None,
    ) -> HostedCheckoutResponse:
        """Create a hosted checkout session to pay a quote (3-D Secure enforced)."""
        quote = db.query(QuoteDB).filter(QuoteDB.id == quote_id).first()
        if not quote:
            raise NotFoundError("Quote not found")
        if quote.status == QuoteStatus.PAID.value or quote.payment_status == "paid":
            raise InvalidStateError("Quote is already paid")
        if quote.status != QuoteStatus.EXPIRED.value and quote.expires_at and quote.expires_at < datetime.utcnow():
            quote.status = QuoteStatus.EXPIRED.value
            db.commit()
        if quote.status == QuoteStatus.EXPIRED.value:
            raise InvalidStateError("Quote has expired")

        # The payment id doubles as the gateway order id
        payment_id = generate_uuid()
        body = build_checkout_request(
            order_id=payment_id,
            amount=quote.total_amount,
            currency=quote.currency or "USD",
            booking_type="package",
            description=f"Quote {quote.quote_number} - {quote.title}",
            return_url=return_url or self._frontend("/payment/callback", {"quote_id": quote.id}),
            cancel_url=cancel_url or self._frontend(f"/quotes/{quote.id}", {"payment": "cancelled"}),
            customer_email=quote.customer_email,
            customer_name=quote.customer_name,
            require_3ds=True,
        )

        logger.info(f"Creating quote checkout: quote={quote.quote_number} payment={payment_id}")
        session = await self.gateway.initiate_checkout(body)

        payment = PaymentDB(
            id=payment_id,
            order_id=payment_id,
            booking_type="package",
            amount=_to_decimal(quote.total_amount),
            currency=quote.currency or "USD",
            payment_status=PaymentStatus.PENDING.value,
            session_id=session.session_id,
            success_indicator=session.success_indicator,
            customer_email=quote.customer_email,
            customer_name=quote.customer_name,
            quote_id=quote.id,
        )
        db.add(payment)
        db.commit()

        page_url = self.gateway.payment_page_url(session.session_id)
        return HostedCheckoutResponse(
            sessionId=session.session_id,
            successIndicator=session.success_indicator,
            merchantId=self.gateway.merchant_id,
            orderId=payment.order_id,
            paymentId=payment.id,
            paymentPageUrl=page_url,
            checkoutUrl=page_url,
        )

    # ============================================================
    # Return-URL reconciliation
    # ============================================================

    def _find_payment_for_return(
        self,
        db: Session,
        session_id: Optional[str],
        order_id: Optional[str],
        quote_id: Optional[str],
    ) -> Optional[PaymentDB]:
        if session_id:
            payment = db.query(PaymentDB).filter(PaymentDB.session_id == session_id).first()
            if payment:
                return payment
        if order_id:
            payment = db.query(PaymentDB).filter(PaymentDB.order_id == order_id).first()
            if payment:
                return payment
        if quote_id:
            return self.get_latest_payment_for_quote(db, quote_id)
        return None

    def _booking_for(self, db: Session, payment: PaymentDB) -> Optional[BookingDB]:
        return db.query(BookingDB).filter(BookingDB.payment_id == payment.id).first()

    def _result_from_status(self, payment: PaymentDB, booking: Optional[BookingDB]) -> ReconciliationResult:
        """Outcome of a payment that was already reconciled"""
        reference = booking.booking_reference if booking else None
        if payment.payment_status in (PaymentStatus.COMPLETED.value, PaymentStatus.AUTHORIZED.value):
            return ReconciliationResult(
                outcome=CheckoutOutcome.SUCCESS,
                redirect_url=self._success_url(payment, booking),
                payment_id=payment.id,
                booking_reference=reference,
            )
        reason = payment.failure_reason or payment.payment_status
        return ReconciliationResult(
            outcome=CheckoutOutcome.FAILED,
            redirect_url=self.failure_url(reason, payment),
            payment_id=payment.id,
            booking_reference=reference,
            reason=reason,
        )

    async def _complete_authenticated(self, payment: PaymentDB, resolved: ResolvedOrder) -> ResolvedOrder:
        """Call PAY for an order that passed 3-D Secure but was not charged"""
        if not resolved.authentication_transaction_id:
            logger.warning(f"Order {payment.order_id} authenticated without an authentication transaction id")
            resolved.outcome = OrderOutcome.PENDING
            return resolved

        try:
            response = await self.gateway.pay(
                payment.order_id,
                resolved.authentication_transaction_id,
                session_id=payment.session_id,
                reference=f"PAY-{payment.id}",
            )
        except ArcPayError as e:
            logger.error(f"PAY call failed for order {payment.order_id}: {e.detail}")
            resolved.outcome = OrderOutcome.PENDING
            return resolved

        if response.get("result") == "SUCCESS":
            resolved.outcome = OrderOutcome.CAPTURED
            resolved.transaction_id = (response.get("transaction") or {}).get("id") or resolved.transaction_id
        else:
            resolved.outcome = OrderOutcome.PENDING
        return resolved

    async def reconcile_return(
        self,
        db: Session,
        result_indicator: Optional[str] = None,
        session_id: Optional[str] = None,
        order_id: Optional[str] = None,
        quote_id: Optional[str] = None,
    ) -> ReconciliationResult:
        """
        Settle the records after the customer returns from the hosted page.

        The gateway order is always retrieved; the result indicator on the
        URL alone never confirms a booking.
        """
        payment = self._find_payment_for_return(db, session_id, order_id, quote_id)
        if not payment:
            logger.warning(f"Payment not found for return: session={session_id} order={order_id} quote={quote_id}")
            return ReconciliationResult(
                outcome=CheckoutOutcome.FAILED,
                redirect_url=self.failure_url("invalid_session"),
                reason="invalid_session",
            )

        booking = self._booking_for(db, payment)

        if payment.success_indicator:
            if not result_indicator:
                reason = "missing_params"
            elif result_indicator != payment.success_indicator:
                reason = "invalid_indicator"
            else:
                reason = None
            if reason:
                logger.warning(f"Rejected return for payment {payment.id}: {reason}")
                return ReconciliationResult(
                    outcome=CheckoutOutcome.FAILED,
                    redirect_url=self.failure_url(reason, payment),
                    payment_id=payment.id,
                    reason=reason,
                )

        if payment.payment_status in FINAL_PAYMENT_STATUSES:
            return self._result_from_status(payment, booking)

        try:
            order = await self.gateway.retrieve_order(payment.order_id)
        except ArcPayError as e:
            logger.error(f"Failed to retrieve order {payment.order_id}: {e.detail}")
            return ReconciliationResult(
                outcome=CheckoutOutcome.PENDING,
                redirect_url=self._pending_url(payment),
                payment_id=payment.id,
                booking_reference=booking.booking_reference if booking else None,
                reason="gateway_unavailable",
            )

        resolved = resolve_order(order)
        logger.info(
            f"Order {payment.order_id}: result={resolved.result} gatewayCode={resolved.gateway_code} "
            f"status={resolved.order_status} -> {resolved.outcome.value}"
        )
        if resolved.outcome == OrderOutcome.NEEDS_PAY:
            resolved = await self._complete_authenticated(payment, resolved)

        payment.metadata_json = json.dumps(order)
        now = datetime.utcnow()

        if resolved.outcome in (OrderOutcome.CAPTURED, OrderOutcome.AUTHORIZED):
            captured = resolved.outcome == OrderOutcome.CAPTURED
            payment.payment_status = PaymentStatus.COMPLETED.value if captured else PaymentStatus.AUTHORIZED.value
            payment.transaction_id = resolved.transaction_id
            payment.failure_reason = None
            if captured:
                payment.completed_at = now
            if booking:
                booking.status = BookingStatus.CONFIRMED.value
            if payment.quote:
                payment.quote.status = QuoteStatus.PAID.value
                payment.quote.payment_status = "paid"
                payment.quote.paid_at = now
            db.commit()

            await self.notifier.send_payment_confirmation(
                to_email=payment.customer_email,
                order_id=payment.order_id,
                amount=format_amount(payment.amount),
                currency=payment.currency,
                booking_type=payment.booking_type,
                booking_reference=booking.booking_reference if booking else None,
            )
            return ReconciliationResult(
                outcome=CheckoutOutcome.SUCCESS,
                redirect_url=self._success_url(payment, booking),
                payment_id=payment.id,
                booking_reference=booking.booking_reference if booking else None,
            )

        if resolved.outcome in (OrderOutcome.PENDING, OrderOutcome.NEEDS_PAY):
            payment.payment_status = PaymentStatus.PENDING.value
            db.commit()
            return ReconciliationResult(
                outcome=CheckoutOutcome.PENDING,
                redirect_url=self._pending_url(payment),
                payment_id=payment.id,
                booking_reference=booking.booking_reference if booking else None,
                reason=resolved.order_status or resolved.result,
            )

        reason = resolved.failure_reason
        payment.payment_status = PaymentStatus.FAILED.value
        payment.failure_reason = reason
        if booking:
            booking.status = BookingStatus.FAILED.value
        db.commit()
        logger.info(f"Payment {payment.id} failed: {reason}")
        return ReconciliationResult(
            outcome=CheckoutOutcome.FAILED,
            redirect_url=self.failure_url(reason, payment),
            payment_id=payment.id,
            booking_reference=booking.booking_reference if booking else None,
            reason=reason,
        )

    # ============================================================
    # Lookups
    # ============================================================

    def get_payment(self, db: Session, payment_id: str) -> PaymentDB:
        payment = db.query(PaymentDB).filter(PaymentDB.id == payment_id).first()
        if not payment:
            raise NotFoundError("Payment not found")
        return payment

    def get_latest_payment_for_quote(self, db: Session, quote_id: str) -> Optional[PaymentDB]:
        return (
            db.query(PaymentDB)
            .filter(PaymentDB.quote_id == quote_id)
            .order_by(PaymentDB.created_at.desc())
            .first()
        )

    def list_payments(
        self,
        db: Session,
        payment_status: Optional[str] = None,
        quote_id: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[PaymentDB]:
        query = db.query(PaymentDB)
        if payment_status:
            query = query.filter(PaymentDB.payment_status == payment_status)
        if quote_id:
            query = query.filter(PaymentDB.quote_id == quote_id)
        return query.order_by(PaymentDB.created_at.desc()).offset(offset).limit(limit).all()

    def payment_statistics(self, db: Session) -> PaymentStatistics:
        rows = db.query(PaymentDB.payment_status, PaymentDB.amount).all()
        counts: Dict[str, int] = {}
        completed_total = Decimal("0")
        for status, amount in rows:
            counts[status] = counts.get(status, 0) + 1
            if status == PaymentStatus.COMPLETED.value:
                completed_total += _to_decimal(amount)

        return PaymentStatistics(
            total=len(rows),
            completed=counts.get(PaymentStatus.COMPLETED.value, 0),
            pending=counts.get(PaymentStatus.PENDING.value, 0),
            failed=counts.get(PaymentStatus.FAILED.value, 0),
            refunded=counts.get(PaymentStatus.REFUNDED.value, 0) + counts.get(PaymentStatus.PARTIALLY_REFUNDED.value, 0),
            totalAmount=float(completed_total),
        )

    def get_booking(self, db: Session, booking_reference: str) -> BookingDB:
        booking = db.query(BookingDB).filter(BookingDB.booking_reference == booking_reference.upper()).first()
        if not booking:
            raise NotFoundError("Booking not found")
        return booking

    def list_bookings(self, db: Session, email: str, tab: Optional[BookingTab] = None) -> List[BookingDB]:
        """My-trips listing; status matching is case-insensitive"""
        bookings = (
            db.query(BookingDB)
            .filter(func.lower(BookingDB.customer_email) == email.lower())
            .order_by(BookingDB.created_at.desc())
            .all()
        )
        if tab == BookingTab.CANCELLED:
            return [b for b in bookings if normalize_status(b.status) == "CANCELLED"]
        if tab == BookingTab.FAILED:
            return [b for b in bookings if normalize_status(b.status) == "FAILED"]
        if tab == BookingTab.UPCOMING:
            return [b for b in bookings if normalize_status(b.status) not in ("CANCELLED", "FAILED")]
        return bookings

    # ============================================================
    # Follow-up gateway operations
    # ============================================================

    async def refund_payment(
        self,
        db: Session,
        payment_id: str,
        amount: Optional[Decimal] = None,
        reason: Optional[str] = None,
    ) -> Tuple[PaymentDB, Dict[str, Any]]:
        """Refund all or part of a captured payment."""
        payment = self.get_payment(db, payment_id)
        if payment.payment_status not in REFUNDABLE_STATUSES:
            raise InvalidStateError(f"Cannot refund a payment in status '{payment.payment_status}'")

        remaining = _to_decimal(payment.amount) - _to_decimal(payment.refunded_amount)
        refund_amount = _to_decimal(amount) if amount is not None else remaining
        if refund_amount <= 0 or refund_amount > remaining:
            raise CheckoutError(f"Refund amount must be between 0.01 and {format_amount(remaining)}")

        logger.info(f"Refunding {refund_amount} {payment.currency} on order {payment.order_id} ({reason or 'no reason given'})")
        response = await self.gateway.refund(payment.order_id, format_amount(refund_amount), payment.currency)
        _require_success(response, "Refund")

        payment.refunded_amount = _to_decimal(payment.refunded_amount) + refund_amount
        if payment.refunded_amount >= _to_decimal(payment.amount):
            payment.payment_status = PaymentStatus.REFUNDED.value
        else:
            payment.payment_status = PaymentStatus.PARTIALLY_REFUNDED.value
        db.commit()
        return payment, response

    async def capture_payment(
        self,
        db: Session,
        payment_id: str,
        amount: Optional[Decimal] = None,
    ) -> Tuple[PaymentDB, Dict[str, Any]]:
        """Capture an authorize-only payment."""
        payment = self.get_payment(db, payment_id)
        if payment.payment_status != PaymentStatus.AUTHORIZED.value:
            raise InvalidStateError(f"Cannot capture a payment in status '{payment.payment_status}'")

        capture_amount = _to_decimal(amount) if amount is not None else _to_decimal(payment.amount)
        if capture_amount > _to_decimal(payment.amount):
            raise CheckoutError("Capture amount exceeds the authorized amount")

        response = await self.gateway.capture(payment.order_id, format_amount(capture_amount), payment.currency)
        _require_success(response, "Capture")

        payment.payment_status = PaymentStatus.COMPLETED.value
        payment.completed_at = datetime.utcnow()
        payment.transaction_id = (response.get("transaction") or {}).get("id") or payment.transaction_id
        db.commit()
        return payment, response

    async def void_payment(self, db: Session, payment_id: str) -> Tuple[PaymentDB, Dict[str, Any]]:
        """Release an authorization; the bookings it paid for are cancelled."""
        payment = self.get_payment(db, payment_id)
        if payment.payment_status not in VOIDABLE_STATUSES:
            raise InvalidStateError(f"Cannot void a payment in status '{payment.payment_status}'")
        if not payment.transaction_id:
            raise CheckoutError("Payment has no authorization transaction to void")

        response = await self.gateway.void(payment.order_id, payment.transaction_id)
        _require_success(response, "Void")

        payment.payment_status = PaymentStatus.VOIDED.value
        for booking in payment.bookings:
            if booking.status != BookingStatus.CANCELLED.value:
                self._mark_cancelled(booking, "Authorization voided", "admin")
        db.commit()
        return payment, response

    # ============================================================
    # Cancellation
    # ============================================================

    def _mark_cancelled(self, booking: BookingDB, reason: Optional[str], cancelled_by: str):
        details = json.loads(booking.booking_details) if booking.booking_details else {}
        details.update({
            "cancelled_at": datetime.utcnow().isoformat(),
            "cancellation_reason": reason or "Customer requested cancellation",
            "cancelled_by": cancelled_by,
        })
        booking.booking_details = json.dumps(details)
        booking.status = BookingStatus.CANCELLED.value

    async def cancel_booking(
        self,
        db: Session,
        booking_reference: str,
        reason: Optional[str] = None,
        cancelled_by: str = "customer",
        email: Optional[str] = None,
    ) -> Tuple[BookingDB, Optional[str]]:
        """
        Cancel a booking and give the money back through the gateway.

        Captured payments are refunded, authorizations are voided. When the
        gateway call fails the payment is left as refund_pending (or
        void_pending) for an admin to retry the same operation; it is never
        marked refunded or voided without a gateway call.

        Returns:
            (booking, gateway operation attempted or None)
        """
        booking = self.get_booking(db, booking_reference)
        if email is not None and (booking.customer_email or "").lower() != email.lower():
            raise NotFoundError("Booking not found")
        if booking.status == BookingStatus.CANCELLED.value:
            raise InvalidStateError("Booking is already cancelled")

        payment = booking.payment
        if payment and payment.payment_status == PaymentStatus.AUTHORIZED.value and not payment.transaction_id:
            raise CheckoutError("Payment has no authorization transaction to void")
        operation = None

        if payment and payment.payment_status in REFUNDABLE_STATUSES:
            operation = "REFUND"
            remaining = _to_decimal(payment.amount) - _to_decimal(payment.refunded_amount)
            try:
                response = await self.gateway.refund(payment.order_id, format_amount(remaining), payment.currency)
                _require_success(response, "Refund")
                payment.refunded_amount = _to_decimal(payment.amount)
                payment.payment_status = PaymentStatus.REFUNDED.value
            except ArcPayError as e:
                logger.error(f"Refund failed while cancelling {booking.booking_reference}: {e.detail}")
                payment.payment_status = PaymentStatus.REFUND_PENDING.value
        elif payment and payment.payment_status == PaymentStatus.AUTHORIZED.value:
            operation = "VOID"
            try:
                response = await self.gateway.void(payment.order_id, payment.transaction_id)
                _require_success(response, "Void")
                payment.payment_status = PaymentStatus.VOIDED.value
            except ArcPayError as e:
                logger.error(f"Void failed while cancelling {booking.booking_reference}: {e.detail}")
                payment.payment_status = PaymentStatus.VOID_PENDING.value
        elif payment and payment.payment_status == PaymentStatus.PENDING.value:
            payment.payment_status = PaymentStatus.FAILED.value
            payment.failure_reason = "booking_cancelled"

        self._mark_cancelled(booking, reason, cancelled_by)
        db.commit()
        logger.info(f"Booking {booking.booking_reference} cancelled by {cancelled_by} (operation={operation})")

        await self.notifier.send_cancellation_notice(
            to_email=booking.customer_email,
            booking_reference=booking.booking_reference,
            payment_status=payment.payment_status if payment else None,
            reason=reason,
        )
        return booking, operation


# Singleton instance
checkout_service = CheckoutService(arc_pay_client, email_service)
