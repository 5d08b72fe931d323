"""
TripPay Backend - Payment Routes
Hosted checkout session creation, return-URL callback and admin follow-up operations
"""

from fastapi import APIRouter, HTTPException, Depends, Query
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session
from typing import Optional
import logging

from trippay.database import get_db, PaymentDB
from trippay.models import (
    HostedCheckoutRequest, HostedCheckoutResponse, QuoteCheckoutRequest,
    GatewayStatusResponse, SessionResponse, PaymentResponse,
    RefundRequest, CaptureRequest, GatewayOperationResponse,
)
from trippay.routes.auth import require_admin
from trippay.services.arc_pay_client import ArcPayError
from trippay.services.checkout_service import checkout_service, CheckoutError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/payments", tags=["Payments"])


def payment_to_response(payment: PaymentDB) -> PaymentResponse:
    return PaymentResponse(
        id=payment.id,
        orderId=payment.order_id,
        bookingType=payment.booking_type,
        amount=float(payment.amount),
        currency=payment.currency,
        paymentStatus=payment.payment_status,
        sessionId=payment.session_id,
        transactionId=payment.transaction_id,
        refundedAmount=float(payment.refunded_amount or 0),
        customerEmail=payment.customer_email,
        customerName=payment.customer_name,
        quoteId=payment.quote_id,
        failureReason=payment.failure_reason,
        createdAt=payment.created_at,
        updatedAt=payment.updated_at,
        completedAt=payment.completed_at,
    )


def raise_http(error: Exception):
    """Translate service and gateway errors into HTTP errors"""
    if isinstance(error, CheckoutError):
        raise HTTPException(status_code=error.status_code, detail=str(error))
    if isinstance(error, ArcPayError):
        raise HTTPException(status_code=502, detail=f"Payment gateway error: {error.detail}")
    raise error


# ============================================================
# Checkout
# ============================================================

@router.post(
    "/hosted-checkout",
    response_model=HostedCheckoutResponse,
    summary="Create hosted checkout session",
    description="Creates an ARC Pay hosted checkout session for a flight, cruise, hotel or package booking "
                "and stores the pending booking server-side."
)
async def create_hosted_checkout(request: HostedCheckoutRequest, db: Session = Depends(get_db)):
    try:
        return await checkout_service.start_hosted_checkout(db, request)
    except (CheckoutError, ArcPayError) as e:
        raise_http(e)


@router.post(
    "/quote-checkout",
    response_model=HostedCheckoutResponse,
    summary="Pay a quote",
    description="Creates a 3-D Secure enforced hosted checkout session for an agent quote."
)
async def create_quote_checkout(request: QuoteCheckoutRequest, db: Session = Depends(get_db)):
    try:
        return await checkout_service.start_quote_checkout(
            db, request.quote_id, request.return_url, request.cancel_url
        )
    except (CheckoutError, ArcPayError) as e:
        raise_http(e)


@router.api_route(
    "/callback",
    methods=["GET", "POST"],
    response_class=RedirectResponse,
    status_code=303,
    summary="Hosted checkout return URL",
    description="""
    The customer lands here after the hosted payment page.

    1. Finds the payment by session id, order id or quote id
    2. Checks the result indicator against the stored success indicator
    3. Retrieves the order from ARC Pay (calling PAY after 3-D Secure if needed)
    4. Redirects to the frontend success, pending or failure page
    """
)
async def payment_callback(
    result_indicator: Optional[str] = Query(None, alias="resultIndicator"),
    session_id: Optional[str] = Query(None, alias="sessionId"),
    session_dot_id: Optional[str] = Query(None, alias="session.id"),
    order_id: Optional[str] = Query(None, alias="orderId"),
    quote_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    try:
        result = await checkout_service.reconcile_return(
            db,
            result_indicator=result_indicator,
            session_id=session_id or session_dot_id,
            order_id=order_id,
            quote_id=quote_id,
        )
    except Exception:
        logger.exception(f"Payment callback failed: session={session_id or session_dot_id} order={order_id} quote={quote_id}")
        db.rollback()
        return RedirectResponse(url=checkout_service.failure_url("processing_error"), status_code=303)
    return RedirectResponse(url=result.redirect_url, status_code=303)


# ============================================================
# Gateway
# ============================================================

@router.get("/gateway-status", response_model=GatewayStatusResponse, summary="Check ARC Pay gateway status")
async def gateway_status():
    try:
        data = await checkout_service.gateway.check_gateway_status()
    except ArcPayError as e:
        logger.error(f"Gateway status check failed: {e.detail}")
        return GatewayStatusResponse(success=False, gatewayOperational=False, error=e.detail)

    status = data.get("status")
    return GatewayStatusResponse(
        success=True,
        gatewayOperational=status == "OPERATING",
        status=status,
        gatewayVersion=data.get("gatewayVersion"),
    )


@router.post("/session", response_model=SessionResponse, summary="Create an empty payment session")
async def create_session():
    try:
        data = await checkout_service.gateway.create_session()
    except ArcPayError as e:
        raise_http(e)
    return SessionResponse(sessionData=data)


# ============================================================
# Payment details
# ============================================================

@router.get("", response_model=PaymentResponse, summary="Latest payment for a quote")
async def get_payment_for_quote(quote_id: str = Query(...), db: Session = Depends(get_db)):
    payment = checkout_service.get_latest_payment_for_quote(db, quote_id)
    if not payment:
        raise HTTPException(status_code=404, detail="Payment not found")
    return payment_to_response(payment)


@router.get("/{payment_id}", response_model=PaymentResponse, summary="Get payment details")
async def get_payment(payment_id: str, db: Session = Depends(get_db)):
    try:
        return payment_to_response(checkout_service.get_payment(db, payment_id))
    except CheckoutError as e:
        raise_http(e)


# ============================================================
# Admin follow-up operations
# ============================================================

@router.post("/{payment_id}/refund", response_model=GatewayOperationResponse, summary="Refund a payment (admin)")
async def refund_payment(
    payment_id: str,
    request: RefundRequest,
    admin: dict = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        payment, response = await checkout_service.refund_payment(db, payment_id, request.amount, request.reason)
    except (CheckoutError, ArcPayError) as e:
        raise_http(e)
    return GatewayOperationResponse(
        operation="REFUND",
        gatewayResult=response.get("result"),
        transactionId=(response.get("transaction") or {}).get("id"),
        payment=payment_to_response(payment),
    )


@router.post("/{payment_id}/capture", response_model=GatewayOperationResponse, summary="Capture an authorization (admin)")
async def capture_payment(
    payment_id: str,
    request: CaptureRequest,
    admin: dict = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        payment, response = await checkout_service.capture_payment(db, payment_id, request.amount)
    except (CheckoutError, ArcPayError) as e:
        raise_http(e)
    return GatewayOperationResponse(
        operation="CAPTURE",
        gatewayResult=response.get("result"),
        transactionId=(response.get("transaction") or {}).get("id"),
        payment=payment_to_response(payment),
    )


@router.post("/{payment_id}/void", response_model=GatewayOperationResponse, summary="Void an authorization (admin)")
async def void_payment(
    payment_id: str,
    admin: dict = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        payment, response = await checkout_service.void_payment(db, payment_id)
    except (CheckoutError, ArcPayError) as e:
        raise_http(e)
    return GatewayOperationResponse(
        operation="VOID",
        gatewayResult=response.get("result"),
        transactionId=(response.get("transaction") or {}).get("id"),
        payment=payment_to_response(payment),
    )
