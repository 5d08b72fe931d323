"""
TripPay Backend - Admin Routes
Payment listing, statistics and admin cancellation
"""

from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from pydantic import BaseModel, Field

from trippay.database import get_db
from trippay.models import PaymentResponse, PaymentStatistics, CancelBookingResponse
from trippay.routes.auth import require_admin
from trippay.routes.bookings import cancel_response
from trippay.routes.payments import payment_to_response
from trippay.services.checkout_service import checkout_service, CheckoutError

router = APIRouter(prefix="/v1/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


class AdminCancelRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)


@router.get("/payments", response_model=List[PaymentResponse], summary="List payments")
async def list_payments(
    payment_status: Optional[str] = Query(None, alias="status"),
    quote_id: Optional[str] = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    payments = checkout_service.list_payments(db, payment_status, quote_id, limit, offset)
    return [payment_to_response(p) for p in payments]


@router.get("/payments/statistics", response_model=PaymentStatistics, summary="Payment statistics")
async def payment_statistics(db: Session = Depends(get_db)):
    return checkout_service.payment_statistics(db)


@router.post(
    "/bookings/{booking_reference}/cancel",
    response_model=CancelBookingResponse,
    summary="Cancel booking on behalf of the customer"
)
async def admin_cancel_booking(
    booking_reference: str,
    request: AdminCancelRequest,
    db: Session = Depends(get_db),
):
    try:
        booking, operation = await checkout_service.cancel_booking(
            db, booking_reference, reason=request.reason, cancelled_by="admin"
        )
    except CheckoutError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return cancel_response(booking, operation)
