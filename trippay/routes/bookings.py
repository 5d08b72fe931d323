"""
TripPay Backend - Booking Routes
Booking lookup, my-trips listing and customer cancellation
"""

from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
import json

from trippay.database import get_db, BookingDB
from trippay.models import BookingResponse, BookingTab, CancelBookingRequest, CancelBookingResponse
from trippay.services.checkout_service import checkout_service, CheckoutError

router = APIRouter(prefix="/v1/bookings", tags=["Bookings"])


def booking_to_response(booking: BookingDB) -> BookingResponse:
    return BookingResponse(
        bookingReference=booking.booking_reference,
        bookingType=booking.booking_type,
        status=booking.status,
        paymentStatus=booking.payment.payment_status if booking.payment else None,
        customerEmail=booking.customer_email,
        totalAmount=float(booking.total_amount),
        currency=booking.currency,
        bookingDetails=json.loads(booking.booking_details) if booking.booking_details else {},
        passengerDetails=json.loads(booking.passenger_details) if booking.passenger_details else [],
        createdAt=booking.created_at,
    )


def cancel_response(booking: BookingDB, operation: Optional[str]) -> CancelBookingResponse:
    payment_status = booking.payment.payment_status if booking.payment else None
    if payment_status == "refund_pending":
        message = "Booking cancelled. The refund will be processed shortly."
    elif payment_status == "void_pending":
        message = "Booking cancelled. The card authorization will be released shortly."
    elif operation == "REFUND":
        message = "Booking cancelled and payment refunded."
    elif operation == "VOID":
        message = "Booking cancelled and card authorization released."
    else:
        message = "Booking cancelled."
    return CancelBookingResponse(
        bookingReference=booking.booking_reference,
        status=booking.status,
        paymentStatus=payment_status,
        gatewayOperation=operation,
        message=message,
    )


@router.get("", response_model=List[BookingResponse], summary="My trips")
async def list_bookings(
    email: str = Query(..., description="Customer email the bookings were made with"),
    tab: Optional[BookingTab] = Query(None, description="upcoming, cancelled or failed"),
    db: Session = Depends(get_db),
):
    return [booking_to_response(b) for b in checkout_service.list_bookings(db, email, tab)]


@router.get("/{booking_reference}", response_model=BookingResponse, summary="Get booking")
async def get_booking(booking_reference: str, db: Session = Depends(get_db)):
    try:
        return booking_to_response(checkout_service.get_booking(db, booking_reference))
    except CheckoutError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post(
    "/{booking_reference}/cancel",
    response_model=CancelBookingResponse,
    summary="Cancel booking",
    description="Cancels the booking and refunds (captured) or voids (authorized) the payment through ARC Pay."
)
async def cancel_booking(
    booking_reference: str,
    request: CancelBookingRequest,
    db: Session = Depends(get_db),
):
    try:
        booking, operation = await checkout_service.cancel_booking(
            db,
            booking_reference,
            reason=request.reason,
            cancelled_by="customer",
            email=request.email,
        )
    except CheckoutError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return cancel_response(booking, operation)
