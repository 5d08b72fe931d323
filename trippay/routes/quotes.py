"""
TripPay Backend - Quote Routes
Agent-prepared quotes that customers pay through hosted checkout
"""

from fastapi import APIRouter, HTTPException, Depends, status
from sqlalchemy.orm import Session
from datetime import datetime, timedelta, timezone
from decimal import Decimal
import uuid

from trippay.database import get_db, QuoteDB, QuoteStatus
from trippay.models import QuoteCreate, QuoteResponse
from trippay.routes.auth import require_admin
from trippay.services.checkout_builder import format_amount

router = APIRouter(prefix="/v1/quotes", tags=["Quotes"])


def quote_to_response(quote: QuoteDB) -> QuoteResponse:
    return QuoteResponse(
        id=quote.id,
        quoteNumber=quote.quote_number,
        title=quote.title,
        totalAmount=float(quote.total_amount),
        currency=quote.currency,
        status=quote.status,
        paymentStatus=quote.payment_status,
        customerEmail=quote.customer_email,
        customerName=quote.customer_name,
        paidAt=quote.paid_at,
        expiresAt=quote.expires_at,
        createdAt=quote.created_at,
    )


def generate_quote_number() -> str:
    """e.g. Q261018-4F2A9C"""
    return f"Q{datetime.utcnow():%y%m%d}-{uuid.uuid4().hex[:6].upper()}"


@router.post(
    "",
    response_model=QuoteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create quote (admin)"
)
async def create_quote(
    quote_data: QuoteCreate,
    admin: dict = Depends(require_admin),
    db: Session = Depends(get_db),
):
    total_amount = Decimal(format_amount(quote_data.total_amount))
    if total_amount <= 0:
        raise HTTPException(status_code=400, detail="Quote total must be at least 0.01")

    expires_at = quote_data.expires_at
    if expires_at is None:
        expires_at = datetime.utcnow() + timedelta(days=quote_data.validity_days)
    elif expires_at.tzinfo is not None:
        # Stored naive in UTC like the other timestamps
        expires_at = expires_at.astimezone(timezone.utc).replace(tzinfo=None)

    quote = QuoteDB(
        quote_number=generate_quote_number(),
        title=quote_data.title,
        total_amount=total_amount,
        currency=quote_data.currency.upper(),
        status=QuoteStatus.SENT.value,
        payment_status="unpaid",
        customer_email=quote_data.customer_email,
        customer_name=quote_data.customer_name,
        expires_at=expires_at,
    )
    db.add(quote)
    db.commit()
    db.refresh(quote)
    return quote_to_response(quote)


@router.get("/{quote_id}", response_model=QuoteResponse, summary="Get quote")
async def get_quote(quote_id: str, db: Session = Depends(get_db)):
    quote = db.query(QuoteDB).filter(QuoteDB.id == quote_id).first()
    if not quote:
        raise HTTPException(status_code=404, detail="Quote not found")
    return quote_to_response(quote)
