"""
TripPay Backend - Pydantic Models
Request / response schemas
"""

from pydantic import BaseModel, Field, EmailStr
from typing import Optional, List, Dict, Any
from datetime import datetime
from decimal import Decimal
from enum import Enum


# ============================================================
# Enums
# ============================================================

class BookingType(str, Enum):
    """What the customer is paying for"""
    FLIGHT = "flight"
    CRUISE = "cruise"
    HOTEL = "hotel"
    PACKAGE = "package"


class CheckoutOperation(str, Enum):
    """Hosted checkout interaction operation"""
    PURCHASE = "PURCHASE"    # authorize + capture
    AUTHORIZE = "AUTHORIZE"  # authorize only, capture later


class CheckoutOutcome(str, Enum):
    """Result of reconciling a return from the hosted payment page"""
    SUCCESS = "success"
    PENDING = "pending"
    FAILED = "failed"


class BookingTab(str, Enum):
    """My-trips tab filters"""
    UPCOMING = "upcoming"
    CANCELLED = "cancelled"
    FAILED = "failed"


# ============================================================
# Checkout Models
# ============================================================

class HostedCheckoutRequest(BaseModel):
    """Direct booking checkout (flight, cruise, hotel, package)"""
    amount: Decimal = Field(gt=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    order_id: str = Field(alias="orderId", min_length=1, max_length=100)
    booking_type: BookingType = Field(default=BookingType.FLIGHT, alias="bookingType")
    operation: CheckoutOperation = CheckoutOperation.PURCHASE
    customer_email: Optional[EmailStr] = Field(default=None, alias="customerEmail")
    customer_name: Optional[str] = Field(default=None, alias="customerName", max_length=200)
    customer_phone: Optional[str] = Field(default=None, alias="customerPhone")
    description: Optional[str] = None
    return_url: Optional[str] = Field(default=None, alias="returnUrl")
    cancel_url: Optional[str] = Field(default=None, alias="cancelUrl")
    booking_data: Optional[Dict[str, Any]] = Field(default=None, alias="bookingData")
    flight_data: Optional[Dict[str, Any]] = Field(default=None, alias="flightData")
    passenger_details: Optional[List[Dict[str, Any]]] = Field(default=None, alias="passengerDetails")

    class Config:
        populate_by_name = True


class HostedCheckoutResponse(BaseModel):
    """Session details the browser needs to redirect to the payment page"""
    success: bool = True
    session_id: str = Field(alias="sessionId")
    success_indicator: Optional[str] = Field(default=None, alias="successIndicator")
    merchant_id: str = Field(alias="merchantId")
    order_id: str = Field(alias="orderId")
    payment_id: str = Field(alias="paymentId")
    booking_reference: Optional[str] = Field(default=None, alias="bookingReference")
    payment_page_url: str = Field(alias="paymentPageUrl")
    checkout_url: str = Field(alias="checkoutUrl")
    redirect_method: str = Field(default="GET", alias="redirectMethod")
    message: str = "Hosted checkout session created successfully"

    class Config:
        populate_by_name = True


class QuoteCheckoutRequest(BaseModel):
    """Pay an agent-prepared quote"""
    quote_id: str = Field(alias="quoteId")
    return_url: Optional[str] = Field(default=None, alias="returnUrl")
    cancel_url: Optional[str] = Field(default=None, alias="cancelUrl")

    class Config:
        populate_by_name = True


class GatewayStatusResponse(BaseModel):
    success: bool
    gateway_operational: bool = Field(alias="gatewayOperational")
    status: Optional[str] = None
    gateway_version: Optional[str] = Field(default=None, alias="gatewayVersion")
    error: Optional[str] = None

    class Config:
        populate_by_name = True


class SessionResponse(BaseModel):
    success: bool = True
    session_data: Dict[str, Any] = Field(alias="sessionData")
    message: str = "Session created successfully"

    class Config:
        populate_by_name = True


# ============================================================
# Payment Models
# ============================================================

class PaymentResponse(BaseModel):
    """Payment record as exposed to the frontend and admin panel"""
    id: str
    order_id: str = Field(alias="orderId")
    booking_type: str = Field(alias="bookingType")
    amount: float
    currency: str
    payment_status: str = Field(alias="paymentStatus")
    session_id: Optional[str] = Field(default=None, alias="sessionId")
    transaction_id: Optional[str] = Field(default=None, alias="transactionId")
    refunded_amount: float = Field(default=0, alias="refundedAmount")
    customer_email: Optional[str] = Field(default=None, alias="customerEmail")
    customer_name: Optional[str] = Field(default=None, alias="customerName")
    quote_id: Optional[str] = Field(default=None, alias="quoteId")
    failure_reason: Optional[str] = Field(default=None, alias="failureReason")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")
    completed_at: Optional[datetime] = Field(default=None, alias="completedAt")

    class Config:
        populate_by_name = True


class RefundRequest(BaseModel):
    """Refund a captured payment; omit amount for the remaining balance"""
    amount: Optional[Decimal] = Field(default=None, gt=0)
    reason: Optional[str] = None


class CaptureRequest(BaseModel):
    """Capture an authorized payment; omit amount for the full amount"""
    amount: Optional[Decimal] = Field(default=None, gt=0)


class GatewayOperationResponse(BaseModel):
    """Result of a refund / capture / void"""
    success: bool = True
    operation: str
    gateway_result: Optional[str] = Field(default=None, alias="gatewayResult")
    transaction_id: Optional[str] = Field(default=None, alias="transactionId")
    payment: PaymentResponse

    class Config:
        populate_by_name = True


class PaymentStatistics(BaseModel):
    total: int
    completed: int
    pending: int
    failed: int
    refunded: int
    total_amount: float = Field(alias="totalAmount")

    class Config:
        populate_by_name = True


# ============================================================
# Quote Models
# ============================================================

class QuoteCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    total_amount: Decimal = Field(gt=0, alias="totalAmount")
    currency: str = Field(default="USD", min_length=3, max_length=3)
    customer_email: EmailStr = Field(alias="customerEmail")
    customer_name: Optional[str] = Field(default=None, alias="customerName")
    expires_at: Optional[datetime] = Field(default=None, alias="expiresAt")
    validity_days: int = Field(default=30, ge=1, le=365, alias="validityDays")

    class Config:
        populate_by_name = True


class QuoteResponse(BaseModel):
    id: str
    quote_number: str = Field(alias="quoteNumber")
    title: str
    total_amount: float = Field(alias="totalAmount")
    currency: str
    status: str
    payment_status: str = Field(alias="paymentStatus")
    customer_email: str = Field(alias="customerEmail")
    customer_name: Optional[str] = Field(default=None, alias="customerName")
    paid_at: Optional[datetime] = Field(default=None, alias="paidAt")
    expires_at: Optional[datetime] = Field(default=None, alias="expiresAt")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    class Config:
        populate_by_name = True


# ============================================================
# Booking Models
# ============================================================

class BookingResponse(BaseModel):
    booking_reference: str = Field(alias="bookingReference")
    booking_type: str = Field(alias="bookingType")
    status: str
    payment_status: Optional[str] = Field(default=None, alias="paymentStatus")
    customer_email: Optional[str] = Field(default=None, alias="customerEmail")
    total_amount: float = Field(alias="totalAmount")
    currency: str
    booking_details: Dict[str, Any] = Field(default_factory=dict, alias="bookingDetails")
    passenger_details: List[Dict[str, Any]] = Field(default_factory=list, alias="passengerDetails")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    class Config:
        populate_by_name = True


class CancelBookingRequest(BaseModel):
    """Customer cancellation; email must match the booking"""
    email: EmailStr
    reason: Optional[str] = Field(default=None, max_length=500)


class CancelBookingResponse(BaseModel):
    success: bool = True
    booking_reference: str = Field(alias="bookingReference")
    status: str
    payment_status: Optional[str] = Field(default=None, alias="paymentStatus")
    gateway_operation: Optional[str] = Field(default=None, alias="gatewayOperation")
    message: str

    class Config:
        populate_by_name = True


# ============================================================
# Admin Authentication Models
# ============================================================

class AdminLogin(BaseModel):
    email: EmailStr
    password: str


class Token(BaseModel):
    """JWT token response"""
    access_token: str = Field(alias="accessToken")
    token_type: str = Field(default="bearer", alias="tokenType")
    expires_in: int = Field(alias="expiresIn")  # seconds

    class Config:
        populate_by_name = True

