"""
TripPay Backend - Database Configuration
SQLAlchemy + PostgreSQL setup
"""

from sqlalchemy import create_engine, Column, Integer, String, DateTime, Text, Numeric, ForeignKey
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker, relationship
from sqlalchemy.pool import StaticPool
from datetime import datetime
import enum
import uuid

from trippay.config import settings

DATABASE_URL = settings.database_url

if DATABASE_URL.startswith("sqlite"):
    # In-memory SQLite must share one connection across threads
    engine = create_engine(
        DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
else:
    engine = create_engine(DATABASE_URL, pool_pre_ping=True)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for models
Base = declarative_base()


# ============================================================
# Enums
# ============================================================

class PaymentStatus(str, enum.Enum):
    """Lifecycle of a payment record"""
    PENDING = "pending"
    AUTHORIZED = "authorized"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"
    REFUND_PENDING = "refund_pending"
    VOID_PENDING = "void_pending"
    VOIDED = "voided"


class BookingStatus(str, enum.Enum):
    """Lifecycle of a booking record"""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class QuoteStatus(str, enum.Enum):
    SENT = "sent"
    PAID = "paid"
    EXPIRED = "expired"


def generate_uuid() -> str:
    return str(uuid.uuid4())


# ============================================================
# Database Models (SQLAlchemy ORM)
# ============================================================

class QuoteDB(Base):
    """
    Agent-prepared price quote.
    Customers pay a quote through the same hosted checkout as direct bookings.
    """
    __tablename__ = "quotes"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    quote_number = Column(String(30), unique=True, nullable=False, index=True)
    title = Column(String(255), nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    status = Column(String(20), nullable=False, default=QuoteStatus.SENT.value, index=True)
    payment_status = Column(String(20), nullable=False, default="unpaid")
    customer_email = Column(String(255), nullable=False)
    customer_name = Column(String(200), nullable=True)
    expires_at = Column(DateTime, nullable=True)
    paid_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    payments = relationship("PaymentDB", back_populates="quote")


class PaymentDB(Base):
    """
    Payment record for one hosted checkout order.
    order_id is the order id known to the payment gateway.
    """
    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    order_id = Column(String(100), unique=True, nullable=False, index=True)
    booking_type = Column(String(20), nullable=False, default="flight")
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    payment_status = Column(String(30), nullable=False, default=PaymentStatus.PENDING.value, index=True)
    session_id = Column(String(100), nullable=True, index=True)
    success_indicator = Column(String(100), nullable=True)
    transaction_id = Column(String(100), nullable=True)
    refunded_amount = Column(Numeric(12, 2), nullable=False, default=0)
    customer_email = Column(String(255), nullable=True)
    customer_name = Column(String(200), nullable=True)
    quote_id = Column(String(36), ForeignKey("quotes.id", ondelete="SET NULL"), nullable=True, index=True)
    failure_reason = Column(String(255), nullable=True)
    metadata_json = Column(Text, nullable=True)  # last gateway order payload
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)

    quote = relationship("QuoteDB", back_populates="payments")
    bookings = relationship("BookingDB", back_populates="payment")


class BookingDB(Base):
    """
    Booking written before the gateway redirect and reconciled after it.
    booking_details / passenger_details hold the JSON the browser submitted.
    """
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    booking_reference = Column(String(20), unique=True, nullable=False, index=True)
    booking_type = Column(String(20), nullable=False, default="flight")
    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value, index=True)
    payment_id = Column(String(36), ForeignKey("payments.id", ondelete="SET NULL"), nullable=True, index=True)
    customer_email = Column(String(255), nullable=True, index=True)
    total_amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    booking_details = Column(Text, nullable=True)
    passenger_details = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    payment = relationship("PaymentDB", back_populates="bookings")

    @staticmethod
    def generate_reference() -> str:
        """Short customer-facing booking reference, e.g. TP3F9A1C2B"""
        return "TP" + uuid.uuid4().hex[:8].upper()


# ============================================================
# Database Utilities
# ============================================================

def init_db():
    """Initialize database - create all tables"""
    Base.metadata.create_all(bind=engine)


def get_db():
    """
    Dependency to get database session.
    Yields a session and ensures it's closed after use.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
