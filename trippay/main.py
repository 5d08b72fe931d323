"""
TripPay Backend - Main Application
FastAPI entry point
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import time

from trippay.config import settings
from trippay.routes.auth import router as auth_router
from trippay.routes.payments import router as payments_router
from trippay.routes.bookings import router as bookings_router
from trippay.routes.quotes import router as quotes_router
from trippay.routes.admin import router as admin_router
from trippay.services import get_checkout_service
from trippay.services.arc_pay_client import ArcPayError
from trippay.database import init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle"""
    # Startup
    print("💳 TripPay Backend starting...")
    print(f"   Debug mode: {settings.debug}")
    print(f"   ARC Pay: {'✓ merchant ' + settings.arc_pay_merchant_id if settings.arc_pay_configured else '✗ not configured'}")
    print(f"   ARC Pay API version: {settings.arc_pay_api_version}")
    print(f"   Airline data: {'✓ enabled' if settings.arc_enable_airline_data else '✗ disabled'}")
    print(f"   Frontend: {settings.frontend_url}")
    print(f"   Admin login: {'✓ configured' if settings.admin_password_hash else '✗ ADMIN_PASSWORD_HASH not set'}")
    print(f"   Email Notifications: {'✓ configured' if settings.smtp_host else '✗ not configured'}")

    print("   Initializing database...")
    init_db()
    print("   Database: ✓ ready")

    yield

    # Shutdown
    print("💳 TripPay Backend shutting down...")
    await get_checkout_service().gateway.close()


# Create FastAPI application
app = FastAPI(
    title="TripPay API",
    description="""
    ## TripPay Hosted Checkout API

    Payment backend for flight, cruise, hotel and package bookings.

    ### Flow

    - **Checkout**: create an ARC Pay hosted checkout session and a pending booking
    - **Redirect**: the browser opens the hosted payment page
    - **Callback**: the return URL reconciles the booking with the gateway order
    - **After sale**: refunds, captures, voids and cancellations
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=False,  # Must be False when using wildcard "*" for origins
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request timing middleware
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(round(process_time * 1000, 2))
    return response


# Exception handlers
@app.exception_handler(ArcPayError)
async def gateway_exception_handler(request: Request, exc: ArcPayError):
    logger.error(f"Unhandled gateway error on {request.url.path}: {exc.detail}")
    return JSONResponse(
        status_code=502,
        content={
            "error": "Payment Gateway Error",
            "detail": exc.detail,
            "code": 502
        }
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
            "code": 500
        }
    )


# Include routers
app.include_router(auth_router)
app.include_router(payments_router)
app.include_router(bookings_router)
app.include_router(quotes_router)
app.include_router(admin_router)


# Root endpoint
@app.get("/", tags=["Health"])
async def root():
    return {
        "name": "TripPay API",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs",
        "health": "/health"
    }


@app.get("/health", tags=["Health"])
async def health_check():
    return {
        "status": "healthy",
        "services": {
            "api": "ok",
            "arc_pay": "ok" if settings.arc_pay_configured else "not_configured",
            "email": "ok" if settings.smtp_host else "not_configured"
        }
    }


# Run with: uvicorn trippay.main:app --reload
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "trippay.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
