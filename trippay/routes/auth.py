"""
TripPay Backend - Authentication Routes
Admin login and the bearer-token dependency for admin endpoints
"""

from fastapi import APIRouter, HTTPException, status, Header
from typing import Optional

from trippay.models import AdminLogin, Token
from trippay.services.auth_service import auth_service, ADMIN_ROLE

router = APIRouter(prefix="/v1/auth", tags=["Authentication"])


# ============================================================
# Helper Functions
# ============================================================

def require_admin(authorization: Optional[str] = Header(None)) -> dict:
    """
    Dependency that requires an admin bearer token.
    Raises 401 if the token is missing, invalid or not an admin token.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"}
        )

    token = authorization.split(" ")[1]
    payload = auth_service.decode_token(token)
    if not payload or payload.get("role") != ADMIN_ROLE:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"}
        )
    return payload


# ============================================================
# Authentication Endpoints
# ============================================================

@router.post(
    "/login",
    response_model=Token,
    summary="Admin login",
    description="Exchange admin credentials for a bearer token"
)
async def login(credentials: AdminLogin):
    if not auth_service.authenticate_admin(credentials.email, credentials.password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password"
        )

    token, expires_in = auth_service.create_access_token(credentials.email)
    return Token(accessToken=token, expiresIn=expires_in)
