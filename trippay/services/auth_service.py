"""
TripPay Backend - Authentication Service
JWT token handling and password hashing for admin operations
"""

from datetime import datetime, timedelta
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext

from trippay.config import settings


# Password hashing context using sha256_crypt (more compatible than bcrypt)
pwd_context = CryptContext(schemes=["sha256_crypt"], deprecated="auto")

ADMIN_ROLE = "admin"


class AuthService:
    """Service for admin authentication"""

    def __init__(self):
        self.secret_key = settings.jwt_secret
        self.algorithm = settings.jwt_algorithm
        self.access_token_expire_minutes = settings.jwt_expire_minutes

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """Verify a password against its hash"""
        if not hashed_password:
            return False
        return pwd_context.verify(plain_password, hashed_password)

    def hash_password(self, password: str) -> str:
        """Hash a password; store the result in ADMIN_PASSWORD_HASH"""
        return pwd_context.hash(password)

    def authenticate_admin(self, email: str, password: str) -> bool:
        if email.lower() != settings.admin_email.lower():
            return False
        return self.verify_password(password, settings.admin_password_hash)

    def create_access_token(self, email: str, role: str = ADMIN_ROLE) -> tuple[str, int]:
        """
        Create a JWT access token.
        Returns tuple of (token, expires_in_seconds)
        """
        expire = datetime.utcnow() + timedelta(minutes=self.access_token_expire_minutes)
        expires_in_seconds = self.access_token_expire_minutes * 60

        to_encode = {
            "sub": email,
            "role": role,
            "exp": expire,
            "iat": datetime.utcnow()
        }

        token = jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)
        return token, expires_in_seconds

    def decode_token(self, token: str) -> Optional[dict]:
        """
        Decode and validate a JWT token.
        Returns the payload if valid, None otherwise.
        """
        try:
            return jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            return None


# Singleton instance
auth_service = AuthService()
