"""
Password hashing, token issuing and data masking.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import jwt
from passlib.context import CryptContext
from app.core.config import settings

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verifies a plaintext password against the stored argon2 hash."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Generates a signed JWT with configurable expiration.
    Falls back to ACCESS_TOKEN_EXPIRE_MINUTES when no delta is given.
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})

    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """Decodes and verifies a JWT. Raises jose.JWTError when invalid or expired."""
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


def mask_sensitive_data(value: str, mask_char: str = "*", visible_chars: int = 4) -> str:
    """
    Sanitizes identifiers for logs, keeping only the trailing characters.
    Emails keep the first two characters of the user part and the domain.
    """
    if not value:
        return ""

    if "@" in value:
        user, _, domain = value.partition("@")
        return f"{user[:2]}***@{domain}"

    if len(value) <= visible_chars:
        return mask_char * len(value)

    return mask_char * (len(value) - visible_chars) + value[-visible_chars:]
