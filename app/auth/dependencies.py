from typing import Optional

from fastapi import Request, HTTPException, Depends, status
from jose import JWTError
from sqlalchemy.orm import Session
from app.core.database import get_db
from app.core.security import decode_access_token
from app.auth.models import User


def _extract_token(request: Request) -> Optional[str]:
    """Reads the token from the Authorization header, falling back to the access_token cookie."""
    raw = request.headers.get("Authorization") or request.cookies.get("access_token")
    if not raw:
        return None

    # Format: "Bearer <token>"
    scheme, _, param = raw.partition(" ")
    return param or scheme


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """
    Resolves the authenticated broker from the request token.
    """
    token = _extract_token(request)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_access_token(token)
        user_id = payload.get("sub")
        if not user_id or not isinstance(user_id, str):
            raise credentials_exception
    except JWTError:
        raise credentials_exception

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise credentials_exception

    return user
