from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.core.logger import logger
from app.core.security import get_password_hash, verify_password, create_access_token, mask_sensitive_data
from app.auth.models import User
from app.auth.schemas import UserCreate, UserLogin, TokenResponse, UserResponse
from app.auth.dependencies import get_current_user
from app.ratelimit.guard import RateLimitGuard
from app.ratelimit.router import get_rate_limit_guard
from app.ratelimit.schemas import RateLimitAction

router = APIRouter()


def _enforce_rate_limit(guard: RateLimitGuard, identifier: str, action: RateLimitAction) -> None:
    decision = guard.check(identifier, action)
    if not decision.allowed:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=decision.message or "Muitas tentativas. Aguarde alguns minutos."
        )


def _issue_token(response: Response, user: User) -> TokenResponse:
    access_token_expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = create_access_token(
        data={"sub": user.id, "name": user.name},
        expires_delta=access_token_expires
    )

    response.set_cookie(
        key="access_token",
        value=f"Bearer {access_token}",
        httponly=True,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        expires=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )

    return TokenResponse(access_token=access_token, name=user.name)


@router.post("/register", response_model=TokenResponse, status_code=201)
def register(
    response: Response,
    user: UserCreate,
    db: Session = Depends(get_db),
    guard: RateLimitGuard = Depends(get_rate_limit_guard)
) -> TokenResponse:
    _enforce_rate_limit(guard, user.email, RateLimitAction.SIGNUP)

    if db.query(User).filter(User.email == user.email).first():
        raise HTTPException(status_code=400, detail="E-mail já cadastrado")

    new_user = User(
        name=user.name,
        email=user.email,
        hashed_password=get_password_hash(user.password)
    )
    db.add(new_user)
    db.commit()
    db.refresh(new_user)

    logger.info(f"New broker registered: {mask_sensitive_data(new_user.email)}")

    # Auto-login after registration
    return _issue_token(response, new_user)


@router.post("/login", response_model=TokenResponse)
def login(
    response: Response,
    user_in: UserLogin,
    db: Session = Depends(get_db),
    guard: RateLimitGuard = Depends(get_rate_limit_guard)
) -> TokenResponse:
    _enforce_rate_limit(guard, user_in.email, RateLimitAction.LOGIN)

    user = db.query(User).filter(User.email == user_in.email).first()
    if not user or not verify_password(user_in.password, user.hashed_password):
        raise HTTPException(status_code=401, detail="Credenciais inválidas")

    return _issue_token(response, user)


@router.get("/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse(id=current_user.id, name=current_user.name, email=current_user.email)


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie("access_token")
    return {"message": "Logged out"}
