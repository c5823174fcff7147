"""
FastAPI Router for the login/signup rate limit check.
"""
from typing import Optional

from fastapi import APIRouter, Body, Depends, Response
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.ratelimit.guard import RateLimitGuard
from app.ratelimit.schemas import RateLimitAction, RateLimitDecision, RateLimitRequest
from app.ratelimit.store import SqlAttemptStore

router = APIRouter(tags=["Rate Limit"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


def get_rate_limit_guard(db: Session = Depends(get_db)) -> RateLimitGuard:
    """Guard bound to the request's database session."""
    return RateLimitGuard(SqlAttemptStore(db))


def _reply(status_code: int, decision: RateLimitDecision) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=decision.to_payload(), headers=CORS_HEADERS)


@router.options("")
def rate_limit_preflight() -> Response:
    """CORS preflight for browser clients."""
    return Response(status_code=200, headers=CORS_HEADERS)


@router.post("", response_model=RateLimitDecision, responses={400: {}, 429: {}})
def check_rate_limit(
    data: Optional[RateLimitRequest] = Body(default=None),
    guard: RateLimitGuard = Depends(get_rate_limit_guard)
) -> JSONResponse:
    """
    Checks and records a login/signup attempt.

    - **identifier**: e-mail or IP address
    - **action**: `login` (5 per 15 min) or `signup` (3 per 15 min)

    **Returns:** 200 when allowed (or when the check itself failed), 429 when
    blocked, 400 when a field is missing.
    """
    identifier = (data.identifier or "").strip() if data else ""
    action = data.action if data else None

    if not identifier or not action:
        return _reply(400, RateLimitDecision(allowed=False, error="Missing identifier or action"))

    try:
        rate_action = RateLimitAction(action)
    except ValueError:
        return _reply(400, RateLimitDecision(allowed=False, error=f"Unsupported action: {action}"))

    decision = guard.check(identifier, rate_action)
    return _reply(200 if decision.allowed else 429, decision)
