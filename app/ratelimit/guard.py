"""
Sliding-window rate limiter for login and signup.

Attempts are counted per (identifier, action) over a trailing window. Storage
failures fail open: a legitimate user is never locked out by an outage.
The check-then-record sequence is not atomic, so concurrent requests may let
one extra attempt through.
"""
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from app.core.config import settings
from app.core.logger import logger, audit_log
from app.core.security import mask_sensitive_data
from app.ratelimit.schemas import RateLimitAction, RateLimitDecision
from app.ratelimit.store import AttemptStore


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def default_limits() -> Dict[RateLimitAction, int]:
    return {
        RateLimitAction.LOGIN: settings.RATE_LIMIT_LOGIN_MAX_ATTEMPTS,
        RateLimitAction.SIGNUP: settings.RATE_LIMIT_SIGNUP_MAX_ATTEMPTS,
    }


class RateLimitGuard:
    """
    Decides whether an attempt is allowed.
    Store access and the clock are injected so failures and time can be simulated.
    """

    def __init__(
        self,
        store: AttemptStore,
        clock: Callable[[], datetime] = utcnow,
        window: Optional[timedelta] = None,
        limits: Optional[Dict[RateLimitAction, int]] = None,
    ):
        self.store = store
        self.clock = clock
        self.window = window or timedelta(minutes=settings.RATE_LIMIT_WINDOW_MINUTES)
        self.limits = limits or default_limits()

    @property
    def blocked_message(self) -> str:
        minutes = int(self.window.total_seconds() // 60)
        return f"Muitas tentativas. Aguarde {minutes} minutos."

    def max_attempts(self, action: RateLimitAction) -> int:
        return self.limits[action]

    def check(self, identifier: str, action: RateLimitAction) -> RateLimitDecision:
        """Counts attempts in the window and records this one when it is allowed."""
        now = self.clock()
        window_start = now - self.window
        max_attempts = self.max_attempts(action)
        masked = mask_sensitive_data(identifier)

        try:
            attempts = self.store.fetch_attempts(identifier, action.value, window_start)
        except Exception as e:
            logger.error(f"Error fetching rate limit attempts for {masked} ({action.value}): {str(e)}", exc_info=True)
            return RateLimitDecision(allowed=True, warning="Rate limit check failed")

        attempt_count = len(attempts)

        if attempt_count >= max_attempts:
            reset_at = min(attempts) + self.window
            logger.warning(f"Rate limit exceeded for {masked} ({action.value}): {attempt_count} attempts")
            audit_log(
                action="rate_limit_blocked",
                user=masked,
                resource=action.value,
                details={"attempts": attempt_count, "reset_at": reset_at.isoformat()}
            )
            return RateLimitDecision(
                allowed=False,
                remaining_attempts=0,
                reset_time=int(reset_at.timestamp() * 1000),
                message=self.blocked_message,
            )

        try:
            self.store.record_attempt(identifier, action.value, now)
        except Exception as e:
            logger.error(f"Error recording rate limit attempt for {masked} ({action.value}): {str(e)}", exc_info=True)

        return RateLimitDecision(
            allowed=True,
            remaining_attempts=max_attempts - attempt_count - 1,
            message="Request allowed",
        )
