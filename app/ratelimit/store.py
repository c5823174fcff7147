"""
Attempt stores for the rate limiter.
The guard only talks to the AttemptStore interface so storage can be swapped or
made to fail in tests.
"""
from datetime import datetime, timezone
from typing import List

from sqlalchemy.orm import Session

from app.ratelimit.models import RateLimitAttempt


def as_utc(moment: datetime) -> datetime:
    """SQLite drops tzinfo; stored timestamps are always UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


class AttemptStore:
    """Storage port for recorded attempts. Implementations raise on infrastructure failure."""

    def fetch_attempts(self, identifier: str, action: str, since: datetime) -> List[datetime]:
        """Returns the timestamps of attempts recorded at or after `since`."""
        raise NotImplementedError

    def record_attempt(self, identifier: str, action: str, at: datetime) -> None:
        raise NotImplementedError


class SqlAttemptStore(AttemptStore):
    """AttemptStore over the rate_limit_attempts table."""

    def __init__(self, db: Session):
        self.db = db

    def fetch_attempts(self, identifier: str, action: str, since: datetime) -> List[datetime]:
        rows = self.db.query(RateLimitAttempt.created_at).filter(
            RateLimitAttempt.identifier == identifier,
            RateLimitAttempt.action == action,
            RateLimitAttempt.created_at >= since
        ).order_by(RateLimitAttempt.created_at.asc()).all()
        return [as_utc(row.created_at) for row in rows]

    def record_attempt(self, identifier: str, action: str, at: datetime) -> None:
        try:
            self.db.add(RateLimitAttempt(identifier=identifier, action=action, created_at=at))
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def prune_before(self, cutoff: datetime) -> int:
        """Deletes attempts older than `cutoff`. Returns the number of rows removed."""
        try:
            deleted = self.db.query(RateLimitAttempt).filter(
                RateLimitAttempt.created_at < cutoff
            ).delete(synchronize_session=False)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return deleted
