"""
Attempt log backing the login/signup rate limiter.
Rows are append-only; expired rows are removed by the maintenance script.
"""
from sqlalchemy import String, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from uuid import uuid4
from app.core.database import Base


class RateLimitAttempt(Base):
    __tablename__ = "rate_limit_attempts"
    __table_args__ = (
        Index("ix_rate_limit_attempts_lookup", "identifier", "action", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    identifier: Mapped[str] = mapped_column(String(255), nullable=False)
    action: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    def __repr__(self):
        return f"<RateLimitAttempt(action={self.action}, created_at={self.created_at})>"
