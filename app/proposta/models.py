"""
Data models for saved payment flow proposals.
The proposal itself is stored as an opaque JSON document.
"""
from sqlalchemy import String, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4
from app.core.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PaymentFlow(Base):
    """A proposal saved by a broker for one client."""

    __tablename__ = "payment_flows"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    client_name: Mapped[str] = mapped_column(String(200), nullable=False)
    calculation_data: Mapped[str] = mapped_column(Text, nullable=False)  # Serialized JSON, camelCase
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, index=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def __repr__(self):
        return f"<PaymentFlow(id={self.id}, client_name={self.client_name!r})>"
