"""Outbox rows: integration events staged in the same commit as the domain write."""

from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy.orm import Mapped, mapped_column

from gameia.extensions import db

PENDING = "pending"
SENDING = "sending"
SENT = "sent"
RETRY = "retry"
FAILED = "failed"

DELIVERABLE = (PENDING, RETRY)


class OutboxMessage(db.Model):
    __tablename__ = "platform_outbox"
    __table_args__ = (
        db.Index("ix_platform_outbox_status_available_at", "status", "available_at"),
        db.Index("ix_platform_outbox_user_available_at", "user_id", "available_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str | None] = mapped_column(db.String(64), index=True)
    organization_id: Mapped[str | None] = mapped_column(db.String(64))
    event_type: Mapped[str] = mapped_column(db.String(128), nullable=False, index=True)
    payload: Mapped[dict] = mapped_column(db.JSON, nullable=False, default=dict)
    status: Mapped[str] = mapped_column(db.String(32), nullable=False, default=PENDING)
    attempts: Mapped[int] = mapped_column(default=0)
    available_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    sent_at: Mapped[datetime | None] = mapped_column()
    last_error: Mapped[str | None] = mapped_column(db.Text)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)

    @property
    def external_id(self) -> str:
        """Stable id consumers use to drop redeliveries."""
        return f"{self.event_type}:{self.id}"

    def claim(self) -> None:
        self.status = SENDING
        self.attempts = (self.attempts or 0) + 1

    def mark_sent(self, now: datetime | None = None) -> None:
        self.status = SENT
        self.sent_at = now or datetime.utcnow()
        self.last_error = None

    def mark_failed(self, error: str, delay_seconds: float, max_attempts: int) -> None:
        """Push the message back by ``delay_seconds``; give up after ``max_attempts``."""
        retry_at = datetime.utcnow() + timedelta(seconds=delay_seconds)
        self.last_error = error[:2000]
        self.available_at = max(self.available_at or retry_at, retry_at)
        self.status = FAILED if (self.attempts or 0) >= max_attempts else RETRY

    def __repr__(self) -> str:
        return f"<OutboxMessage {self.id} {self.event_type} {self.status}>"
