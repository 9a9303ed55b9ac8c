"""
Processed webhook events, used to make webhook handling idempotent.
"""
from datetime import datetime
from sqlalchemy import Column, DateTime, String

from app.db.base import Base


class WebhookEvent(Base):
    """A webhook delivery that has already been applied."""

    __tablename__ = "webhook_events"

    id = Column(String(255), primary_key=True)  # Stripe event id or svix-id
    source = Column(String(50), nullable=False)  # stripe, clerk
    event_type = Column(String(100), nullable=False)
    received_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<WebhookEvent(id={self.id}, source={self.source}, type={self.event_type})>"
