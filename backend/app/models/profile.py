"""
Profile model: one row per identity-provider user.

credit_balance is only ever changed through the conditional UPDATE
statements in app.services.ledger.
"""
from datetime import datetime
from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String

from app.db.base import Base


class Profile(Base):
    """User profile keyed by the Clerk user id."""

    __tablename__ = "profiles"
    __table_args__ = (
        CheckConstraint("credit_balance >= 0", name="ck_profiles_credit_balance_non_negative"),
    )

    id = Column(String(255), primary_key=True)
    email = Column(String(255), nullable=False, index=True)
    credit_balance = Column(Integer, default=0, nullable=False)

    # Subscription info (set by billing reconciliation)
    subscription_tier = Column(String(50), default="free", nullable=True)  # free, starter, creator, influencer, agency
    subscription_status = Column(String(50), nullable=True)  # active, past_due, canceled, ...
    subscription_plan_id = Column(String(255), nullable=True)  # Stripe price id
    stripe_customer_id = Column(String(255), nullable=True, unique=True, index=True)
    stripe_subscription_id = Column(String(255), nullable=True, unique=True, index=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Profile(id={self.id}, email={self.email}, credits={self.credit_balance})>"
