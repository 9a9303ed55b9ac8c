"""
Credit ledger.

Every balance change is a single UPDATE statement evaluated by the database
(``credit_balance = credit_balance +/- n``), never a read-modify-write in
Python, so concurrent requests for the same user cannot lose updates or push
the balance below zero.
"""
from datetime import datetime
import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.core.errors import InsufficientCredits, ProfileNotFound
from app.models import Profile

logger = logging.getLogger(__name__)


class CreditLedger:
    """Atomic credit balance operations on the profiles table."""

    def get_balance(self, db: Session, user_id: str) -> int:
        balance = db.query(Profile.credit_balance).filter(Profile.id == user_id).scalar()
        if balance is None:
            raise ProfileNotFound()
        return balance

    def _profile_exists(self, db: Session, user_id: str) -> bool:
        return db.query(Profile.id).filter(Profile.id == user_id).first() is not None

    def decrement(self, db: Session, user_id: str, amount: int = 1) -> int:
        """
        Consume credits if the balance covers them.

        Args:
            db: Database session
            user_id: Profile id
            amount: Credits to consume

        Returns:
            New balance

        Raises:
            InsufficientCredits: Balance is lower than amount
            ProfileNotFound: No profile for user_id
        """
        if amount <= 0:
            raise ValueError("Decrement amount must be positive")

        updated = db.query(Profile).filter(
            Profile.id == user_id,
            Profile.credit_balance >= amount,
        ).update(
            {
                Profile.credit_balance: Profile.credit_balance - amount,
                Profile.updated_at: datetime.utcnow(),
            },
            synchronize_session=False,
        )
        db.commit()

        if updated == 0:
            if not self._profile_exists(db, user_id):
                raise ProfileNotFound()
            logger.info(f"Insufficient credits for user {user_id}")
            raise InsufficientCredits()

        balance = self.get_balance(db, user_id)
        logger.info(f"Decremented {amount} credit(s) for user {user_id}, balance now {balance}")
        return balance

    def increment(self, db: Session, user_id: str, amount: int, commit: bool = True) -> int:
        """
        Add credits to a profile.

        Webhook handlers pass commit=False so the grant lands in the same
        transaction as the event claim.

        Raises:
            ValueError: Non-positive amount
            ProfileNotFound: No profile for user_id
        """
        if amount <= 0:
            raise ValueError("Increment amount must be positive")

        updated = db.query(Profile).filter(Profile.id == user_id).update(
            {
                Profile.credit_balance: Profile.credit_balance + amount,
                Profile.updated_at: datetime.utcnow(),
            },
            synchronize_session=False,
        )
        if commit:
            db.commit()

        if updated == 0:
            raise ProfileNotFound()

        balance = self.get_balance(db, user_id)
        logger.info(f"Added {amount} credit(s) for user {user_id}, balance now {balance}")
        return balance

    def increment_for_customer(
        self, db: Session, stripe_customer_id: str, amount: int, commit: bool = True
    ) -> Optional[str]:
        """
        Add credits to the profile owning a Stripe customer.

        Returns:
            The profile id, or None if no profile has that customer id
        """
        if amount <= 0:
            raise ValueError("Increment amount must be positive")

        updated = db.query(Profile).filter(Profile.stripe_customer_id == stripe_customer_id).update(
            {
                Profile.credit_balance: Profile.credit_balance + amount,
                Profile.updated_at: datetime.utcnow(),
            },
            synchronize_session=False,
        )
        if commit:
            db.commit()

        if updated == 0:
            logger.warning(f"No profile found for Stripe customer {stripe_customer_id}")
            return None

        user_id = db.query(Profile.id).filter(Profile.stripe_customer_id == stripe_customer_id).scalar()
        logger.info(f"Added {amount} credit(s) for customer {stripe_customer_id} (user {user_id})")
        return user_id


# Global instance
credit_ledger = CreditLedger()
