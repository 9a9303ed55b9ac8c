"""
Clerk webhook handling.

Clerk delivers user lifecycle events through Svix. Only ``user.created`` is
acted on: it creates the user's profile with the starting credit grant.
"""
from dataclasses import dataclass
import json
import logging
from typing import Any, Dict, Mapping, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from svix.webhooks import Webhook, WebhookVerificationError

from app.core.config import settings
from app.core.errors import ValidationError, VyralizeError, WebhookSignatureError
from app.core.pricing import FREE_TIER
from app.models import Profile
from app.services.webhook_events import claim_event

logger = logging.getLogger(__name__)

SVIX_HEADERS = ("svix-id", "svix-timestamp", "svix-signature")


class WebhookNotConfigured(VyralizeError):
    message = "Server configuration error: Missing CLERK_WEBHOOK_SECRET."


@dataclass(frozen=True)
class ClerkWebhookConfig:
    secret: str
    starting_credit_balance: int = 3

    @classmethod
    def from_settings(cls) -> "ClerkWebhookConfig":
        return cls(
            secret=settings.clerk_webhook_secret,
            starting_credit_balance=settings.starting_credit_balance,
        )


class ClerkWebhookVerifier:
    """Verify Svix-signed Clerk webhook deliveries."""

    def __init__(self, config: ClerkWebhookConfig):
        self.config = config

    def verify(self, payload: bytes, headers: Mapping[str, str]) -> Dict[str, Any]:
        """
        Verify the signature over the raw body and return the event.

        Args:
            payload: Raw request body
            headers: Request headers (must include the three svix-* headers)

        Returns:
            Decoded event dict

        Raises:
            WebhookSignatureError: Missing headers or invalid signature
        """
        if not self.config.secret:
            raise WebhookNotConfigured()

        svix_headers = {name: headers.get(name) for name in SVIX_HEADERS}
        if not all(svix_headers.values()):
            raise WebhookSignatureError("Missing Svix headers")

        try:
            event = Webhook(self.config.secret).verify(payload, svix_headers)
        except WebhookVerificationError as e:
            logger.error(f"Clerk webhook verification error: {e}")
            raise WebhookSignatureError(f"Webhook Error: {e}") from e

        if isinstance(event, (bytes, str)):
            event = json.loads(event)
        return event


def _primary_email(data: Dict[str, Any]) -> Optional[str]:
    addresses = data.get("email_addresses") or []
    primary_id = data.get("primary_email_address_id")
    for address in addresses:
        if primary_id and address.get("id") == primary_id:
            return address.get("email_address")
    if addresses:
        return addresses[0].get("email_address")
    return None


def handle_user_created(event: Dict[str, Any], db: Session, starting_credit_balance: Optional[int] = None) -> bool:
    """
    Create the profile for a newly registered Clerk user.

    Args:
        event: Verified ``user.created`` event
        db: Database session
        starting_credit_balance: Credits granted on sign-up (defaults to settings)

    Returns:
        True if a profile was created, False if it already existed

    Raises:
        ValidationError: Event has no user id or email
    """
    data = event.get("data") or {}
    user_id = data.get("id")
    email = _primary_email(data)
    if not user_id or not email:
        raise ValidationError("Missing user ID or email.")

    if db.query(Profile.id).filter(Profile.id == user_id).first() is not None:
        logger.info(f"Profile already exists for Clerk user {user_id}")
        db.commit()
        return False

    credits = settings.starting_credit_balance if starting_credit_balance is None else starting_credit_balance
    db.add(Profile(
        id=user_id,
        email=email,
        credit_balance=credits,
        subscription_tier=FREE_TIER,
    ))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info(f"Profile already exists for Clerk user {user_id}")
        return False

    logger.info(f"Created profile for Clerk user {user_id} with {credits} credits")
    return True


def handle_clerk_event(event: Dict[str, Any], event_id: Optional[str], db: Session, config: ClerkWebhookConfig) -> bool:
    """
    Dispatch a verified Clerk event.

    Returns:
        True if a profile was created by this delivery
    """
    event_type = event.get("type", "")
    logger.info(f"Received Clerk webhook: {event_type} ({event_id})")

    if event_id and not claim_event(db, event_id, "clerk", event_type):
        return False

    if event_type == "user.created":
        try:
            return handle_user_created(event, db, config.starting_credit_balance)
        except ValidationError:
            db.rollback()
            raise

    db.commit()
    return False
