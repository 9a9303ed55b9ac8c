"""
Billing service for Stripe subscriptions and credit top-ups.

Handles:
- Stripe checkout session creation (subscriptions and one-time top-ups)
- Stripe customer portal access
- Webhook event reconciliation into profile and ledger updates
"""
import json
import logging
from typing import Any, Dict, Optional

import stripe
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import BillingError, ProfileNotFound, ValidationError, WebhookSignatureError
from app.core.pricing import FREE_TIER, get_credits_for_price, get_tier_for_price, is_paid_tier
from app.models import Profile
from app.services.ledger import CreditLedger, credit_ledger
from app.services.webhook_events import claim_event

logger = logging.getLogger(__name__)

# Initialize Stripe with API key from settings
stripe.api_key = settings.stripe_api_key or None

PURCHASE_TYPE_TOP_UP = "top_up"
SUBSCRIPTION_CYCLE = "subscription_cycle"


class BillingService:
    """Service for Stripe checkout, portal and webhook reconciliation."""

    def __init__(self, ledger: Optional[CreditLedger] = None):
        self.ledger = ledger or credit_ledger

    @staticmethod
    def _require_stripe() -> None:
        if not stripe.api_key:
            raise BillingError("Stripe API key not configured")

    @staticmethod
    def _success_url() -> str:
        return f"{settings.frontend_url}?session_id={{CHECKOUT_SESSION_ID}}"

    def _ensure_customer(self, db: Session, profile: Profile) -> str:
        """Return the profile's Stripe customer id, creating the customer on first purchase."""
        if profile.stripe_customer_id:
            return profile.stripe_customer_id

        customer = stripe.Customer.create(
            email=profile.email,
            metadata={"userId": profile.id},
        )
        profile.stripe_customer_id = customer.id
        db.commit()
        logger.info(f"Created Stripe customer {customer.id} for user {profile.id}")
        return customer.id

    def create_checkout_session(self, db: Session, profile: Profile, price_id: str) -> Dict[str, Optional[str]]:
        """
        Create a Stripe checkout session for a subscription plan.

        Args:
            db: Database session
            profile: Caller's profile
            price_id: Stripe price id of the plan

        Returns:
            Dictionary with session_id and url

        Raises:
            ValidationError: Unknown price id
            BillingError: Stripe not configured or refused the request
        """
        self._require_stripe()
        if get_tier_for_price(price_id) is None:
            raise ValidationError(f"Unknown price id: {price_id}")

        try:
            customer_id = self._ensure_customer(db, profile)
            session = stripe.checkout.Session.create(
                customer=customer_id,
                payment_method_types=["card", "link"],
                line_items=[{"price": price_id, "quantity": 1}],
                mode="subscription",
                success_url=self._success_url(),
                cancel_url=settings.frontend_url,
                metadata={"userId": profile.id, "priceId": price_id},
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe checkout creation failed for user {profile.id}: {e}")
            raise BillingError(str(e.user_message or "Could not create checkout session.")) from e

        logger.info(f"Created Stripe checkout session for user {profile.id}: {session.id}")
        return {"session_id": session.id, "url": session.url}

    def create_top_up_checkout_session(self, db: Session, profile: Profile) -> Dict[str, Optional[str]]:
        """
        Create a one-time checkout for a credit top-up.

        Top-ups are only sold to users with an active paid subscription.
        """
        self._require_stripe()
        if not is_paid_tier(profile.subscription_tier) or profile.subscription_status != "active":
            raise ValidationError("Top-ups require an active subscription.")
        if not settings.stripe_top_up_price_id:
            raise BillingError("Top-up price not configured")

        try:
            customer_id = self._ensure_customer(db, profile)
            session = stripe.checkout.Session.create(
                customer=customer_id,
                payment_method_types=["card", "link"],
                line_items=[{"price": settings.stripe_top_up_price_id, "quantity": 1}],
                mode="payment",
                success_url=self._success_url(),
                cancel_url=settings.frontend_url,
                metadata={"userId": profile.id, "purchaseType": PURCHASE_TYPE_TOP_UP},
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe top-up checkout creation failed for user {profile.id}: {e}")
            raise BillingError(str(e.user_message or "Could not create checkout session.")) from e

        logger.info(f"Created top-up checkout session for user {profile.id}: {session.id}")
        return {"session_id": session.id, "url": session.url}

    def create_portal_session(self, profile: Profile) -> Dict[str, str]:
        """
        Create a Stripe customer portal session for subscription management.

        Raises:
            ProfileNotFound: The user has never purchased (no Stripe customer)
        """
        self._require_stripe()
        if not profile.stripe_customer_id:
            raise ProfileNotFound("Stripe customer not found for this user.")

        try:
            session = stripe.billing_portal.Session.create(
                customer=profile.stripe_customer_id,
                return_url=settings.frontend_url,
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe portal creation failed for user {profile.id}: {e}")
            raise BillingError(str(e.user_message or "Could not open billing portal.")) from e

        logger.info(f"Created Stripe customer portal session for user {profile.id}")
        return {"url": session.url}

    # Webhooks

    def construct_event(self, payload: bytes, sig_header: Optional[str]) -> Dict[str, Any]:
        """
        Verify a Stripe webhook and return the event as a plain dict.

        Raises:
            WebhookSignatureError: Missing header, bad payload or bad signature
        """
        if not settings.stripe_webhook_secret:
            raise BillingError("Stripe webhook secret not configured")
        if not sig_header:
            raise WebhookSignatureError("Missing stripe-signature header")

        try:
            stripe.Webhook.construct_event(payload, sig_header, settings.stripe_webhook_secret)
        except ValueError as e:
            logger.error(f"Invalid Stripe webhook payload: {e}")
            raise WebhookSignatureError("Invalid payload") from e
        except stripe.SignatureVerificationError as e:
            logger.error(f"Invalid Stripe webhook signature: {e}")
            raise WebhookSignatureError("Invalid signature") from e

        return json.loads(payload)

    def handle_event(self, event: Dict[str, Any], db: Session) -> bool:
        """
        Apply a verified Stripe event.

        Args:
            event: Event dict (id, type, data.object)
            db: Database session

        Returns:
            False if the event was a duplicate delivery, True otherwise
        """
        event_id = event.get("id")
        event_type = event.get("type", "")
        data = (event.get("data") or {}).get("object") or {}

        logger.info(f"Received Stripe webhook: {event_type} ({event_id})")

        if event_id and not claim_event(db, event_id, "stripe", event_type):
            return False

        try:
            if event_type == "checkout.session.completed":
                self.handle_checkout_completed(data, db)
            elif event_type == "invoice.payment_succeeded":
                self.handle_invoice_paid(data, db)
            elif event_type in ("customer.subscription.updated", "customer.subscription.deleted"):
                self.handle_subscription_changed(data, db, deleted=event_type.endswith("deleted"))
            else:
                logger.debug(f"Unhandled Stripe event type: {event_type}")
            db.commit()
        except Exception:
            db.rollback()
            raise
        return True

    def handle_checkout_completed(self, session: Dict[str, Any], db: Session) -> None:
        metadata = session.get("metadata") or {}
        user_id = metadata.get("userId")
        if not user_id:
            logger.warning(f"Checkout session {session.get('id')} has no userId metadata")
            return

        mode = session.get("mode")
        if mode == "payment" and metadata.get("purchaseType") == PURCHASE_TYPE_TOP_UP:
            self.ledger.increment(db, user_id, settings.top_up_credit_amount, commit=False)
            logger.info(f"Top-up completed for user {user_id}: +{settings.top_up_credit_amount} credits")
            return

        if mode != "subscription":
            logger.info(f"Ignoring checkout session {session.get('id')} with mode {mode}")
            return

        profile = db.query(Profile).filter(Profile.id == user_id).first()
        if not profile:
            logger.error(f"User not found for checkout session: {user_id}")
            return

        price_id = metadata.get("priceId")
        tier = get_tier_for_price(price_id)
        if tier is None:
            logger.warning(f"Checkout session {session.get('id')} has unknown price id {price_id}")

        profile.stripe_subscription_id = session.get("subscription")
        profile.subscription_status = "active"
        profile.subscription_plan_id = price_id
        if tier:
            profile.subscription_tier = tier
        if session.get("customer") and not profile.stripe_customer_id:
            profile.stripe_customer_id = session["customer"]
        db.flush()

        # The first invoice (billing_reason=subscription_create) grants nothing,
        # so the opening cycle's credits are added here.
        credits = get_credits_for_price(price_id)
        if credits:
            self.ledger.increment(db, user_id, credits, commit=False)

        logger.info(f"Checkout completed for user {user_id}: subscribed to {tier or price_id}")

    def handle_invoice_paid(self, invoice: Dict[str, Any], db: Session) -> None:
        """Grant the plan's credits on each renewal cycle."""
        billing_reason = invoice.get("billing_reason")
        if billing_reason != SUBSCRIPTION_CYCLE:
            logger.info(f"Invoice {invoice.get('id')} billing_reason={billing_reason}, no credits granted")
            return

        lines = (invoice.get("lines") or {}).get("data") or []
        price_id = None
        if lines:
            line = lines[0]
            price = line.get("price") or {}
            price_id = price.get("id")
            if not price_id:
                # Newer API versions nest the price under pricing.price_details
                price_id = ((line.get("pricing") or {}).get("price_details") or {}).get("price")

        credits = get_credits_for_price(price_id)
        if credits is None:
            logger.warning(f"Invoice {invoice.get('id')} has unknown price id {price_id}; no credits granted")
            return

        customer = invoice.get("customer")
        customer_id = customer.get("id") if isinstance(customer, dict) else customer
        if not customer_id:
            logger.warning(f"Invoice {invoice.get('id')} has no customer")
            return

        self.ledger.increment_for_customer(db, customer_id, credits, commit=False)

    def handle_subscription_changed(self, subscription: Dict[str, Any], db: Session, deleted: bool = False) -> None:
        stripe_subscription_id = subscription.get("id")
        values: Dict[Any, Any] = {Profile.subscription_status: subscription.get("status")}
        if deleted:
            values[Profile.subscription_tier] = FREE_TIER

        updated = db.query(Profile).filter(
            Profile.stripe_subscription_id == stripe_subscription_id
        ).update(values, synchronize_session=False)

        if not updated:
            logger.warning(f"Subscription not found: {stripe_subscription_id}")
            return
        logger.info(f"Subscription {stripe_subscription_id} status now {subscription.get('status')}")


# Global instance
billing_service = BillingService()
