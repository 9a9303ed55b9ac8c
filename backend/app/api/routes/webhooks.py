"""
Webhook endpoints.

Supports Stripe billing webhooks and Clerk (Svix) user webhooks. Both verify
the signature over the raw request body before anything is parsed or written.
"""
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.api.dependencies import get_billing_service, get_clerk_webhook_verifier
from app.core.rate_limit import limiter
from app.db.base import get_db
from app.services.billing import BillingService
from app.services.identity import ClerkWebhookVerifier, handle_clerk_event
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/stripe-webhook")
@limiter.limit("200/minute")
async def stripe_webhook(
    request: Request,
    db: Session = Depends(get_db),
    billing: BillingService = Depends(get_billing_service),
):
    """
    Handle Stripe webhooks for subscription and top-up events.

    Processes events:
    - checkout.session.completed: subscription started or top-up paid
    - invoice.payment_succeeded: renewal cycle credits
    - customer.subscription.updated / deleted: status changes

    Errors while applying an event return 500 so Stripe retries; the event
    id is only recorded once the event has been applied.
    """
    payload = await request.body()
    event = billing.construct_event(payload, request.headers.get("stripe-signature"))

    applied = billing.handle_event(event, db)
    if not applied:
        return {"received": True, "duplicate": True}
    return {"received": True}


@router.post("/clerk-webhook")
@limiter.limit("200/minute")
async def clerk_webhook(
    request: Request,
    db: Session = Depends(get_db),
    verifier: ClerkWebhookVerifier = Depends(get_clerk_webhook_verifier),
):
    """Create a profile with the starting credit grant on ``user.created``."""
    payload = await request.body()
    event = verifier.verify(payload, request.headers)

    created = handle_clerk_event(event, request.headers.get("svix-id"), db, verifier.config)
    if created:
        return JSONResponse(status_code=201, content={"message": "User created successfully."})
    return {"message": "Webhook received."}
