"""
Stripe billing endpoints.

Endpoints:
- POST /create-checkout-session - Subscription checkout for a plan price
- POST /create-top-up-checkout-session - One-time credit top-up checkout
- POST /create-portal-session - Stripe customer portal
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.api.dependencies import get_billing_service
from app.core.auth import get_current_profile
from app.core.rate_limit import limiter
from app.db.base import get_db
from app.models import Profile
from app.schemas import CheckoutSessionRequest, CheckoutSessionResponse, PortalSessionResponse
from app.services.billing import BillingService
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/create-checkout-session", response_model=CheckoutSessionResponse)
@limiter.limit("5/minute")
async def create_checkout_session(
    request: Request,
    body: CheckoutSessionRequest,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
    billing: BillingService = Depends(get_billing_service),
):
    """
    Create a Stripe checkout session for a subscription plan.

    The user id is taken from the verified token, never from the body.
    """
    result = billing.create_checkout_session(db, profile, body.price_id)
    return CheckoutSessionResponse(session_id=result["session_id"], url=result["url"])


@router.post("/create-top-up-checkout-session", response_model=CheckoutSessionResponse)
@limiter.limit("5/minute")
async def create_top_up_checkout_session(
    request: Request,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
    billing: BillingService = Depends(get_billing_service),
):
    result = billing.create_top_up_checkout_session(db, profile)
    return CheckoutSessionResponse(session_id=result["session_id"], url=result["url"])


@router.post("/create-portal-session", response_model=PortalSessionResponse)
@limiter.limit("10/minute")
async def create_portal_session(
    request: Request,
    profile: Profile = Depends(get_current_profile),
    billing: BillingService = Depends(get_billing_service),
):
    """Create a Stripe customer portal session for managing the subscription."""
    result = billing.create_portal_session(profile)
    return PortalSessionResponse(url=result["url"])
