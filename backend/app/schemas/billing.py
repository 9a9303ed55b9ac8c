"""
Pydantic schemas for credits and Stripe billing endpoints.
"""
from typing import Optional
from pydantic import BaseModel, Field


class CheckoutSessionRequest(BaseModel):
    """Request to create a Stripe subscription checkout session."""
    price_id: str = Field(..., min_length=1, alias="priceId", description="Stripe price id of the plan")

    class Config:
        populate_by_name = True


class CheckoutSessionResponse(BaseModel):
    session_id: str = Field(..., serialization_alias="sessionId")
    url: Optional[str] = None


class PortalSessionResponse(BaseModel):
    url: str


class CreditBalanceResponse(BaseModel):
    credit_balance: int


class DecrementCreditsResponse(BaseModel):
    message: str = "Credit decremented successfully"
    credit_balance: int
