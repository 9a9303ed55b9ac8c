"""
Credit balance endpoints.

Endpoints:
- GET /credits - Current balance for the caller
- POST /decrement-credits - Consume one credit after a successful run
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.api.dependencies import get_ledger
from app.core.auth import get_current_user_id
from app.core.rate_limit import limiter
from app.db.base import get_db
from app.schemas import CreditBalanceResponse, DecrementCreditsResponse
from app.services.ledger import CreditLedger

router = APIRouter()


@router.get("/credits", response_model=CreditBalanceResponse)
async def get_credits(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    ledger: CreditLedger = Depends(get_ledger),
):
    return CreditBalanceResponse(credit_balance=ledger.get_balance(db, user_id))


@router.post("/decrement-credits", response_model=DecrementCreditsResponse)
@limiter.limit("30/minute")
async def decrement_credits(
    request: Request,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    ledger: CreditLedger = Depends(get_ledger),
):
    """
    Consume one credit.

    Returns 402 when the balance is already zero; the balance never goes
    negative even when two requests race.
    """
    balance = ledger.decrement(db, user_id)
    return DecrementCreditsResponse(credit_balance=balance)
