"""
Webhook de-duplication.

Providers deliver at least once. An event id is claimed in the same
transaction as the mutations it triggers, so a replay finds the claim and is
acknowledged without re-applying anything, while a delivery that failed
midway (and was rolled back) is processed again on retry.
"""
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models import WebhookEvent

logger = logging.getLogger(__name__)


def claim_event(db: Session, event_id: str, source: str, event_type: str) -> bool:
    """
    Claim a webhook event id for processing.

    Args:
        db: Database session (the claim is flushed, not committed)
        event_id: Provider event id
        source: "stripe" or "clerk"
        event_type: Provider event type

    Returns:
        True if the caller should process the event, False for a duplicate
    """
    if db.query(WebhookEvent.id).filter(WebhookEvent.id == event_id).first() is not None:
        logger.info(f"Duplicate {source} webhook {event_id} ({event_type}) ignored")
        return False

    db.add(WebhookEvent(id=event_id, source=source, event_type=event_type))
    try:
        db.flush()
    except IntegrityError:
        # A concurrent delivery claimed it first
        db.rollback()
        logger.info(f"Duplicate {source} webhook {event_id} ({event_type}) ignored")
        return False
    return True
