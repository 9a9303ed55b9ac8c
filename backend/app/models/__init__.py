"""
Database models package.

All SQLAlchemy models are exported from this module for easy imports.
"""
from app.models.profile import Profile
from app.models.webhook_event import WebhookEvent

__all__ = [
    "Profile",
    "WebhookEvent",
]
