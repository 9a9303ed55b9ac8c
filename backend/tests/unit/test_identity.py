"""
Unit tests for Clerk webhook verification and profile creation.
"""
from datetime import datetime, timezone
import json

import pytest
from svix.webhooks import Webhook

from app.core.config import settings
from app.core.errors import ValidationError, WebhookSignatureError
from app.models import Profile, WebhookEvent
from app.services.identity import (
    ClerkWebhookConfig,
    ClerkWebhookVerifier,
    WebhookNotConfigured,
    handle_clerk_event,
    handle_user_created,
)


def user_created_event(user_id="user_new123", email="new@test.com"):
    return {
        "type": "user.created",
        "data": {
            "id": user_id,
            "primary_email_address_id": "idn_2",
            "email_addresses": [
                {"id": "idn_1", "email_address": "secondary@test.com"},
                {"id": "idn_2", "email_address": email},
            ],
        },
    }


def signed_headers(payload: str, msg_id="msg_123", secret=None):
    timestamp = datetime.now(tz=timezone.utc)
    signature = Webhook(secret or settings.clerk_webhook_secret).sign(msg_id, timestamp, payload)
    return {
        "svix-id": msg_id,
        "svix-timestamp": str(int(timestamp.timestamp())),
        "svix-signature": signature,
    }


@pytest.fixture
def config():
    return ClerkWebhookConfig.from_settings()


class TestVerifier:
    def test_valid_signature(self, config):
        payload = json.dumps(user_created_event())

        event = ClerkWebhookVerifier(config).verify(payload.encode(), signed_headers(payload))

        assert event["type"] == "user.created"

    def test_tampered_body_rejected(self, config):
        payload = json.dumps(user_created_event())
        headers = signed_headers(payload)

        with pytest.raises(WebhookSignatureError):
            ClerkWebhookVerifier(config).verify(payload.replace("new@test.com", "evil@test.com").encode(), headers)

    def test_missing_headers_rejected(self, config):
        with pytest.raises(WebhookSignatureError):
            ClerkWebhookVerifier(config).verify(b"{}", {"svix-id": "msg_1"})

    def test_missing_secret(self):
        with pytest.raises(WebhookNotConfigured):
            ClerkWebhookVerifier(ClerkWebhookConfig(secret="")).verify(b"{}", {})


class TestUserCreated:
    def test_creates_profile_with_starting_credits(self, db):
        assert handle_user_created(user_created_event(), db, starting_credit_balance=3) is True

        profile = db.query(Profile).filter(Profile.id == "user_new123").first()
        assert profile.email == "new@test.com"
        assert profile.credit_balance == 3
        assert profile.subscription_tier == "free"

    def test_existing_profile_is_left_alone(self, db, free_profile):
        event = user_created_event(user_id="user_free123", email="other@test.com")

        assert handle_user_created(event, db, starting_credit_balance=3) is False

        db.expire_all()
        profile = db.query(Profile).filter(Profile.id == "user_free123").first()
        assert profile.email == "free@test.com"

    def test_first_address_used_without_primary(self, db):
        event = user_created_event()
        del event["data"]["primary_email_address_id"]

        handle_user_created(event, db)

        assert db.query(Profile).filter(Profile.id == "user_new123").first().email == "secondary@test.com"

    def test_missing_email_rejected(self, db):
        event = {"type": "user.created", "data": {"id": "user_new123", "email_addresses": []}}

        with pytest.raises(ValidationError):
            handle_user_created(event, db)


class TestHandleClerkEvent:
    def test_replayed_delivery_creates_once(self, db, config):
        event = user_created_event()

        assert handle_clerk_event(event, "msg_1", db, config) is True
        assert handle_clerk_event(event, "msg_1", db, config) is False

        assert db.query(Profile).count() == 1
        assert db.query(WebhookEvent).filter(WebhookEvent.source == "clerk").count() == 1

    def test_other_event_types_acknowledged(self, db, config):
        assert handle_clerk_event({"type": "user.updated", "data": {}}, "msg_2", db, config) is False
        assert db.query(Profile).count() == 0

    def test_invalid_event_not_recorded(self, db, config):
        event = {"type": "user.created", "data": {"id": "user_new123"}}

        with pytest.raises(ValidationError):
            handle_clerk_event(event, "msg_3", db, config)

        assert db.query(WebhookEvent).count() == 0
