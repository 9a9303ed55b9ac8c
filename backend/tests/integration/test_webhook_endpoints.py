"""
Integration tests for the Stripe and Clerk webhook endpoints.

Signatures are computed the same way the providers compute them, so the
real verification code runs.
"""
from datetime import datetime, timezone
import hashlib
import hmac
import json
import time

import pytest
from svix.webhooks import Webhook

from app.core.config import settings
from app.models import Profile, WebhookEvent


def stripe_signature(payload: str, secret=None, timestamp=None):
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload}".encode()
    digest = hmac.new((secret or settings.stripe_webhook_secret).encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def renewal_event(event_id="evt_renewal"):
    return json.dumps({
        "id": event_id,
        "object": "event",
        "type": "invoice.payment_succeeded",
        "data": {"object": {
            "id": "in_1",
            "object": "invoice",
            "billing_reason": "subscription_cycle",
            "customer": "cus_creator",
            "lines": {"data": [{"price": {"id": "price_creator"}}]},
        }},
    })


def svix_headers(payload: str, msg_id="msg_abc"):
    timestamp = datetime.now(tz=timezone.utc)
    return {
        "svix-id": msg_id,
        "svix-timestamp": str(int(timestamp.timestamp())),
        "svix-signature": Webhook(settings.clerk_webhook_secret).sign(msg_id, timestamp, payload),
        "content-type": "application/json",
    }


def user_created(user_id="user_signup1", email="signup@test.com"):
    return json.dumps({
        "type": "user.created",
        "data": {
            "id": user_id,
            "primary_email_address_id": "idn_1",
            "email_addresses": [{"id": "idn_1", "email_address": email}],
        },
    })


@pytest.fixture
def client(client_factory):
    return client_factory(user_id=None)


def balance(db, user_id):
    db.expire_all()
    return db.query(Profile).filter(Profile.id == user_id).first().credit_balance


class TestStripeWebhook:
    def test_renewal_grants_credits(self, client, db, subscribed_profile):
        payload = renewal_event()

        response = client.post(
            "/api/stripe-webhook",
            content=payload,
            headers={"stripe-signature": stripe_signature(payload), "content-type": "application/json"},
        )

        assert response.status_code == 200
        assert response.json() == {"received": True}
        assert balance(db, "user_creator123") == 55

    def test_replay_is_acknowledged_without_regrant(self, client, db, subscribed_profile):
        payload = renewal_event()
        headers = {"stripe-signature": stripe_signature(payload), "content-type": "application/json"}

        client.post("/api/stripe-webhook", content=payload, headers=headers)
        response = client.post("/api/stripe-webhook", content=payload, headers=headers)

        assert response.status_code == 200
        assert response.json() == {"received": True, "duplicate": True}
        assert balance(db, "user_creator123") == 55

    def test_bad_signature_is_400_and_changes_nothing(self, client, db, subscribed_profile):
        payload = renewal_event()

        response = client.post(
            "/api/stripe-webhook",
            content=payload,
            headers={"stripe-signature": stripe_signature(payload, secret="whsec_wrong")},
        )

        assert response.status_code == 400
        assert "error" in response.json()
        assert balance(db, "user_creator123") == 20
        assert db.query(WebhookEvent).count() == 0

    def test_missing_signature_is_400(self, client, subscribed_profile):
        response = client.post("/api/stripe-webhook", content=renewal_event())

        assert response.status_code == 400

    def test_processing_error_is_retried(self, client, db):
        payload = json.dumps({
            "id": "evt_topup",
            "type": "checkout.session.completed",
            "data": {"object": {
                "id": "cs_1",
                "mode": "payment",
                "metadata": {"userId": "user_not_yet_created", "purchaseType": "top_up"},
            }},
        })

        response = client.post(
            "/api/stripe-webhook",
            content=payload,
            headers={"stripe-signature": stripe_signature(payload)},
        )

        assert response.status_code >= 400
        assert db.query(WebhookEvent).count() == 0


class TestClerkWebhook:
    def test_user_created(self, client, db):
        payload = user_created()

        response = client.post("/api/clerk-webhook", content=payload, headers=svix_headers(payload))

        assert response.status_code == 201
        assert response.json() == {"message": "User created successfully."}
        assert balance(db, "user_signup1") == settings.starting_credit_balance

    def test_existing_profile_is_200(self, client, db, free_profile):
        payload = user_created(user_id="user_free123", email="free@test.com")

        response = client.post("/api/clerk-webhook", content=payload, headers=svix_headers(payload))

        assert response.status_code == 200
        assert balance(db, "user_free123") == 3

    def test_bad_signature_is_400(self, client, db):
        payload = user_created()
        headers = svix_headers(payload)
        headers["svix-signature"] = "v1,bm90LWEtcmVhbC1zaWduYXR1cmU="

        response = client.post("/api/clerk-webhook", content=payload, headers=headers)

        assert response.status_code == 400
        assert db.query(Profile).count() == 0

    def test_missing_svix_headers_is_400(self, client, db):
        response = client.post("/api/clerk-webhook", content=user_created())

        assert response.status_code == 400

    def test_missing_email_is_400(self, client, db):
        payload = json.dumps({"type": "user.created", "data": {"id": "user_x", "email_addresses": []}})

        response = client.post("/api/clerk-webhook", content=payload, headers=svix_headers(payload))

        assert response.status_code == 400
        assert response.json() == {"error": "Missing user ID or email."}
