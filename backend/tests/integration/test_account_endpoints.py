"""
Integration tests for credit and billing endpoints.

Tests the full request/response cycle including:
- GET /api/credits
- POST /api/decrement-credits
- POST /api/create-checkout-session
- POST /api/create-top-up-checkout-session
- POST /api/create-portal-session
"""
from unittest.mock import MagicMock, patch

import pytest


@pytest.fixture
def free_client(client_factory, free_profile):
    return client_factory(user_id=free_profile.id)


@pytest.fixture
def subscriber_client(client_factory, subscribed_profile):
    return client_factory(user_id=subscribed_profile.id)


class TestCredits:
    def test_balance(self, free_client):
        response = free_client.get("/api/credits")

        assert response.status_code == 200
        assert response.json() == {"credit_balance": 3}

    def test_decrement_until_empty(self, free_client):
        for expected in (2, 1, 0):
            response = free_client.post("/api/decrement-credits")
            assert response.status_code == 200
            assert response.json() == {"message": "Credit decremented successfully", "credit_balance": expected}

        response = free_client.post("/api/decrement-credits")

        assert response.status_code == 402
        assert response.json() == {"error": "You have no credits left."}
        assert free_client.get("/api/credits").json() == {"credit_balance": 0}

    def test_unknown_profile_is_404(self, client_factory, db):
        client = client_factory(user_id="user_ghost")

        response = client.post("/api/decrement-credits")

        assert response.status_code == 404


class TestCheckout:
    @patch("stripe.checkout.Session.create")
    @patch("stripe.Customer.create")
    def test_checkout_session(self, mock_customer, mock_session, free_client):
        mock_customer.return_value = MagicMock(id="cus_123")
        mock_session.return_value = MagicMock(id="cs_123", url="https://checkout.stripe.com/test")

        response = free_client.post("/api/create-checkout-session", json={"priceId": "price_starter"})

        assert response.status_code == 200
        assert response.json() == {"sessionId": "cs_123", "url": "https://checkout.stripe.com/test"}
        assert mock_session.call_args.kwargs["metadata"]["userId"] == "user_free123"

    def test_missing_price_is_400(self, free_client):
        response = free_client.post("/api/create-checkout-session", json={})

        assert response.status_code == 400

    def test_unknown_price_is_400(self, free_client):
        response = free_client.post("/api/create-checkout-session", json={"priceId": "price_nope"})

        assert response.status_code == 400

    def test_top_up_requires_subscription(self, free_client):
        response = free_client.post("/api/create-top-up-checkout-session")

        assert response.status_code == 400
        assert response.json() == {"error": "Top-ups require an active subscription."}

    @patch("stripe.checkout.Session.create")
    def test_top_up_for_subscriber(self, mock_session, subscriber_client):
        mock_session.return_value = MagicMock(id="cs_top", url="https://checkout.stripe.com/top")

        response = subscriber_client.post("/api/create-top-up-checkout-session")

        assert response.status_code == 200
        assert response.json()["sessionId"] == "cs_top"


class TestPortal:
    @patch("stripe.billing_portal.Session.create")
    def test_portal(self, mock_portal, subscriber_client):
        mock_portal.return_value = MagicMock(url="https://billing.stripe.com/p/session")

        response = subscriber_client.post("/api/create-portal-session")

        assert response.status_code == 200
        assert response.json() == {"url": "https://billing.stripe.com/p/session"}

    def test_portal_without_customer_is_404(self, free_client):
        response = free_client.post("/api/create-portal-session")

        assert response.status_code == 404
