"""
Pytest configuration and shared fixtures for the Vyralize backend.
"""
import base64
import os
import sys
from pathlib import Path

# Ensure backend package is importable
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

# Settings are read at import time
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("GOOGLE_API_KEY", "test-google-key")
os.environ.setdefault("GEMINI_RETRY_BASE_DELAY_SECONDS", "0")
os.environ.setdefault("SUPABASE_URL", "https://project.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "service-role-key")
os.environ.setdefault("STRIPE_API_KEY", "sk_test_123")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_stripe_test")
os.environ.setdefault("STRIPE_STARTER_PRICE_ID", "price_starter")
os.environ.setdefault("STRIPE_CREATOR_PRICE_ID", "price_creator")
os.environ.setdefault("STRIPE_INFLUENCER_PRICE_ID", "price_influencer")
os.environ.setdefault("STRIPE_AGENCY_PRICE_ID", "price_agency")
os.environ.setdefault("STRIPE_TOP_UP_PRICE_ID", "price_top_up")
os.environ.setdefault("CLERK_WEBHOOK_SECRET", "whsec_" + base64.b64encode(b"clerk-webhook-test-secret").decode())

from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from tests.fakes import FakeGemini


@pytest.fixture(scope="function")
def db():
    """
    Create a fresh database for each test.

    Uses an in-memory SQLite database for fast, isolated testing.
    """
    from app.db.base import Base
    import app.models  # noqa: F401

    # Create in-memory SQLite database
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    Base.metadata.create_all(bind=engine)

    # Create session
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


def _make_profile(db, **kwargs):
    from app.models import Profile

    profile = Profile(**kwargs)
    db.add(profile)
    db.commit()
    db.refresh(profile)
    return profile


@pytest.fixture
def free_profile(db):
    """Profile created by the sign-up webhook, holding the starting grant."""
    return _make_profile(
        db,
        id="user_free123",
        email="free@test.com",
        credit_balance=3,
        subscription_tier="free",
    )


@pytest.fixture
def subscribed_profile(db):
    """Creator-tier profile with an active Stripe subscription."""
    return _make_profile(
        db,
        id="user_creator123",
        email="creator@test.com",
        credit_balance=20,
        subscription_tier="creator",
        subscription_status="active",
        subscription_plan_id="price_creator",
        stripe_customer_id="cus_creator",
        stripe_subscription_id="sub_creator",
    )


@pytest.fixture
def fake_gemini():
    return FakeGemini()


@pytest.fixture
def client_factory(db):
    """
    Build a TestClient authenticated as ``user_id`` with the database and
    external adapters replaced.
    """
    from app.main import app
    from app.core.auth import get_current_user_id
    from app.db.base import get_db

    def make(user_id: Optional[str] = "user_free123", **overrides):
        def override_get_db():
            yield db

        app.dependency_overrides[get_db] = override_get_db
        if user_id is not None:
            app.dependency_overrides[get_current_user_id] = lambda: user_id
        for dependency, value in overrides.items():
            app.dependency_overrides[_dependency(dependency)] = _provide(value)
        return TestClient(app)

    yield make

    app.dependency_overrides.clear()


def _provide(value):
    def provider():
        return value
    return provider


def _dependency(name: str):
    from app.api import dependencies

    return getattr(dependencies, name)
