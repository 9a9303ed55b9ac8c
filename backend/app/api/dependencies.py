"""
FastAPI dependencies for external adapters and pipelines.

Adapters are built from settings once per process. Tests replace them with
app.dependency_overrides.
"""
from functools import lru_cache

from fastapi import Depends

from app.services.billing import BillingService, billing_service
from app.services.content_pipeline import ContentPipeline
from app.services.gemini import GeminiClient, GeminiConfig
from app.services.identity import ClerkWebhookConfig, ClerkWebhookVerifier
from app.services.ingestion import IngestionPipeline, PollPolicy
from app.services.ledger import CreditLedger, credit_ledger
from app.services.storage import StorageConfig, SupabaseStorage
from app.services.youtube import YouTubeService, youtube_service


@lru_cache()
def get_gemini_client() -> GeminiClient:
    return GeminiClient(GeminiConfig.from_settings())


@lru_cache()
def get_storage() -> SupabaseStorage:
    return SupabaseStorage(StorageConfig.from_settings())


def get_ingestion_pipeline(
    gemini: GeminiClient = Depends(get_gemini_client),
    storage: SupabaseStorage = Depends(get_storage),
) -> IngestionPipeline:
    return IngestionPipeline(gemini, storage, PollPolicy.from_settings())


def get_content_pipeline(gemini: GeminiClient = Depends(get_gemini_client)) -> ContentPipeline:
    return ContentPipeline(gemini)


def get_ledger() -> CreditLedger:
    return credit_ledger


def get_billing_service() -> BillingService:
    return billing_service


def get_clerk_webhook_verifier() -> ClerkWebhookVerifier:
    return ClerkWebhookVerifier(ClerkWebhookConfig.from_settings())


def get_youtube_service() -> YouTubeService:
    return youtube_service
