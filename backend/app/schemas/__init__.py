"""
Pydantic schemas for API request/response validation.
"""
from app.schemas.media import (
    MediaReference,
    VIDEO_ANALYSIS_FIELDS,
    IMAGE_ANALYSIS_FIELDS,
)
from app.schemas.storage import (
    SignedUrlRequest,
    SignedUrlResponse,
    TransferRequest,
    TransferResponse,
    VideoDurationRequest,
    VideoDurationResponse,
)
from app.schemas.generation import (
    OutputType,
    OutputDetail,
    AnalyzeRequest,
    AnalyzeResponse,
    GenerateContentRequest,
    GenerateContentResponse,
    GenerateRequest,
    GenerateResponse,
    GenerationResult,
)
from app.schemas.image import (
    ImageIntent,
    ImageAnalyzeResponse,
    ImageContentRequest,
    ImageContentResponse,
    ImageGenerationResult,
    SocialPosts,
)
from app.schemas.billing import (
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    PortalSessionResponse,
    CreditBalanceResponse,
    DecrementCreditsResponse,
)

__all__ = [
    # Media
    "MediaReference",
    "VIDEO_ANALYSIS_FIELDS",
    "IMAGE_ANALYSIS_FIELDS",
    # Storage
    "SignedUrlRequest",
    "SignedUrlResponse",
    "TransferRequest",
    "TransferResponse",
    "VideoDurationRequest",
    "VideoDurationResponse",
    # Generation
    "OutputType",
    "OutputDetail",
    "AnalyzeRequest",
    "AnalyzeResponse",
    "GenerateContentRequest",
    "GenerateContentResponse",
    "GenerateRequest",
    "GenerateResponse",
    "GenerationResult",
    # Image
    "ImageIntent",
    "ImageAnalyzeResponse",
    "ImageContentRequest",
    "ImageContentResponse",
    "ImageGenerationResult",
    "SocialPosts",
    # Billing
    "CheckoutSessionRequest",
    "CheckoutSessionResponse",
    "PortalSessionResponse",
    "CreditBalanceResponse",
    "DecrementCreditsResponse",
]
