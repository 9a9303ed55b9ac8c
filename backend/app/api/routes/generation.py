"""
Video analyze/generate endpoints.

Endpoints:
- POST /generate - Phase 1 + Phase 2 in one request
- POST /analyze - Phase 1 only
- POST /generate-content - Phase 2 only, from a client-held analysis
"""
from fastapi import APIRouter, Depends, Request

from app.api.dependencies import get_content_pipeline
from app.core.auth import get_current_user_id
from app.core.rate_limit import limiter
from app.schemas import (
    AnalyzeRequest,
    AnalyzeResponse,
    GenerateContentRequest,
    GenerateContentResponse,
    GenerateRequest,
    GenerateResponse,
    GenerationResult,
    MediaReference,
)
from app.services.content_pipeline import ContentPipeline
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/generate", response_model=GenerateResponse)
@limiter.limit("10/minute")
async def generate(
    request: Request,
    body: GenerateRequest,
    user_id: str = Depends(get_current_user_id),
    pipeline: ContentPipeline = Depends(get_content_pipeline),
):
    """
    Analyze an ingested video and generate new content for the topic.

    Credits are not consumed here; the client calls /decrement-credits after
    a successful result.
    """
    media = MediaReference(uri=body.video_source, mime_type=body.mime_type)
    result = await pipeline.run(media, body.topic, body.output_type, body.output_detail)
    logger.info(f"Generated {body.output_type} for user {user_id}")
    return GenerateResponse(result=GenerationResult(**result))


@router.post("/analyze", response_model=AnalyzeResponse)
@limiter.limit("10/minute")
async def analyze(
    request: Request,
    body: AnalyzeRequest,
    user_id: str = Depends(get_current_user_id),
    pipeline: ContentPipeline = Depends(get_content_pipeline),
):
    media = MediaReference(uri=body.video_source, mime_type=body.mime_type)
    analysis = await pipeline.analyze_video(media)
    return AnalyzeResponse(analysis=analysis)


@router.post("/generate-content", response_model=GenerateContentResponse)
@limiter.limit("10/minute")
async def generate_content(
    request: Request,
    body: GenerateContentRequest,
    user_id: str = Depends(get_current_user_id),
    pipeline: ContentPipeline = Depends(get_content_pipeline),
):
    """Generate content from an analysis the client received from /analyze."""
    content = await pipeline.generate_content(body.analysis, body.topic, body.output_type)
    return GenerateContentResponse(content=content)
