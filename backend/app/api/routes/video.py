"""
Video metadata endpoints.
"""
from fastapi import APIRouter, Depends, Request

from app.api.dependencies import get_youtube_service
from app.core.config import settings
from app.core.rate_limit import limiter
from app.schemas import VideoDurationRequest, VideoDurationResponse
from app.services.youtube import YouTubeService

router = APIRouter()


@router.post("/get-video-duration", response_model=VideoDurationResponse)
@limiter.limit("30/minute")
async def get_video_duration(
    request: Request,
    body: VideoDurationRequest,
    youtube: YouTubeService = Depends(get_youtube_service),
):
    """
    Look up a YouTube video's duration so the client can enforce the maximum
    supported length before starting a run.
    """
    duration = await youtube.get_duration(body.video_url)
    return VideoDurationResponse(duration=duration, max_duration=settings.max_video_duration_seconds)
