"""
Upload and ingestion endpoints.

Endpoints:
- POST /create-signed-url - Signed URL for a direct browser upload to storage
- POST /transfer-to-gemini - Move a staged storage object into Gemini
- POST /upload-video - Multipart upload straight into Gemini (small files)
"""
from fastapi import APIRouter, Depends, File, Request, UploadFile

from app.api.dependencies import get_ingestion_pipeline, get_storage
from app.core.auth import get_current_user_id
from app.core.errors import ValidationError
from app.core.rate_limit import limiter
from app.schemas import (
    SignedUrlRequest,
    SignedUrlResponse,
    TransferRequest,
    TransferResponse,
)
from app.services.ingestion import IngestionPipeline
from app.services.storage import SupabaseStorage
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/create-signed-url", response_model=SignedUrlResponse)
@limiter.limit("30/minute")
async def create_signed_url(
    request: Request,
    body: SignedUrlRequest,
    user_id: str = Depends(get_current_user_id),
    storage: SupabaseStorage = Depends(get_storage),
):
    """
    Create a short-lived signed upload URL for the video bucket.

    The browser uploads the file directly to storage, then calls
    /transfer-to-gemini with the returned path.
    """
    path = storage.build_upload_path(body.file_name)
    signed = await storage.create_signed_upload_url(path)
    logger.info(f"User {user_id} authorized to upload {path}")
    return SignedUrlResponse(signed_url=signed.signed_url, path=signed.path, token=signed.token)


@router.post("/transfer-to-gemini", response_model=TransferResponse)
@limiter.limit("10/minute")
async def transfer_to_gemini(
    request: Request,
    body: TransferRequest,
    user_id: str = Depends(get_current_user_id),
    ingestion: IngestionPipeline = Depends(get_ingestion_pipeline),
):
    """
    Ingest a previously uploaded storage object into the Gemini file store.

    Long-running: waits until Gemini reports the file ACTIVE.
    """
    logger.info(f"User {user_id} transferring {body.file_path} to Gemini")
    media = await ingestion.ingest(body.file_path, body.mime_type)
    return TransferResponse(file_uri=media.uri, mime_type=media.mime_type)


@router.post("/upload-video", response_model=TransferResponse)
@limiter.limit("10/minute")
async def upload_video(
    request: Request,
    video: UploadFile = File(None),
    user_id: str = Depends(get_current_user_id),
    ingestion: IngestionPipeline = Depends(get_ingestion_pipeline),
):
    """Upload a video file in the request body and ingest it into Gemini."""
    if video is None:
        raise ValidationError("No video file uploaded.")

    try:
        media = await ingestion.ingest(
            video.file,
            video.content_type or "video/mp4",
            file_name=video.filename or "",
        )
    finally:
        await video.close()

    logger.info(f"User {user_id} uploaded video {video.filename}")
    return TransferResponse(file_uri=media.uri, mime_type=media.mime_type)
