"""
Image analyze/generate endpoints.

Endpoints:
- POST /analyze-image - Phase 1 on an uploaded image (multipart ``sourceImage``)
- POST /generate-image-content - Image + social posts (+ headline) for a topic
"""
import json
from typing import Any, Dict, Optional, Tuple

from fastapi import APIRouter, Depends, File, Request, UploadFile
from pydantic import ValidationError as PydanticValidationError
from starlette.datastructures import UploadFile as StarletteUploadFile

from app.api.dependencies import get_content_pipeline
from app.core.auth import get_current_user_id
from app.core.errors import ValidationError
from app.core.rate_limit import limiter
from app.schemas import ImageAnalyzeResponse, ImageContentRequest, ImageContentResponse
from app.services.content_pipeline import ContentPipeline
import logging

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_IMAGE_MIME_TYPE = "image/png"


async def _read_image(upload: StarletteUploadFile) -> Tuple[bytes, str]:
    data = await upload.read()
    if not data:
        raise ValidationError("Could not read uploaded image.")
    return data, upload.content_type or DEFAULT_IMAGE_MIME_TYPE


async def parse_image_content_form(request: Request) -> Tuple[ImageContentRequest, Optional[Tuple[bytes, str]]]:
    """
    Parse a /generate-image-content body, JSON or multipart.

    Multipart bodies may carry either an ``analysis`` JSON string or a
    ``sourceImage`` file; JSON bodies must carry ``analysis``.

    Returns:
        (parsed request, (image bytes, mime type) or None)

    Raises:
        ValidationError: Malformed fields, or neither analysis nor image supplied
    """
    content_type = request.headers.get("content-type", "")
    image: Optional[Tuple[bytes, str]] = None
    fields: Dict[str, Any]

    if content_type.startswith("multipart/form-data") or content_type.startswith("application/x-www-form-urlencoded"):
        form = await request.form()
        fields = {}
        for key, value in form.multi_items():
            if isinstance(value, StarletteUploadFile):
                if key == "sourceImage":
                    image = await _read_image(value)
                continue
            fields[key] = value

        raw_analysis = fields.get("analysis")
        if isinstance(raw_analysis, str) and raw_analysis.strip():
            try:
                fields["analysis"] = json.loads(raw_analysis)
            except json.JSONDecodeError as e:
                raise ValidationError("analysis must be a JSON object.") from e
        else:
            fields.pop("analysis", None)
    else:
        try:
            fields = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ValidationError("Request body must be JSON or multipart form data.") from e
        if not isinstance(fields, dict):
            raise ValidationError("Request body must be a JSON object.")

    try:
        parsed = ImageContentRequest.model_validate(fields)
    except PydanticValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ()))
        raise ValidationError(f"Invalid field {location}: {first.get('msg', 'invalid value')}".strip()) from e

    if parsed.analysis is None and image is None:
        raise ValidationError("Source image file or analysis is required.")

    return parsed, image


@router.post("/analyze-image", response_model=ImageAnalyzeResponse)
@limiter.limit("10/minute")
async def analyze_image(
    request: Request,
    sourceImage: UploadFile = File(None),
    user_id: str = Depends(get_current_user_id),
    pipeline: ContentPipeline = Depends(get_content_pipeline),
):
    """Extract subjects, setting and style elements from an uploaded image."""
    if sourceImage is None:
        raise ValidationError("Source image file is required.")

    data, mime_type = await _read_image(sourceImage)
    analysis = await pipeline.analyze_image(data, mime_type)
    return ImageAnalyzeResponse(analysis=analysis)


@router.post("/generate-image-content", response_model=ImageContentResponse)
@limiter.limit("10/minute")
async def generate_image_content(
    request: Request,
    user_id: str = Depends(get_current_user_id),
    pipeline: ContentPipeline = Depends(get_content_pipeline),
):
    """
    Generate an image and social posts for a topic from a reference image.

    When a source image is uploaded instead of an analysis, Phase 1 runs first.
    """
    body, image = await parse_image_content_form(request)

    analysis = body.analysis
    if analysis is None:
        data, mime_type = image
        analysis = await pipeline.analyze_image(data, mime_type)

    result = await pipeline.generate_image_content(
        analysis,
        body.topic,
        details=body.details,
        style_influence=body.style_influence,
        with_text_overlay=body.with_text_overlay,
        intent=body.intent,
    )
    logger.info(f"Generated image content for user {user_id}")
    return ImageContentResponse(result=result)
