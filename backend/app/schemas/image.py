"""
Pydantic schemas for the image analyze/generate endpoints.
"""
from typing import Any, Dict, Literal, Optional
from pydantic import AliasChoices, BaseModel, Field, field_validator

from app.services.image_synthesis import DEFAULT_STYLE_INFLUENCE, clamp_style_influence


ImageIntent = Literal["AdaptRemix", "ExtractStyle"]


class ImageAnalyzeResponse(BaseModel):
    analysis: Dict[str, Any]


class ImageContentRequest(BaseModel):
    """
    Parsed body of /generate-image-content.

    Built by app.api.routes.image.parse_image_content_form from either a JSON
    body or multipart fields.
    """
    topic: str = Field(..., min_length=1)
    details: str = ""
    analysis: Optional[Dict[str, Any]] = None
    style_influence: int = Field(
        DEFAULT_STYLE_INFLUENCE,
        validation_alias=AliasChoices("styleInfluence", "controlLevel", "style_influence"),
    )
    with_text_overlay: bool = Field(
        True,
        validation_alias=AliasChoices("withTextOverlay", "with_text_overlay"),
    )
    intent: ImageIntent = "AdaptRemix"

    @field_validator("style_influence", mode="before")
    @classmethod
    def clamp_influence(cls, v):
        return clamp_style_influence(v)

    @field_validator("details", mode="before")
    @classmethod
    def default_details(cls, v):
        return v or ""


class SocialPosts(BaseModel):
    linkedin: str
    twitter: str
    instagram: str


class ImageGenerationResult(BaseModel):
    image_url: str = Field(..., serialization_alias="imageUrl")
    posts: SocialPosts
    headline: Optional[str] = None


class ImageContentResponse(BaseModel):
    result: ImageGenerationResult
