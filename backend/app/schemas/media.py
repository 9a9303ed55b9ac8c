"""
Transient media and analysis values passed between pipeline phases.

None of these are persisted.
"""
from typing import Tuple
from pydantic import BaseModel, Field


VIDEO_ANALYSIS_FIELDS: Tuple[str, ...] = (
    "meta",
    "hook_analysis",
    "retention_signals",
    "engagement_tactics",
)

IMAGE_ANALYSIS_FIELDS: Tuple[str, ...] = (
    "subjects",
    "setting",
    "style_elements",
)


class MediaReference(BaseModel):
    """A video or image ready for inference."""
    uri: str = Field(..., min_length=1, description="Gemini file URI or external video URL")
    mime_type: str = Field(..., min_length=1)

    class Config:
        frozen = True
