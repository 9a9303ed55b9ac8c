"""
Pydantic schemas for upload and ingestion endpoints.
"""
from pydantic import BaseModel, Field


class SignedUrlRequest(BaseModel):
    """Request a short-lived signed upload URL."""
    file_name: str = Field(..., min_length=1, alias="fileName")
    content_type: str = Field(..., min_length=1, alias="contentType")

    class Config:
        populate_by_name = True


class SignedUrlResponse(BaseModel):
    signed_url: str = Field(..., serialization_alias="signedUrl")
    path: str
    token: str


class TransferRequest(BaseModel):
    """Move an uploaded storage object into the Gemini file store."""
    file_path: str = Field(..., min_length=1, alias="filePath")
    mime_type: str = Field(..., min_length=1, alias="mimeType")

    class Config:
        populate_by_name = True


class TransferResponse(BaseModel):
    file_uri: str = Field(..., serialization_alias="fileUri")
    mime_type: str = Field(..., serialization_alias="mimeType")


class VideoDurationRequest(BaseModel):
    video_url: str = Field(..., min_length=1, alias="videoUrl")

    class Config:
        populate_by_name = True


class VideoDurationResponse(BaseModel):
    duration: int = Field(..., description="Duration in seconds")
    max_duration: int = Field(..., serialization_alias="maxDuration")
