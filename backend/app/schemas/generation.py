"""
Pydantic schemas for the video analyze/generate endpoints.
"""
from typing import Any, Dict, List, Literal, Union
from pydantic import BaseModel, Field


OutputType = Literal["Script", "Script & Analysis", "AI Video Prompts"]
OutputDetail = Literal["Short Form", "Long Form"]


class AnalyzeRequest(BaseModel):
    """Phase 1 only."""
    video_source: str = Field(..., min_length=1, alias="videoSource")
    mime_type: str = Field(..., min_length=1, alias="mimeType")

    class Config:
        populate_by_name = True


class AnalyzeResponse(BaseModel):
    analysis: Dict[str, Any]


class GenerateContentRequest(BaseModel):
    """Phase 2 only. The client resends the analysis it received from Phase 1."""
    topic: str = Field(..., min_length=1)
    output_type: OutputType = Field(..., alias="outputType")
    analysis: Dict[str, Any]

    class Config:
        populate_by_name = True


class GenerateContentResponse(BaseModel):
    content: Union[str, List[Any]]


class GenerateRequest(BaseModel):
    """Full analyze + generate flow in one call."""
    topic: str = Field(..., min_length=1)
    output_detail: OutputDetail = Field(..., alias="outputDetail")
    output_type: OutputType = Field(..., alias="outputType")
    video_source: str = Field(..., min_length=1, alias="videoSource")
    mime_type: str = Field(..., min_length=1, alias="mimeType")

    class Config:
        populate_by_name = True


class GenerationResult(BaseModel):
    analysis: Dict[str, Any]
    content: Union[str, List[Any]]


class GenerateResponse(BaseModel):
    result: GenerationResult
