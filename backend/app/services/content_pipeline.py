"""
Content pipeline: Phase 1 analysis and Phase 2 generation.

Phase 1 extracts a structured analysis from a video or image. Phase 2 uses
that analysis as a blueprint for new content about the user's topic. Each
invocation tracks its progress in a PipelineRun; failures inside a phase move
the run to FAILED and propagate to the route. Rate-limited model calls are
retried with backoff before they count as a failure.
"""
import asyncio
from dataclasses import dataclass, field
from enum import Enum
import json
import logging
from typing import Any, Dict, List, Optional, Tuple, Union

from app.core.errors import AnalysisMalformed, GenerationMalformed, ValidationError
from app.schemas.image import ImageGenerationResult, SocialPosts
from app.schemas.media import IMAGE_ANALYSIS_FIELDS, VIDEO_ANALYSIS_FIELDS, MediaReference
from app.services import prompts
from app.services.gemini import BackoffPolicy, GeminiClient, image_part, text_part, video_part, with_backoff
from app.services.image_synthesis import ImageSynthesizer
from app.services.parsing import extract_json_array, parse_analysis, parse_json_object

logger = logging.getLogger(__name__)

JSON_MIME_TYPE = "application/json"

INTENT_ADAPT_REMIX = "AdaptRemix"
INTENT_EXTRACT_STYLE = "ExtractStyle"

SOCIAL_PLATFORMS = ("linkedin", "twitter", "instagram")


class PipelineState(str, Enum):
    IDLE = "IDLE"
    ANALYZING = "ANALYZING"
    ANALYZED = "ANALYZED"
    GENERATING = "GENERATING"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"


_TRANSITIONS = {
    PipelineState.IDLE: {PipelineState.ANALYZING},
    PipelineState.ANALYZING: {PipelineState.ANALYZED, PipelineState.FAILED},
    PipelineState.ANALYZED: {PipelineState.GENERATING},
    PipelineState.GENERATING: {PipelineState.COMPLETE, PipelineState.FAILED},
    PipelineState.COMPLETE: set(),
    PipelineState.FAILED: set(),
}


@dataclass
class PipelineRun:
    """State of a single pipeline invocation."""
    state: PipelineState = PipelineState.IDLE
    history: List[PipelineState] = field(default_factory=list)
    analysis: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if not self.history:
            self.history.append(self.state)

    @classmethod
    def from_analysis(cls, analysis: Dict[str, Any]) -> "PipelineRun":
        """Start a run at ANALYZED for Phase-2-only requests."""
        return cls(state=PipelineState.ANALYZED, analysis=analysis)

    def transition(self, new_state: PipelineState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Invalid pipeline transition {self.state.value} -> {new_state.value}")
        self.state = new_state
        self.history.append(new_state)


ContentResult = Union[str, List[Any]]


class ContentPipeline:
    """Analyze -> generate orchestration over the Gemini adapter."""

    def __init__(
        self,
        gemini: GeminiClient,
        synthesizer: Optional[ImageSynthesizer] = None,
        backoff: Optional[BackoffPolicy] = None,
    ):
        self.gemini = gemini
        self.backoff = backoff or BackoffPolicy.from_settings()
        self.synthesizer = synthesizer or ImageSynthesizer(gemini, backoff=self.backoff)

    async def _generate_text(self, parts: List[Any], response_mime_type: Optional[str] = None) -> str:
        return await with_backoff(
            lambda: self.gemini.generate_text(parts, response_mime_type=response_mime_type),
            self.backoff,
        )

    # Phase 1

    async def _analyze(self, run: PipelineRun, parts: List[Any], required_fields: Tuple[str, ...]) -> Dict[str, Any]:
        run.transition(PipelineState.ANALYZING)
        try:
            try:
                text = await self._generate_text(parts, response_mime_type=JSON_MIME_TYPE)
            except GenerationMalformed as exc:
                raise AnalysisMalformed() from exc
            analysis = parse_analysis(text, required_fields)
        except Exception:
            run.transition(PipelineState.FAILED)
            raise
        run.analysis = analysis
        run.transition(PipelineState.ANALYZED)
        return analysis

    async def analyze_video(self, media: MediaReference, run: Optional[PipelineRun] = None) -> Dict[str, Any]:
        """
        Phase 1 for a video already ingested into the file store.

        Raises:
            AnalysisMalformed: If the output is not an object with the required sections
        """
        run = run or PipelineRun()
        logger.info("Starting Phase 1: video analysis")
        parts = [
            text_part(prompts.render(prompts.VIDEO_ANALYSIS_PROMPT)),
            video_part(media.uri, media.mime_type),
        ]
        return await self._analyze(run, parts, VIDEO_ANALYSIS_FIELDS)

    async def analyze_image(self, data: bytes, mime_type: str, run: Optional[PipelineRun] = None) -> Dict[str, Any]:
        run = run or PipelineRun()
        if not data:
            raise ValidationError("Source image file is required.")
        logger.info("Starting Phase 1: image analysis")
        parts = [
            text_part(prompts.render(prompts.IMAGE_ANALYSIS_PROMPT)),
            image_part(data, mime_type or "image/png"),
        ]
        return await self._analyze(run, parts, IMAGE_ANALYSIS_FIELDS)

    # Phase 2

    async def generate_content(
        self,
        analysis: Dict[str, Any],
        topic: str,
        output_type: str,
        output_detail: Optional[str] = None,
        run: Optional[PipelineRun] = None,
    ) -> ContentResult:
        """
        Phase 2: generate content for a topic from an analysis blueprint.

        Args:
            analysis: Phase 1 output
            topic: User's new topic
            output_type: "Script", "Script & Analysis" or "AI Video Prompts"
            output_detail: "Short Form" / "Long Form", or None for the fixed short-form templates
            run: Run to advance; a fresh ANALYZED run is used when omitted

        Returns:
            Script text, or a non-empty list of storyboard prompts

        Raises:
            ValidationError: Unknown output type or empty topic
            GenerationMalformed: Empty or unparseable model output
        """
        if not topic or not topic.strip():
            raise ValidationError("Missing required fields.")
        selection = prompts.select_template(output_type, output_detail)

        params = {
            "analysis_json": json.dumps(analysis),
            "user_topic": topic,
        }
        if output_detail is not None:
            params["output_detail"] = output_detail
        prompt = prompts.render(selection.template, **params)

        run = run or PipelineRun.from_analysis(analysis)
        run.transition(PipelineState.GENERATING)
        logger.info(f"Starting Phase 2: generation ({output_type})")
        try:
            text = await self._generate_text(
                [text_part(prompt)],
                response_mime_type=JSON_MIME_TYPE if selection.json_output else "text/plain",
            )
            if selection.json_output:
                content: ContentResult = extract_json_array(text)
                if not content:
                    raise GenerationMalformed("Failed to generate structured video prompts.")
            else:
                content = text
        except Exception:
            run.transition(PipelineState.FAILED)
            raise

        run.transition(PipelineState.COMPLETE)
        return content

    async def run(self, media: MediaReference, topic: str, output_type: str, output_detail: str) -> Dict[str, Any]:
        """Full flow: analyze the video then generate content from the analysis."""
        pipeline_run = PipelineRun()
        # Reject a bad output type before spending a model call on analysis.
        prompts.select_template(output_type, output_detail)
        analysis = await self.analyze_video(media, run=pipeline_run)
        content = await self.generate_content(analysis, topic, output_type, output_detail, run=pipeline_run)
        return {"analysis": analysis, "content": content}

    # Image flow

    async def describe_style(self, analysis: Dict[str, Any], intent: str = INTENT_ADAPT_REMIX) -> str:
        if intent == INTENT_EXTRACT_STYLE:
            source = {"style_elements": analysis.get("style_elements", {})}
            focus = prompts.STYLE_FOCUS_EXTRACT
        else:
            source = analysis
            focus = prompts.STYLE_FOCUS_REMIX

        prompt = prompts.render(
            prompts.STYLE_DESCRIPTOR_PROMPT,
            analysis_json=json.dumps(source),
            focus=focus,
        )
        text = await self._generate_text([text_part(prompt)])
        return text.strip()

    async def generate_social_posts(self, topic: str, details: str) -> SocialPosts:
        prompt = prompts.render(prompts.SOCIAL_POSTS_PROMPT, user_topic=topic, details=details or "None")
        text = await self._generate_text([text_part(prompt)], response_mime_type=JSON_MIME_TYPE)
        parsed = parse_json_object(text)

        if "twitter" not in parsed and "x" in parsed:
            parsed["twitter"] = parsed["x"]
        missing = [key for key in SOCIAL_PLATFORMS if not isinstance(parsed.get(key), str) or not parsed.get(key)]
        if missing:
            logger.error(f"Social posts missing platforms {missing}: {text!r}")
            raise GenerationMalformed("Failed to generate social posts.")

        return SocialPosts(**{key: parsed[key] for key in SOCIAL_PLATFORMS})

    async def generate_headline(self, topic: str, details: str) -> str:
        prompt = prompts.render(prompts.HEADLINE_PROMPT, user_topic=topic, details=details or "None")
        text = await self._generate_text([text_part(prompt)])
        return text.strip().strip('"').strip()

    async def _style_chain(self, analysis: Dict[str, Any], topic: str, details: str, style_influence: int, intent: str) -> str:
        descriptor = await self.describe_style(analysis, intent)
        return await self.synthesizer.synthesize(descriptor, topic, details, style_influence)

    async def generate_image_content(
        self,
        analysis: Dict[str, Any],
        topic: str,
        details: str = "",
        style_influence: int = 50,
        with_text_overlay: bool = True,
        intent: str = INTENT_ADAPT_REMIX,
    ) -> ImageGenerationResult:
        """
        Phase 2 for images: image, social posts and an optional headline.

        The style chain (describe style -> synthesize image), social posts and
        headline are independent and run concurrently. If any branch fails the
        others are cancelled and the error propagates.
        """
        if not topic or not topic.strip():
            raise ValidationError("Topic is required.")

        run = PipelineRun.from_analysis(analysis)
        run.transition(PipelineState.GENERATING)

        branches = [
            self._style_chain(analysis, topic, details, style_influence, intent),
            self.generate_social_posts(topic, details),
        ]
        if with_text_overlay:
            branches.append(self.generate_headline(topic, details))

        tasks = [asyncio.ensure_future(branch) for branch in branches]
        try:
            results = await asyncio.gather(*tasks)
        except Exception:
            for task in tasks:
                task.cancel()
            run.transition(PipelineState.FAILED)
            raise

        run.transition(PipelineState.COMPLETE)
        image_url, posts = results[0], results[1]
        headline = results[2] if with_text_overlay else None
        return ImageGenerationResult(image_url=image_url, posts=posts, headline=headline)
