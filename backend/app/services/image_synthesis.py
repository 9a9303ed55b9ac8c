"""
Image synthesis: turn a style descriptor and a topic into an image.

Two model calls: a text call that writes the final image prompt, then an
Imagen call. The result is returned inline as a data URL.
"""
import base64
import logging
from typing import Optional

from app.core.errors import ImageSynthesisFailed, ValidationError
from app.services import prompts
from app.services.gemini import BackoffPolicy, GeminiClient, text_part, with_backoff

logger = logging.getLogger(__name__)

DEFAULT_STYLE_INFLUENCE = 50


def clamp_style_influence(value) -> int:
    """
    Coerce a style influence value into the 0-100 range.

    Raises:
        ValidationError: If the value is not numeric
    """
    if value is None or value == "":
        return DEFAULT_STYLE_INFLUENCE
    if isinstance(value, bool):
        raise ValidationError("styleInfluence must be a number between 0 and 100.")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError("styleInfluence must be a number between 0 and 100.") from exc
    return int(max(0, min(100, round(number))))


class ImageSynthesizer:
    """Compose an image prompt and render it with Imagen."""

    def __init__(self, gemini: GeminiClient, backoff: Optional[BackoffPolicy] = None):
        self.gemini = gemini
        self.backoff = backoff or BackoffPolicy.from_settings()

    async def compose_prompt(self, style_descriptor: str, topic: str, details: str, style_influence: int) -> str:
        influence = clamp_style_influence(style_influence)
        prompt = prompts.render(
            prompts.IMAGE_PROMPT_TEMPLATE,
            user_topic=topic,
            details=details or "None",
            style_descriptor=style_descriptor,
            style_influence=str(influence),
        )
        text = await with_backoff(lambda: self.gemini.generate_text([text_part(prompt)]), self.backoff)
        return text.strip()

    async def synthesize(self, style_descriptor: str, topic: str, details: str, style_influence: int) -> str:
        """
        Produce an image for the topic in the reference style.

        Args:
            style_descriptor: Paragraph describing the reference style
            topic: User topic
            details: Optional extra user details
            style_influence: 0-100 weight of the reference style

        Returns:
            ``data:{mime};base64,...`` URL

        Raises:
            ImageSynthesisFailed: If the model returned no image
        """
        final_prompt = await self.compose_prompt(style_descriptor, topic, details, style_influence)
        logger.info("Starting image generation")

        image = await with_backoff(lambda: self.gemini.generate_image(final_prompt), self.backoff)
        if not image.data:
            # Prompt and response stay in the logs only.
            logger.error(f"Image generation failed. Final prompt: {final_prompt}")
            logger.error(f"Image model response: {image.raw!r}")
            raise ImageSynthesisFailed()

        encoded = base64.b64encode(image.data).decode("ascii")
        return f"data:{image.mime_type};base64,{encoded}"
