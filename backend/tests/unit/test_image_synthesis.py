"""
Unit tests for style influence handling and image synthesis.
"""
import base64

import pytest

from app.core.errors import ImageSynthesisFailed, ValidationError
from app.services.gemini import GeneratedImage
from app.services.image_synthesis import ImageSynthesizer, clamp_style_influence
from tests.fakes import FakeGemini


class TestClampStyleInfluence:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, 50),
            ("", 50),
            (0, 0),
            (100, 100),
            (150, 100),
            (-20, 0),
            ("75", 75),
            (33.6, 34),
        ],
    )
    def test_values(self, value, expected):
        assert clamp_style_influence(value) == expected

    @pytest.mark.parametrize("value", ["lots", True, [50]])
    def test_non_numeric_rejected(self, value):
        with pytest.raises(ValidationError):
            clamp_style_influence(value)


class TestImageSynthesizer:
    async def test_returns_data_url(self):
        gemini = FakeGemini(
            responses=["final prompt"],
            image=GeneratedImage(data=b"jpeg-bytes", mime_type="image/jpeg"),
        )
        synthesizer = ImageSynthesizer(gemini)

        url = await synthesizer.synthesize("warm palette", "Cats", "", 80)

        assert url == "data:image/jpeg;base64," + base64.b64encode(b"jpeg-bytes").decode("ascii")
        prompt = gemini.calls[0]["prompt"]
        assert "80/100" in prompt
        assert 'Details: "None"' in prompt
        assert gemini.image_prompts == ["final prompt"]

    async def test_no_image_is_logged_and_raised(self, caplog):
        gemini = FakeGemini(
            responses=["final prompt"],
            image=GeneratedImage(data=b"", mime_type="", raw={"filtered": True}),
        )
        synthesizer = ImageSynthesizer(gemini)

        with pytest.raises(ImageSynthesisFailed) as exc_info:
            await synthesizer.synthesize("warm palette", "Cats", "", 50)

        assert exc_info.value.status_code == 422
        assert "final prompt" in caplog.text
        assert "final prompt" not in exc_info.value.message
