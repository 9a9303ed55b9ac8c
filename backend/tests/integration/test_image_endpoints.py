"""
Integration tests for the image endpoints.

Tests the full request/response cycle including:
- POST /api/analyze-image
- POST /api/generate-image-content (JSON and multipart bodies)
"""
import json

import pytest

from app.services.content_pipeline import ContentPipeline
from tests.fakes import IMAGE_ANALYSIS, FakeGemini

POSTS = {"linkedin": "Big news.", "x": "Short and witty #cats", "instagram": "Look! #cat"}


def responder(prompt):
    if "art director" in prompt:
        return "Soft window light, warm palette."
    if "prompt engineer" in prompt:
        return "A tabby cat on a sunny windowsill."
    if "social media copywriter" in prompt:
        return json.dumps(POSTS)
    if "catchy headline" in prompt:
        return "Mornings Belong To Cats"
    # Phase 1 image analysis
    return json.dumps(IMAGE_ANALYSIS)


@pytest.fixture
def gemini():
    return FakeGemini(responder=responder)


@pytest.fixture
def client(client_factory, gemini):
    return client_factory(get_content_pipeline=ContentPipeline(gemini))


class TestAnalyzeImage:
    def test_analyze_uploaded_image(self, client, gemini):
        response = client.post(
            "/api/analyze-image",
            files={"sourceImage": ("cat.jpg", b"\xff\xd8jpeg", "image/jpeg")},
        )

        assert response.status_code == 200
        assert response.json() == {"analysis": IMAGE_ANALYSIS}
        assert gemini.calls[0]["parts"][1].inline_data.mime_type == "image/jpeg"

    def test_missing_image_is_400(self, client):
        response = client.post("/api/analyze-image", data={"topic": "cats"})

        assert response.status_code == 400
        assert response.json() == {"error": "Source image file is required."}


class TestGenerateImageContent:
    def test_json_body_with_analysis(self, client, gemini):
        response = client.post("/api/generate-image-content", json={
            "topic": "Cats",
            "details": "Sunday morning",
            "analysis": IMAGE_ANALYSIS,
            "styleInfluence": 80,
        })

        assert response.status_code == 200
        result = response.json()["result"]
        assert result["imageUrl"].startswith("data:image/png;base64,")
        assert result["posts"] == {
            "linkedin": "Big news.",
            "twitter": "Short and witty #cats",
            "instagram": "Look! #cat",
        }
        assert result["headline"] == "Mornings Belong To Cats"
        assert any("80/100" in call["prompt"] for call in gemini.calls)

    def test_multipart_with_source_image_runs_analysis_first(self, client, gemini):
        response = client.post(
            "/api/generate-image-content",
            data={"topic": "Cats", "controlLevel": "150", "withTextOverlay": "false", "intent": "ExtractStyle"},
            files={"sourceImage": ("cat.png", b"\x89PNG", "image/png")},
        )

        assert response.status_code == 200
        result = response.json()["result"]
        assert result["headline"] is None
        prompts = [call["prompt"] for call in gemini.calls]
        assert any("100/100" in prompt for prompt in prompts)
        assert not any("catchy headline" in prompt for prompt in prompts)

    def test_multipart_with_analysis_string(self, client):
        response = client.post(
            "/api/generate-image-content",
            data={"topic": "Cats", "analysis": json.dumps(IMAGE_ANALYSIS)},
        )

        assert response.status_code == 200

    def test_missing_analysis_and_image_is_400(self, client, gemini):
        response = client.post("/api/generate-image-content", json={"topic": "Cats"})

        assert response.status_code == 400
        assert gemini.calls == []

    def test_non_numeric_style_influence_is_400(self, client):
        response = client.post("/api/generate-image-content", json={
            "topic": "Cats",
            "analysis": IMAGE_ANALYSIS,
            "styleInfluence": "lots",
        })

        assert response.status_code == 400

    def test_invalid_analysis_string_is_400(self, client):
        response = client.post(
            "/api/generate-image-content",
            data={"topic": "Cats", "analysis": "{not json"},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "analysis must be a JSON object."}

    def test_no_image_from_model_is_422(self, client_factory):
        from app.services.gemini import GeneratedImage

        gemini = FakeGemini(responder=responder, image=GeneratedImage(data=b"", mime_type=""))
        client = client_factory(get_content_pipeline=ContentPipeline(gemini))

        response = client.post("/api/generate-image-content", json={"topic": "Cats", "analysis": IMAGE_ANALYSIS})

        assert response.status_code == 422
        assert "safety filters" in response.json()["error"]
