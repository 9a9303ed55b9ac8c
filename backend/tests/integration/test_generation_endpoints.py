"""
Integration tests for the analyze/generate endpoints.

Tests the full request/response cycle including:
- POST /api/generate
- POST /api/analyze
- POST /api/generate-content
- Error body shape and status mapping
"""
import json

import pytest

from app.core.errors import UpstreamQuotaExceeded, UpstreamTimeout
from app.services.content_pipeline import ContentPipeline
from tests.fakes import VIDEO_ANALYSIS, FakeGemini

GENERATE_BODY = {
    "topic": "Home espresso on a budget",
    "outputDetail": "Short Form",
    "outputType": "AI Video Prompts",
    "videoSource": "https://generativelanguage.googleapis.com/v1beta/files/abc123",
    "mimeType": "video/mp4",
}


@pytest.fixture
def make_client(client_factory):
    def make(gemini):
        return client_factory(get_content_pipeline=ContentPipeline(gemini))
    return make


class TestGenerate:
    def test_end_to_end(self, make_client, db, free_profile):
        gemini = FakeGemini(responses=[json.dumps(VIDEO_ANALYSIS), '["Scene 1", "Scene 2"]'])
        client = make_client(gemini)

        response = client.post("/api/generate", json=GENERATE_BODY)

        assert response.status_code == 200
        result = response.json()["result"]
        assert result["analysis"] == VIDEO_ANALYSIS
        assert result["content"] == ["Scene 1", "Scene 2"]

    def test_does_not_consume_credits(self, make_client, db, free_profile):
        gemini = FakeGemini(responses=[json.dumps(VIDEO_ANALYSIS), "A script"])
        client = make_client(gemini)

        client.post("/api/generate", json={**GENERATE_BODY, "outputType": "Script"})

        db.expire_all()
        assert free_profile.credit_balance == 3

    def test_missing_field_is_400(self, make_client):
        gemini = FakeGemini()
        client = make_client(gemini)
        body = dict(GENERATE_BODY)
        del body["topic"]

        response = client.post("/api/generate", json=body)

        assert response.status_code == 400
        assert "error" in response.json()
        assert gemini.calls == []

    def test_unknown_output_type_is_400(self, make_client):
        client = make_client(FakeGemini())

        response = client.post("/api/generate", json={**GENERATE_BODY, "outputType": "Podcast"})

        assert response.status_code == 400

    def test_quota_exhaustion_is_429(self, make_client):
        client = make_client(FakeGemini(responder=lambda prompt: UpstreamQuotaExceeded()))

        response = client.post("/api/generate", json=GENERATE_BODY)

        assert response.status_code == 429
        assert response.json() == {
            "error": "The service is currently overloaded (429). Please wait and try again."
        }

    def test_timeout_is_504(self, make_client):
        client = make_client(FakeGemini(responses=[UpstreamTimeout()]))

        response = client.post("/api/generate", json=GENERATE_BODY)

        assert response.status_code == 504

    def test_malformed_analysis_is_500(self, make_client):
        client = make_client(FakeGemini(responses=["I could not watch the video."]))

        response = client.post("/api/generate", json=GENERATE_BODY)

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to analyze the source structure."}

    def test_requires_authentication(self, client_factory):
        client = client_factory(user_id=None, get_content_pipeline=ContentPipeline(FakeGemini()))

        response = client.post("/api/generate", json=GENERATE_BODY)

        assert response.status_code == 401
        assert response.json() == {"error": "Missing authorization header"}


class TestAnalyzeAndGenerateContent:
    def test_analyze(self, make_client):
        client = make_client(FakeGemini(responses=[json.dumps(VIDEO_ANALYSIS)]))

        response = client.post("/api/analyze", json={
            "videoSource": GENERATE_BODY["videoSource"],
            "mimeType": "video/mp4",
        })

        assert response.status_code == 200
        assert response.json() == {"analysis": VIDEO_ANALYSIS}

    def test_generate_content_from_client_analysis(self, make_client):
        gemini = FakeGemini(responses=["[Hook] Fresh script"])
        client = make_client(gemini)

        response = client.post("/api/generate-content", json={
            "topic": "Home espresso",
            "outputType": "Script & Analysis",
            "analysis": VIDEO_ANALYSIS,
        })

        assert response.status_code == 200
        assert response.json() == {"content": "[Hook] Fresh script"}
        assert "Problem, agitation, solution" in gemini.calls[0]["prompt"]

    def test_generate_content_empty_storyboard_is_500(self, make_client):
        client = make_client(FakeGemini(responses=["No scenes"]))

        response = client.post("/api/generate-content", json={
            "topic": "Home espresso",
            "outputType": "AI Video Prompts",
            "analysis": VIDEO_ANALYSIS,
        })

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to generate structured video prompts."}
