"""
Tests for SightengineClient response parsing (app/ai/sightengine_client.py).

Requests are answered by httpx.MockTransport handlers; the handlers also
check what was sent (endpoint, multipart fields).
"""

import httpx
import pytest

from app.ai.sightengine_client import SightengineClient
from app.core.errors import ScoringError


def _client(test_settings, handler) -> SightengineClient:
    return SightengineClient(test_settings, transport=httpx.MockTransport(handler))


def _answer(payload, status=200):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json=payload)

    return handler


class TestScoreVideo:
    async def test_returns_ordered_frame_scores(self, test_settings):
        payload = {
            "status": "success",
            "data": {"frames": [
                {"info": {"position": 0}, "type": {"ai_generated": 0.9}},
                {"info": {"position": 1}, "type": {"ai_generated": 0.7}},
                {"info": {"position": 2}, "type": {}},
            ]},
        }
        scores = await _client(test_settings, _answer(payload)).score_video("https://cdn/clip.mp4")
        assert scores == [0.9, 0.7, 0.0]

    async def test_sends_stream_url_and_credentials_to_check_sync(self, test_settings):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = request.content
            seen["content_type"] = request.headers["content-type"]
            return httpx.Response(200, json={"status": "success", "data": {"frames": [{"type": {"ai_generated": 0.1}}]}})

        await _client(test_settings, handler).score_video("https://cdn/clip.mp4")

        assert seen["path"] == "/1.0/video/check-sync.json"
        assert seen["content_type"].startswith("multipart/form-data")
        body = seen["body"]
        assert b'name="stream_url"' in body and b"https://cdn/clip.mp4" in body
        assert b'name="models"' in body and b"genai" in body
        assert b"test-user" in body and b"test-secret" in body

    async def test_missing_frames_is_an_error_not_a_zero(self, test_settings):
        client = _client(test_settings, _answer({"status": "success", "data": {}}))
        with pytest.raises(ScoringError) as excinfo:
            await client.score_video("https://cdn/clip.mp4")
        assert excinfo.value.message == "Video analysis returned no frame data."

    async def test_empty_frame_list_is_an_error(self, test_settings):
        client = _client(test_settings, _answer({"status": "success", "data": {"frames": []}}))
        with pytest.raises(ScoringError):
            await client.score_video("https://cdn/clip.mp4")

    async def test_failure_status_uses_error_message(self, test_settings):
        payload = {"status": "failure", "error": {"type": "media_error", "message": "Video too long"}}
        client = _client(test_settings, _answer(payload, status=400))
        with pytest.raises(ScoringError) as excinfo:
            await client.score_video("https://cdn/clip.mp4")
        assert excinfo.value.message == "Video too long"

    async def test_failure_without_message_uses_default(self, test_settings):
        client = _client(test_settings, _answer({"status": "failure"}))
        with pytest.raises(ScoringError) as excinfo:
            await client.score_video("https://cdn/clip.mp4")
        assert excinfo.value.message == "Video analysis failed"

    async def test_timeout(self, test_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(ScoringError) as excinfo:
            await _client(test_settings, handler).score_video("https://cdn/clip.mp4")
        assert "did not answer within" in excinfo.value.message


class TestScoreImage:
    async def test_score_and_class(self, test_settings):
        payload = {"status": "success", "type": {"ai_generated": 0.97, "ai_class": "dalle"}}
        score = await _client(test_settings, _answer(payload)).score_image(b"\x89PNG", "image/png")
        assert score.ai_generated == 0.97
        assert score.ai_class == "dalle"

    async def test_missing_score_is_zero(self, test_settings):
        score = await _client(test_settings, _answer({"status": "success", "type": {}})).score_image(b"x", "image/jpeg")
        assert score.ai_generated == 0
        assert score.ai_class is None

    async def test_uploads_media_part_with_mime_type(self, test_settings):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = request.content
            return httpx.Response(200, json={"status": "success", "type": {"ai_generated": 0.2}})

        await _client(test_settings, handler).score_image(b"image-bytes", "image/webp")
        assert seen["path"] == "/1.0/check.json"
        assert b'name="media"; filename="image.jpg"' in seen["body"]
        assert b"Content-Type: image/webp" in seen["body"]
        assert b"image-bytes" in seen["body"]

    async def test_non_json_body(self, test_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="<html>Bad Gateway</html>")

        with pytest.raises(ScoringError) as excinfo:
            await _client(test_settings, handler).score_image(b"x", "image/jpeg")
        assert "502" in excinfo.value.message

    async def test_http_error_without_failure_status(self, test_settings):
        with pytest.raises(ScoringError):
            await _client(test_settings, _answer({"detail": "nope"}, status=503)).score_image(b"x", "image/jpeg")


class TestMalformedResponses:
    @pytest.mark.parametrize("data", [
        {"frames": ["oops"]},
        {"frames": [{"type": "genai"}]},
        {"frames": [{"type": {"ai_generated": "high"}}]},
        {"frames": [{"type": {"ai_generated": 1.7}}]},
        {"frames": {"0": {"type": {"ai_generated": 0.2}}}},
        [{"type": {"ai_generated": 0.2}}],
    ])
    async def test_bad_frame_data_is_a_scoring_error(self, test_settings, data):
        client = _client(test_settings, _answer({"status": "success", "data": data}))
        with pytest.raises(ScoringError) as excinfo:
            await client.score_video("https://cdn/clip.mp4")
        assert excinfo.value.message == "Video analysis returned malformed frame data."

    @pytest.mark.parametrize("payload", [
        {"status": "success", "type": "genai"},
        {"status": "success", "type": {"ai_generated": "very"}},
        {"status": "success", "type": {"ai_generated": -0.1}},
    ])
    async def test_bad_image_data_is_a_scoring_error(self, test_settings, payload):
        client = _client(test_settings, _answer(payload))
        with pytest.raises(ScoringError) as excinfo:
            await client.score_image(b"x", "image/jpeg")
        assert excinfo.value.message == "Image analysis returned malformed data."

    async def test_non_object_body(self, test_settings):
        client = _client(test_settings, _answer(["not", "an", "object"]))
        with pytest.raises(ScoringError):
            await client.score_video("https://cdn/clip.mp4")
