"""
Tests for the Sarvam API client.
"""

import asyncio
import json

import httpx
import pytest
from formsaathi.api_client import SarvamClient
from formsaathi.errors import ApiError


def make_client(handler, max_retries=2):
    return SarvamClient(
        api_key="test-key",
        base_url="https://sarvam.test/",
        max_retries=max_retries,
        retry_delay_ms=0,
        transport=httpx.MockTransport(handler),
    )


class TestSarvamClient:
    """Test cases for SarvamClient."""

    def test_json_request(self):
        """JSON payloads are posted with the subscription key header."""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"translated_text": "नमस्ते"})

        result = asyncio.run(make_client(handler).post_json("/translate", {"input": "hello"}))

        assert result == {"translated_text": "नमस्ते"}
        assert len(seen) == 1
        assert str(seen[0].url) == "https://sarvam.test/translate"
        assert seen[0].headers["api-subscription-key"] == "test-key"
        assert json.loads(seen[0].content) == {"input": "hello"}

    def test_retries_server_errors_then_succeeds(self):
        """5xx responses are retried until one succeeds."""
        statuses = [503, 502, 200]
        calls = []

        def handler(request):
            status = statuses[len(calls)]
            calls.append(status)
            return httpx.Response(status, json={"ok": status == 200})

        result = asyncio.run(make_client(handler).post_json("/translate", {}))

        assert result == {"ok": True}
        assert calls == [503, 502, 200]

    def test_gives_up_after_max_retries(self):
        """Persistent server errors raise after the retry budget."""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500, json={"error": "down"})

        with pytest.raises(ApiError) as exc_info:
            asyncio.run(make_client(handler, max_retries=2).post_json("/text-to-speech", {}))

        assert len(calls) == 3
        assert exc_info.value.status_code == 500
        assert exc_info.value.endpoint == "/text-to-speech"
        assert "down" in exc_info.value.details
        assert str(exc_info.value) == "API error: 500"

    def test_client_errors_are_not_retried(self):
        """4xx responses fail immediately."""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(400, text="bad request")

        with pytest.raises(ApiError) as exc_info:
            asyncio.run(make_client(handler).post_json("/translate", {}))

        assert len(calls) == 1
        assert exc_info.value.details == "bad request"

    def test_multipart_upload(self):
        """File uploads are sent as multipart form data."""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"transcript": "hello"})

        result = asyncio.run(make_client(handler).upload_file(
            "/speech-to-text",
            files={"file": ("recording.wav", b"RIFFdata", "audio/wav")},
            data={"model": "saarika:v2"},
        ))

        assert result == {"transcript": "hello"}
        request = seen[0]
        assert request.headers["content-type"].startswith("multipart/form-data")
        assert b'filename="recording.wav"' in request.content
        assert b"saarika:v2" in request.content
