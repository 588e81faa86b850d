"""
Tests for the dictation transcription endpoint.
"""

import pytest

from conftest import text_response
from services.gemini.dictation_transcriber import normalize_audio_mime


class TestTranscribeEndpoint:

    def test_returns_trimmed_transcript(self, relay_client, genai_client):
        genai_client.models.response = text_response("  สวัสดีครับ \n")

        resp = relay_client.post("/api/transcribe", files={"audio": ("clip.wav", b"RIFF0000WAVE", "audio/wav")})

        assert resp.status_code == 200
        assert resp.json() == {"text": "สวัสดีครับ"}
        audio_part = genai_client.models.calls[0]["contents"][1]
        assert audio_part.inline_data.data == b"RIFF0000WAVE"
        assert audio_part.inline_data.mime_type == "audio/wav"

    def test_unsupported_type(self, relay_client, genai_client):
        resp = relay_client.post("/api/transcribe", files={"audio": ("notes.txt", b"hello", "text/plain")})
        assert resp.status_code == 415
        assert genai_client.models.calls == []

    def test_empty_upload(self, relay_client):
        resp = relay_client.post("/api/transcribe", files={"audio": ("clip.wav", b"", "audio/wav")})
        assert resp.status_code == 400

    def test_missing_api_key(self, keyless_client):
        resp = keyless_client.post("/api/transcribe", files={"audio": ("clip.wav", b"RIFF", "audio/wav")})
        assert resp.status_code == 500
        assert resp.json() == {"text": "Server misconfiguration"}

    def test_provider_failure(self, relay_client, genai_client):
        genai_client.models.error = RuntimeError("timeout")

        resp = relay_client.post("/api/transcribe", files={"audio": ("clip.webm", b"\x1aE", "audio/webm")})

        assert resp.status_code == 500
        assert resp.json() == {"text": "ขออภัยค่ะ ถอดเสียงไม่สำเร็จ"}


class TestNormalizeAudioMime:

    @pytest.mark.parametrize(
        "declared, expected",
        [
            ("audio/webm;codecs=opus", "audio/webm"),
            ("audio/x-wav", "audio/wav"),
            ("AUDIO/MP3", "audio/mpeg"),
        ],
    )
    def test_aliases_and_parameters(self, declared, expected):
        assert normalize_audio_mime(declared) == expected

    def test_rejects_unknown_type(self):
        with pytest.raises(ValueError):
            normalize_audio_mime("video/mp4")
