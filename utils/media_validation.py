"""Validation helpers for uploaded multimedia content."""

import base64
import binascii

from fastapi import UploadFile

from utils.errors import RelayError

ALLOWED_AUDIO_TYPES = {
    "audio/wav",
    "audio/x-wav",
    "audio/wave",
    "audio/webm",
    "audio/mpeg",
    "audio/mp3",
    "audio/mp4",
    "audio/aac",
    "audio/ogg",
    "audio/opus",
    "audio/flac",
}

AUDIO_EXTENSIONS = {
    ".wav": "audio/wav",
    ".webm": "audio/webm",
    ".mp3": "audio/mpeg",
    ".mp4": "audio/mp4",
    ".m4a": "audio/aac",
    ".ogg": "audio/ogg",
    ".flac": "audio/flac",
}


def decode_base64_image(data: str) -> bytes:
    """Return the decoded bytes of a base64 image payload or raise ValueError."""
    try:
        raw = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("Image data must be base64-encoded.") from exc
    if not raw:
        raise ValueError("Image data is empty.")
    return raw


def audio_mime_type(audio_file: UploadFile) -> str:
    """Return the MIME type of a supported audio upload.

    Clients may send several container formats (webm, wav, mp3, mp4, ogg,
    flac). The declared content type is checked against the allowed set; when
    it is missing the filename extension decides.
    """
    if audio_file.content_type and audio_file.content_type != "application/octet-stream":
        content_type = audio_file.content_type.lower().split(";", 1)[0].strip()
        if content_type not in ALLOWED_AUDIO_TYPES:
            raise RelayError(415, f"Unsupported audio content type: {audio_file.content_type}")
        return content_type

    filename = (audio_file.filename or "").lower()
    for extension, mime_type in AUDIO_EXTENSIONS.items():
        if filename.endswith(extension):
            return mime_type
    raise RelayError(415, "Unsupported or missing audio content type.")


async def read_audio_bytes(audio_file: UploadFile) -> bytes:
    """Read validated audio bytes, ensuring the upload is not empty."""
    audio_mime_type(audio_file)
    audio_bytes = await audio_file.read()
    if not audio_bytes:
        raise RelayError(400, "Uploaded audio file is empty.")
    return audio_bytes
