"""Transcribe recorded dictation clips so they can be typed into the chat box."""

from __future__ import annotations

import logging

from google import genai
from google.genai import types

from services.gemini.prompts import dictation_instruction
from services.gemini.response_parser import extract_text
from utils.config import DEFAULT_TEXT_MODEL

LOGGER = logging.getLogger(__name__)

_MIME_ALIASES = {
	"audio/x-wav": "audio/wav",
	"audio/wave": "audio/wav",
	"audio/mp3": "audio/mpeg",
	"audio/x-flac": "audio/flac",
	"audio/opus": "audio/ogg",
	"audio/m4a": "audio/aac",
}

_SUPPORTED_MIME_TYPES = {
	"audio/wav",
	"audio/mpeg",
	"audio/aac",
	"audio/ogg",
	"audio/flac",
	"audio/webm",
	"audio/mp4",
}


def normalize_audio_mime(mime_type: str) -> str:
	"""Return the canonical MIME type Gemini accepts for an audio upload.

	Strip any parameters (e.g. 'audio/webm;codecs=opus'), fold common aliases,
	and raise ValueError for anything the model cannot read.
	"""
	mime = (mime_type or "").lower().split(";", 1)[0].strip()
	mime = _MIME_ALIASES.get(mime, mime)
	if mime not in _SUPPORTED_MIME_TYPES:
		raise ValueError(f"Unsupported or unknown audio MIME type: '{mime_type}'")
	return mime


class DictationTranscriber:
	"""Convert short audio clips into whitespace-trimmed transcripts."""

	def __init__(self, client: genai.Client, model: str = DEFAULT_TEXT_MODEL) -> None:
		if client is None:
			raise ValueError("Gemini client is required.")
		self.client = client
		self.model = model

	async def transcribe(self, audio_bytes: bytes, mime_type: str = "audio/wav") -> str:
		"""Return the transcript for one recorded clip.

		Args:
			audio_bytes: Raw audio file bytes.
			mime_type: MIME type of the clip.

		Returns:
			The transcript, or an empty string when nothing was heard.
		"""
		if not audio_bytes:
			raise ValueError("audio_bytes must contain data for transcription.")
		mime = normalize_audio_mime(mime_type)
		try:
			response = await self.client.aio.models.generate_content(
				model=self.model,
				contents=[
					types.Part.from_text(text=dictation_instruction()),
					types.Part.from_bytes(data=audio_bytes, mime_type=mime),
				],
			)
		except Exception as exc:
			LOGGER.error("Gemini transcription request failed: %s", exc)
			raise RuntimeError(f"Transcription failed: {exc}") from exc
		return (extract_text(response) or "").strip()
