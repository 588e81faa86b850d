"""Open realtime audio sessions with the Gemini Live API."""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator

from google import genai
from google.genai import errors, types

from services.gemini.prompts import live_system_instruction
from services.realtime.audio_codec import capture_mime_type
from utils.config import DEFAULT_LIVE_MODEL, DEFAULT_LIVE_VOICE

logger = logging.getLogger(__name__)

# Websocket close codes that end a session without a fault.
NORMAL_CLOSE_CODES = (1000, 1001)


class LiveConnection:
	"""One open live session: send microphone audio, receive server messages."""

	def __init__(self, context_manager: Any, session: Any) -> None:
		self._context_manager = context_manager
		self._session = session
		self._closed = False

	async def send_audio(self, pcm: bytes, mime_type: str = capture_mime_type()) -> None:
		"""Send one PCM16 frame as realtime media; the SDK base64-encodes it."""
		await self._session.send_realtime_input(audio=types.Blob(data=pcm, mime_type=mime_type))

	async def receive(self) -> AsyncIterator[Any]:
		"""Yield server messages across turns until the connection ends.

		The SDK's `receive()` stops after each completed turn, so it is called
		again until a call produces nothing. The SDK reports every websocket close
		as `APIError`; a normal close code, or any close after `close()`, just
		ends the stream.
		"""
		while not self._closed:
			received = False
			try:
				async for message in self._session.receive():
					received = True
					yield message
			except errors.APIError as exc:
				if self._closed or exc.code in NORMAL_CLOSE_CODES:
					logger.info("Live session closed: %s", exc)
					return
				raise
			if not received:
				return

	async def close(self) -> None:
		"""Close the session; later calls do nothing."""
		if self._closed:
			return
		self._closed = True
		await self._context_manager.__aexit__(None, None, None)


class GeminiLiveConnector:
	"""Build the live session config and connect with a shared client."""

	def __init__(
		self,
		client: genai.Client,
		*,
		model: str = DEFAULT_LIVE_MODEL,
		voice_name: str = DEFAULT_LIVE_VOICE,
	) -> None:
		if client is None:
			raise ValueError("Gemini client is required.")
		self.client = client
		self.model = model
		self.voice_name = voice_name

	def build_config(self) -> types.LiveConnectConfig:
		"""Return audio replies with both sides transcribed."""
		return types.LiveConnectConfig(
			response_modalities=[types.Modality.AUDIO],
			input_audio_transcription=types.AudioTranscriptionConfig(),
			output_audio_transcription=types.AudioTranscriptionConfig(),
			speech_config=types.SpeechConfig(
				voice_config=types.VoiceConfig(
					prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=self.voice_name)
				)
			),
			system_instruction=live_system_instruction(),
		)

	async def connect(self) -> LiveConnection:
		"""Open a live session; connection errors propagate to the caller."""
		context_manager = self.client.aio.live.connect(model=self.model, config=self.build_config())
		session = await context_manager.__aenter__()
		logger.info("Live session opened with %s", self.model)
		return LiveConnection(context_manager, session)
