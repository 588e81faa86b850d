"""Inbound events consumed by the voice session dispatch loop."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Union


@dataclass(frozen=True)
class AudioChunk:
	"""Reply audio: PCM16 bytes (or base64 text) and its MIME type."""

	data: Union[bytes, str]
	mime_type: str = "audio/pcm;rate=24000"


@dataclass(frozen=True)
class InputTranscript:
	"""Partial transcription of what the user said."""

	text: str


@dataclass(frozen=True)
class OutputTranscript:
	"""Partial transcription of what the assistant said."""

	text: str


@dataclass(frozen=True)
class TurnComplete:
	"""The model finished its turn."""


@dataclass(frozen=True)
class PlaybackFinished:
	"""A scheduled clip reached its natural end on the speaker."""

	clip_id: int


@dataclass(frozen=True)
class SessionError:
	"""The live connection reported an error."""

	message: str


@dataclass(frozen=True)
class SessionClosed:
	"""The live connection closed."""


LiveEvent = Union[
	AudioChunk, InputTranscript, OutputTranscript, TurnComplete, PlaybackFinished, SessionError, SessionClosed
]


def events_from_message(message: Any) -> List[LiveEvent]:
	"""Split one server message into its independent signals.

	A single message can carry audio, both transcriptions and the turn-complete
	marker at once; they are returned in that order.
	"""
	content = getattr(message, "server_content", None)
	if content is None:
		return []

	events: List[LiveEvent] = []
	model_turn = getattr(content, "model_turn", None)
	for part in getattr(model_turn, "parts", None) or []:
		inline = getattr(part, "inline_data", None)
		data = getattr(inline, "data", None) if inline is not None else None
		if data:
			events.append(AudioChunk(data=data, mime_type=getattr(inline, "mime_type", None) or "audio/pcm;rate=24000"))

	input_transcription = getattr(content, "input_transcription", None)
	if input_transcription is not None and getattr(input_transcription, "text", None):
		events.append(InputTranscript(text=input_transcription.text))

	output_transcription = getattr(content, "output_transcription", None)
	if output_transcription is not None and getattr(output_transcription, "text", None):
		events.append(OutputTranscript(text=output_transcription.text))

	if getattr(content, "turn_complete", None):
		events.append(TurnComplete())
	return events
