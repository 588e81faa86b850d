"""Voice session domain models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SessionPhase(str, Enum):
	"""Lifecycle of a realtime voice session."""

	IDLE = "idle"
	CONNECTING = "connecting"
	ACTIVE = "active"
	CLOSING = "closing"
	ERROR = "error"


@dataclass(frozen=True)
class Transcript:
	"""One finished utterance of a voice conversation."""

	speaker: str  # "user" or "ai"
	text: str


@dataclass(frozen=True)
class ScheduledClip:
	"""Audio clip queued on the playback clock."""

	clip_id: int
	start: float
	duration: float

	@property
	def end(self) -> float:
		return self.start + self.duration
