"""Accumulate partial transcriptions until the model closes its turn."""

from __future__ import annotations

from typing import List

from models.voice_models import Transcript


class TurnTranscriptBuffer:
	"""Per-turn user and assistant text built from partial server events."""

	def __init__(self) -> None:
		self.user_text = ""
		self.assistant_text = ""

	def add_user(self, text: str) -> None:
		self.user_text += text

	def add_assistant(self, text: str) -> None:
		self.assistant_text += text

	def complete_turn(self) -> List[Transcript]:
		"""Return the finished entries, user first, and empty both buffers."""
		entries: List[Transcript] = []
		user_text = self.user_text.strip()
		assistant_text = self.assistant_text.strip()
		if user_text:
			entries.append(Transcript(speaker="user", text=user_text))
		if assistant_text:
			entries.append(Transcript(speaker="ai", text=assistant_text))
		self.reset()
		return entries

	def reset(self) -> None:
		self.user_text = ""
		self.assistant_text = ""
