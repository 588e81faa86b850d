"""Gapless scheduling of reply audio against the playback clock."""

from __future__ import annotations

import itertools
from typing import Dict, List

from models.voice_models import ScheduledClip


class PlaybackScheduler:
	"""Track where the next clip may start and which clips are still playing.

	Each clip starts at `max(next_start_time, now)` and pushes
	`next_start_time` forward by its duration, so clips play back-to-back
	with no overlap whether they arrive faster or slower than real time.
	"""

	def __init__(self) -> None:
		self.next_start_time = 0.0
		self._active: Dict[int, ScheduledClip] = {}
		self._ids = itertools.count(1)

	def schedule(self, duration: float, now: float) -> ScheduledClip:
		"""Reserve the next slot on the clock for a clip of `duration` seconds."""
		start = max(self.next_start_time, now)
		clip = ScheduledClip(clip_id=next(self._ids), start=start, duration=duration)
		self.next_start_time = start + duration
		self._active[clip.clip_id] = clip
		return clip

	def finish(self, clip_id: int) -> bool:
		"""Drop a clip that ended naturally; return True when nothing is left playing."""
		self._active.pop(clip_id, None)
		return not self._active

	def stop_all(self) -> List[ScheduledClip]:
		"""Empty the active set and return the clips that were in it."""
		clips = list(self._active.values())
		self._active.clear()
		return clips

	def reset(self) -> None:
		self.stop_all()
		self.next_start_time = 0.0

	@property
	def is_playing(self) -> bool:
		return bool(self._active)

	@property
	def active_clips(self) -> List[ScheduledClip]:
		return list(self._active.values())
