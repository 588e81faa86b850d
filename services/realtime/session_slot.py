"""Exclusive ownership of the single realtime voice session."""

from __future__ import annotations

import logging
from typing import Any, Optional

from services.realtime.errors import SessionBusyError

logger = logging.getLogger(__name__)


class SessionSlot:
	"""Hold at most one session owner at a time."""

	def __init__(self) -> None:
		self._owner: Optional[Any] = None

	def acquire(self, owner: Any) -> None:
		"""Claim the slot for `owner` or raise SessionBusyError if anyone holds it."""
		if self._owner is not None:
			raise SessionBusyError("A voice session is already active.")
		self._owner = owner
		logger.debug("Session slot acquired by %r", owner)

	def release(self, owner: Any) -> None:
		"""Free the slot if `owner` holds it; otherwise do nothing."""
		if self._owner is owner:
			self._owner = None
			logger.debug("Session slot released by %r", owner)

	@property
	def held(self) -> bool:
		return self._owner is not None


DEFAULT_SLOT = SessionSlot()
