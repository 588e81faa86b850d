"""Orchestrate one realtime voice conversation with Gemini Live.

A session moves Idle -> Connecting -> Active -> (Closing) -> Idle, with an
Error phase that always resolves to Idle after cleanup. While Active three
tasks run:

- capture: microphone frames -> PCM16 -> live connection, fire-and-forget;
- receive: live connection messages -> inbound event queue;
- dispatch: the single consumer of the queue, which schedules reply audio,
  assembles transcripts and reacts to errors or remote close.

Speaker completions are posted to the same queue from the audio thread, so
all session state is mutated by the dispatch loop or by `stop()` on the
event loop. `_cleanup()` is the only place resources are released; it nulls
every reference before releasing it, which keeps it idempotent when a stop
races an in-flight callback.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, List, Optional

from models.voice_models import SessionPhase, Transcript
from services.realtime.audio_codec import float_to_pcm16, pcm16_to_float, resample_linear, sample_rate_from_mime
from services.realtime.audio_devices import Microphone, Speaker
from services.realtime.errors import MicrophoneUnavailableError
from services.realtime.live_events import (
	AudioChunk,
	InputTranscript,
	LiveEvent,
	OutputTranscript,
	PlaybackFinished,
	SessionClosed,
	SessionError,
	TurnComplete,
	events_from_message,
)
from services.realtime.playback_scheduler import PlaybackScheduler
from services.realtime.session_slot import DEFAULT_SLOT, SessionSlot
from services.realtime.transcript_buffer import TurnTranscriptBuffer

logger = logging.getLogger(__name__)

IDLE_STATUS = "กดปุ่มไมโครโฟนเพื่อเริ่มคุย"
CONNECTING_STATUS = "กำลังเชื่อมต่อ..."
CONNECTED_STATUS = "เชื่อมต่อสำเร็จ! เริ่มพูดได้เลย..."
DISCONNECTING_STATUS = "กำลังตัดการเชื่อมต่อ..."
MICROPHONE_DENIED_STATUS = "ไม่สามารถเข้าถึงไมโครโฟนได้"
ERROR_STATUS = "เกิดข้อผิดพลาด: {message}"

_UNSET = object()


class VoiceSession:
	"""Own one live audio conversation and everything it holds open.

	Args:
		connector: Object with an async `connect()` returning a live connection
			(`send_audio`, `receive`, `close`).
		microphone_factory: Builds the capture device.
		speaker_factory: Builds the playback context.
		slot: Exclusive slot that allows one open session per process.
		on_update: Called with this session after every visible state change.
	"""

	def __init__(
		self,
		connector: Any,
		*,
		microphone_factory: Callable[[], Any] = Microphone,
		speaker_factory: Callable[[], Any] = Speaker,
		slot: SessionSlot = DEFAULT_SLOT,
		on_update: Optional[Callable[["VoiceSession"], None]] = None,
	) -> None:
		self.connector = connector
		self.transcripts: List[Transcript] = []
		self.phase = SessionPhase.IDLE
		self.is_ai_talking = False
		self.status_message = IDLE_STATUS

		self._microphone_factory = microphone_factory
		self._speaker_factory = speaker_factory
		self._slot = slot
		self._on_update = on_update
		self._scheduler = PlaybackScheduler()
		self._buffer = TurnTranscriptBuffer()

		self._microphone = None
		self._speaker = None
		self._connection = None
		self._events: Optional[asyncio.Queue] = None
		self._capture_task: Optional[asyncio.Task] = None
		self._receive_task: Optional[asyncio.Task] = None
		self._dispatch_task: Optional[asyncio.Task] = None

	@property
	def is_session_active(self) -> bool:
		return self.phase is SessionPhase.ACTIVE

	@property
	def scheduler(self) -> PlaybackScheduler:
		return self._scheduler

	async def __aenter__(self) -> "VoiceSession":
		return self

	async def __aexit__(self, exc_type, exc, tb) -> None:
		if self.phase is not SessionPhase.IDLE:
			await self.stop()

	async def start(self) -> bool:
		"""Open the microphone, the speaker and the live connection.

		Returns:
			True when the session reached Active; False when a failure was
			converted to a status message and the session returned to Idle.

		Raises:
			SessionBusyError: If a session is already open in this process.
		"""
		self._slot.acquire(self)
		self.transcripts.clear()
		self._buffer.reset()
		self._update(phase=SessionPhase.CONNECTING, status=CONNECTING_STATUS)

		loop = asyncio.get_running_loop()
		events: asyncio.Queue = asyncio.Queue()
		self._events = events

		try:
			self._microphone = self._microphone_factory()
			self._microphone.open()
			self._speaker = self._speaker_factory()
			self._speaker.open(lambda clip_id: loop.call_soon_threadsafe(events.put_nowait, PlaybackFinished(clip_id)))
			connection = await self.connector.connect()
		except MicrophoneUnavailableError as exc:
			logger.error("Failed to start session: %s", exc)
			await self._cleanup(status=MICROPHONE_DENIED_STATUS)
			return False
		except Exception as exc:  # pylint: disable=broad-exception-caught
			logger.error("Failed to open live session: %s", exc)
			await self._cleanup(status=ERROR_STATUS.format(message=exc))
			return False

		if self._events is not events:
			# stop() ran while connecting
			await self._close_connection(connection)
			return False

		self._connection = connection
		try:
			self._on_open(connection, events)
		except MicrophoneUnavailableError as exc:
			logger.error("Failed to start capture: %s", exc)
			await self._cleanup(status=MICROPHONE_DENIED_STATUS)
			return False
		except Exception as exc:  # pylint: disable=broad-exception-caught
			logger.error("Failed to start capture: %s", exc)
			await self._cleanup(status=ERROR_STATUS.format(message=exc))
			return False
		return True

	def _on_open(self, connection: Any, events: asyncio.Queue) -> None:
		microphone = self._microphone
		microphone.start()
		logger.info("Voice session active")
		self._update(phase=SessionPhase.ACTIVE, status=CONNECTED_STATUS)
		self._capture_task = asyncio.create_task(self._capture_loop(microphone, connection))
		self._receive_task = asyncio.create_task(self._receive_loop(connection, events))
		self._dispatch_task = asyncio.create_task(self._dispatch_loop(events))

	async def stop(self) -> None:
		"""Close the remote session gracefully, then release everything."""
		if self.phase is SessionPhase.IDLE and not self._holds_resources():
			return
		self._update(phase=SessionPhase.CLOSING, status=DISCONNECTING_STATUS)
		# Stop reading first: closing the socket fails any pending receive.
		await self._cancel_tasks(self._take_tasks())
		connection, self._connection = self._connection, None
		if connection is not None:
			await self._close_connection(connection)
		await self._cleanup()

	async def _capture_loop(self, microphone: Any, connection: Any) -> None:
		async for frame in microphone.frames():
			try:
				await connection.send_audio(float_to_pcm16(frame))
			except Exception as exc:  # pylint: disable=broad-exception-caught
				logger.debug("Dropped audio frame: %s", exc)

	async def _receive_loop(self, connection: Any, events: asyncio.Queue) -> None:
		try:
			async for message in connection.receive():
				for event in events_from_message(message):
					events.put_nowait(event)
		except asyncio.CancelledError:
			raise
		except Exception as exc:  # pylint: disable=broad-exception-caught
			if self.phase in (SessionPhase.CLOSING, SessionPhase.IDLE):
				logger.info("Receive ended during shutdown: %s", exc)
				return
			logger.error("Session error: %s", exc)
			events.put_nowait(SessionError(str(exc)))
			return
		events.put_nowait(SessionClosed())

	async def _dispatch_loop(self, events: asyncio.Queue) -> None:
		while True:
			event = await events.get()
			if not await self.handle_event(event):
				return

	async def handle_event(self, event: LiveEvent) -> bool:
		"""Apply one inbound event; return False once the session has ended."""
		if isinstance(event, AudioChunk):
			self._schedule_audio(event)
		elif isinstance(event, InputTranscript):
			self._buffer.add_user(event.text)
		elif isinstance(event, OutputTranscript):
			self._buffer.add_assistant(event.text)
		elif isinstance(event, TurnComplete):
			self.transcripts.extend(self._buffer.complete_turn())
			self._update(talking=False)
		elif isinstance(event, PlaybackFinished):
			if self._scheduler.finish(event.clip_id):
				self._update(talking=False)
		elif isinstance(event, SessionError):
			status = ERROR_STATUS.format(message=event.message)
			self._update(phase=SessionPhase.ERROR, status=status)
			await self._cleanup(status=status)
			return False
		elif isinstance(event, SessionClosed):
			logger.info("Live session closed by remote")
			await self._cleanup()
			return False
		return True

	def _schedule_audio(self, chunk: AudioChunk) -> None:
		speaker = self._speaker
		if self.phase is not SessionPhase.ACTIVE or speaker is None:
			return
		samples = pcm16_to_float(chunk.data)
		if len(samples) == 0:
			return
		rate = sample_rate_from_mime(chunk.mime_type, speaker.sample_rate)
		duration = len(samples) / rate
		samples = resample_linear(samples, rate, speaker.sample_rate)

		clip = self._scheduler.schedule(duration, speaker.current_time)
		speaker.play(clip.clip_id, samples, clip.start)
		self._update(talking=True)

	def _holds_resources(self) -> bool:
		return any(
			resource is not None
			for resource in (
				self._microphone,
				self._speaker,
				self._connection,
				self._events,
				self._capture_task,
				self._receive_task,
				self._dispatch_task,
			)
		)

	def _take_tasks(self) -> List[asyncio.Task]:
		tasks = [task for task in (self._capture_task, self._receive_task, self._dispatch_task) if task is not None]
		self._capture_task = self._receive_task = self._dispatch_task = None
		return tasks

	async def _cancel_tasks(self, tasks: List[asyncio.Task]) -> None:
		current = asyncio.current_task()
		pending = [task for task in tasks if task is not current and not task.done()]
		for task in pending:
			task.cancel()
		if pending:
			await asyncio.gather(*pending, return_exceptions=True)

	async def _close_connection(self, connection: Any) -> None:
		try:
			await connection.close()
		except Exception as exc:  # pylint: disable=broad-exception-caught
			logger.error("Error closing session: %s", exc)

	async def _cleanup(self, status: Optional[str] = None) -> None:
		if self.phase is SessionPhase.IDLE and not self._holds_resources():
			return

		microphone, self._microphone = self._microphone, None
		speaker, self._speaker = self._speaker, None
		connection, self._connection = self._connection, None
		tasks = self._take_tasks()
		self._events = None

		if microphone is not None:
			try:
				microphone.close()
			except Exception as exc:  # pylint: disable=broad-exception-caught
				logger.error("Error closing microphone: %s", exc)

		for clip in self._scheduler.stop_all():
			if speaker is not None:
				speaker.stop(clip.clip_id)
		self._scheduler.reset()

		if speaker is not None:
			try:
				speaker.close()
			except Exception as exc:  # pylint: disable=broad-exception-caught
				logger.error("Error closing speaker: %s", exc)

		await self._cancel_tasks(tasks)

		if connection is not None:
			await self._close_connection(connection)

		self._buffer.reset()
		self._slot.release(self)
		self._update(phase=SessionPhase.IDLE, talking=False, status=status or IDLE_STATUS)

	def _update(self, *, phase: Any = _UNSET, talking: Any = _UNSET, status: Any = _UNSET) -> None:
		if phase is not _UNSET:
			self.phase = phase
		if talking is not _UNSET:
			self.is_ai_talking = talking
		if status is not _UNSET:
			self.status_message = status
		if self._on_update is None:
			return
		try:
			self._on_update(self)
		except Exception:  # pylint: disable=broad-exception-caught
			logger.exception("Voice session observer failed")
