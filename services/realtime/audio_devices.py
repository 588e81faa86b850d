"""Microphone capture and speaker playback on top of sounddevice.

PortAudio invokes the stream callbacks on its own threads. The microphone
only hands frames to the event loop with `call_soon_threadsafe`; the speaker
mixes scheduled clips under a lock and reports finished clips through the
callback supplied to `open()`.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass
from typing import AsyncIterator, Callable, Dict, Optional

import numpy as np

from services.realtime.audio_codec import CAPTURE_BLOCK_SIZE, CAPTURE_SAMPLE_RATE, PLAYBACK_SAMPLE_RATE
from services.realtime.errors import MicrophoneUnavailableError

logger = logging.getLogger(__name__)


def _sounddevice():
	# PortAudio is loaded on import, so defer it until a device is needed.
	try:
		import sounddevice as sd
	except OSError as exc:
		raise MicrophoneUnavailableError(f"PortAudio is not available: {exc}") from exc
	return sd


class Microphone:
	"""Mono float32 capture delivered as fixed-size frames."""

	def __init__(self, sample_rate: int = CAPTURE_SAMPLE_RATE, block_size: int = CAPTURE_BLOCK_SIZE) -> None:
		self.sample_rate = sample_rate
		self.block_size = block_size
		self._stream = None
		self._loop: Optional[asyncio.AbstractEventLoop] = None
		self._frames: Optional[asyncio.Queue] = None

	def open(self) -> None:
		"""Acquire the input device without starting capture.

		Raises:
			MicrophoneUnavailableError: If the device cannot be opened.
		"""
		sd = _sounddevice()
		self._loop = asyncio.get_running_loop()
		self._frames = asyncio.Queue()
		try:
			self._stream = sd.InputStream(
				samplerate=self.sample_rate,
				channels=1,
				dtype="float32",
				blocksize=self.block_size,
				callback=self._on_block,
			)
		except (sd.PortAudioError, ValueError) as exc:
			raise MicrophoneUnavailableError(str(exc)) from exc

	def start(self) -> None:
		"""Begin delivering frames.

		Raises:
			MicrophoneUnavailableError: If the device refuses to start.
		"""
		if self._stream is None:
			return
		sd = _sounddevice()
		try:
			self._stream.start()
		except sd.PortAudioError as exc:
			raise MicrophoneUnavailableError(str(exc)) from exc

	def _on_block(self, indata, frames, time_info, status) -> None:
		if status:
			logger.debug("Input stream status: %s", status)
		loop, queue = self._loop, self._frames
		if loop is None or queue is None:
			return
		loop.call_soon_threadsafe(queue.put_nowait, indata[:, 0].copy())

	async def frames(self) -> AsyncIterator[np.ndarray]:
		"""Yield captured frames until the microphone is closed."""
		queue = self._frames
		if queue is None:
			return
		while True:
			frame = await queue.get()
			if frame is None:
				return
			yield frame

	def close(self) -> None:
		stream, self._stream = self._stream, None
		if stream is not None:
			stream.stop()
			stream.close()
		queue, self._frames = self._frames, None
		if queue is not None:
			queue.put_nowait(None)
		self._loop = None


@dataclass
class _QueuedClip:
	start_frame: int
	samples: np.ndarray

	@property
	def end_frame(self) -> int:
		return self.start_frame + len(self.samples)


class Speaker:
	"""Output context with a sample-accurate playback clock.

	`current_time` counts seconds of audio rendered since `open()`. Clips are
	placed at absolute positions on that clock and mixed into the output as
	the device pulls frames.
	"""

	def __init__(self, sample_rate: int = PLAYBACK_SAMPLE_RATE) -> None:
		self.sample_rate = sample_rate
		self._lock = threading.Lock()
		self._clips: Dict[int, _QueuedClip] = {}
		self._frames_rendered = 0
		self._stream = None
		self._on_finished: Optional[Callable[[int], None]] = None

	def open(self, on_finished: Callable[[int], None]) -> None:
		"""Start the output stream; `on_finished(clip_id)` runs on the audio thread."""
		sd = _sounddevice()
		self._on_finished = on_finished
		try:
			self._stream = sd.OutputStream(
				samplerate=self.sample_rate,
				channels=1,
				dtype="float32",
				callback=self._render,
			)
			self._stream.start()
		except (sd.PortAudioError, ValueError) as exc:
			raise RuntimeError(f"Unable to open audio output: {exc}") from exc

	@property
	def current_time(self) -> float:
		with self._lock:
			return self._frames_rendered / self.sample_rate

	def play(self, clip_id: int, samples: np.ndarray, start_time: float) -> None:
		start_frame = int(round(start_time * self.sample_rate))
		with self._lock:
			self._clips[clip_id] = _QueuedClip(start_frame=start_frame, samples=np.asarray(samples, dtype=np.float32))

	def stop(self, clip_id: int) -> None:
		with self._lock:
			self._clips.pop(clip_id, None)

	def _render(self, outdata, frames, time_info, status) -> None:
		if status:
			logger.debug("Output stream status: %s", status)
		outdata.fill(0)
		finished = []
		with self._lock:
			window_start = self._frames_rendered
			window_end = window_start + frames
			for clip_id, clip in self._clips.items():
				lo = max(window_start, clip.start_frame)
				hi = min(window_end, clip.end_frame)
				if hi > lo:
					outdata[lo - window_start:hi - window_start, 0] += clip.samples[lo - clip.start_frame:hi - clip.start_frame]
				if clip.end_frame <= window_end:
					finished.append(clip_id)
			for clip_id in finished:
				del self._clips[clip_id]
			self._frames_rendered = window_end
		callback = self._on_finished
		if callback is not None:
			for clip_id in finished:
				callback(clip_id)

	def close(self) -> None:
		stream, self._stream = self._stream, None
		self._on_finished = None
		if stream is not None:
			stream.stop()
			stream.close()
		with self._lock:
			self._clips.clear()
			self._frames_rendered = 0


def record_clip(seconds: float, sample_rate: int = CAPTURE_SAMPLE_RATE) -> np.ndarray:
	"""Record a blocking mono clip for dictation.

	Raises:
		MicrophoneUnavailableError: If the input device cannot be used.
	"""
	sd = _sounddevice()
	try:
		recording = sd.rec(int(seconds * sample_rate), samplerate=sample_rate, channels=1, dtype="float32")
		sd.wait()
	except (sd.PortAudioError, ValueError) as exc:
		raise MicrophoneUnavailableError(str(exc)) from exc
	return recording[:, 0]
