"""PCM conversions between sounddevice float frames and the live audio wire format."""

from __future__ import annotations

import base64
import io
import re
import wave
from typing import Union

import numpy as np

CAPTURE_SAMPLE_RATE = 16000
PLAYBACK_SAMPLE_RATE = 24000
CAPTURE_BLOCK_SIZE = 4096

_RATE_PATTERN = re.compile(r"rate=(\d+)")


def capture_mime_type(sample_rate: int = CAPTURE_SAMPLE_RATE) -> str:
	return f"audio/pcm;rate={sample_rate}"


def float_to_pcm16(samples) -> bytes:
	"""Return little-endian signed 16-bit PCM for float samples in [-1, 1].

	Samples are scaled by 32768 and clipped, so a full-scale positive sample
	saturates at 32767 instead of wrapping.
	"""
	scaled = np.asarray(samples, dtype=np.float32).reshape(-1) * 32768.0
	return np.clip(scaled, -32768, 32767).astype("<i2").tobytes()


def pcm16_to_float(data: Union[bytes, bytearray, str]) -> np.ndarray:
	"""Decode PCM16 (raw bytes or base64 text) into float32 samples.

	A trailing odd byte, which cannot form a sample, is ignored.
	"""
	if isinstance(data, str):
		data = base64.b64decode(data)
	usable = len(data) - (len(data) % 2)
	pcm = np.frombuffer(bytes(data[:usable]), dtype="<i2")
	return pcm.astype(np.float32) / 32768.0


def sample_rate_from_mime(mime_type: str | None, default: int = PLAYBACK_SAMPLE_RATE) -> int:
	"""Return the `rate=` parameter of an audio/pcm MIME type, or the default."""
	match = _RATE_PATTERN.search(mime_type or "")
	return int(match.group(1)) if match else default


def resample_linear(samples: np.ndarray, source_rate: int, target_rate: int) -> np.ndarray:
	"""Linearly resample mono samples; returns the input unchanged when rates match."""
	if source_rate == target_rate or len(samples) == 0:
		return samples
	target_len = max(1, int(round(len(samples) * target_rate / source_rate)))
	positions = np.linspace(0, len(samples) - 1, target_len)
	return np.interp(positions, np.arange(len(samples)), samples).astype(np.float32)


def pcm16_to_wav(pcm: bytes, sample_rate: int = CAPTURE_SAMPLE_RATE) -> bytes:
	"""Wrap mono PCM16 bytes in a WAV container."""
	buffer = io.BytesIO()
	with wave.open(buffer, "wb") as wav:
		wav.setnchannels(1)
		wav.setsampwidth(2)
		wav.setframerate(sample_rate)
		wav.writeframes(pcm)
	return buffer.getvalue()
