"""
Shared pytest fixtures for RightCode Buddy tests.

Provides:
- A fake Gemini client for relay and transcription routes
- A relay TestClient wired to that fake client
- Fake microphone, speaker and live connection for voice sessions
"""

import asyncio
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from main import create_app
from services.realtime.errors import MicrophoneUnavailableError
from services.realtime.session_slot import SessionSlot
from services.realtime.voice_session import VoiceSession
from utils.config import Settings


# ============================================================================
# Gemini client fakes
# ============================================================================

class FakeModels:
    """Stands in for `client.aio.models` and records every request."""

    def __init__(self):
        self.response = SimpleNamespace(text=None, candidates=[])
        self.error = None
        self.calls = []

    async def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response


class FakeGenaiClient:
    def __init__(self):
        self.models = FakeModels()
        self.aio = SimpleNamespace(models=self.models)


def text_response(text, sources=()):
    """Build a generate_content result with text and optional web citations."""
    chunks = [SimpleNamespace(web=SimpleNamespace(title=title, uri=uri)) for title, uri in sources]
    candidate = SimpleNamespace(
        content=SimpleNamespace(parts=[]),
        grounding_metadata=SimpleNamespace(grounding_chunks=chunks),
    )
    return SimpleNamespace(text=text, candidates=[candidate])


def image_response(data, mime_type="image/png"):
    """Build a generate_content result carrying one inline image part."""
    part = SimpleNamespace(inline_data=SimpleNamespace(data=data, mime_type=mime_type))
    candidate = SimpleNamespace(content=SimpleNamespace(parts=[part]), grounding_metadata=None)
    return SimpleNamespace(text=None, candidates=[candidate])


@pytest.fixture
def genai_client():
    return FakeGenaiClient()


@pytest.fixture
def relay_client(genai_client):
    """Relay app whose lifespan installs the fake Gemini client."""
    app = create_app(Settings(api_key="test-key"), client_factory=lambda api_key: genai_client)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def keyless_client():
    """Relay app started without an API key."""
    app = create_app(Settings(api_key=None))
    with TestClient(app) as client:
        yield client


# ============================================================================
# Voice session fakes
# ============================================================================

class FakeMicrophone:
    def __init__(self, frames=(), fail=False, start_error=None):
        self.pending_frames = list(frames)
        self.fail = fail
        self.start_error = start_error
        self.opened = False
        self.started = False
        self.closed = False
        self._closed_event = asyncio.Event()

    def open(self):
        if self.fail:
            raise MicrophoneUnavailableError("Permission denied")
        self.opened = True

    def start(self):
        if self.start_error is not None:
            raise self.start_error
        self.started = True

    async def frames(self):
        for frame in self.pending_frames:
            yield frame
        await self._closed_event.wait()

    def close(self):
        self.closed = True
        self._closed_event.set()


class FakeSpeaker:
    """Playback context with a clock the test moves by hand."""

    sample_rate = 24000

    def __init__(self):
        self.current_time = 0.0
        self.on_finished = None
        self.played = []
        self.stopped = []
        self.closed = False

    def open(self, on_finished):
        self.on_finished = on_finished

    def play(self, clip_id, samples, start_time):
        self.played.append((clip_id, len(samples), start_time))

    def stop(self, clip_id):
        self.stopped.append(clip_id)

    def close(self):
        self.closed = True


class FakeConnection:
    """Live connection fed through `messages`; None ends it, an exception breaks it."""

    def __init__(self):
        self.messages = asyncio.Queue()
        self.sent = []
        self.close_calls = 0

    async def send_audio(self, pcm):
        self.sent.append(pcm)

    async def receive(self):
        while True:
            item = await self.messages.get()
            if item is None:
                return
            if isinstance(item, Exception):
                raise item
            yield item

    async def close(self):
        self.close_calls += 1


class HandshakeConnection(FakeConnection):
    """Closing fails the pending receive, then waits for the close handshake."""

    async def close(self):
        self.messages.put_nowait(RuntimeError("sent 1000 (OK); then received 1000 (OK)"))
        await asyncio.sleep(0.05)
        self.close_calls += 1


class FakeConnector:
    def __init__(self, connection=None, error=None, gate=None):
        self.connection = connection or FakeConnection()
        self.error = error
        self.gate = gate
        self.connect_calls = 0

    async def connect(self):
        self.connect_calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.connection


def server_message(audio=None, mime_type="audio/pcm;rate=24000", user=None, ai=None, turn_complete=False):
    """Build a live server message with any combination of signals."""
    parts = []
    if audio is not None:
        parts.append(SimpleNamespace(inline_data=SimpleNamespace(data=audio, mime_type=mime_type)))
    return SimpleNamespace(
        server_content=SimpleNamespace(
            model_turn=SimpleNamespace(parts=parts) if parts else None,
            input_transcription=SimpleNamespace(text=user) if user else None,
            output_transcription=SimpleNamespace(text=ai) if ai else None,
            turn_complete=turn_complete,
        )
    )


@pytest.fixture
def slot():
    return SessionSlot()


@pytest.fixture
def microphone():
    return FakeMicrophone()


@pytest.fixture
def speaker():
    return FakeSpeaker()


@pytest.fixture
def connector():
    return FakeConnector()


@pytest.fixture
def make_session(slot, microphone, speaker, connector):
    """Build voice sessions wired to the fakes and an isolated slot."""

    def factory(live_connector=None, **overrides):
        options = {
            "microphone_factory": lambda: microphone,
            "speaker_factory": lambda: speaker,
            "slot": slot,
        }
        options.update(overrides)
        return VoiceSession(live_connector or connector, **options)

    return factory


@pytest.fixture
def wait_until():
    """Poll a predicate on the event loop until it holds or time runs out."""

    async def _wait(predicate, timeout=1.0):
        deadline = asyncio.get_running_loop().time() + timeout
        while not predicate():
            if asyncio.get_running_loop().time() > deadline:
                raise AssertionError("condition not met in time")
            await asyncio.sleep(0.01)

    return _wait
