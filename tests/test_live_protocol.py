"""
Tests for live message parsing, transcript buffering, the session slot and the connector.
"""

from types import SimpleNamespace

import pytest
from google.genai import errors, types

from conftest import server_message
from models.voice_models import Transcript
from services.realtime.errors import SessionBusyError
from services.realtime.live_connector import GeminiLiveConnector
from services.realtime.live_events import (
    AudioChunk,
    InputTranscript,
    OutputTranscript,
    TurnComplete,
    events_from_message,
)
from services.realtime.session_slot import SessionSlot
from services.realtime.transcript_buffer import TurnTranscriptBuffer


class TestEventsFromMessage:

    def test_all_signals_in_one_message(self):
        message = server_message(audio=b"\x01\x00", user="hi", ai="hello", turn_complete=True)

        assert events_from_message(message) == [
            AudioChunk(data=b"\x01\x00", mime_type="audio/pcm;rate=24000"),
            InputTranscript(text="hi"),
            OutputTranscript(text="hello"),
            TurnComplete(),
        ]

    def test_message_without_server_content(self):
        assert events_from_message(SimpleNamespace(setup_complete=True)) == []

    def test_parts_without_audio_are_skipped(self):
        content = SimpleNamespace(
            model_turn=SimpleNamespace(parts=[SimpleNamespace(inline_data=None, text="thinking")]),
            turn_complete=False,
        )
        assert events_from_message(SimpleNamespace(server_content=content)) == []


class TestTurnTranscriptBuffer:

    def test_complete_turn_orders_user_first_and_resets(self):
        buffer = TurnTranscriptBuffer()
        buffer.add_assistant("ค่ะ ")
        buffer.add_user(" สวัสดี")

        assert buffer.complete_turn() == [
            Transcript(speaker="user", text="สวัสดี"),
            Transcript(speaker="ai", text="ค่ะ"),
        ]
        assert buffer.complete_turn() == []

    def test_whitespace_only_turn_is_dropped(self):
        buffer = TurnTranscriptBuffer()
        buffer.add_user("   ")
        buffer.add_assistant("ตอบ")

        assert buffer.complete_turn() == [Transcript(speaker="ai", text="ตอบ")]


class TestSessionSlot:

    def test_single_owner(self):
        slot = SessionSlot()
        owner = object()
        slot.acquire(owner)

        with pytest.raises(SessionBusyError):
            slot.acquire(object())

        slot.release(object())
        assert slot.held
        slot.release(owner)
        assert not slot.held


class _FakeConnectContext:
    def __init__(self, session):
        self.session = session
        self.exits = 0

    async def __aenter__(self):
        return self.session

    async def __aexit__(self, *exc_info):
        self.exits += 1


class _FakeLiveSession:
    def __init__(self, turns):
        self.turns = list(turns)
        self.sent = []

    async def send_realtime_input(self, audio):
        self.sent.append(audio)

    async def receive(self):
        if self.turns:
            for message in self.turns.pop(0):
                yield message


class _ClosingLiveSession(_FakeLiveSession):
    """Raises the SDK close error once the scripted turns run out."""

    def __init__(self, turns, error):
        super().__init__(turns)
        self.error = error

    async def receive(self):
        if not self.turns:
            raise self.error
        for message in self.turns.pop(0):
            yield message


def _client_for(context):
    return SimpleNamespace(aio=SimpleNamespace(live=SimpleNamespace(connect=lambda model, config: context)))


class TestGeminiLiveConnector:

    def test_config_requests_spoken_replies_with_transcripts(self):
        connector = GeminiLiveConnector(SimpleNamespace(), voice_name="Puck")

        config = connector.build_config()

        assert config.response_modalities == [types.Modality.AUDIO]
        assert config.input_audio_transcription is not None
        assert config.output_audio_transcription is not None
        assert config.speech_config.voice_config.prebuilt_voice_config.voice_name == "Puck"

    def test_requires_client(self):
        with pytest.raises(ValueError):
            GeminiLiveConnector(None)

    async def test_connection_spans_turns_and_closes_once(self):
        session = _FakeLiveSession([["a", "b"], ["c"]])
        context = _FakeConnectContext(session)
        requested = {}

        def connect(model, config):
            requested["model"] = model
            return context

        client = SimpleNamespace(aio=SimpleNamespace(live=SimpleNamespace(connect=connect)))
        connection = await GeminiLiveConnector(client, model="live-model").connect()

        received = [message async for message in connection.receive()]
        await connection.send_audio(b"\x00\x00")
        await connection.close()
        await connection.close()

        assert requested["model"] == "live-model"
        assert received == ["a", "b", "c"]
        assert session.sent[0].data == b"\x00\x00"
        assert session.sent[0].mime_type == "audio/pcm;rate=16000"
        assert context.exits == 1

    @pytest.mark.parametrize("code", [1000, 1001])
    async def test_normal_close_ends_receive(self, code):
        session = _ClosingLiveSession([["a"]], errors.APIError(code, "OK"))
        connection = await GeminiLiveConnector(_client_for(_FakeConnectContext(session))).connect()

        received = [message async for message in connection.receive()]

        assert received == ["a"]

    async def test_abnormal_close_is_raised(self):
        session = _ClosingLiveSession([["a"]], errors.APIError(1011, "Internal error"))
        connection = await GeminiLiveConnector(_client_for(_FakeConnectContext(session))).connect()
        received = []

        with pytest.raises(errors.APIError):
            async for message in connection.receive():
                received.append(message)

        assert received == ["a"]

    async def test_receive_after_close_yields_nothing(self):
        session = _ClosingLiveSession([], errors.APIError(1011, "Internal error"))
        context = _FakeConnectContext(session)
        connection = await GeminiLiveConnector(_client_for(context)).connect()
        await connection.close()

        assert [message async for message in connection.receive()] == []
        assert context.exits == 1
