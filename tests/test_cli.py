"""
Tests for the terminal chat loop's handling of a draft put back after a failed send.
"""

import json

import httpx
import pytest

import cli
from services.chat_exchange import ChatExchange
from utils.config import Settings


class TestComposeDraft:

    def test_blank_line_keeps_pending_draft(self):
        assert cli.compose_draft("hello", "   ") == "hello"

    def test_typed_line_replaces_pending_draft(self):
        assert cli.compose_draft("hello", " world ") == "world"


@pytest.fixture
def scripted_chat(monkeypatch, tmp_path):
    """Run the chat loop against scripted input and a relay that fails once."""

    async def run(lines):
        prompts = []
        replies = [httpx.Response(500, json={"text": "boom"})]

        def handler(request):
            prompts.append(json.loads(request.content)["prompt"])
            return replies.pop(0) if replies else httpx.Response(200, json={"text": "ok"})

        def exchange_factory(base_url, timeout=None):
            client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
            return ChatExchange(base_url, http_client=client)

        pending = list(lines)

        async def prompt(_label):
            if not pending:
                raise EOFError
            return pending.pop(0)

        monkeypatch.setattr(cli, "_prompt", prompt)
        monkeypatch.setattr(cli, "ChatExchange", exchange_factory)
        await cli.run_chat(Settings(backend_url="http://relay.test"), tmp_path)
        return prompts

    return run


class TestRunChatAfterFailedSend:

    async def test_empty_enter_resends_restored_draft(self, scripted_chat):
        assert await scripted_chat(["hello", "", "/back"]) == ["hello", "hello"]

    async def test_new_line_replaces_restored_draft(self, scripted_chat):
        assert await scripted_chat(["hello", "world", "/back"]) == ["hello", "world"]

    async def test_clear_drops_restored_draft(self, scripted_chat):
        assert await scripted_chat(["hello", "/clear", "", "/back"]) == ["hello"]
