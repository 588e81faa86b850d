"""Client side of the turn-based chat: one screen's messages and draft."""

import logging
from pathlib import Path
from typing import List, Optional

import httpx
from pydantic import ValidationError

from models.chat_models import ChatMessage, ChatReply
from services.image_attachment import ImageAttachment, load_image_attachment
from utils.config import DEFAULT_BACKEND_URL

LOGGER = logging.getLogger(__name__)

NO_ANSWER_TEXT = "ขออภัยค่ะ ไม่พบคำตอบ"
ERROR_TEXT = "ขออภัยค่ะ เกิดข้อผิดพลาดบางอย่าง"
IMAGE_ONLY_PROMPT = "ช่วยอธิบายรูปนี้หน่อยค่ะ"


class ChatExchange:
    """State of one chat screen: history, draft text, attachment and loading flag.

    Only one request may be in flight at a time. Leaving the screen simply
    drops the instance; a reply that arrives afterwards is never shown.

    Args:
        base_url: Relay base URL; `/api/chat` is appended.
        http_client: Optional preconfigured httpx client (tests inject a mock transport).
        timeout: Optional deadline in seconds; None waits for as long as the relay takes.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BACKEND_URL,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.messages: List[ChatMessage] = []
        self.draft = ""
        self.attachment: Optional[ImageAttachment] = None
        self.is_loading = False
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> "ChatExchange":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    @property
    def can_send(self) -> bool:
        return (bool(self.draft.strip()) or self.attachment is not None) and not self.is_loading

    def attach_image(self, path: str | Path) -> ImageAttachment:
        """Attach an image file to the next message (replacing any previous one)."""
        self.attachment = load_image_attachment(path)
        return self.attachment

    def remove_image(self) -> None:
        self.attachment = None

    async def send(self) -> Optional[ChatMessage]:
        """Send the draft and attachment; return the model reply, or None when nothing was sent.

        Nothing is sent while the draft is blank with no attachment, or while
        another request is in flight. On failure one fallback reply is
        appended and the submitted draft is put back for resubmission.
        """
        if not self.can_send:
            return None

        self.is_loading = True
        prompt = self.draft
        attachment = self.attachment
        self.messages.append(
            ChatMessage(role="user", text=prompt, image_url=attachment.source if attachment else None)
        )
        self.draft = ""
        self.remove_image()

        payload = {"prompt": prompt if prompt.strip() else IMAGE_ONLY_PROMPT}
        if attachment is not None:
            payload["image"] = attachment.to_payload()

        try:
            response = await self._http.post(f"{self.base_url}/api/chat", json=payload)
            response.raise_for_status()
            reply = self._to_message(ChatReply.model_validate(response.json()))
        except (httpx.HTTPError, ValueError, ValidationError) as exc:
            LOGGER.error("Error contacting backend: %s", exc)
            reply = ChatMessage(role="model", text=ERROR_TEXT)
            if not self.draft:
                self.draft = prompt
            if self.attachment is None:
                self.attachment = attachment
        finally:
            self.is_loading = False

        self.messages.append(reply)
        return reply

    async def dictate(self, audio_wav: bytes) -> str:
        """Transcribe a recorded WAV clip and append it to the draft.

        Returns:
            The transcript ("" when nothing was recognized).

        Raises:
            httpx.HTTPError: If the relay cannot be reached or rejects the clip.
        """
        response = await self._http.post(
            f"{self.base_url}/api/transcribe",
            files={"audio": ("dictation.wav", audio_wav, "audio/wav")},
        )
        response.raise_for_status()
        transcript = (response.json().get("text") or "").strip()
        if transcript:
            self.draft = f"{self.draft} {transcript}" if self.draft else transcript
        return transcript

    @staticmethod
    def _to_message(reply: ChatReply) -> ChatMessage:
        if reply.image_url:
            return ChatMessage(role="model", image_url=reply.image_url)
        return ChatMessage(role="model", text=reply.text or NO_ANSWER_TEXT, sources=list(reply.sources or []))
