"""Chat domain models shared by the relay and the chat client."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictStr


class InlineImage(BaseModel):
    """Image attached to a chat request as base64 data."""

    model_config = ConfigDict(populate_by_name=True)

    mime_type: str = Field("", alias="mimeType")
    data: str = ""

    @property
    def is_complete(self) -> bool:
        return bool(self.mime_type and self.data)


class ChatRequest(BaseModel):
    """Body of `POST /api/chat`."""

    prompt: StrictStr
    image: Optional[InlineImage] = None


class Source(BaseModel):
    """A web citation backing a grounded reply."""

    title: Optional[str] = None
    uri: Optional[str] = None


class ChatReply(BaseModel):
    """Normalized relay reply: text, a generated image, or both plus citations."""

    model_config = ConfigDict(populate_by_name=True)

    text: Optional[str] = None
    image_url: Optional[str] = Field(None, alias="imageUrl")
    sources: Optional[List[Source]] = None

    def to_payload(self) -> dict:
        """Return the JSON body sent to clients, omitting absent fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


@dataclass
class ChatMessage:
    """One turn of a text conversation as shown on the chat screen.

    Attributes:
        role: "user" or "model".
        text: Optional message text.
        image_url: Optional image reference (data URI or local preview path).
        sources: Optional grounding citations attached to a model reply.
    """

    role: str
    text: Optional[str] = None
    image_url: Optional[str] = None
    sources: List[Source] = field(default_factory=list)
