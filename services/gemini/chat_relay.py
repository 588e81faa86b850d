"""Forward one chat request to Gemini and normalize the reply.

The relay chooses between three provider calls:

- image-grounded text, when the request carries a complete inline image;
- image generation, when the prompt asks for a picture;
- web-grounded text with the Google Search tool otherwise.

Whatever the provider returns is reduced to a `ChatReply` with optional
`text`, `imageUrl` and `sources` fields.
"""

import base64
import logging
import time
from enum import Enum
from typing import Optional

from google import genai
from google.genai import types

from models.chat_models import ChatReply, InlineImage
from services.gemini.prompts import IMAGE_KEYWORDS, relay_system_instruction
from services.gemini.response_parser import extract_image_data_url, extract_sources, extract_text
from utils.config import DEFAULT_IMAGE_MODEL, DEFAULT_TEXT_MODEL

LOGGER = logging.getLogger(__name__)

IMAGE_UNAVAILABLE_TEXT = "ขออภัยค่ะ ไม่สามารถสร้างภาพได้ในขณะนี้"


class RelayRoute(str, Enum):
    """Provider operation chosen for a request."""

    IMAGE_GROUNDED = "image_grounded"
    IMAGE_GENERATION = "image_generation"
    WEB_GROUNDED = "web_grounded"


def wants_image(prompt: str) -> bool:
    """Return True when the prompt reads like a request for a picture."""
    lowered = prompt.lower()
    return any(keyword in lowered for keyword in IMAGE_KEYWORDS)


def select_route(prompt: str, image: Optional[InlineImage] = None) -> RelayRoute:
    """Pick the provider operation for a prompt and optional image."""
    if image is not None and image.is_complete:
        return RelayRoute.IMAGE_GROUNDED
    if wants_image(prompt):
        return RelayRoute.IMAGE_GENERATION
    return RelayRoute.WEB_GROUNDED


class ChatRelay:
    """Send chat prompts to Gemini on behalf of clients that never see the key."""

    def __init__(
        self,
        client: genai.Client,
        *,
        text_model: str = DEFAULT_TEXT_MODEL,
        image_model: str = DEFAULT_IMAGE_MODEL,
    ) -> None:
        if client is None:
            raise ValueError("Gemini client is required.")
        self.client = client
        self.text_model = text_model
        self.image_model = image_model
        self.system_instruction = relay_system_instruction()

    async def reply(self, prompt: str, image: Optional[InlineImage] = None) -> ChatReply:
        """Answer a prompt using whichever operation `select_route` picks.

        Args:
            prompt: User prompt text.
            image: Optional inline image to ground the answer on.

        Returns:
            The normalized reply.

        Raises:
            Exception: Any provider error is logged and re-raised for the caller to map.
        """
        route = select_route(prompt, image)
        start = time.time()
        try:
            if route is RelayRoute.IMAGE_GROUNDED:
                reply = await self._describe_image(prompt, image)
            elif route is RelayRoute.IMAGE_GENERATION:
                reply = await self._generate_image(prompt)
            else:
                reply = await self._search_grounded(prompt)
        except Exception as exc:
            LOGGER.error("Gemini %s request failed: %s", route.value, exc)
            raise
        LOGGER.info("Relay %s latency: %.3fs", route.value, time.time() - start)
        return reply

    async def _describe_image(self, prompt: str, image: InlineImage) -> ChatReply:
        response = await self.client.aio.models.generate_content(
            model=self.text_model,
            contents=[
                types.Part.from_text(text=prompt),
                types.Part.from_bytes(data=base64.b64decode(image.data), mime_type=image.mime_type),
            ],
            config=types.GenerateContentConfig(system_instruction=self.system_instruction),
        )
        return ChatReply(text=extract_text(response))

    async def _generate_image(self, prompt: str) -> ChatReply:
        response = await self.client.aio.models.generate_content(
            model=self.image_model,
            contents=prompt,
            config=types.GenerateContentConfig(
                response_modalities=[types.Modality.IMAGE],
                system_instruction=self.system_instruction,
            ),
        )
        image_url = extract_image_data_url(response)
        if image_url:
            return ChatReply(image_url=image_url)
        return ChatReply(text=IMAGE_UNAVAILABLE_TEXT)

    async def _search_grounded(self, prompt: str) -> ChatReply:
        response = await self.client.aio.models.generate_content(
            model=self.text_model,
            contents=prompt,
            config=types.GenerateContentConfig(
                tools=[types.Tool(google_search=types.GoogleSearch())],
                system_instruction=self.system_instruction,
            ),
        )
        return ChatReply(text=extract_text(response), sources=extract_sources(response))
