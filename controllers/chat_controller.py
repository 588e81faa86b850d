"""Controller for relaying chat requests to Gemini."""

import logging
from typing import Any, Dict

from fastapi import Request
from pydantic import ValidationError

from models.chat_models import ChatRequest
from services.gemini.chat_relay import ChatRelay
from utils.errors import RelayError
from utils.media_validation import decode_base64_image

LOGGER = logging.getLogger(__name__)

GENERIC_ERROR_TEXT = "ขออภัยค่ะ เกิดข้อผิดพลาดบางอย่าง"


def parse_chat_request(body: Any) -> ChatRequest:
    """Validate a decoded JSON body into a `ChatRequest`.

    Raises:
        RelayError(400): If the prompt is missing, empty, not a string, or the
            attached image data is not base64.
    """
    if not isinstance(body, dict):
        raise RelayError(400, "Invalid prompt")
    try:
        payload = ChatRequest.model_validate(body)
    except ValidationError as exc:
        if any(error["loc"][:1] == ("prompt",) for error in exc.errors()):
            raise RelayError(400, "Invalid prompt") from exc
        raise RelayError(400, "Invalid image") from exc
    if not payload.prompt:
        raise RelayError(400, "Invalid prompt")

    if payload.image is not None and payload.image.is_complete:
        try:
            decode_base64_image(payload.image.data)
        except ValueError as exc:
            raise RelayError(400, "Invalid image") from exc
    return payload


def _get_relay(request: Request) -> ChatRelay:
    """Build a relay around the shared Gemini client, if one is configured."""
    client = getattr(request.app.state, "genai_client", None)
    if client is None:
        LOGGER.error("GEMINI_API_KEY is not set")
        raise RelayError(500, "Server misconfiguration")
    settings = request.app.state.settings
    return ChatRelay(client, text_model=settings.text_model, image_model=settings.image_model)


async def relay_chat(request: Request, body: Any) -> Dict[str, Any]:
    """Validate the body, forward it to Gemini and return the reply payload.

    Args:
        request: FastAPI request (used to access app.state).
        body: Decoded JSON body, or None when it could not be parsed.

    Returns:
        A dict with any of `text`, `imageUrl` and `sources`.

    Raises:
        RelayError: On invalid input, missing credentials, or provider failure.
    """
    payload = parse_chat_request(body)
    relay = _get_relay(request)
    try:
        reply = await relay.reply(payload.prompt, payload.image)
    except Exception as exc:
        raise RelayError(500, GENERIC_ERROR_TEXT) from exc
    return reply.to_payload()
