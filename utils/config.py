"""Environment-driven settings shared by the relay server and the terminal client."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file if present

DEFAULT_TEXT_MODEL = "gemini-2.5-flash"
DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image"
DEFAULT_LIVE_MODEL = "gemini-2.5-flash-native-audio-preview-09-2025"
DEFAULT_LIVE_VOICE = "Zephyr"
DEFAULT_BACKEND_URL = "http://127.0.0.1:3001"


def _optional_float(raw: Optional[str]) -> Optional[float]:
    if raw is None or not raw.strip():
        return None
    try:
        value = float(raw)
    except ValueError as exc:
        raise RuntimeError(f"Expected a number of seconds, got {raw!r}") from exc
    return value if value > 0 else None


@dataclass(frozen=True)
class Settings:
    """Runtime configuration.

    Attributes:
        api_key: Gemini API key. Only the relay and the voice client read it;
            the chat client never sends it anywhere.
        text_model: Model used for grounded text, image understanding and dictation.
        image_model: Model used for image generation.
        live_model: Model used for realtime voice sessions.
        live_voice: Prebuilt voice name for spoken replies.
        backend_url: Base URL the chat client posts to.
        host: Interface the relay listens on.
        port: Port the relay listens on.
        cors_origins: Allowed CORS origins for the relay.
        chat_timeout: Optional deadline in seconds for chat requests; None waits forever.
        log_level: Root log level name.
    """

    api_key: Optional[str] = None
    text_model: str = DEFAULT_TEXT_MODEL
    image_model: str = DEFAULT_IMAGE_MODEL
    live_model: str = DEFAULT_LIVE_MODEL
    live_voice: str = DEFAULT_LIVE_VOICE
    backend_url: str = DEFAULT_BACKEND_URL
    host: str = "0.0.0.0"
    port: int = 3001
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    chat_timeout: Optional[float] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment."""
        api_key = os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY") or None
        origins = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]
        try:
            port = int(os.getenv("PORT", "3001"))
        except ValueError as exc:
            raise RuntimeError("PORT environment variable must be an integer") from exc

        return cls(
            api_key=api_key,
            text_model=os.getenv("GEMINI_TEXT_MODEL", DEFAULT_TEXT_MODEL),
            image_model=os.getenv("GEMINI_IMAGE_MODEL", DEFAULT_IMAGE_MODEL),
            live_model=os.getenv("GEMINI_LIVE_MODEL", DEFAULT_LIVE_MODEL),
            live_voice=os.getenv("GEMINI_LIVE_VOICE", DEFAULT_LIVE_VOICE),
            backend_url=(os.getenv("BACKEND_URL") or DEFAULT_BACKEND_URL).rstrip("/"),
            host=os.getenv("HOST", "0.0.0.0"),
            port=port,
            cors_origins=origins or ["*"],
            chat_timeout=_optional_float(os.getenv("CHAT_TIMEOUT_SECONDS")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
