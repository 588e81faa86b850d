import inspect
import logging
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from google import genai

from routes.chat_route import router as chat_router
from utils.config import Settings
from utils.logging_config import configure_logging

LOGGER = logging.getLogger(__name__)

ClientFactory = Callable[[str], object]


def build_genai_client(api_key: str) -> genai.Client:
    """Create the shared Gemini client."""
    return genai.Client(api_key=api_key)


async def _close_client(client) -> None:
    """Close the Gemini client if it exposes an async or sync close method."""
    aio = getattr(client, "aio", None)
    aclose = getattr(aio, "aclose", None) or getattr(client, "close", None)
    if aclose is None:
        return
    try:
        if inspect.iscoroutinefunction(aclose):
            await aclose()
        else:
            result = aclose()
            if inspect.isawaitable(result):
                await result
    except Exception as exc:  # pylint: disable=broad-exception-caught
        # Shutdown errors must not mask more important issues.
        LOGGER.warning("Failed to close Gemini client: %s", exc)


def create_app(settings: Optional[Settings] = None, client_factory: ClientFactory = build_genai_client) -> FastAPI:
    """
    Create and configure the relay application.

    The Gemini client is built once during lifespan startup and attached to
    `app.state.genai_client`. A missing API key does not stop the server:
    requests then fail with 500 "Server misconfiguration".
    """
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.settings = settings
        app.state.genai_client = None
        if settings.api_key:
            try:
                app.state.genai_client = client_factory(settings.api_key)
            except Exception as exc:
                raise RuntimeError("Failed to initialize Gemini client") from exc
        else:
            LOGGER.warning("GEMINI_API_KEY is not set; /api routes will answer 500")

        try:
            yield
        finally:
            client = getattr(app.state, "genai_client", None)
            if client is not None:
                await _close_client(client)

    app = FastAPI(title="RightCode Buddy Relay", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check reporting whether a Gemini client is configured.
        """
        has_client = getattr(request.app.state, "genai_client", None) is not None
        return {"ok": True, "gemini_available": has_client}

    app.include_router(chat_router)

    return app


app = create_app()
