"""FastAPI routes for the chat relay."""

from fastapi import APIRouter, File, Request, UploadFile
from fastapi.responses import JSONResponse

from controllers.chat_controller import GENERIC_ERROR_TEXT, relay_chat
from controllers.transcribe_controller import transcribe_upload
from utils.errors import RelayError

router = APIRouter(prefix="/api", tags=["chat"])

MAX_BODY_BYTES = 10 * 1024 * 1024


def _too_large(request: Request) -> bool:
    length = request.headers.get("content-length")
    return bool(length and length.isdigit() and int(length) > MAX_BODY_BYTES)


@router.post("/chat", summary="Relay one chat turn to Gemini")
async def post_chat(request: Request):
    """Answer `{prompt, image?}` with `{text?, imageUrl?, sources?}`."""
    if _too_large(request):
        return JSONResponse({"text": "Payload too large"}, status_code=413)
    try:
        body = await request.json()
    except ValueError:
        body = None
    try:
        return await relay_chat(request, body)
    except RelayError as exc:
        return JSONResponse(exc.to_payload(), status_code=exc.status_code)
    except Exception:  # pylint: disable=broad-exception-caught
        return JSONResponse({"text": GENERIC_ERROR_TEXT}, status_code=500)


@router.post("/transcribe", summary="Transcribe a dictation clip")
async def post_transcribe(request: Request, audio: UploadFile = File(...)):
    """Return `{text}` for an uploaded audio clip."""
    if _too_large(request):
        return JSONResponse({"text": "Payload too large"}, status_code=413)
    try:
        return await transcribe_upload(request, audio)
    except RelayError as exc:
        return JSONResponse(exc.to_payload(), status_code=exc.status_code)
