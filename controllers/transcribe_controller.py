"""Controller for dictation uploads."""

from typing import Any, Dict

from fastapi import Request, UploadFile

from services.gemini.dictation_transcriber import DictationTranscriber
from utils.errors import RelayError
from utils.media_validation import audio_mime_type, read_audio_bytes


async def transcribe_upload(request: Request, audio: UploadFile) -> Dict[str, Any]:
    """Transcribe an uploaded clip and return `{"text": transcript}`.

    Raises:
        RelayError: 400/415 for bad uploads, 500 for missing credentials or provider failure.
    """
    audio_bytes = await read_audio_bytes(audio)
    mime_type = audio_mime_type(audio)

    client = getattr(request.app.state, "genai_client", None)
    if client is None:
        raise RelayError(500, "Server misconfiguration")

    transcriber = DictationTranscriber(client, model=request.app.state.settings.text_model)
    try:
        transcript = await transcriber.transcribe(audio_bytes, mime_type)
    except ValueError as exc:
        raise RelayError(415, str(exc)) from exc
    except RuntimeError as exc:
        raise RelayError(500, "ขออภัยค่ะ ถอดเสียงไม่สำเร็จ") from exc
    return {"text": transcript}
