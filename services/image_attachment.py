"""Image attachment helpers for the chat client.

Wraps Pillow to turn a picture on disk into the inline `{mimeType, data}`
payload the relay accepts, shrinking it so it fits within `max_size` while
preserving aspect ratio, and writes generated images from data URIs back to
disk.

Example:
    attachment = load_image_attachment("cat.jpg")
    payload = attachment.to_payload()
"""
from __future__ import annotations

import base64
import binascii
import io
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Tuple

from PIL import Image, UnidentifiedImageError

DEFAULT_MAX_SIZE = (1536, 1536)

_DATA_URL = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>.+)$", re.DOTALL)
_EXTENSIONS = {"image/png": "png", "image/jpeg": "jpg", "image/webp": "webp", "image/gif": "gif"}


@dataclass(frozen=True)
class ImageAttachment:
    """An image ready to send with a chat prompt.

    Attributes:
        mime_type: MIME type of the encoded bytes.
        data: Base64-encoded image bytes.
        source: Path the image was read from, shown as the preview.
    """

    mime_type: str
    data: str
    source: str

    def to_payload(self) -> Dict[str, str]:
        return {"mimeType": self.mime_type, "data": self.data}


def load_image_attachment(path: str | Path, max_size: Tuple[int, int] = DEFAULT_MAX_SIZE) -> ImageAttachment:
    """Read, validate and if needed downscale an image file.

    Args:
        path: Image file on disk.
        max_size: Maximum width and height; larger images are shrunk to fit.

    Returns:
        The encoded attachment.

    Raises:
        ValueError: If the file cannot be read or is not a supported image.
    """
    path = Path(path).expanduser()
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise ValueError(f"Unable to read image file: {path}") from exc

    try:
        src = Image.open(io.BytesIO(raw))
        src.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise ValueError("File is not a supported image format") from exc

    image_format = src.format or "PNG"
    mime_type = Image.MIME.get(image_format, "image/png")

    if src.width > max_size[0] or src.height > max_size[1]:
        src.thumbnail(max_size, Image.LANCZOS)
        if image_format == "JPEG" and src.mode not in ("RGB", "L"):
            src = src.convert("RGB")
        elif image_format not in ("JPEG", "WEBP"):
            image_format, mime_type = "PNG", "image/png"
        out_io = io.BytesIO()
        src.save(out_io, format=image_format)
        raw = out_io.getvalue()

    return ImageAttachment(mime_type=mime_type, data=base64.b64encode(raw).decode("ascii"), source=str(path))


def save_data_url(data_url: str, directory: str | Path) -> Path:
    """Decode a `data:<mime>;base64,...` URI into a file and return its path.

    Raises:
        ValueError: If the URI is not a base64 data URI.
    """
    match = _DATA_URL.match(data_url or "")
    if match is None:
        raise ValueError("Expected a base64 data URI")
    try:
        raw = base64.b64decode(match.group("data"), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("Data URI payload is not valid base64") from exc

    directory = Path(directory).expanduser()
    directory.mkdir(parents=True, exist_ok=True)
    extension = _EXTENSIONS.get(match.group("mime"), "bin")
    target = directory / f"buddy-{time.strftime('%Y%m%d-%H%M%S')}-{time.time_ns() % 1_000_000:06d}.{extension}"
    target.write_bytes(raw)
    return target
