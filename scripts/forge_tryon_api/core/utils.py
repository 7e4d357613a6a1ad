"""Utility helpers for Tryon Forge."""

from __future__ import annotations

import base64
import io
import os
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

from .contracts import ImageInput, ResultImage

_URL_RE = re.compile(r"^https?://", re.IGNORECASE)

_SUFFIX_MIME = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
    ".gif": "image/gif",
    ".bmp": "image/bmp",
    ".heic": "image/heic",
}


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def ensure_out_dir(out_dir: Optional[Path]) -> Path:
    if out_dir is None:
        root = Path(os.getenv("TRYON_FORGE_OUTPUTS", "outputs"))
        out_dir = root / "tryon_forge" / utc_timestamp()
    out_dir = Path(out_dir).expanduser().resolve()
    out_dir.mkdir(parents=True, exist_ok=True)
    return out_dir


def is_url(value: str) -> bool:
    return bool(_URL_RE.match(value or ""))


def read_input_bytes(value: ImageInput) -> Tuple[bytes, Optional[str]]:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value), None
    if isinstance(value, Path):
        return value.read_bytes(), str(value)
    if isinstance(value, str):
        if is_url(value):
            raise ValueError("URL inputs must be downloaded before selection.")
        path = Path(value).expanduser().resolve()
        return path.read_bytes(), str(path)
    if hasattr(value, "read"):
        data = value.read()
        if not isinstance(data, (bytes, bytearray)):
            raise TypeError("File handles must be opened in binary mode.")
        name = getattr(value, "name", None)
        return bytes(data), name if isinstance(name, str) else None
    raise TypeError(f"Unsupported input type: {type(value)}")


def mime_from_suffix(path_str: Optional[str]) -> Optional[str]:
    if not path_str:
        return None
    return _SUFFIX_MIME.get(Path(path_str).suffix.lower())


def sniff_mime(data: bytes) -> Optional[str]:
    try:
        with Image.open(io.BytesIO(data)) as image:
            fmt = image.format
    except (UnidentifiedImageError, OSError):
        return None
    if not fmt:
        return None
    return Image.MIME.get(fmt.upper())


def extension_from_mime(mime_type: Optional[str], fallback: str = "png") -> str:
    if mime_type:
        mime = mime_type.lower()
        if mime.endswith("/jpeg") or mime.endswith("/jpg"):
            return "jpg"
        if mime.endswith("/png"):
            return "png"
        if mime.endswith("/webp"):
            return "webp"
        if "/" in mime:
            return mime.split("/", 1)[1]
    return fallback


def build_data_uri(data: bytes, media_type: str) -> str:
    payload = base64.b64encode(data).decode("ascii")
    return f"data:{media_type};base64,{payload}"


def split_data_uri(data_uri: str) -> Tuple[str, str]:
    """Return ``(media_type, payload)`` from a base64 data URI."""
    header, sep, payload = data_uri.partition(",")
    if not sep or not header.startswith("data:"):
        raise ValueError("Data URI is missing its payload delimiter.")
    if not payload:
        raise ValueError("Data URI carries an empty payload.")
    media_type = header[len("data:"):].split(";", 1)[0]
    return media_type, payload


def decode_result_image(data: bytes, mime_type: Optional[str] = None) -> ResultImage:
    if isinstance(data, str):
        data = base64.b64decode(data)
    if not data:
        raise ValueError("Collaborator returned an empty image.")
    try:
        with Image.open(io.BytesIO(data)) as image:
            image.load()
            width, height = image.size
            fmt = image.format
    except (UnidentifiedImageError, OSError) as exc:
        raise ValueError(f"Collaborator returned undecodable image data: {exc}") from exc
    detected = Image.MIME.get(fmt.upper()) if fmt else None
    return ResultImage(
        image_bytes=bytes(data),
        mime_type=detected or mime_type or "image/png",
        width=width,
        height=height,
    )
