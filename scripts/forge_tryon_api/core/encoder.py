"""Turn user-selected files into transport-ready payloads."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .contracts import EncodedImage, SourceFile, Slot
from .errors import EncodingFailure
from .utils import build_data_uri, mime_from_suffix, read_input_bytes, sniff_mime, split_data_uri

logger = logging.getLogger(__name__)

_FALLBACK_MIME = "application/octet-stream"


def _resolve_media_type(declared: Optional[str], path_str: Optional[str], data: bytes) -> str:
    media_type = (declared or "").strip() or mime_from_suffix(path_str) or sniff_mime(data)
    if not media_type:
        return _FALLBACK_MIME
    if not media_type.lower().startswith("image/"):
        logger.warning("Selected file declares non-image media type %r; passing it through.", media_type)
    return media_type


def encode_bytes(data: bytes, media_type: str) -> EncodedImage:
    """Build an ``EncodedImage`` whose payload is cut out of its own preview URI."""
    preview = build_data_uri(data, media_type)
    try:
        _, payload = split_data_uri(preview)
    except ValueError as exc:
        raise EncodingFailure(f"Failed to extract base64 data from file: {exc}") from exc
    return EncodedImage(encoded_data=payload, media_type=media_type, preview_reference=preview)


async def encode(file: SourceFile, slot: Optional[Slot] = None) -> EncodedImage:
    try:
        data, path_str = await asyncio.to_thread(read_input_bytes, file.content)
    except (OSError, ValueError, TypeError) as exc:
        raise EncodingFailure(f"Could not read selected file: {exc}", slot=slot) from exc
    media_type = _resolve_media_type(file.media_type, path_str, data)
    try:
        return encode_bytes(data, media_type)
    except EncodingFailure as exc:
        exc.slot = slot
        raise
