"""OpenAI image adapter."""

from __future__ import annotations

import base64
import os
from typing import Any, Dict, Mapping, Optional

try:
    from openai import AsyncOpenAI  # type: ignore
except Exception:  # pragma: no cover
    AsyncOpenAI = None  # type: ignore

from forge_tryon_api.core.contracts import EncodedImage, Slot
from forge_tryon_api.core.utils import extension_from_mime
from .base import ProviderImage, SynthesisRequest


DEFAULT_MODEL = "gpt-image-1.5"

_PASSTHROUGH_OPTIONS = ("size", "quality", "background", "input_fidelity", "output_format", "user")


def _client() -> "AsyncOpenAI":
    api_key = os.getenv("OPENAI_API_KEY") or os.getenv("OPENAI_API_KEY_BACKUP")
    if not api_key:
        raise RuntimeError("OPENAI_API_KEY not set.")
    if AsyncOpenAI is None:
        raise RuntimeError("openai package not installed. Run: pip install openai")
    return AsyncOpenAI(api_key=api_key)


def _image_file(image: EncodedImage, slot: Slot) -> tuple[str, bytes, str]:
    filename = f"{slot.value}.{extension_from_mime(image.media_type)}"
    return filename, image.decoded_bytes(), image.media_type


def _edit_kwargs(request: SynthesisRequest, model: str) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {
        "model": model,
        "prompt": request.prompt,
        "image": [
            _image_file(request.person, Slot.PERSON),
            _image_file(request.clothing, Slot.CLOTHING),
        ],
        "n": 1,
        "quality": "high",
    }
    options: Mapping[str, Any] = request.provider_options or {}
    for key in _PASSTHROUGH_OPTIONS:
        if options.get(key) is not None:
            kwargs[key] = options[key]
    return kwargs


def _first_image(response: Any) -> Optional[ProviderImage]:
    output_format = getattr(response, "output_format", None) or "png"
    for item in getattr(response, "data", None) or []:
        b64_json = getattr(item, "b64_json", None)
        if not b64_json:
            continue
        return ProviderImage(
            image_bytes=base64.b64decode(b64_json),
            mime_type=f"image/{'jpeg' if output_format == 'jpg' else output_format}",
            metadata={"revised_prompt": getattr(item, "revised_prompt", None)},
        )
    return None


class OpenAIAdapter:
    name = "openai"

    def __init__(self, client: Any = None) -> None:
        self._client_override = client

    async def synthesize(self, request: SynthesisRequest) -> ProviderImage:
        if self._client_override is not None:
            return await self._synthesize(self._client_override, request)
        client = _client()
        try:
            return await self._synthesize(client, request)
        finally:
            await client.close()

    async def _synthesize(self, client: Any, request: SynthesisRequest) -> ProviderImage:
        model = request.model or DEFAULT_MODEL
        response = await client.images.edit(**_edit_kwargs(request, model))
        image = _first_image(response)
        if image is None:
            raise RuntimeError("OpenAI returned no images.")
        return image
