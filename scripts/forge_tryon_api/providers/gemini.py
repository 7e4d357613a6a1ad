"""Gemini image adapter."""

from __future__ import annotations

import os
from typing import Any, Dict, List, Mapping, Optional, Sequence

try:
    from google import genai  # type: ignore
    from google.genai import types  # type: ignore
except Exception:  # pragma: no cover
    genai = None  # type: ignore
    types = None  # type: ignore

from forge_tryon_api.core.contracts import EncodedImage
from .base import ProviderImage, SynthesisRequest


_DEFAULT_MODEL = "gemini-2.5-flash-image"


def _client() -> "genai.Client":
    api_key = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
    if not api_key:
        raise RuntimeError("GEMINI_API_KEY or GOOGLE_API_KEY not set.")
    if genai is None:
        raise RuntimeError("google-genai package not installed. Run: pip install google-genai")
    return genai.Client(api_key=api_key)


def _image_part(image: EncodedImage) -> "types.Part":
    return types.Part(
        inline_data=types.Blob(
            data=image.decoded_bytes(),
            mime_type=image.media_type,
        )
    )


def _build_content_config(provider_options: Mapping[str, Any] | None) -> "types.GenerateContentConfig":
    config_kwargs: Dict[str, Any] = {
        "response_modalities": ["IMAGE", "TEXT"],
        "candidate_count": 1,
    }
    if provider_options:
        aspect_ratio = provider_options.get("aspect_ratio")
        if aspect_ratio:
            config_kwargs["image_config"] = types.ImageConfig(aspect_ratio=aspect_ratio)
        safety_settings = provider_options.get("safety_settings")
        if isinstance(safety_settings, Sequence):
            config_kwargs["safety_settings"] = list(safety_settings)
    return types.GenerateContentConfig(**config_kwargs)


def _extract_status_code(exc: Exception) -> Optional[int]:
    status = getattr(exc, "status_code", None)
    if isinstance(status, int):
        return status
    code = getattr(exc, "code", None)
    if isinstance(code, int):
        return code
    return None


def _extract_images(response: Any) -> tuple[List[ProviderImage], List[str]]:
    images: List[ProviderImage] = []
    texts: List[str] = []
    candidates = getattr(response, "candidates", []) or []
    for candidate in candidates:
        content = getattr(candidate, "content", None)
        parts = getattr(content, "parts", None) or getattr(candidate, "parts", None) or []
        for part in parts:
            text = getattr(part, "text", None)
            if text:
                texts.append(text)
            inline_data = getattr(part, "inline_data", None)
            if not inline_data or getattr(inline_data, "data", None) is None:
                continue
            data = inline_data.data
            if isinstance(data, str):
                data = data.encode("latin1")
            mime_type = getattr(inline_data, "mime_type", None)
            images.append(
                ProviderImage(
                    image_bytes=data,
                    mime_type=mime_type or "image/png",
                    provider_request_id=getattr(response, "response_id", None),
                    metadata={
                        "candidate_index": getattr(candidate, "index", None),
                        "finish_reason": str(getattr(candidate, "finish_reason", None) or ""),
                    },
                )
            )
    return images, texts


class GeminiAdapter:
    name = "gemini"

    def __init__(self, client: Any = None) -> None:
        self._client_override = client

    async def synthesize(self, request: SynthesisRequest) -> ProviderImage:
        if self._client_override is not None:
            return await self._synthesize(self._client_override, request)
        client = _client()
        try:
            return await self._synthesize(client, request)
        finally:
            await client.aio.aclose()

    async def _synthesize(self, client: Any, request: SynthesisRequest) -> ProviderImage:
        model = request.model or _DEFAULT_MODEL
        contents = [
            _image_part(request.person),
            _image_part(request.clothing),
            types.Part(text=request.prompt),
        ]
        config = _build_content_config(request.provider_options)
        try:
            response = await client.aio.models.generate_content(
                model=model,
                contents=contents,
                config=config,
            )
        except Exception as exc:
            status = _extract_status_code(exc)
            raise RuntimeError(
                f"Gemini request failed{f' (status {status})' if status else ''}. This usually means "
                "the project/model is not enabled for image generation or the model ID is not valid. "
                "Try a model like 'gemini-2.5-flash-image' or 'gemini-3-pro-image-preview', "
                "or switch provider to OpenAI."
            ) from exc

        images, texts = _extract_images(response)
        if not images:
            detail = " ".join(texts).strip()
            raise RuntimeError(f"Gemini returned no images.{f' Model said: {detail}' if detail else ''}")
        return images[0]
