"""Provider adapter registry."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from forge_tryon_api.core.contracts import EncodedImage
from forge_tryon_api.core.orchestrator import Collaborator
from .base import DEFAULT_PROMPT, ProviderImage, SynthesisAdapter, SynthesisRequest


_ADAPTERS: Dict[str, SynthesisAdapter] = {}


def _build_adapter(provider: str) -> SynthesisAdapter:
    key = provider.strip().lower()
    if key == "gemini":
        from .gemini import GeminiAdapter
        return GeminiAdapter()
    if key == "openai":
        from .openai import OpenAIAdapter
        return OpenAIAdapter()
    raise ValueError(f"No adapter registered for provider '{provider}'.")


def get_adapter(provider: str) -> SynthesisAdapter:
    key = provider.strip().lower()
    adapter = _ADAPTERS.get(key)
    if adapter is not None:
        return adapter
    adapter = _build_adapter(key)
    _ADAPTERS[key] = adapter
    return adapter


def as_collaborator(
    adapter: SynthesisAdapter,
    *,
    prompt: Optional[str] = None,
    model: Optional[str] = None,
    provider_options: Optional[Mapping[str, Any]] = None,
) -> Collaborator:
    """Wrap an adapter as the ``(person, clothing) -> bytes`` function the orchestrator calls."""

    async def _synthesize(person: EncodedImage, clothing: EncodedImage) -> bytes:
        request = SynthesisRequest(
            person=person,
            clothing=clothing,
            prompt=prompt or DEFAULT_PROMPT,
            model=model,
            provider_options=provider_options or {},
        )
        image = await adapter.synthesize(request)
        return image.image_bytes

    return _synthesize


__all__ = ["as_collaborator", "get_adapter", "ProviderImage", "SynthesisAdapter", "SynthesisRequest"]
