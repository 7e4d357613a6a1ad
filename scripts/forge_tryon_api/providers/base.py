"""Provider adapter interfaces."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Protocol

from forge_tryon_api.core.contracts import EncodedImage


DEFAULT_PROMPT = (
    "Virtual try-on. The first image shows a person, the second image shows a clothing item. "
    "Create a new photorealistic image of the same person wearing that clothing item. "
    "Keep the person's face, body shape, pose, skin tone and hair unchanged, keep the "
    "background of the first image, and reproduce the garment's color, pattern, texture and "
    "fit faithfully with natural folds and lighting. Return only the edited image."
)


@dataclass
class SynthesisRequest:
    person: EncodedImage
    clothing: EncodedImage
    prompt: str = DEFAULT_PROMPT
    model: Optional[str] = None
    provider_options: Mapping[str, Any] = field(default_factory=dict)


@dataclass
class ProviderImage:
    image_bytes: bytes
    mime_type: Optional[str] = None
    provider_request_id: Optional[str] = None
    metadata: Mapping[str, Any] = field(default_factory=dict)


class SynthesisAdapter(Protocol):
    name: str

    async def synthesize(self, request: SynthesisRequest) -> ProviderImage:
        ...
