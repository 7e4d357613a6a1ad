"""Public API for TRYON FORGE."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Mapping, Optional

from forge_tryon_api.core.contracts import GenerationSession, ImageInput, ResultImage, Slot, SourceFile
from forge_tryon_api.core.orchestrator import Collaborator, GenerationOrchestrator
from forge_tryon_api.core.router import resolve_provider
from forge_tryon_api.core.utils import ensure_out_dir, extension_from_mime, utc_timestamp
from forge_tryon_api.providers import as_collaborator, get_adapter


def _as_source(value: ImageInput | SourceFile) -> SourceFile:
    if isinstance(value, SourceFile):
        return value
    return SourceFile(content=value)


def build_orchestrator(
    *,
    provider: Optional[str] = None,
    model: Optional[str] = None,
    prompt: Optional[str] = None,
    provider_options: Optional[Mapping[str, Any]] = None,
    collaborator: Optional[Collaborator] = None,
) -> GenerationOrchestrator:
    if collaborator is None:
        adapter = get_adapter(resolve_provider(provider))
        collaborator = as_collaborator(
            adapter,
            prompt=prompt,
            model=model,
            provider_options=provider_options,
        )
    return GenerationOrchestrator(collaborator)


async def try_on(
    *,
    person: ImageInput | SourceFile,
    clothing: ImageInput | SourceFile,
    provider: Optional[str] = None,
    model: Optional[str] = None,
    prompt: Optional[str] = None,
    provider_options: Optional[Mapping[str, Any]] = None,
    collaborator: Optional[Collaborator] = None,
) -> GenerationSession:
    """Run one full select-select-generate pass and return the final session."""
    orchestrator = build_orchestrator(
        provider=provider,
        model=model,
        prompt=prompt,
        provider_options=provider_options,
        collaborator=collaborator,
    )
    await asyncio.gather(
        orchestrator.set_image(Slot.PERSON, _as_source(person)),
        orchestrator.set_image(Slot.CLOTHING, _as_source(clothing)),
    )
    return await orchestrator.generate()


def write_result(
    result: ResultImage,
    *,
    out_dir: Optional[str | Path] = None,
    provider: str = "tryon",
) -> Path:
    out_path = ensure_out_dir(Path(out_dir) if out_dir else None)
    filename = f"tryon-{provider}-{utc_timestamp()}.{extension_from_mime(result.mime_type)}"
    path = out_path / filename
    path.write_bytes(result.image_bytes)
    return path
