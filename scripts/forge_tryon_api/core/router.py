"""Provider routing and alias normalization."""

from __future__ import annotations

import os
import re
from typing import Dict


DEFAULT_PROVIDER = "gemini"

PROVIDER_ALIASES: Dict[str, str] = {
    "gemini": "gemini",
    "google": "gemini",
    "nano-banana": "gemini",
    "gemini-2-5-flash-image": "gemini",
    "gemini-2-5-flash-image-preview": "gemini",
    "gemini-3-pro-image-preview": "gemini",
    "openai": "openai",
    "gpt-image-1": "openai",
    "gpt-image-1-5": "openai",
    "gpt-image": "openai",
    "gptimage": "openai",
}


def normalize_provider(provider: str | None) -> str:
    if not provider:
        return DEFAULT_PROVIDER
    if provider.strip().lower() in {"auto", "default"}:
        return "auto"
    slug = re.sub(r"[^a-z0-9]+", "-", provider.strip().lower()).strip("-")
    return PROVIDER_ALIASES.get(slug, slug)


def resolve_provider(provider: str | None) -> str:
    normalized = normalize_provider(provider)
    if normalized != "auto":
        return normalized
    env_choice = os.getenv("TRYON_FORGE_PROVIDER")
    if env_choice:
        return normalize_provider(env_choice)
    return DEFAULT_PROVIDER
