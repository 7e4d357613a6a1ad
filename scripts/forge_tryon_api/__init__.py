"""TRYON FORGE public surface."""

from .api import build_orchestrator, try_on, write_result
from .core import EncodedImage, GenerationOrchestrator, GenerationSession, Phase, ResultImage, Slot, SourceFile

__all__ = [
    "build_orchestrator",
    "try_on",
    "write_result",
    "EncodedImage",
    "GenerationOrchestrator",
    "GenerationSession",
    "Phase",
    "ResultImage",
    "Slot",
    "SourceFile",
]
