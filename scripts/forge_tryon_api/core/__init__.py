"""Core contracts and helpers."""

from .contracts import EncodedImage, FailureKind, GenerationSession, Phase, ResultImage, Slot, SourceFile
from .encoder import encode
from .errors import EncodingFailure, PreconditionFailure, StaleResponseDiscarded, SynthesisFailure, TryOnError
from .orchestrator import GenerationOrchestrator

__all__ = [
    "EncodedImage",
    "EncodingFailure",
    "FailureKind",
    "GenerationOrchestrator",
    "GenerationSession",
    "Phase",
    "PreconditionFailure",
    "ResultImage",
    "Slot",
    "SourceFile",
    "StaleResponseDiscarded",
    "SynthesisFailure",
    "TryOnError",
    "encode",
]
