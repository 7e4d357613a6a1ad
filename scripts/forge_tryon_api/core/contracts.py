"""Core data contracts for Tryon Forge."""

from __future__ import annotations

import base64
import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Mapping, Optional, Union


ImageInput = Union[str, Path, bytes, BinaryIO]


class Slot(str, enum.Enum):
    PERSON = "person"
    CLOTHING = "clothing"


class Phase(str, enum.Enum):
    IDLE = "idle"
    READY = "ready_to_generate"
    GENERATING = "generating"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class FailureKind(str, enum.Enum):
    PRECONDITION = "precondition"
    SYNTHESIS = "synthesis"


@dataclass(frozen=True)
class SourceFile:
    """A file selected by the user, with the media type it was declared as."""

    content: ImageInput
    media_type: Optional[str] = None


@dataclass(frozen=True)
class EncodedImage:
    encoded_data: str
    media_type: str
    preview_reference: str

    def decoded_bytes(self) -> bytes:
        return base64.b64decode(self.encoded_data)

    @property
    def size_bytes(self) -> int:
        return len(self.decoded_bytes())


@dataclass(frozen=True)
class ResultImage:
    image_bytes: bytes
    mime_type: str
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass(frozen=True)
class GenerationSession:
    """Snapshot of one user's try-on session.

    Snapshots are never mutated; the orchestrator replaces its current snapshot on
    every transition, so a presentation layer can hold on to one safely.
    """

    person_image: Optional[EncodedImage] = None
    clothing_image: Optional[EncodedImage] = None
    phase: Phase = Phase.IDLE
    result: Optional[ResultImage] = None
    error_message: Optional[str] = None
    failure_kind: Optional[FailureKind] = None
    slot_errors: Mapping[Slot, str] = field(default_factory=dict)
    epoch: int = field(default=0, compare=False)
    generation_token: int = field(default=0, compare=False)

    def image_for(self, slot: Slot) -> Optional[EncodedImage]:
        if slot is Slot.PERSON:
            return self.person_image
        return self.clothing_image

    @property
    def has_both_images(self) -> bool:
        return self.person_image is not None and self.clothing_image is not None

    @property
    def is_loading(self) -> bool:
        return self.phase is Phase.GENERATING

    @property
    def can_generate(self) -> bool:
        return self.has_both_images and self.phase is not Phase.GENERATING
