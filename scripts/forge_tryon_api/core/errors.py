"""Failure taxonomy for the try-on pipeline."""

from __future__ import annotations

from typing import Optional

from .contracts import Slot


ENCODING_MESSAGE = "Error processing file. Please try another image."
MISSING_INPUTS_MESSAGE = "Please upload both a person and a clothing item."
SYNTHESIS_MESSAGE = (
    "Failed to generate the try-on image. The AI model may not be able to process "
    "these images. Please try again with different photos."
)


class TryOnError(RuntimeError):
    user_message = "Something went wrong."


class EncodingFailure(TryOnError):
    """A selected file could not be read or its payload could not be extracted."""

    user_message = ENCODING_MESSAGE

    def __init__(self, message: str, slot: Optional[Slot] = None) -> None:
        super().__init__(message)
        self.slot = slot


class PreconditionFailure(TryOnError):
    user_message = MISSING_INPUTS_MESSAGE

    def __init__(self, missing: tuple[Slot, ...]) -> None:
        names = ", ".join(slot.value for slot in missing)
        super().__init__(f"Missing input image(s): {names}.")
        self.missing = missing


class SynthesisFailure(TryOnError):
    """The synthesis collaborator failed or returned something unusable."""

    user_message = SYNTHESIS_MESSAGE


class StaleResponseDiscarded(TryOnError):
    """Raised internally when an async result belongs to a superseded request."""

    def __init__(self, label: str, token: int, current: int) -> None:
        super().__init__(f"Discarded stale {label} (token {token}, current {current}).")
        self.token = token
        self.current = current
