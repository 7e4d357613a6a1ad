"""Generation state machine for a single try-on session."""

from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import replace
from typing import Awaitable, Callable, Dict, List, Optional, Tuple, Union

from .contracts import EncodedImage, FailureKind, GenerationSession, Phase, ResultImage, SourceFile, Slot
from .encoder import encode
from .errors import EncodingFailure, PreconditionFailure, StaleResponseDiscarded, SynthesisFailure
from .utils import decode_result_image

logger = logging.getLogger(__name__)

Collaborator = Callable[[EncodedImage, EncodedImage], Awaitable[bytes]]
Encoder = Callable[[SourceFile, Optional[Slot]], Awaitable[EncodedImage]]
Listener = Callable[[GenerationSession], None]

_SLOT_FIELDS = {Slot.PERSON: "person_image", Slot.CLOTHING: "clothing_image"}


def _resting_phase(session: GenerationSession) -> Phase:
    return Phase.READY if session.has_both_images else Phase.IDLE


class GenerationOrchestrator:
    """Owns one ``GenerationSession`` and every transition applied to it.

    Each asynchronous completion carries the token it was started with. Before a
    completion is applied the token is compared with the current one for its slot
    (or for the generation), together with the session epoch that ``reset`` bumps,
    so late results from superseded work never reach the session.
    """

    def __init__(self, collaborator: Collaborator, *, encoder: Encoder = encode) -> None:
        self._collaborator = collaborator
        self._encoder = encoder
        self._session = GenerationSession()
        self._tokens = itertools.count(1)
        self._slot_tokens: Dict[Slot, int] = {slot: 0 for slot in Slot}
        self._listeners: List[Listener] = []

    @property
    def session(self) -> GenerationSession:
        return self._session

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def set_image(self, slot: Union[Slot, str], file: SourceFile) -> "asyncio.Task[GenerationSession]":
        slot = Slot(slot)
        token = next(self._tokens)
        self._slot_tokens[slot] = token
        epoch = self._session.epoch
        loop = asyncio.get_running_loop()
        return loop.create_task(self._load(slot, file, token, epoch))

    async def generate(self) -> GenerationSession:
        session = self._session
        if session.phase is Phase.GENERATING:
            logger.debug("Generation %s already in flight; ignoring request.", session.generation_token)
            return session

        missing = tuple(slot for slot in Slot if session.image_for(slot) is None)
        if missing:
            failure = PreconditionFailure(missing)
            logger.info("%s", failure)
            self._commit(
                replace(
                    session,
                    phase=Phase.FAILED,
                    result=None,
                    error_message=failure.user_message,
                    failure_kind=FailureKind.PRECONDITION,
                )
            )
            return self._session

        token = next(self._tokens)
        epoch = session.epoch
        person, clothing = session.person_image, session.clothing_image
        self._commit(
            replace(
                session,
                phase=Phase.GENERATING,
                result=None,
                error_message=None,
                failure_kind=None,
                generation_token=token,
            )
        )

        sent = (person, clothing)
        try:
            raw = await self._collaborator(person, clothing)
            result = decode_result_image(raw)
        except asyncio.CancelledError as exc:
            failure = SynthesisFailure(f"Synthesis request {token} was cancelled.")
            failure.__cause__ = exc
            self._settle(token, epoch, sent, failure=failure)
            raise
        except Exception as exc:  # noqa: BLE001
            failure = SynthesisFailure(f"Synthesis request {token} failed: {exc}")
            failure.__cause__ = exc
            self._settle(token, epoch, sent, failure=failure)
        else:
            self._settle(token, epoch, sent, result=result)
        return self._session

    def reset(self) -> GenerationSession:
        self._commit(GenerationSession(epoch=self._session.epoch + 1))
        return self._session

    async def _load(self, slot: Slot, file: SourceFile, token: int, epoch: int) -> GenerationSession:
        try:
            image = await self._encoder(file, slot)
        except EncodingFailure as exc:
            self._record_slot_error(slot, token, epoch, exc)
            return self._session
        except Exception as exc:  # noqa: BLE001
            failure = EncodingFailure(f"Unexpected error while encoding {slot.value} image: {exc}", slot=slot)
            failure.__cause__ = exc
            self._record_slot_error(slot, token, epoch, failure)
            return self._session
        try:
            self._replace_slot(slot, token, epoch, image)
        except StaleResponseDiscarded as exc:
            logger.debug("%s", exc)
        return self._session

    def _check_slot_current(self, slot: Slot, token: int, epoch: int) -> None:
        if epoch != self._session.epoch:
            raise StaleResponseDiscarded(f"{slot.value} image", epoch, self._session.epoch)
        if token != self._slot_tokens[slot]:
            raise StaleResponseDiscarded(f"{slot.value} image", token, self._slot_tokens[slot])

    def _replace_slot(self, slot: Slot, token: int, epoch: int, image: EncodedImage) -> None:
        self._check_slot_current(slot, token, epoch)
        session = self._session
        slot_errors = {key: value for key, value in session.slot_errors.items() if key is not slot}
        updated = replace(session, slot_errors=slot_errors, **{_SLOT_FIELDS[slot]: image})
        if updated.phase is not Phase.GENERATING:
            updated = replace(
                updated,
                phase=_resting_phase(updated),
                result=None,
                error_message=None,
                failure_kind=None,
            )
        self._commit(updated)

    def _record_slot_error(self, slot: Slot, token: int, epoch: int, failure: EncodingFailure) -> None:
        logger.warning("Could not encode %s image: %s", slot.value, failure, exc_info=failure)
        try:
            self._check_slot_current(slot, token, epoch)
        except StaleResponseDiscarded as exc:
            logger.debug("%s", exc)
            return
        slot_errors = dict(self._session.slot_errors)
        slot_errors[slot] = failure.user_message
        self._commit(replace(self._session, slot_errors=slot_errors))

    def _settle(
        self,
        token: int,
        epoch: int,
        sent: Tuple[EncodedImage, EncodedImage],
        *,
        result: Optional[ResultImage] = None,
        failure: Optional[SynthesisFailure] = None,
    ) -> None:
        session = self._session
        if epoch != session.epoch or token != session.generation_token:
            logger.debug("%s", StaleResponseDiscarded("synthesis response", token, session.generation_token))
            return
        if session.person_image is not sent[0] or session.clothing_image is not sent[1]:
            # Inputs were reselected mid-flight; the outcome no longer describes them.
            logger.debug("Inputs changed during generation %s; outcome dropped.", token)
            self._commit(replace(session, phase=Phase.READY, result=None, error_message=None, failure_kind=None))
            return
        if failure is not None:
            logger.warning("Try-on synthesis failed: %s", failure, exc_info=failure.__cause__)
            self._commit(
                replace(
                    session,
                    phase=Phase.FAILED,
                    result=None,
                    error_message=failure.user_message,
                    failure_kind=FailureKind.SYNTHESIS,
                )
            )
            return
        self._commit(
            replace(
                session,
                phase=Phase.SUCCEEDED,
                result=result,
                error_message=None,
                failure_kind=None,
            )
        )

    def _commit(self, session: GenerationSession) -> None:
        self._session = session
        for listener in list(self._listeners):
            try:
                listener(session)
            except Exception:  # noqa: BLE001
                logger.exception("Session listener %r raised; continuing.", listener)
