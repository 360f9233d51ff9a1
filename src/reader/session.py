"""Interaction state machine for one loaded image.

``ReaderSession`` is the single owner of the mutable session: status, the
detected regions, the active region and the playback controller.  Everything
runs on one event loop; the only concurrency hazard is a slow collaborator
call finishing after the user has already moved on.  Each flow (image load or
region tap) therefore takes a generation number, and every completion checks
it is still the current generation before touching state.

Status flow::

    idle -> uploading -> detecting -> ready | error
    ready -> [translating ->] speaking -> ready

A new tap while translating/speaking stops the audio and supersedes the old
flow; its late results are discarded.
"""

from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import Callable, Optional, Union

from src.core.config import settings
from src.core.errors import InputError, NetworkError, ServiceError, TapReadError, classify_error

from .audio import decode_pcm16
from .collaborators import SpeechSynthesizer, TextDetector, Translator
from .geometry import hit_test, normalize_point
from .models import Region, SessionSnapshot, Status, TranslationMode
from .playback import PlaybackController, PlaybackHandle

logger = logging.getLogger(__name__)

Listener = Callable[[SessionSnapshot], None]

_ALLOWED: dict[Status, frozenset[Status]] = {
    Status.IDLE: frozenset({Status.UPLOADING}),
    Status.UPLOADING: frozenset({Status.UPLOADING, Status.DETECTING, Status.ERROR, Status.IDLE}),
    Status.DETECTING: frozenset({Status.UPLOADING, Status.READY, Status.ERROR, Status.IDLE}),
    Status.READY: frozenset({Status.UPLOADING, Status.TRANSLATING, Status.SPEAKING, Status.IDLE}),
    Status.TRANSLATING: frozenset(
        {Status.UPLOADING, Status.TRANSLATING, Status.SPEAKING, Status.READY, Status.IDLE}
    ),
    Status.SPEAKING: frozenset(
        {Status.UPLOADING, Status.TRANSLATING, Status.SPEAKING, Status.READY, Status.IDLE}
    ),
    Status.ERROR: frozenset({Status.UPLOADING, Status.IDLE}),
}

# Taps are only meaningful once regions exist.
_INTERACTIVE = frozenset({Status.READY, Status.TRANSLATING, Status.SPEAKING})


class InvalidTransition(RuntimeError):
    """Raised when the session is driven through an impossible status change."""


class ReaderSession:
    """Owns and mutates the reader state; presentation code gets snapshots."""

    def __init__(
        self,
        detector: TextDetector,
        translator: Translator,
        synthesizer: SpeechSynthesizer,
        playback: Optional[PlaybackController] = None,
        *,
        mode: Union[TranslationMode, str, None] = None,
        timeout: Optional[float] = None,
        channels: Optional[int] = None,
    ) -> None:
        self._detector = detector
        self._translator = translator
        self._synthesizer = synthesizer
        self._playback = playback or PlaybackController(sample_rate=settings.tapread_sample_rate)
        self._timeout = timeout if timeout is not None else settings.tapread_request_timeout
        self._channels = channels or settings.tapread_channels

        self._status = Status.IDLE
        self._regions: tuple[Region, ...] = ()
        self._active_region: Optional[Region] = None
        self._mode = TranslationMode(mode or settings.tapread_default_mode)
        self._last_error: Optional[str] = None
        self._error_kind: Optional[str] = None
        self._spoken_text: Optional[str] = None
        self._generation = 0
        self._listeners: list[Listener] = []

    # ------------------------------------------------------------------
    # Read-only view
    # ------------------------------------------------------------------

    @property
    def status(self) -> Status:
        return self._status

    @property
    def regions(self) -> tuple[Region, ...]:
        return self._regions

    @property
    def active_region(self) -> Optional[Region]:
        return self._active_region

    @property
    def translation_mode(self) -> TranslationMode:
        return self._mode

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def playback(self) -> PlaybackController:
        return self._playback

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            status=self._status,
            regions=self._regions,
            active_region=self._active_region,
            translation_mode=self._mode,
            last_error=self._last_error,
            error_kind=self._error_kind,
            spoken_text=self._spoken_text,
        )

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Subscribe to snapshots; returns an unsubscribe function."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def set_mode(self, mode: Union[TranslationMode, str]) -> None:
        self._mode = TranslationMode(mode)
        self._notify()

    async def load_image(self, image: bytes, mime_type: str = "image/png") -> SessionSnapshot:
        """Replace the current image: detect its regions from scratch."""
        generation = self._supersede()
        self._regions = ()
        self._active_region = None
        self._spoken_text = None
        self._clear_error()
        self._transition(Status.UPLOADING)

        if not image:
            self._record_error(InputError("Image is empty"))
            self._transition(Status.ERROR)
            return self.snapshot()

        self._transition(Status.DETECTING)
        try:
            regions = await self._call(self._detector.detect(image, mime_type))
        except Exception as exc:  # noqa: BLE001 - classified below
            if not self._is_current(generation, "detection failure"):
                return self.snapshot()
            self._record_error(exc)
            self._transition(Status.ERROR)
            return self.snapshot()

        if not self._is_current(generation, "detection result"):
            return self.snapshot()
        self._regions = tuple(regions)
        logger.info("Detected %d text region(s)", len(self._regions))
        self._transition(Status.READY)
        return self.snapshot()

    async def tap_at(
        self,
        click_x: float,
        click_y: float,
        rendered_width: Optional[float],
        rendered_height: Optional[float],
        *,
        left: float = 0.0,
        top: float = 0.0,
        mode: Union[TranslationMode, str, None] = None,
    ) -> Optional[Region]:
        """Resolve a tap on the rendered image and read the region under it.

        Returns the region that was hit, or ``None`` when nothing was hit (no
        state change in that case).
        """
        if self._status not in _INTERACTIVE:
            logger.debug("Ignoring tap while %s", self._status.value)
            return None

        point = normalize_point(click_x, click_y, rendered_width, rendered_height, left=left, top=top)
        region = hit_test(point, self._regions)
        if region is None:
            logger.debug("Tap at (%s, %s) hit no region", click_x, click_y)
            return None

        await self.select_region(region, mode)
        return region

    async def select_region(
        self,
        region: Region,
        mode: Union[TranslationMode, str, None] = None,
    ) -> SessionSnapshot:
        """Read ``region`` aloud, translating first unless the mode is original."""
        if self._status not in _INTERACTIVE:
            logger.debug("Ignoring region selection while %s", self._status.value)
            return self.snapshot()

        mode = TranslationMode(mode) if mode is not None else self._mode
        generation = self._supersede()
        self._active_region = region
        self._spoken_text = None
        self._clear_error()

        text = region.text
        try:
            if mode.requires_translation:
                self._transition(Status.TRANSLATING)
                text = await self._call(self._translator.translate(text, mode))
                if not self._is_current(generation, "translation result"):
                    return self.snapshot()

            self._transition(Status.SPEAKING)
            audio = await self._call(self._synthesizer.synthesize(text))
            if not self._is_current(generation, "synthesis result"):
                return self.snapshot()

            samples = decode_pcm16(audio, self._channels)
            if samples.shape[0] == 0:
                raise ServiceError("Synthesized audio contained no samples")

            self._spoken_text = text
            self._playback.play(samples, on_complete=partial(self._on_playback_complete, generation))
            self._notify()
        except Exception as exc:  # noqa: BLE001 - classified below
            if not self._is_current(generation, "interaction failure"):
                return self.snapshot()
            self._record_error(exc)
            self._active_region = None
            self._transition(Status.READY)

        return self.snapshot()

    def clear(self) -> None:
        """Drop the image and everything derived from it."""
        self._supersede()
        self._regions = ()
        self._active_region = None
        self._spoken_text = None
        self._clear_error()
        if self._status is not Status.IDLE:
            self._transition(Status.IDLE)

    def close(self) -> None:
        """Stop audio and invalidate any in-flight flow."""
        self._supersede()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _supersede(self) -> int:
        """Stop audio and start a new generation; returns it."""
        self._playback.stop()
        self._generation += 1
        return self._generation

    def _is_current(self, generation: int, what: str) -> bool:
        if generation == self._generation:
            return True
        logger.debug("Discarding stale %s (generation %d, current %d)", what, generation, self._generation)
        return False

    async def _call(self, awaitable):
        try:
            return await asyncio.wait_for(awaitable, self._timeout)
        except asyncio.TimeoutError as e:
            raise NetworkError(f"Collaborator call exceeded {self._timeout:.0f}s") from e

    def _on_playback_complete(self, generation: int, handle: PlaybackHandle) -> None:
        if not self._is_current(generation, f"playback completion of {handle!r}"):
            return
        self._active_region = None
        self._transition(Status.READY)

    def _record_error(self, exc: BaseException) -> None:
        error: TapReadError = classify_error(exc)
        logger.warning("%s error: %s", error.kind, error.message)
        self._last_error = error.user_message
        self._error_kind = error.kind

    def _clear_error(self) -> None:
        self._last_error = None
        self._error_kind = None

    def _transition(self, new: Status) -> None:
        old = self._status
        if new not in _ALLOWED[old]:
            raise InvalidTransition(f"{old.value} -> {new.value}")
        self._status = new
        logger.debug("Status %s -> %s", old.value, new.value)
        self._notify()

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Session listener %r failed", listener)
