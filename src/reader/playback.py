"""Exclusive audio playback.

A :class:`PlaybackController` owns at most one live :class:`PlaybackHandle`.
Starting new playback stops the previous handle first, and a stopped handle
never reports completion, so a late end-of-stream cannot resurrect stale UI
state.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import os
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Optional

import numpy as np

from .audio import CHANNELS, SAMPLE_RATE, duration_seconds

logger = logging.getLogger(__name__)


class AudioSink(ABC):
    """Platform audio output used by the controller."""

    @abstractmethod
    def start(self, samples: np.ndarray, sample_rate: int) -> Any:
        """Begin playing ``samples``; return an opaque stream token."""

    @abstractmethod
    def stop(self) -> None:
        """Silence the output immediately."""

    @abstractmethod
    async def wait_done(self, stream: Any) -> None:
        """Return once ``stream`` has played to its end."""


class PygameAudioSink(AudioSink):
    """Plays float32 samples through ``pygame.mixer``."""

    def __init__(
        self,
        sample_rate: int = SAMPLE_RATE,
        channels: int = CHANNELS,
        poll_interval: float = 0.02,
    ) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self.poll_interval = poll_interval
        self._channel = None

    def _mixer(self):
        os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")
        import pygame  # local import: initialising SDL is only needed for real playback

        if not pygame.mixer.get_init():
            # size=32 selects a float32 mixer so normalized samples play unchanged
            pygame.mixer.init(frequency=self.sample_rate, size=32, channels=self.channels)
            logger.debug("pygame mixer initialised: %s", pygame.mixer.get_init())
        return pygame

    def start(self, samples: np.ndarray, sample_rate: int) -> Any:
        if sample_rate != self.sample_rate:
            logger.warning(
                "Sample rate %s differs from mixer rate %s; playback speed will be off",
                sample_rate,
                self.sample_rate,
            )
        pygame = self._mixer()
        if self.channels == 1:
            array = np.ascontiguousarray(samples[:, 0], dtype=np.float32)
        else:
            array = np.ascontiguousarray(samples, dtype=np.float32)
        sound = pygame.sndarray.make_sound(array)
        channel = sound.play()
        if channel is None:
            raise RuntimeError("No free audio channel available")
        self._channel = channel
        return channel

    def stop(self) -> None:
        if self._channel is not None:
            self._channel.stop()
            self._channel = None

    async def wait_done(self, stream: Any) -> None:
        while stream.get_busy():
            await asyncio.sleep(self.poll_interval)


class HandleState(str, Enum):
    PLAYING = "playing"
    STOPPED = "stopped"
    COMPLETED = "completed"


class PlaybackHandle:
    """One audio stream started by a :class:`PlaybackController`."""

    def __init__(
        self,
        handle_id: int,
        duration: float,
        on_complete: Optional[Callable[["PlaybackHandle"], None]] = None,
    ) -> None:
        self.id = handle_id
        self.duration = duration
        self.state = HandleState.PLAYING
        self.on_complete = on_complete
        self._finished = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def is_live(self) -> bool:
        return self.state is HandleState.PLAYING

    async def wait(self) -> HandleState:
        """Wait until the handle completes or is stopped."""
        await self._finished.wait()
        return self.state

    def _finish(self, state: HandleState) -> None:
        self.state = state
        self._finished.set()

    def __repr__(self) -> str:
        return f"PlaybackHandle(id={self.id}, state={self.state.value})"


class PlaybackController:
    """Owns at most one live playback handle."""

    def __init__(self, sink: Optional[AudioSink] = None, *, sample_rate: int = SAMPLE_RATE) -> None:
        self._sink = sink if sink is not None else PygameAudioSink(sample_rate=sample_rate)
        self.sample_rate = sample_rate
        self._current: Optional[PlaybackHandle] = None
        self._ids = itertools.count(1)

    @property
    def current(self) -> Optional[PlaybackHandle]:
        return self._current

    def play(
        self,
        samples: np.ndarray,
        on_complete: Optional[Callable[[PlaybackHandle], None]] = None,
    ) -> PlaybackHandle:
        """Stop any live handle, then start ``samples``.

        Must be called from a running event loop; completion is observed by a
        background task.
        """
        self.stop()

        handle = PlaybackHandle(
            next(self._ids),
            duration=duration_seconds(samples, self.sample_rate),
            on_complete=on_complete,
        )
        stream = self._sink.start(samples, self.sample_rate)
        self._current = handle
        handle._task = asyncio.get_running_loop().create_task(self._watch(handle, stream))
        logger.debug("Started %r (%.2fs)", handle, handle.duration)
        return handle

    def stop(self, handle: Optional[PlaybackHandle] = None) -> None:
        """Stop ``handle`` (default: the current one).

        Idempotent: stopping a finished or superseded handle does nothing.
        """
        handle = handle or self._current
        if handle is None or not handle.is_live:
            return

        if handle is self._current:
            self._sink.stop()
            self._current = None
        if handle._task is not None and not handle._task.done():
            handle._task.cancel()
        handle._finish(HandleState.STOPPED)
        logger.debug("Stopped %r", handle)

    async def _watch(self, handle: PlaybackHandle, stream: Any) -> None:
        try:
            await self._sink.wait_done(stream)
        except Exception:
            # A broken output still ends the stream; the owner must not hang in SPEAKING.
            logger.exception("Audio output failed while playing %r", handle)

        if handle is not self._current or not handle.is_live:
            return
        self._current = None
        handle._finish(HandleState.COMPLETED)
        logger.debug("Completed %r", handle)
        if handle.on_complete is not None:
            handle.on_complete(handle)
