"""Retry wrapper for provider calls.

Only :class:`NetworkError` is retried (connection drops, time-outs, rate
limits, backend 5xx).  Configuration, input and service errors would fail
identically on a second attempt, so they surface immediately.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from src.core.errors import NetworkError

from ..providers.base import Provider, TextBlock

logger = logging.getLogger("gateway.retry")

_T = TypeVar("_T")


class RetryableProvider(Provider):
    """Wraps a :class:`Provider`; each call gets ``attempts`` tries."""

    DEFAULT_ATTEMPTS = 3
    DEFAULT_BACKOFF = 0.5  # seconds, doubled after every failed attempt

    def __init__(
        self,
        provider: Provider,
        *,
        attempts: int | None = None,
        backoff: float | None = None,
    ) -> None:
        self.inner = provider
        self.name = provider.name
        self.attempts = max(1, attempts or self.DEFAULT_ATTEMPTS)
        self.backoff = self.DEFAULT_BACKOFF if backoff is None else backoff

    def delay_for(self, attempt: int) -> float:
        """Sleep before retrying after failed ``attempt`` (1-based)."""
        return self.backoff * (2 ** (attempt - 1))

    async def _call(self, operation: str, fn: Callable[[], Awaitable[_T]]) -> _T:
        for attempt in range(1, self.attempts + 1):
            try:
                return await fn()
            except NetworkError as exc:
                if attempt == self.attempts:
                    logger.error("%s.%s gave up after %d attempt(s): %s", self.name, operation, attempt, exc)
                    raise
                delay = self.delay_for(attempt)
                logger.warning(
                    "%s.%s failed (attempt %d/%d), retrying in %.2fs: %s",
                    self.name, operation, attempt, self.attempts, delay, exc,
                )
                await asyncio.sleep(delay)
        raise AssertionError("unreachable")

    async def detect_text(self, image_b64: str, mime_type: str) -> list[TextBlock]:
        return await self._call("detect_text", lambda: self.inner.detect_text(image_b64, mime_type))

    async def translate_text(self, text: str, target_language: str) -> str:
        return await self._call("translate_text", lambda: self.inner.translate_text(text, target_language))

    async def synthesize_speech(self, text: str) -> bytes:
        return await self._call("synthesize_speech", lambda: self.inner.synthesize_speech(text))
