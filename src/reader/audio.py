"""Decoding of synthesized speech into playable samples."""

from __future__ import annotations

import logging

import numpy as np

logger = logging.getLogger(__name__)

SAMPLE_RATE = 24000
CHANNELS = 1
_INT16_SCALE = 32768.0


def decode_pcm16(data: bytes, channels: int = CHANNELS) -> np.ndarray:
    """Decode interleaved little-endian signed 16-bit PCM.

    Returns a float32 array of shape ``(frames, channels)`` with values in
    ``[-1.0, 1.0)``.  Trailing bytes that do not form a whole frame are
    dropped.
    """
    if channels < 1:
        raise ValueError(f"channels must be >= 1, got {channels}")

    frame_bytes = 2 * channels
    usable = len(data) - (len(data) % frame_bytes)
    if usable != len(data):
        logger.warning(
            "Dropping %d trailing PCM byte(s) that do not form a full frame",
            len(data) - usable,
        )

    samples = np.frombuffer(data[:usable], dtype="<i2")
    return (samples.astype(np.float32) / _INT16_SCALE).reshape(-1, channels)


def duration_seconds(samples: np.ndarray, sample_rate: int = SAMPLE_RATE) -> float:
    """Playing time of a ``(frames, channels)`` sample array."""
    return samples.shape[0] / float(sample_rate)
