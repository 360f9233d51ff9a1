"""Data model for detected text regions and the reader session."""

from __future__ import annotations

import math
from enum import Enum
from typing import Any, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Regions live in a resolution-independent [0, NORMALIZED_MAX] space.
NORMALIZED_MAX = 1000


def normalize_coordinate(value: Any) -> int:
    """Round and clamp one detector coordinate; non-finite values are rejected."""
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"coordinate must be finite, got {value!r}")
    return max(0, min(NORMALIZED_MAX, int(round(number))))


class Status(str, Enum):
    IDLE = "idle"
    UPLOADING = "uploading"
    DETECTING = "detecting"
    READY = "ready"
    TRANSLATING = "translating"
    SPEAKING = "speaking"
    ERROR = "error"


class TranslationMode(str, Enum):
    """What to do with a region's text before speaking it."""

    ORIGINAL = "original"
    TRANSLATE_EN = "translate_en"
    TRANSLATE_ZH = "translate_zh"
    TRANSLATE_ES = "translate_es"

    @property
    def target_language(self) -> str | None:
        """Human-readable target language, ``None`` for pass-through."""
        return _TARGET_LANGUAGES[self]

    @property
    def requires_translation(self) -> bool:
        return self is not TranslationMode.ORIGINAL


_TARGET_LANGUAGES = {
    TranslationMode.ORIGINAL: None,
    TranslationMode.TRANSLATE_EN: "English",
    TranslationMode.TRANSLATE_ZH: "Chinese",
    TranslationMode.TRANSLATE_ES: "Spanish",
}


class Region(BaseModel):
    """A detected text span and its bounding box.

    ``box`` is ``(ymin, xmin, ymax, xmax)`` in normalized coordinates.  Boxes
    with ``ymin > ymax`` or ``xmin > xmax`` are accepted as-is; hit testing
    treats them as zero-area.
    """

    model_config = ConfigDict(frozen=True)

    text: str
    box: Tuple[int, int, int, int] = Field(..., description="(ymin, xmin, ymax, xmax), 0-1000")

    @field_validator("box", mode="before")
    @classmethod
    def _coerce_box(cls, v: Any):
        """Round and clamp detector output into the normalized integer range."""
        if not isinstance(v, (list, tuple)) or len(v) != 4:
            raise ValueError("box must have exactly four coordinates")
        return tuple(normalize_coordinate(c) for c in v)

    @property
    def ymin(self) -> int:
        return self.box[0]

    @property
    def xmin(self) -> int:
        return self.box[1]

    @property
    def ymax(self) -> int:
        return self.box[2]

    @property
    def xmax(self) -> int:
        return self.box[3]

    @classmethod
    def from_block(cls, block: dict) -> "Region":
        """Build from the wire format ``{"text": ..., "box_2d": [...]}``."""
        return cls(text=block["text"], box=block["box_2d"])

    def to_block(self) -> dict:
        return {"text": self.text, "box_2d": list(self.box)}


class NormalizedPoint(BaseModel):
    """A point in the same normalized space as region boxes."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float


class SessionSnapshot(BaseModel):
    """Read-only view of a session handed to presentation code."""

    model_config = ConfigDict(frozen=True)

    status: Status
    regions: Tuple[Region, ...] = ()
    active_region: Region | None = None
    translation_mode: TranslationMode = TranslationMode.ORIGINAL
    last_error: str | None = None
    error_kind: str | None = None
    spoken_text: str | None = None
