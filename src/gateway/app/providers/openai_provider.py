"""
OpenAIProvider backing the reader's three collaborator calls.

- text detection: vision model via the Responses API with a JSON schema
- translation: plain Responses API call
- speech: ``audio.speech`` with ``response_format="pcm"`` (24 kHz, 16-bit, mono)

SDK exceptions are classified into the TapRead error taxonomy here so the
HTTP layer and the retry wrapper only ever see ``TapReadError``.
"""
from __future__ import annotations

import json
import logging
from typing import Any

import openai
from openai import AsyncOpenAI

from src.core.errors import (
    ConfigurationError,
    InputError,
    NetworkError,
    ServiceError,
    TapReadError,
)
from src.reader.models import normalize_coordinate

from ..config import settings
from ..json_parser import parse_model_json
from ..openai_client import get_async_openai_client
from .base import Provider, TextBlock

logger = logging.getLogger(__name__)

DETECTION_PROMPT = """
Find all the text in this image.
For each distinct phrase or block of text, provide the exact text and its bounding box in [ymin, xmin, ymax, xmax] format.
The coordinates should be normalized from 0 to 1000.
Return the result as a JSON object with a "blocks" array of objects with keys "text" and "box_2d".
""".strip()

DETECTION_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "blocks": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "text": {"type": "string"},
                    "box_2d": {"type": "array", "items": {"type": "number"}},
                },
                "required": ["text", "box_2d"],
                "additionalProperties": False,
            },
        }
    },
    "required": ["blocks"],
    "additionalProperties": False,
}

TRANSLATION_INSTRUCTIONS = (
    "Translate the user's text to {language}. "
    "Only return the translated text without any explanation."
)


def coerce_blocks(data: Any) -> list[TextBlock]:
    """Validate model output into wire-format blocks.

    Accepts ``{"blocks": [...]}`` or a bare list.  Individual malformed
    entries are dropped; a payload that is not a list at all is an error.
    """
    items = data.get("blocks") if isinstance(data, dict) else data
    if not isinstance(items, list):
        raise ValueError(f"Expected a list of text blocks, got {type(items).__name__}")

    blocks: list[TextBlock] = []
    for item in items:
        try:
            text = item["text"]
            box = item["box_2d"]
            if not isinstance(text, str) or not text.strip():
                raise ValueError("empty text")
            if not isinstance(box, (list, tuple)) or len(box) != 4:
                raise ValueError("box_2d must have four coordinates")
            coords = [normalize_coordinate(c) for c in box]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Dropping malformed detection entry %r: %s", item, e)
            continue
        blocks.append(TextBlock(text=text, box_2d=coords))
    return blocks


def classify_openai_error(exc: Exception) -> TapReadError:
    """Map an OpenAI SDK exception onto the TapRead taxonomy."""
    if isinstance(exc, TapReadError):
        return exc
    # APITimeoutError is a subclass of APIConnectionError
    if isinstance(exc, openai.APIConnectionError):
        return NetworkError(f"OpenAI unreachable: {exc!s}")
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return ConfigurationError(f"OpenAI rejected the API key: {exc!s}")
    if isinstance(exc, openai.BadRequestError):
        return InputError(f"OpenAI rejected the request: {exc!s}")
    if isinstance(exc, openai.InternalServerError):
        return NetworkError(f"OpenAI server error: {exc!s}")
    if isinstance(exc, openai.RateLimitError):
        return NetworkError(f"OpenAI rate limit: {exc!s}")
    return ServiceError(f"OpenAI API error: {exc!s}")


class OpenAIProvider(Provider):
    """Provider wrapper for OpenAI vision, text and speech endpoints."""

    name = "openai"

    def __init__(self, client: AsyncOpenAI | None = None) -> None:
        self.client: AsyncOpenAI = client or get_async_openai_client()
        logger.info("Using OpenAI SDK version %s", openai.__version__)

    # ------------------------------------------------------------------
    # Public  Provider interface
    # ------------------------------------------------------------------

    async def detect_text(self, image_b64: str, mime_type: str) -> list[TextBlock]:
        try:
            rsp = await self.client.responses.create(
                model=settings.detection_model,
                input=[
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": "input_image",
                                "image_url": f"data:{mime_type};base64,{image_b64}",
                            },
                            {"type": "input_text", "text": DETECTION_PROMPT},
                        ],
                    }
                ],
                text={
                    "format": {
                        "type": "json_schema",
                        "name": "text_regions",
                        "schema": DETECTION_SCHEMA,
                        "strict": True,
                    }
                },
            )
        except Exception as exc:  # – re‑raised after mapping
            raise classify_openai_error(exc) from exc

        raw = rsp.output_text or ""
        try:
            blocks = coerce_blocks(parse_model_json(raw))
        except (json.JSONDecodeError, ValueError) as e:
            raise ServiceError(f"Detection response was not valid JSON: {e!s}") from e
        logger.info("Detected %d text block(s)", len(blocks))
        return blocks

    async def translate_text(self, text: str, target_language: str) -> str:
        try:
            rsp = await self.client.responses.create(
                model=settings.translation_model,
                instructions=TRANSLATION_INSTRUCTIONS.format(language=target_language),
                input=text,
            )
        except Exception as exc:
            raise classify_openai_error(exc) from exc

        translated = (rsp.output_text or "").strip()
        # An empty answer reads the original rather than failing the tap
        return translated or text

    async def synthesize_speech(self, text: str) -> bytes:
        clean = text.strip()
        if not clean:
            raise InputError("TTS failed: input text is empty")

        logger.debug("TTS request: %d chars", len(clean))
        try:
            rsp = await self.client.audio.speech.create(
                model=settings.speech_model,
                voice=settings.speech_voice,
                input=clean,
                response_format="pcm",
            )
        except Exception as exc:
            raise classify_openai_error(exc) from exc

        audio = rsp.content
        if not audio:
            raise ServiceError("TTS failed: no audio data returned")
        logger.debug("TTS succeeded: %d bytes", len(audio))
        return audio
