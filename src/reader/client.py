"""
HTTP client for the TapRead gateway.

The gateway holds the AI-vendor credential; the reader only needs its URL.
One :class:`GatewayClient` implements all three collaborator contracts used
by the reader session (detection, translation, speech synthesis).  Every
failure leaves this module as a classified ``TapReadError``.
"""
from __future__ import annotations

import base64
import logging
from typing import Any

import httpx

from src.core.config import settings
from src.core.errors import InputError, NetworkError, ServiceError, error_from_payload

from .collaborators import SpeechSynthesizer, TextDetector, Translator
from .models import Region, TranslationMode

logger = logging.getLogger(__name__)


class GatewayClient(TextDetector, Translator, SpeechSynthesizer):
    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize client for the TapRead gateway.

        Args:
            base_url: Gateway URL (defaults to the configured gateway)
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (used by tests to stub the gateway)
        """
        self.base_url = (base_url or settings.gateway_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.tapread_request_timeout
        self._transport = transport

    # ------------------------------------------------------------------
    # Collaborator contracts
    # ------------------------------------------------------------------

    async def detect(self, image: bytes, mime_type: str = "image/png") -> list[Region]:
        if not image:
            raise InputError("Image is empty")

        payload = {
            "base64": base64.b64encode(image).decode("ascii"),
            "mime_type": mime_type,
        }
        result = (await self._post("/v1/analyze-image", payload)).json()

        blocks = result.get("blocks") if isinstance(result, dict) else None
        if not isinstance(blocks, list):
            raise ServiceError("Gateway returned no 'blocks' list")

        regions = []
        for block in blocks:
            try:
                regions.append(Region.from_block(block))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed block %r: %s", block, e)
        logger.debug("Detected %d region(s)", len(regions))
        return regions

    async def translate(self, text: str, mode: TranslationMode) -> str:
        if not mode.requires_translation:
            return text

        result = (await self._post("/v1/process-text", {"text": text, "mode": mode.value})).json()
        translated = result.get("text") if isinstance(result, dict) else None
        if not isinstance(translated, str):
            raise ServiceError("Gateway returned no translated text")
        return translated

    async def synthesize(self, text: str) -> bytes:
        clean = (text or "").strip()
        if not clean:
            raise InputError("Nothing to speak: text is empty")

        audio = (await self._post("/v1/generate-speech", {"text": clean})).content
        if not audio:
            raise ServiceError("Gateway returned no audio data")
        return audio

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _post(self, path: str, payload: dict[str, Any]) -> httpx.Response:
        url = f"{self.base_url}{path}"
        logger.debug("POST %s", url)
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                response = await client.post(url, json=payload)
        except httpx.TimeoutException as e:
            raise NetworkError(f"Gateway request to {path} timed out") from e
        except httpx.TransportError as e:
            raise NetworkError(f"Gateway unreachable at {self.base_url}: {e!s}") from e

        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = {"detail": response.text}
            raise error_from_payload(response.status_code, body)
        return response
