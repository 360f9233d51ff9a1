from abc import ABC, abstractmethod

from .models import Region, TranslationMode


class TextDetector(ABC):
    """Locates text regions in an image"""

    @abstractmethod
    async def detect(self, image: bytes, mime_type: str = "image/png") -> list[Region]:
        """Return regions in detection order (possibly empty)"""
        pass


class Translator(ABC):
    """Translates a region's text for a given mode"""

    @abstractmethod
    async def translate(self, text: str, mode: TranslationMode) -> str:
        """Return translated text; pass-through for ``TranslationMode.ORIGINAL``"""
        pass


class SpeechSynthesizer(ABC):
    """Turns text into raw speech audio"""

    @abstractmethod
    async def synthesize(self, text: str) -> bytes:
        """Return little-endian 16-bit mono PCM at 24 kHz"""
        pass
