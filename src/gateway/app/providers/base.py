from abc import ABC, abstractmethod

from pydantic import BaseModel, Field

from src.reader.models import TranslationMode


class AnalyzeImageRequest(BaseModel):
    """Request model for text detection"""
    base64: str = Field(..., min_length=1)
    mime_type: str = "image/png"


class TextBlock(BaseModel):
    """One detected text span in wire format"""
    text: str
    box_2d: list[int] = Field(..., min_length=4, max_length=4)


class AnalyzeImageResponse(BaseModel):
    blocks: list[TextBlock]


class ProcessTextRequest(BaseModel):
    """Request model for translation"""
    text: str = Field(..., min_length=1)
    mode: TranslationMode = TranslationMode.ORIGINAL


class ProcessTextResponse(BaseModel):
    text: str


class GenerateSpeechRequest(BaseModel):
    """Request model for speech synthesis"""
    text: str = Field(..., min_length=1)


class Provider(ABC):
    """Base class for generative-AI backends serving the reader"""

    name: str = "provider"

    @abstractmethod
    async def detect_text(self, image_b64: str, mime_type: str) -> list[TextBlock]:
        """Locate text in a base64-encoded image"""
        pass

    @abstractmethod
    async def translate_text(self, text: str, target_language: str) -> str:
        """Translate text into the target language"""
        pass

    @abstractmethod
    async def synthesize_speech(self, text: str) -> bytes:
        """Return 16-bit little-endian mono PCM at 24 kHz"""
        pass
