# Expose the public provider API for the reader's collaborator calls.

from .base import (
    AnalyzeImageRequest,
    AnalyzeImageResponse,
    GenerateSpeechRequest,
    ProcessTextRequest,
    ProcessTextResponse,
    Provider,
    TextBlock,
)
from .openai_provider import OpenAIProvider

__all__ = [
    "Provider",
    "TextBlock",
    "AnalyzeImageRequest",
    "AnalyzeImageResponse",
    "ProcessTextRequest",
    "ProcessTextResponse",
    "GenerateSpeechRequest",
    "OpenAIProvider",
]
