import base64
import binascii
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, Response
from pydantic import ValidationError

from src.core.errors import ConfigurationError, InputError, classify_error
from src.core.logging_config import configure_logging
from src.reader.audio import CHANNELS, SAMPLE_RATE
from src.reader.models import TranslationMode

from .cache import snapshots
from .config import settings
from .middleware.logging import LoggingMiddleware, provider_call
from .middleware.retry import RetryableProvider
from .openai_client import OpenAIClientError, validate_api_key
from .providers import (
    AnalyzeImageRequest,
    AnalyzeImageResponse,
    GenerateSpeechRequest,
    OpenAIProvider,
    ProcessTextRequest,
    ProcessTextResponse,
    Provider,
)

# Provider instances
providers: dict[str, Provider] = {}

PROVIDER_NAME = "openai"

# Set up logger
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    # Startup
    await snapshots.connect()

    # Initialize providers with retry wrapper
    try:
        if validate_api_key():
            logger.debug("Creating OpenAI provider")
            providers[PROVIDER_NAME] = RetryableProvider(
                OpenAIProvider(),
                attempts=settings.retry_attempts,
                backoff=settings.retry_backoff,
            )
            logger.info(
                "Backend retry budget %.1fs (reader waits %.1fs)",
                settings.retry_budget, settings.client_timeout,
            )
        else:
            logger.warning("OPENAI_API_KEY is missing or does not look like an OpenAI key")
    except OpenAIClientError as e:
        logger.warning("OpenAI client error: %s", e)

    if not providers:
        # Stay up so readers get a clear configuration error per request
        # instead of a connection refused.
        logger.error(
            "No AI provider configured. Set OPENAI_API_KEY; every request "
            "will answer with a configuration error until then."
        )

    yield

    # Shutdown
    providers.clear()
    await snapshots.disconnect()


app = FastAPI(
    title="TapRead Gateway",
    description="Text detection, translation and speech synthesis for the point-to-read client",
    version="1.0.0",
    lifespan=lifespan,
)

# Add logging middleware
app.add_middleware(LoggingMiddleware)


def _error(exc: BaseException) -> HTTPException:
    """Classify ``exc`` and turn it into an HTTP error with a typed payload."""
    error = classify_error(exc)
    if isinstance(error, ConfigurationError):
        logger.error("Configuration error: %s", error.message)
    else:
        logger.warning("%s error: %s", error.kind, error.message)
    return HTTPException(status_code=error.status_code, detail=error.to_payload())


def _get_provider() -> Provider:
    provider = providers.get(PROVIDER_NAME)
    if not provider:
        raise ConfigurationError(f"Provider {PROVIDER_NAME} not configured")
    return provider


def _parse(model, body: dict):
    try:
        return model(**body)
    except ValidationError as e:
        raise _error(InputError(str(e)))


@app.get("/health")
async def health():
    """Health check endpoint."""
    healthy = bool(providers)

    payload = {
        "status": "healthy" if healthy else "unhealthy",
        "providers": list(providers.keys()),
        "snapshots_enabled": snapshots.enabled,
    }

    if not healthy:
        # Surface the problem clearly to callers (e.g., readiness probes).
        raise HTTPException(status_code=503, detail=payload)

    return payload


@app.get("/v1/modes")
async def list_modes():
    """List translation modes and the language each one targets."""
    return {
        "modes": [
            {"id": mode.value, "target_language": mode.target_language}
            for mode in TranslationMode
        ]
    }


@app.post("/v1/analyze-image", response_model=AnalyzeImageResponse)
async def analyze_image(request: Request, body: dict):
    """Detect text regions in a base64-encoded image."""
    parsed = _parse(AnalyzeImageRequest, body)
    try:
        base64.b64decode(parsed.base64, validate=True)
    except (binascii.Error, ValueError):
        raise _error(InputError("Image payload is not valid base64"))

    try:
        provider = _get_provider()
        with provider_call(
            request.state.request_id, provider.name, "detect_text",
            mime_type=parsed.mime_type, b64_chars=len(parsed.base64),
        ) as call:
            blocks = await provider.detect_text(parsed.base64, parsed.mime_type)
            call.result(blocks=len(blocks))
    except Exception as e:
        raise _error(e)

    result = AnalyzeImageResponse(blocks=blocks)
    await snapshots.write(parsed.base64, {"mime_type": parsed.mime_type, **result.model_dump()})
    return result


@app.post("/v1/process-text", response_model=ProcessTextResponse)
async def process_text(request: Request, body: dict):
    """Translate text for a mode; pass-through for the original mode."""
    parsed = _parse(ProcessTextRequest, body)
    if not parsed.mode.requires_translation:
        return ProcessTextResponse(text=parsed.text)

    try:
        provider = _get_provider()
        with provider_call(
            request.state.request_id, provider.name, "translate_text",
            mode=parsed.mode.value, chars=len(parsed.text),
        ) as call:
            translated = await provider.translate_text(parsed.text, parsed.mode.target_language)
            call.result(chars=len(translated))
    except Exception as e:
        raise _error(e)

    return ProcessTextResponse(text=translated)


@app.post("/v1/generate-speech")
async def generate_speech(request: Request, body: dict):
    """Synthesize speech; returns raw 16-bit little-endian mono PCM."""
    parsed = _parse(GenerateSpeechRequest, body)
    text = parsed.text.strip()
    if not text:
        raise _error(InputError("TTS failed: input text is empty"))

    try:
        provider = _get_provider()
        with provider_call(
            request.state.request_id, provider.name, "synthesize_speech", chars=len(text),
        ) as call:
            audio = await provider.synthesize_speech(text)
            call.result(bytes=len(audio))
    except Exception as e:
        raise _error(e)

    return Response(
        content=audio,
        media_type="application/octet-stream",
        headers={"X-Sample-Rate": str(SAMPLE_RATE), "X-Channels": str(CHANNELS)},
    )


def run(host: str | None = None, port: int | None = None) -> None:
    import uvicorn

    configure_logging(settings.log_level)
    host = host or settings.tapread_gateway_host
    port = port or settings.tapread_gateway_port
    logger.info("Starting TapRead Gateway on %s:%s", host, port)
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run()
