"""The gateway's single AsyncOpenAI client.

Every provider call goes through :func:`get_async_openai_client` so the key,
timeout and retry policy come from the gateway settings in one place.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache

from openai import AsyncOpenAI

from src.core.errors import ConfigurationError

from .config import settings

logger = logging.getLogger(__name__)

KEY_PREFIX = "sk-"
MIN_KEY_LENGTH = 21


class OpenAIClientError(ConfigurationError):
    """No usable OpenAI key; the gateway cannot reach the backend."""


def resolve_api_key() -> tuple[str, str]:
    """Return ``(key, source)``.

    Settings win over the raw environment so a project ``.env`` is never
    shadowed by a stale shell export.  Nothing is written back to
    ``os.environ``.
    """
    if settings.openai_api_key:
        return settings.openai_api_key, "settings"

    env_key = os.environ.get("OPENAI_API_KEY")
    if env_key:
        return env_key, "environment"

    raise OpenAIClientError(
        "OPENAI_API_KEY is not set (checked gateway settings, .env and the process environment)"
    )


def get_openai_api_key() -> str:
    key, source = resolve_api_key()
    logger.debug("Using OpenAI API key from %s", source)
    return key


def validate_api_key() -> bool:
    """Cheap shape check; the backend is the real judge of a key."""
    try:
        key = get_openai_api_key()
    except OpenAIClientError:
        return False
    return key.startswith(KEY_PREFIX) and len(key) >= MIN_KEY_LENGTH


@lru_cache(maxsize=1)
def get_async_openai_client() -> AsyncOpenAI:
    """Build (once) the client shared by all provider calls.

    Raises:
        OpenAIClientError: If no API key is configured
    """
    client = AsyncOpenAI(
        api_key=get_openai_api_key(),
        timeout=settings.backend_timeout,
        max_retries=0,  # RetryableProvider owns retries
    )
    logger.info("Initialized AsyncOpenAI client (timeout %.0fs)", settings.backend_timeout)
    return client
