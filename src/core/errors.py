"""Error taxonomy shared by the gateway and the reader.

Every failure that crosses a collaborator boundary ends up as one of four
kinds.  Each kind carries a stable, user-facing message; the raw collaborator
text is kept on the exception for logging but is never the only thing shown
to a user for configuration problems.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import httpx


class TapReadError(Exception):
    """Base class for classified TapRead failures."""

    kind: str = "service"
    retryable: bool = False
    status_code: int = 502
    default_user_message: str = "Something went wrong, please try again."

    def __init__(self, message: str | None = None, *, user_message: str | None = None):
        self.message = message or self.default_user_message
        self.user_message = user_message or self.default_user_message
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        """Serialise for an HTTP error body (``{"detail": ...}``)."""
        return {
            "kind": self.kind,
            "message": self.message,
            "user_message": self.user_message,
            "retryable": self.retryable,
        }


class ConfigurationError(TapReadError):
    """A required credential or setting is missing."""

    kind = "configuration"
    status_code = 503
    default_user_message = (
        "Configuration error: no API key is configured. "
        "Set OPENAI_API_KEY for the gateway and restart it."
    )

    def __init__(self, message: str | None = None, *, user_message: str | None = None):
        # Configuration problems always surface the stable message.
        super().__init__(message)


class NetworkError(TapReadError):
    """A collaborator could not be reached or did not answer in time."""

    kind = "network"
    retryable = True
    status_code = 504
    default_user_message = "Could not reach the service. Check your connection and try again."


class ServiceError(TapReadError):
    """A collaborator answered with a failure or an unusable payload."""

    kind = "service"
    status_code = 502
    default_user_message = "The service could not process this request. Try another region or image."


class InputError(TapReadError):
    """Caller-side invalid input; never forwarded to a collaborator."""

    kind = "input"
    status_code = 400
    default_user_message = "The request was invalid."


ERROR_KINDS: dict[str, type[TapReadError]] = {
    cls.kind: cls for cls in (ConfigurationError, NetworkError, ServiceError, InputError)
}

_STATUS_FALLBACK: dict[int, type[TapReadError]] = {
    400: InputError,
    422: InputError,
    503: ConfigurationError,
    504: NetworkError,
}


def classify_error(exc: BaseException) -> TapReadError:
    """Map an arbitrary exception onto the TapRead error taxonomy."""
    if isinstance(exc, TapReadError):
        return exc
    if isinstance(exc, (httpx.TimeoutException, asyncio.TimeoutError)):
        return NetworkError(f"Request timed out: {exc!s}" if str(exc) else "Request timed out")
    if isinstance(exc, (httpx.TransportError, ConnectionError, OSError)):
        return NetworkError(str(exc) or type(exc).__name__)
    if isinstance(exc, ValueError):
        return ServiceError(str(exc) or "Unparseable response")
    return ServiceError(str(exc) or type(exc).__name__)


def error_from_payload(status_code: int, payload: Any) -> TapReadError:
    """Rebuild a typed error from a gateway error response body."""
    detail = payload.get("detail") if isinstance(payload, dict) else None

    if isinstance(detail, dict):
        error_cls = ERROR_KINDS.get(detail.get("kind", ""))
        if error_cls is not None:
            return error_cls(detail.get("message"), user_message=detail.get("user_message"))
        message = detail.get("message") or json.dumps(detail)
    elif isinstance(detail, str):
        message = detail
    else:
        message = f"HTTP {status_code}"

    error_cls = _STATUS_FALLBACK.get(status_code, ServiceError)
    return error_cls(message)
