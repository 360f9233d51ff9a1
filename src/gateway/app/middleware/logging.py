"""Request logging for the TapRead Gateway.

Each HTTP request gets a short *request_id*, echoed back in the
``X-Request-ID`` header, so a reader's failure can be matched to the
gateway log line.  Provider calls made while serving the request are timed
with :func:`provider_call`.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextlib import contextmanager
from typing import Any, Iterator

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from src.core.errors import classify_error

logger = logging.getLogger("gateway")

REQUEST_ID_HEADER = "X-Request-ID"


class LoggingMiddleware(BaseHTTPMiddleware):
    """Tag requests with an id and log one line per response."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = uuid.uuid4().hex[:8]
        request.state.request_id = request_id

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("[request %s] %s %s crashed", request_id, request.method, request.url.path)
            raise

        response.headers[REQUEST_ID_HEADER] = request_id
        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            "[request %s] %s %s → %s (%.1f ms)",
            request_id,
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - started) * 1_000,
        )
        return response


class ProviderCall:
    """Result summary collected inside a :func:`provider_call` block."""

    def __init__(self) -> None:
        self.summary: dict[str, Any] = {}

    def result(self, **summary: Any) -> None:
        self.summary.update(summary)


@contextmanager
def provider_call(request_id: str, provider: str, operation: str, **summary: Any) -> Iterator[ProviderCall]:
    """Log a backend call on entry and exit, with its duration and outcome."""
    logger.debug("[request %s] → %s.%s %s", request_id, provider, operation, summary)
    call = ProviderCall()
    started = time.perf_counter()
    try:
        yield call
    except Exception as exc:
        logger.debug(
            "[request %s] ✗ %s.%s failed after %.0f ms (%s)",
            request_id,
            provider,
            operation,
            (time.perf_counter() - started) * 1_000,
            classify_error(exc).kind,
        )
        raise
    logger.debug(
        "[request %s] ← %s.%s %.0f ms %s",
        request_id,
        provider,
        operation,
        (time.perf_counter() - started) * 1_000,
        call.summary,
    )
