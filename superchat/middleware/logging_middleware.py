"""
Request logging middleware.

Pure ASGI (not BaseHTTPMiddleware) so streamed chat responses pass through
untouched. Logs method, path, status and duration for every request. Request
bodies are logged at DEBUG with credentials masked; streamed response bodies
are never buffered.
"""

import json
import logging
import time
from typing import List, Optional
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..core.logging_config import filter_sensitive_data, truncate_large_data

logger = logging.getLogger(__name__)

MAX_LOGGED_BODY = 2000


def _sanitize_body(body: bytes) -> str:
    """Decode a request body for logging, masking sensitive JSON fields."""
    text = body.decode("utf-8", errors="ignore")
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        return truncate_large_data(text, max_length=MAX_LOGGED_BODY)
    return truncate_large_data(
        json.dumps(filter_sensitive_data(payload), ensure_ascii=False),
        max_length=MAX_LOGGED_BODY,
    )


class RequestLoggingMiddleware:
    """Logs one line per HTTP request."""

    def __init__(self, app: ASGIApp, exclude_paths: Optional[List[str]] = None):
        """
        Args:
            app: The ASGI application
            exclude_paths: Paths that are passed through without logging
        """
        self.app = app
        self.exclude_paths = exclude_paths or ["/health", "/"]

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope.get("path", "") in self.exclude_paths:
            await self.app(scope, receive, send)
            return

        start_time = time.time()
        method = scope.get("method", "UNKNOWN")
        path = scope.get("path", "")
        status_code = 0
        streaming = False
        body_chunks: List[bytes] = []

        async def logging_receive() -> Message:
            message = await receive()
            if message["type"] == "http.request":
                body_chunks.append(message.get("body", b""))
            return message

        async def logging_send(message: Message) -> None:
            nonlocal status_code, streaming
            if message["type"] == "http.response.start":
                status_code = message.get("status", 0)
                for key, value in message.get("headers", []):
                    if key.lower() == b"content-type" and value.startswith(b"text/event-stream"):
                        streaming = True
            await send(message)

        try:
            await self.app(scope, logging_receive, logging_send)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"Request failed: {method} {path} - {e}",
                exc_info=True,
                extra={"extra_fields": {"method": method, "path": path, "duration_ms": duration_ms}}
            )
            raise

        duration_ms = (time.time() - start_time) * 1000
        body = b"".join(body_chunks)
        if body and logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"Request body: {_sanitize_body(body)}")

        if status_code < 400:
            log_level = logging.INFO
        elif status_code < 500:
            log_level = logging.WARNING
        else:
            log_level = logging.ERROR

        logger.log(
            log_level,
            f"Request completed: {method} {path} - {status_code} ({duration_ms:.2f}ms)",
            extra={"extra_fields": {
                "method": method,
                "path": path,
                "status_code": status_code,
                "duration_ms": duration_ms,
                "streaming": streaming,
            }}
        )
