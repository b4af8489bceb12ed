"""
OpenAI-compatible completion client (llm7.io by default).
Supports single-shot and streamed chat completions plus model listing.
"""

import httpx
import json
import logging
import time
from typing import Optional, List, Dict, Any, AsyncGenerator

from .base import (
    CompletionProvider,
    CompletionRequest,
    CompletionResponse,
    DeltaCallback,
    DoneCallback,
    ErrorCallback,
)
from .errors import ApiError, ParseError, TransportError
from .sse import SSELineBuffer, extract_delta, is_done, parse_event
from ..utils import maybe_await

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.llm7.io/v1"


class CompletionClient(CompletionProvider):
    """
    Client for an OpenAI-style ``/chat/completions`` endpoint.

    A fresh ``httpx.AsyncClient`` is opened per call; ``transport`` lets
    callers substitute the network layer (e.g. ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        credential: Optional[str] = None,
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        log_calls: bool = True,
    ):
        super().__init__(base_url, credential, timeout)
        self._transport = transport
        # usage and timing records for successful calls; failures always log
        self.log_calls = log_calls

    def _get_headers(self, credential: Optional[str] = None) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {credential or self.credential}",
            "Content-Type": "application/json",
        }

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    @staticmethod
    def _api_error(response: httpx.Response) -> ApiError:
        """Build an ApiError from an already-read error response."""
        message = response.reason_phrase
        try:
            body = response.json()
            if isinstance(body, dict):
                error = body.get("error")
                if isinstance(error, dict) and error.get("message"):
                    message = error["message"]
                elif isinstance(error, str) and error:
                    message = error
        except (json.JSONDecodeError, UnicodeDecodeError):
            pass
        return ApiError(response.status_code, message or f"HTTP {response.status_code}")

    async def complete(self, request: CompletionRequest,
                       credential: Optional[str] = None) -> CompletionResponse:
        """Send a request to the Chat Completions endpoint with streaming disabled."""
        start_time = time.time()
        url = f"{self.base_url}/chat/completions"
        payload = request.to_payload(stream=False)

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                f"Completion call starting: model={request.model}, "
                f"temperature={request.temperature}, {len(request.messages)} messages"
            )

        try:
            async with self._http_client() as client:
                resp = await client.post(url, json=payload, headers=self._get_headers(credential))
        except httpx.RequestError as e:
            logger.error(
                f"Completion call failed: {e}",
                extra={"extra_fields": {
                    "model": request.model,
                    "duration_ms": round((time.time() - start_time) * 1000, 2),
                    "error": str(e),
                }}
            )
            raise TransportError(f"Could not reach completion service: {e}") from e

        if resp.is_error:
            error = self._api_error(resp)
            logger.error(
                f"Completion call rejected: {error}",
                extra={"extra_fields": {"model": request.model, "status": resp.status_code}}
            )
            raise error

        try:
            data = resp.json()
            choice = data["choices"][0]
            content = choice["message"].get("content") or ""
        except (json.JSONDecodeError, KeyError, IndexError, TypeError, AttributeError) as e:
            raise ParseError(f"Unexpected completion response structure: {e}") from e

        usage = data.get("usage") or {}
        duration_ms = (time.time() - start_time) * 1000
        if self.log_calls:
            logger.info(
                "Completion call completed",
                extra={"extra_fields": {
                    "model": data.get("model", request.model),
                    "prompt_tokens": usage.get("prompt_tokens", 0),
                    "completion_tokens": usage.get("completion_tokens", 0),
                    "total_tokens": usage.get("total_tokens", 0),
                    "duration_ms": round(duration_ms, 2),
                }}
            )

        return CompletionResponse(
            content=content,
            model=data.get("model", request.model),
            usage=usage,
            finish_reason=choice.get("finish_reason"),
            raw=data,
        )

    def _decode_line(self, line: str) -> Optional[str]:
        """Turn one event line into a delta; malformed events are logged and dropped."""
        try:
            event = parse_event(line)
        except ParseError as e:
            logger.warning(
                f"Skipping malformed stream event: {e}",
                extra={"extra_fields": {"line": line[:200]}}
            )
            return None
        if event is None:
            return None
        return extract_delta(event)

    async def iter_deltas(self, request: CompletionRequest) -> AsyncGenerator[str, None]:
        """Stream chat completion deltas from the Chat Completions endpoint."""
        start_time = time.time()
        url = f"{self.base_url}/chat/completions"
        payload = request.to_payload(stream=True)
        splitter = SSELineBuffer()
        delivered = 0
        content_length = 0
        finished = False

        logger.debug(f"Completion stream starting: model={request.model}, "
                     f"{len(request.messages)} messages")

        try:
            async with self._http_client() as client:
                async with client.stream("POST", url, json=payload, headers=self._get_headers()) as response:
                    if response.is_error:
                        await response.aread()
                        raise self._api_error(response)

                    async for chunk in response.aiter_bytes():
                        for line in splitter.feed(chunk):
                            if is_done(line):
                                finished = True
                                break
                            delta = self._decode_line(line)
                            if delta:
                                delivered += 1
                                content_length += len(delta)
                                yield delta
                        if finished:
                            break

                    if not finished:
                        for line in splitter.flush():
                            if is_done(line):
                                break
                            delta = self._decode_line(line)
                            if delta:
                                delivered += 1
                                content_length += len(delta)
                                yield delta
        except httpx.RequestError as e:
            logger.error(
                f"Completion stream failed: {e}",
                extra={"extra_fields": {
                    "model": request.model,
                    "deltas_delivered": delivered,
                    "duration_ms": round((time.time() - start_time) * 1000, 2),
                }}
            )
            raise TransportError(f"Stream interrupted: {e}") from e

        if self.log_calls:
            logger.info(
                "Completion stream completed",
                extra={"extra_fields": {
                    "model": request.model,
                    "deltas_delivered": delivered,
                    "content_length": content_length,
                    "duration_ms": round((time.time() - start_time) * 1000, 2),
                }}
            )

    async def stream_complete(
        self,
        request: CompletionRequest,
        on_delta: DeltaCallback,
        on_error: ErrorCallback,
        on_done: DoneCallback,
    ) -> None:
        try:
            async for delta in self.iter_deltas(request):
                await maybe_await(on_delta(delta))
        except Exception as e:
            await maybe_await(on_error(e))
            return
        await maybe_await(on_done())

    async def list_models(self) -> List[str]:
        """Fetch model identifiers from ``GET /models``."""
        url = f"{self.base_url}/models"
        try:
            async with self._http_client() as client:
                resp = await client.get(url, headers={"Authorization": f"Bearer {self.credential}"})
        except httpx.RequestError as e:
            logger.error(f"Error fetching models: {e}")
            raise TransportError(f"Could not reach completion service: {e}") from e

        if resp.is_error:
            error = self._api_error(resp)
            logger.error(f"Error fetching models: {error}")
            raise error

        try:
            data = resp.json()
        except json.JSONDecodeError as e:
            raise ParseError("Invalid response format") from e

        # llm7.io answers with a bare array; OpenAI wraps it in {"data": [...]}
        if isinstance(data, dict) and isinstance(data.get("data"), list):
            data = data["data"]
        if not isinstance(data, list):
            raise ParseError("Invalid response format")

        models = [m.get("id") for m in data if isinstance(m, dict)]
        models = [m for m in models if m]
        logger.info(f"Loaded {len(models)} models from {self.base_url}")
        return models
