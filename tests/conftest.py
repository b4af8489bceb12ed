"""
Shared test fixtures and configuration.
"""

import asyncio
import pytest
import os
from typing import List, Optional

# Set test environment variables before importing app modules
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("STORAGE_TYPE", "memory")
os.environ.setdefault("LOCAL_STORAGE_PATH", "/tmp/superchat_test_data")
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("REFRESH_MODELS_ON_STARTUP", "false")

from superchat.core.session_store import SessionStore
from superchat.core.titles import TitleSynthesizer
from superchat.llm.base import CompletionProvider, CompletionRequest, CompletionResponse
from superchat.storage import MemoryStorage
from superchat.utils import maybe_await


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


class FakeCompletionClient(CompletionProvider):
    """Scripted completion service: streams ``deltas`` then fails with ``error`` if set.

    ``error_delay`` holds the stream open for that many seconds before the error.
    """

    def __init__(self, deltas: Optional[List[str]] = None, error: Optional[Exception] = None,
                 models: Optional[List[str]] = None, title: str = "TCP Handshake Basics"):
        super().__init__(base_url="http://fake.test/v1")
        self.deltas = deltas if deltas is not None else ["Hello", " there"]
        self.error = error
        self.error_delay = 0.0
        self.models = models if models is not None else ["deepseek-r1-0528", "gpt-4o-mini"]
        self.models_error: Optional[Exception] = None
        self.title = title
        self.stream_requests: List[CompletionRequest] = []
        self.complete_requests: List[CompletionRequest] = []
        self.credentials_seen: List[str] = []

    async def complete(self, request, credential=None):
        self.complete_requests.append(request)
        return CompletionResponse(content=self.title, model=request.model)

    async def iter_deltas(self, request):
        self.stream_requests.append(request)
        self.credentials_seen.append(self.credential)
        for delta in self.deltas:
            yield delta
        if self.error is not None:
            if self.error_delay:
                await asyncio.sleep(self.error_delay)
            raise self.error

    async def stream_complete(self, request, on_delta, on_error, on_done):
        try:
            async for delta in self.iter_deltas(request):
                await maybe_await(on_delta(delta))
        except Exception as e:
            await maybe_await(on_error(e))
            return
        await maybe_await(on_done())

    async def list_models(self):
        if self.models_error is not None:
            raise self.models_error
        return list(self.models)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def fake_client():
    return FakeCompletionClient()


@pytest.fixture
def store(storage, clock):
    """Session store with short debounce windows and no title synthesis."""
    return SessionStore(storage, autosave_debounce_ms=10, clock=clock)


@pytest.fixture
def titled_store(storage, clock, fake_client):
    """Session store wired to a title synthesizer on the fake client."""
    synthesizer = TitleSynthesizer(fake_client, debounce_ms=10)
    return SessionStore(storage, title_synthesizer=synthesizer, autosave_debounce_ms=10, clock=clock)


@pytest.fixture
def make_client():
    """Factory for scripted completion clients."""
    return FakeCompletionClient
