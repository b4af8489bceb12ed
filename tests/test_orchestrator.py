"""
Unit tests for the streaming orchestrator.
"""

import pytest
from unittest.mock import AsyncMock

from superchat.core.orchestrator import StreamingOrchestrator, TurnState, describe_error
from superchat.core.session_store import SessionStore
from superchat.llm import ApiError, TransportError, ValidationError


class TestSendMessage:
    """Tests for a full turn."""

    @pytest.mark.asyncio
    async def test_successful_turn(self, store, clock, make_client):
        client = make_client(deltas=["TCP ", "uses a three-way handshake."])
        orchestrator = StreamingOrchestrator(store, client)
        seen = []

        result = await orchestrator.send_message("Explain TCP handshakes", on_delta=seen.append)

        assert result.ok
        assert result.state == TurnState.SETTLED_SUCCESS
        assert result.content == "TCP uses a three-way handshake."
        assert seen == ["TCP ", "uses a three-way handshake."]
        assert [(m.role, m.content) for m in store.messages] == [
            ("user", "Explain TCP handshakes"),
            ("assistant", "TCP uses a three-way handshake."),
        ]
        assert not store.is_streaming
        assert store.streaming_error_message == ""

        # the session record catches up once the auto-save fires
        assert store.autosave.pending
        clock.advance(1_000)
        await store.flush_save()
        session = store.get_session(result.session_id)
        assert session.title == "Explain TCP handshakes"
        assert len(session.messages) == 2

    @pytest.mark.asyncio
    async def test_deltas_grow_the_placeholder(self, store, make_client):
        client = make_client(deltas=["TCP ", "uses a three-way..."])
        orchestrator = StreamingOrchestrator(store, client)
        buffers = []

        await orchestrator.send_message(
            "  Explain TCP handshakes  ",
            on_delta=lambda delta: buffers.append([(m.role, m.content) for m in store.messages]),
        )

        assert buffers == [
            [("user", "Explain TCP handshakes"), ("assistant", "TCP ")],
            [("user", "Explain TCP handshakes"), ("assistant", "TCP uses a three-way...")],
        ]
        assert orchestrator.state == TurnState.SETTLED_SUCCESS

    @pytest.mark.asyncio
    async def test_request_excludes_placeholder(self, store, make_client):
        client = make_client()
        orchestrator = StreamingOrchestrator(store, client)

        await orchestrator.send_message("Hello")

        request = client.stream_requests[0]
        assert [(m.role, m.content) for m in request.messages] == [("user", "Hello")]
        assert request.model == "deepseek-r1-0528"
        assert request.temperature == 0.7

    @pytest.mark.asyncio
    async def test_creates_session_when_none_is_current(self, store, make_client):
        orchestrator = StreamingOrchestrator(store, make_client())
        assert store.current_session_id is None

        result = await orchestrator.send_message("Hi")

        assert store.current_session_id == result.session_id
        assert len(store.chat_sessions) == 1

    @pytest.mark.asyncio
    async def test_continues_current_session(self, store, make_client):
        orchestrator = StreamingOrchestrator(store, make_client(deltas=["One"]))
        first = await orchestrator.send_message("First question")
        second = await orchestrator.send_message("Second question")

        assert first.session_id == second.session_id
        assert len(store.messages) == 4
        history = orchestrator.client.stream_requests[1].messages
        assert [m.content for m in history] == ["First question", "One", "Second question"]

    @pytest.mark.asyncio
    async def test_system_prompt_is_prepended(self, store, make_client):
        client = make_client()
        orchestrator = StreamingOrchestrator(store, client)
        await store.set_system_prompt("  Answer briefly.  ")

        await orchestrator.send_message("Hello")

        messages = client.stream_requests[0].messages
        assert messages[0].role == "system"
        assert messages[0].content == "Answer briefly."
        assert [m.role for m in store.messages] == ["user", "assistant"]

    @pytest.mark.asyncio
    async def test_credential_is_passed_to_client(self, store, make_client):
        client = make_client()
        orchestrator = StreamingOrchestrator(store, client)

        await orchestrator.send_message("Hello")
        await store.set_credential("tok-123")
        await orchestrator.send_message("Again")

        assert client.credentials_seen == ["unused", "tok-123"]

    @pytest.mark.asyncio
    async def test_sampling_parameters(self, store, make_client):
        client = make_client()
        orchestrator = StreamingOrchestrator(store, client, max_tokens=256, top_p=0.9)
        await store.set_temperature(1.3)

        await orchestrator.send_message("Hello")

        request = client.stream_requests[0]
        assert request.temperature == 1.3
        assert request.max_tokens == 256
        assert request.top_p == 0.9


class TestFailedTurn:
    """Tests for error rollback."""

    @pytest.mark.asyncio
    async def test_error_after_partial_answer(self, store, make_client):
        client = make_client(deltas=["TCP "], error=TransportError("connection reset"))
        notifier = AsyncMock()
        orchestrator = StreamingOrchestrator(store, client, notifier=notifier)

        result = await orchestrator.send_message("Explain TCP handshakes")

        assert not result.ok
        assert result.state == TurnState.SETTLED_ERROR
        assert isinstance(result.error, TransportError)
        assert [(m.role, m.content) for m in store.messages] == [("user", "Explain TCP handshakes")]
        assert store.streaming_error_message == "Error sending message: connection reset"
        assert not store.is_streaming
        assert store.autosave.pending
        notifier.assert_awaited_once_with("Error sending message: connection reset")

    @pytest.mark.asyncio
    async def test_api_error_before_first_token(self, store, make_client):
        client = make_client(deltas=[], error=ApiError(401, "Invalid token"))
        orchestrator = StreamingOrchestrator(store, client)

        result = await orchestrator.send_message("Hi")

        assert result.state == TurnState.SETTLED_ERROR
        assert store.streaming_error_message == "Error sending message: 401 - Invalid token"
        assert [m.role for m in store.messages] == ["user"]

    @pytest.mark.asyncio
    async def test_next_turn_clears_error(self, store, make_client):
        client = make_client(deltas=[], error=ApiError(500, "boom"))
        orchestrator = StreamingOrchestrator(store, client)
        await orchestrator.send_message("Hi")

        client.error = None
        client.deltas = ["Hello"]
        result = await orchestrator.send_message("Hi again")

        assert result.ok
        assert store.streaming_error_message == ""

    @pytest.mark.asyncio
    async def test_notifier_failure_is_contained(self, store, make_client):
        client = make_client(deltas=[], error=TransportError("down"))
        notifier = AsyncMock(side_effect=RuntimeError("toast failed"))
        orchestrator = StreamingOrchestrator(store, client, notifier=notifier)

        result = await orchestrator.send_message("Hi")

        assert result.state == TurnState.SETTLED_ERROR

    @pytest.mark.asyncio
    async def test_failed_turn_is_saved_without_partial_answer(self, store, storage, clock, make_client):
        client = make_client(deltas=["TCP uses a three-way handshake."])
        orchestrator = StreamingOrchestrator(store, client)
        first = await orchestrator.send_message("Explain TCP handshakes")
        assert store.autosave.pending

        # the second turn starts inside the first turn's auto-save window and
        # stays open past it before failing
        client.deltas = ["partial "]
        client.error = TransportError("connection reset")
        client.error_delay = 0.05
        clock.advance(1_000)
        result = await orchestrator.send_message("And UDP?")
        assert result.state == TurnState.SETTLED_ERROR
        await store.flush_save()

        reloaded = SessionStore(storage)
        await reloaded.hydrate()
        session = reloaded.get_session(first.session_id)
        assert [(m.role, m.content) for m in session.messages] == [
            ("user", "Explain TCP handshakes"),
            ("assistant", "TCP uses a three-way handshake."),
            ("user", "And UDP?"),
        ]
        assert [m.content for m in reloaded.messages] == [m.content for m in session.messages]

    @pytest.mark.asyncio
    async def test_no_save_fires_while_streaming(self, store, make_client):
        client = make_client(deltas=["One"])
        orchestrator = StreamingOrchestrator(store, client)
        await orchestrator.send_message("First question")
        saves = []

        def record_pending(delta):
            saves.append(store.autosave.pending)

        client.deltas = ["Two", " more"]
        await orchestrator.send_message("Second question", on_delta=record_pending)

        assert saves == [False, False]
        assert store.autosave.pending


class TestGuards:
    """Tests for rejected turns."""

    @pytest.mark.asyncio
    async def test_blank_input(self, store, make_client):
        client = make_client()
        orchestrator = StreamingOrchestrator(store, client)

        with pytest.raises(ValidationError):
            await orchestrator.send_message("   ")

        assert store.chat_sessions == []
        assert client.stream_requests == []

    @pytest.mark.asyncio
    async def test_turn_already_streaming(self, store, make_client):
        client = make_client()
        orchestrator = StreamingOrchestrator(store, client)
        store.set_streaming(True)

        with pytest.raises(ValidationError):
            await orchestrator.send_message("Hello")

        assert store.messages == []
        assert client.stream_requests == []

    @pytest.mark.asyncio
    async def test_streaming_flag_during_turn(self, store, make_client):
        flags = []
        client = make_client(deltas=["a", "b"])
        orchestrator = StreamingOrchestrator(store, client)

        await orchestrator.send_message("Hi", on_delta=lambda d: flags.append(store.is_streaming))

        assert flags == [True, True]
        assert not store.is_streaming


def test_describe_error():
    assert describe_error(ApiError(429, "slow down")) == "Error sending message: 429 - slow down"
    assert describe_error(TransportError("timed out")) == "Error sending message: timed out"
