"""
Unit tests for the model catalog and history date labels.
"""

from datetime import datetime

import pytest

from superchat.core.model_catalog import group_models, refresh_models, vendor_group
from superchat.llm import ApiError
from superchat.utils import format_session_date


def _ms(*args):
    return int(datetime(*args).timestamp() * 1000)


class TestGrouping:
    """Tests for vendor grouping."""

    @pytest.mark.parametrize("model,group", [
        ("gpt-4o-mini", "OpenAI GPT"),
        ("openai-gpt-oss", "OpenAI GPT"),
        ("deepseek-r1-0528", "DeepSeek"),
        ("mistral-small", "Mistral"),
        ("open-mixtral-8x7b", "Mistral"),
        ("codestral-latest", "Mistral"),
        ("llama-3.3-70b", "Llama"),
        ("qwen2.5-coder", "Qwen"),
        ("gemini", "Google"),
        ("gemini-pro", "Other"),
        ("nova-lite", "Amazon Nova"),
        ("phi-4", "Other"),
    ])
    def test_vendor_group(self, model, group):
        assert vendor_group(model) == group

    def test_group_models(self):
        groups = group_models(["phi-4", "gpt-4o", "deepseek-v3", "gpt-4.1", "deepseek-r1-0528"])
        assert groups == {
            "OpenAI GPT": ["gpt-4.1", "gpt-4o"],
            "DeepSeek": ["deepseek-r1-0528", "deepseek-v3"],
            "Other": ["phi-4"],
        }
        assert list(groups) == ["OpenAI GPT", "DeepSeek", "Other"]

    def test_empty(self):
        assert group_models([]) == {}


class TestRefreshModels:
    """Tests for refresh_models."""

    @pytest.mark.asyncio
    async def test_updates_store(self, store, fake_client):
        await store.set_credential("tok-123")
        models = await refresh_models(store, fake_client)

        assert models == ["deepseek-r1-0528", "gpt-4o-mini"]
        assert store.available_models == models
        assert fake_client.credential == "tok-123"

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_list(self, store, fake_client):
        store.set_available_models(["gpt-4o"])
        fake_client.models_error = ApiError(500, "boom")

        with pytest.raises(ApiError):
            await refresh_models(store, fake_client)
        assert store.available_models == ["gpt-4o"]

    @pytest.mark.asyncio
    async def test_empty_result_keeps_previous_list(self, store, fake_client):
        store.set_available_models(["gpt-4o"])
        fake_client.models = []

        assert await refresh_models(store, fake_client) == ["gpt-4o"]


class TestSessionDates:
    """Tests for history date labels."""

    def test_same_day_shows_time(self):
        now = _ms(2024, 3, 14, 18, 0)
        assert format_session_date(_ms(2024, 3, 14, 9, 5), now) == "09:05"

    def test_within_a_week_shows_weekday(self):
        now = _ms(2024, 3, 14, 18, 0)
        assert format_session_date(_ms(2024, 3, 11, 12, 0), now) == "Mon"

    def test_older_shows_month_and_day(self):
        now = _ms(2024, 3, 14, 18, 0)
        assert format_session_date(_ms(2024, 2, 3, 12, 0), now) == "Feb 3"
