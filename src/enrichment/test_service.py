"""Unit tests for ModelExtractor."""

from unittest.mock import AsyncMock, Mock

import pytest
from pydantic_ai import Agent
from pydantic_ai.agent import AgentRunResult
from tenacity import wait_none

from config import Settings
from enrichment import ExtractedItem, ModelExtractor, ensure_title
from errors import TransientIOError, ValidationError


def create_mock_agent(return_value=None, side_effect=None):
    """Helper to create a mocked Agent.run result."""
    mock = Mock()
    mock.run = AsyncMock(return_value=AgentRunResult(output=return_value), side_effect=side_effect)
    return mock


@pytest.fixture
def extractor():
    return ModelExtractor(Settings(model_name="test-model"), attempts=2, wait=wait_none())


class TestExtract:
    @pytest.mark.asyncio
    async def test_returns_structured_output(self, extractor: ModelExtractor, monkeypatch: pytest.MonkeyPatch):
        parsed = ExtractedItem(title="🍽️ Lunch", start_time="13:00", end_time="14:00", category="Food")
        mock_agent = create_mock_agent(parsed)
        monkeypatch.setattr(Agent, "__init__", lambda *args, **kwargs: None)
        monkeypatch.setattr(Agent, "run", mock_agent.run)

        result = await extractor.extract("lunch 1pm")

        assert result.title == "🍽️ Lunch"
        assert result.category == "Food"

    @pytest.mark.asyncio
    async def test_identical_text_is_cached(self, extractor: ModelExtractor, monkeypatch: pytest.MonkeyPatch):
        mock_agent = create_mock_agent(ExtractedItem(title="Museum"))
        monkeypatch.setattr(Agent, "__init__", lambda *args, **kwargs: None)
        monkeypatch.setattr(Agent, "run", mock_agent.run)

        await extractor.extract("museum")
        await extractor.extract("museum")
        await extractor.extract("museum", file_context="ticket")

        assert mock_agent.run.await_count == 2

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self, extractor: ModelExtractor, monkeypatch: pytest.MonkeyPatch):
        mock_agent = create_mock_agent(
            side_effect=[RuntimeError("overloaded"), AgentRunResult(output=ExtractedItem(title="Tour"))]
        )
        monkeypatch.setattr(Agent, "__init__", lambda *args, **kwargs: None)
        monkeypatch.setattr(Agent, "run", mock_agent.run)

        result = await extractor.extract("walking tour")

        assert result.title == "Tour"
        assert mock_agent.run.await_count == 2

    @pytest.mark.asyncio
    async def test_persistent_failure_is_transient_error(
        self, extractor: ModelExtractor, monkeypatch: pytest.MonkeyPatch
    ):
        mock_agent = create_mock_agent(side_effect=RuntimeError("overloaded"))
        monkeypatch.setattr(Agent, "__init__", lambda *args, **kwargs: None)
        monkeypatch.setattr(Agent, "run", mock_agent.run)

        with pytest.raises(TransientIOError):
            await extractor.extract("walking tour")
        assert mock_agent.run.await_count == 2


class TestExtractFromAttachment:
    @pytest.mark.asyncio
    async def test_rejects_non_images_before_calling_model(
        self, extractor: ModelExtractor, monkeypatch: pytest.MonkeyPatch
    ):
        mock_agent = create_mock_agent(ExtractedItem(title="x"))
        monkeypatch.setattr(Agent, "__init__", lambda *args, **kwargs: None)
        monkeypatch.setattr(Agent, "run", mock_agent.run)

        with pytest.raises(ValidationError):
            await extractor.extract_from_attachment(b"%PDF", "application/pdf")
        mock_agent.run.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_title_falls_back_to_description(
        self, extractor: ModelExtractor, monkeypatch: pytest.MonkeyPatch
    ):
        mock_agent = create_mock_agent(
            ExtractedItem(title="", description="Hotel Lisboa\nCheck-in 15:00", category="Accommodation")
        )
        monkeypatch.setattr(Agent, "__init__", lambda *args, **kwargs: None)
        monkeypatch.setattr(Agent, "run", mock_agent.run)

        text = await extractor.extract_from_attachment(b"\x89PNG", "image/png")

        assert ExtractedItem.model_validate_json(text).title == "Hotel Lisboa"


class TestEnsureTitle:
    def test_category_fallback(self):
        assert ensure_title(ExtractedItem(title=" ", category="Food")).title == "Food Item"

    def test_keeps_existing_title(self):
        assert ensure_title(ExtractedItem(title="Dinner")).title == "Dinner"
