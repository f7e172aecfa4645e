"""
Relevance Selection Unit Tests

Verifies prompt construction, oracle-reply parsing and id resolution
with a scripted oracle and a mocked OpenAI client.

No external services required.
"""

from __future__ import annotations

import uuid
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from openai import OpenAIError

from lectern.core.exceptions import SelectionError
from lectern.models.schemas import ChunkView
from lectern.services.oracle import (
    END_MARKER,
    START_MARKER,
    OpenAISelectionOracle,
    parse_selection,
)
from lectern.services.selection import RelevanceSelector, build_selection_prompt

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class ScriptedOracle:
    """Returns canned ids and records every prompt it receives."""

    def __init__(self, ids: list[str] | None = None, error: Exception | None = None) -> None:
        self.ids = ids or []
        self.error = error
        self.prompts: list[str] = []

    async def select_ids(self, prompt: str) -> list[str]:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return list(self.ids)


def _chunk(content: str, filename: str = "science.pdf", index: int = 0, total: int = 2) -> ChunkView:
    return ChunkView(
        id=str(uuid.uuid4()),
        document_id=uuid.uuid4(),
        chunk_index=index,
        content=content,
        filename=filename,
        chunk_number=index + 1,
        total_chunks=total,
    )


def _completion(content: str | None) -> SimpleNamespace:
    """Shape of an openai ChatCompletion, reduced to what the oracle reads."""
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


@pytest.fixture
def chunks() -> list[ChunkView]:
    return [
        _chunk("Photosynthesis converts light into energy.", index=0),
        _chunk("Mitochondria are the powerhouse of the cell.", index=1),
        _chunk("Fractions represent parts of a whole.", filename="maths.txt", total=1),
    ]


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------


class TestSelectionPrompt:
    """Tests for the enumerated-chunk prompt."""

    def test_lists_every_chunk_with_position(self, chunks: list[ChunkView]) -> None:
        prompt = build_selection_prompt("What is photosynthesis?", chunks)

        assert "User Query: What is photosynthesis?" in prompt
        for chunk in chunks:
            assert f"ID: {chunk.id}" in prompt
            assert f"Content: {chunk.content}" in prompt
        assert "From: science.pdf (Part 2 of 2)" in prompt
        assert prompt.count("---") == len(chunks)


# ---------------------------------------------------------------------------
# Reply parsing
# ---------------------------------------------------------------------------


class TestParseSelection:
    """Tests for marker-delimited id extraction."""

    def test_plain_ids(self) -> None:
        text = f"Sure.\n{START_MARKER}\nabc\ndef\n{END_MARKER}\nDone."
        assert parse_selection(text) == ["abc", "def"]

    def test_bracketed_ids_and_blank_lines(self) -> None:
        text = f"{START_MARKER}\n  [abc]  \n\n[def]\n{END_MARKER}"
        assert parse_selection(text) == ["abc", "def"]

    def test_empty_selection(self) -> None:
        assert parse_selection(f"{START_MARKER}\n{END_MARKER}") == []

    @pytest.mark.parametrize(
        "text",
        [
            "abc\ndef",
            f"{START_MARKER}\nabc",
            f"abc\n{END_MARKER}",
            f"{END_MARKER}\nabc\n{START_MARKER}",
            "",
        ],
    )
    def test_malformed_reply_yields_nothing(self, text: str) -> None:
        assert parse_selection(text) == []


# ---------------------------------------------------------------------------
# Selector
# ---------------------------------------------------------------------------


class TestRelevanceSelector:
    """Tests for id resolution against the reference chunks."""

    @pytest.mark.asyncio
    async def test_no_chunks_skips_oracle(self) -> None:
        oracle = ScriptedOracle(["anything"])
        selector = RelevanceSelector(oracle)

        assert await selector.select("query", []) == []
        assert oracle.prompts == []

    @pytest.mark.asyncio
    async def test_returns_chunks_in_oracle_order(self, chunks: list[ChunkView]) -> None:
        oracle = ScriptedOracle([chunks[2].id, chunks[0].id])
        selected = await RelevanceSelector(oracle).select("query", chunks)

        assert selected == [chunks[2], chunks[0]]
        assert len(oracle.prompts) == 1

    @pytest.mark.asyncio
    async def test_unknown_and_repeated_ids_dropped(self, chunks: list[ChunkView]) -> None:
        oracle = ScriptedOracle(["not-a-chunk", chunks[1].id, chunks[1].id])
        selected = await RelevanceSelector(oracle).select("query", chunks)

        assert selected == [chunks[1]]

    @pytest.mark.asyncio
    async def test_empty_reply_selects_nothing(self, chunks: list[ChunkView]) -> None:
        assert await RelevanceSelector(ScriptedOracle([])).select("query", chunks) == []

    @pytest.mark.asyncio
    async def test_oracle_failure_propagates(self, chunks: list[ChunkView]) -> None:
        oracle = ScriptedOracle(error=SelectionError("down"))
        with pytest.raises(SelectionError):
            await RelevanceSelector(oracle).select("query", chunks)


# ---------------------------------------------------------------------------
# OpenAI oracle
# ---------------------------------------------------------------------------


class TestOpenAISelectionOracle:
    """Tests for the OpenAI adapter with a mocked client."""

    @staticmethod
    def _client(create: AsyncMock) -> MagicMock:
        client = MagicMock()
        client.chat.completions.create = create
        return client

    def test_client_built_without_retries(self) -> None:
        with patch("lectern.services.oracle.AsyncOpenAI") as MockClient:
            OpenAISelectionOracle(api_key="sk-test", model="gpt-test", timeout=12.5)

        MockClient.assert_called_once_with(api_key="sk-test", timeout=12.5, max_retries=0)

    @pytest.mark.asyncio
    async def test_sends_deterministic_request(self) -> None:
        create = AsyncMock(return_value=_completion(f"{START_MARKER}\nid-1\n{END_MARKER}"))
        oracle = OpenAISelectionOracle(api_key="test", model="test-model", client=self._client(create))

        ids = await oracle.select_ids("PROMPT BODY")

        assert ids == ["id-1"]
        kwargs = create.await_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["temperature"] == 0.0
        assert kwargs["messages"][0]["role"] == "system"
        assert kwargs["messages"][1]["role"] == "user"
        assert kwargs["messages"][1]["content"].startswith("PROMPT BODY")
        assert START_MARKER in kwargs["messages"][1]["content"]

    @pytest.mark.asyncio
    async def test_missing_markers_degrade_to_empty(self) -> None:
        create = AsyncMock(return_value=_completion("I think id-1 is relevant."))
        oracle = OpenAISelectionOracle(api_key="test", client=self._client(create))

        assert await oracle.select_ids("prompt") == []

    @pytest.mark.asyncio
    async def test_empty_content_degrades_to_empty(self) -> None:
        create = AsyncMock(return_value=_completion(None))
        oracle = OpenAISelectionOracle(api_key="test", client=self._client(create))

        assert await oracle.select_ids("prompt") == []

    @pytest.mark.asyncio
    async def test_api_error_raises_selection_error(self) -> None:
        create = AsyncMock(side_effect=OpenAIError("quota exceeded"))
        oracle = OpenAISelectionOracle(api_key="test", client=self._client(create))

        with pytest.raises(SelectionError):
            await oracle.select_ids("prompt")

    @pytest.mark.asyncio
    async def test_selector_end_to_end_with_oracle(self, chunks: list[ChunkView]) -> None:
        reply = f"{START_MARKER}\n[{chunks[0].id}]\n[bogus]\n{END_MARKER}"
        create = AsyncMock(return_value=_completion(reply))
        oracle = OpenAISelectionOracle(api_key="test", client=self._client(create))

        selected = await RelevanceSelector(oracle).select("photosynthesis", chunks)

        assert selected == [chunks[0]]
