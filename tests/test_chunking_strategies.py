"""Tests for the chunking strategies and their selection."""

from __future__ import annotations

import pytest

from services.document_pipeline.chunking.ChunkingStrategy import ChunkingStrategy
from services.document_pipeline.chunking.ChunkingStrategyManager import ChunkingStrategyManager
from services.document_pipeline.chunking.OverlapChunkingStrategy import OverlapChunkingStrategy
from services.document_pipeline.chunking.SemanticChunkingStrategy import SemanticChunkingStrategy
from services.document_pipeline.chunking.SeparatorSlicerStrategy import SeparatorSlicerStrategy


def _assert_contiguous(chunks, document_id: str) -> None:
    assert [c.chunk_index for c in chunks] == list(range(len(chunks)))
    assert [c.chunk_id for c in chunks] == [f"{document_id}_chunk_{i}" for i in range(len(chunks))]
    assert all(c.document_id == document_id for c in chunks)


# ======================================================================
# Separator slicer
# ======================================================================


class TestSeparatorSlicer:
    def test_short_text_is_one_chunk(self, helper_config):
        slicer = SeparatorSlicerStrategy(helper_config, max_chunk_chars=100, min_chunk_chars=0)
        assert slicer.slice("A short paragraph.") == ["A short paragraph."]

    def test_pieces_respect_the_size_limit(self, helper_config):
        text = "\n\n".join(f"Paragraph {i}. " + "word " * 15 for i in range(20))
        slicer = SeparatorSlicerStrategy(helper_config, max_chunk_chars=120, min_chunk_chars=0)

        pieces = slicer.slice(text)

        assert len(pieces) > 1
        assert all(len(p) <= 120 for p in pieces)

    def test_no_words_are_lost(self, helper_config):
        words = [f"w{i}" for i in range(300)]
        slicer = SeparatorSlicerStrategy(helper_config, max_chunk_chars=50, min_chunk_chars=0)

        pieces = slicer.slice(" ".join(words))

        assert " ".join(pieces).split() == words

    def test_unbreakable_text_is_hard_cut(self, helper_config):
        slicer = SeparatorSlicerStrategy(helper_config, max_chunk_chars=10, min_chunk_chars=0)
        assert slicer.slice("x" * 25) == ["x" * 10, "x" * 10, "x" * 5]

    @pytest.mark.asyncio
    async def test_short_pieces_are_filtered_and_indexes_stay_contiguous(self, helper_config):
        text = "ok\n\n" + "a long enough paragraph here" + "\n\nno\n\n" + "another long enough paragraph"
        slicer = SeparatorSlicerStrategy(helper_config, max_chunk_chars=30, min_chunk_chars=10)

        chunks = await slicer.chunk_text(text, "doc")

        assert [c.text for c in chunks] == ["a long enough paragraph here", "another long enough paragraph"]
        _assert_contiguous(chunks, "doc")

    @pytest.mark.asyncio
    async def test_page_numbers_come_from_markers(self, helper_config):
        text = "--- Page 1 ---\n" + "alpha " * 10 + "\n\n--- Page 2 ---\n" + "beta " * 10
        slicer = SeparatorSlicerStrategy(helper_config, max_chunk_chars=80, min_chunk_chars=0)

        chunks = await slicer.chunk_text(text, "doc")

        assert [c.page_number for c in chunks] == [1, 2]

    @pytest.mark.asyncio
    async def test_blank_text_gives_no_chunks(self, helper_config):
        slicer = SeparatorSlicerStrategy(helper_config)
        assert await slicer.chunk_text("  \n ", "doc") == []

    def test_unknown_separator_preset_raises(self, helper_config, monkeypatch):
        monkeypatch.setenv("CHUNKING_SEPARATORS", "latex")
        with pytest.raises(ValueError, match="latex"):
            SeparatorSlicerStrategy(helper_config)

    def test_markdown_preset_splits_on_headings(self, helper_config, monkeypatch):
        monkeypatch.setenv("CHUNKING_SEPARATORS", "markdown")
        text = "# Combat\n" + "Attack rolls use a d20. " * 3 + "\n# Magic\n" + "Spells cost slots. " * 3
        slicer = SeparatorSlicerStrategy(helper_config, max_chunk_chars=100, min_chunk_chars=0)

        pieces = slicer.slice(text)

        assert pieces[0].startswith("# Combat")
        assert any(p.startswith("# Magic") for p in pieces)


# ======================================================================
# Overlap windows
# ======================================================================


class TestOverlapChunking:
    def test_windows_overlap(self, helper_config):
        strategy = OverlapChunkingStrategy(helper_config, chunk_size=10, overlap=3)
        windows = strategy.split_text("abcdefghijklmnopqrstuvwxyz")

        assert windows[0] == "abcdefghij"
        assert windows[1].startswith("hij")
        assert "".join(w[3:] if i else w for i, w in enumerate(windows)) == "abcdefghijklmnopqrstuvwxyz"

    def test_overlap_must_be_smaller_than_size(self, helper_config):
        with pytest.raises(ValueError):
            OverlapChunkingStrategy(helper_config, chunk_size=10, overlap=10)

    @pytest.mark.asyncio
    async def test_chunks_are_contiguous(self, helper_config):
        strategy = OverlapChunkingStrategy(helper_config, chunk_size=20, overlap=5)
        chunks = await strategy.chunk_text("lorem ipsum " * 20, "doc")

        assert len(chunks) > 1
        _assert_contiguous(chunks, "doc")


# ======================================================================
# Semantic chunking
# ======================================================================


class TestSemanticChunking:
    @pytest.mark.asyncio
    async def test_chunks_carry_precomputed_vectors(self, helper_config, embed_client):
        strategy = SemanticChunkingStrategy(helper_config, embed_client=embed_client, breakpoint_percentile=50)
        text = "\n".join(
            [
                "Initiative decides the order of turns in combat.",
                "Each creature rolls a d20 and adds its dexterity modifier.",
                "Spell slots recover after a long rest.",
                "Cantrips can be cast at will without slots.",
            ]
        )

        chunks = await strategy.chunk_text(text, "doc")

        assert chunks
        _assert_contiguous(chunks, "doc")
        assert all(c.vector == embed_client.vector_for(c.text) for c in chunks)
        assert " ".join(c.text for c in chunks).split() == text.split()

    @pytest.mark.asyncio
    async def test_blank_text_does_not_call_the_model(self, helper_config, embed_client):
        strategy = SemanticChunkingStrategy(helper_config, embed_client=embed_client)
        assert await strategy.chunk_text("   ", "doc") == []
        assert embed_client.calls == []


# ======================================================================
# Selection
# ======================================================================


class TestChunkingStrategyManager:
    @pytest.mark.parametrize(
        "name, expected",
        [("slicer", SeparatorSlicerStrategy), ("overlap", OverlapChunkingStrategy), ("semantic", SemanticChunkingStrategy)],
    )
    def test_selects_configured_strategy(self, helper_config, embed_client, monkeypatch, name, expected):
        monkeypatch.setenv("CHUNKING_STRATEGY", name)
        strategy = ChunkingStrategyManager(helper_config, embed_client=embed_client).get_strategy()
        assert isinstance(strategy, expected)
        assert isinstance(strategy, ChunkingStrategy)

    def test_default_is_slicer(self, helper_config, monkeypatch):
        monkeypatch.delenv("CHUNKING_STRATEGY", raising=False)
        assert isinstance(ChunkingStrategyManager(helper_config).get_strategy(), SeparatorSlicerStrategy)

    def test_semantic_without_embed_client_raises(self, helper_config, monkeypatch):
        monkeypatch.setenv("CHUNKING_STRATEGY", "semantic")
        with pytest.raises(ValueError, match="embed client"):
            ChunkingStrategyManager(helper_config)

    def test_unknown_strategy_raises(self, helper_config, monkeypatch):
        monkeypatch.setenv("CHUNKING_STRATEGY", "magic")
        with pytest.raises(ValueError, match="magic"):
            ChunkingStrategyManager(helper_config)
