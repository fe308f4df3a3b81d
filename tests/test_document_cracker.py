"""Tests for text extraction and the DocumentCrackerService."""

from __future__ import annotations

from pathlib import Path

import fitz  # PyMuPDF
import pytest

from services.document_pipeline.DocumentCrackerService import DocumentCrackerService
from services.document_pipeline.extractors.ExtractorRegistry import ExtractorRegistry
from services.document_pipeline.extractors.PdfTextExtractor import PdfTextExtractor
from services.document_pipeline.extractors.PlainTextExtractor import PlainTextExtractor
from shared.helper.HelperIdentity import make_document_id
from shared.models.errors import ExtractionError
from shared.models.messages import CrackDocumentMessage, DocumentReadyForChunkingMessage


def _write_pdf(path: Path, pages: list[str]) -> None:
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        page.insert_text((72, 72), text)
    doc.save(str(path))
    doc.close()


@pytest.fixture
def cracker(helper_config, store, bus, tracer) -> DocumentCrackerService:
    return DocumentCrackerService(helper_config=helper_config, store=store, bus=bus, tracer=tracer)


# ======================================================================
# Extractors
# ======================================================================


class TestExtractors:
    def test_registry_picks_by_extension(self):
        registry = ExtractorRegistry()
        assert isinstance(registry.for_path("/x/Book.PDF"), PdfTextExtractor)
        assert isinstance(registry.for_path("/x/notes.md"), PlainTextExtractor)
        assert registry.for_path("/x/sheet.xlsx") is None

    def test_pdf_pages_get_markers(self, tmp_path: Path):
        path = tmp_path / "book.pdf"
        _write_pdf(path, ["Fireball deals damage", "Magic Missile never misses"])

        extracted = PdfTextExtractor().extract(str(path))

        assert extracted.page_count == 2
        assert extracted.content.index("--- Page 1 ---") < extracted.content.index("Fireball")
        assert extracted.content.index("--- Page 2 ---") < extracted.content.index("Magic Missile")

    def test_unreadable_pdf_raises_extraction_error(self, tmp_path: Path):
        with pytest.raises(ExtractionError):
            PdfTextExtractor().extract(str(tmp_path / "missing.pdf"))

    def test_plain_text_is_single_page(self, tmp_path: Path):
        path = tmp_path / "notes.md"
        path.write_text("# Rules\nRoll a d20.", encoding="utf-8")

        extracted = PlainTextExtractor().extract(str(path))

        assert extracted.content == "# Rules\nRoll a d20."
        assert extracted.page_count == 1


# ======================================================================
# Cracker service
# ======================================================================


@pytest.mark.asyncio
async def test_cracks_and_forwards_document(cracker, store, bus, content_root: Path):
    (content_root / "dnd5e").mkdir()
    path = content_root / "dnd5e" / "PHB.md"
    path.write_text("Advantage: roll two d20s.", encoding="utf-8")

    ready = await cracker.process_document(
        CrackDocumentMessage(
            file_path=str(path), relative_directory="dnd5e", ruleset_id="dnd5e", document_kind="Sourcebook"
        )
    )

    expected_id = make_document_id("dnd5e", "PHB.md")
    assert ready.document_id == expected_id
    assert ready.file_size == path.stat().st_size
    assert bus.of_type(DocumentReadyForChunkingMessage) == [ready]

    document = await store.get_document(expected_id)
    assert document.content == "Advantage: roll two d20s."
    assert document.ruleset_id == "dnd5e"
    assert document.relative_directory == "dnd5e"
    assert document.total_chunk_count == 0


@pytest.mark.asyncio
async def test_chunking_request_carries_the_document_metadata(cracker, store, content_root: Path):
    (content_root / "dnd5e").mkdir()
    path = content_root / "dnd5e" / "DMG.pdf"
    _write_pdf(path, ["Traps", "Treasure"])

    ready = await cracker.process_document(
        CrackDocumentMessage(
            file_path=str(path), relative_directory="dnd5e", ruleset_id="dnd5e", document_kind="Sourcebook"
        )
    )

    assert set(ready.model_dump()) == {
        "document_id",
        "file_path",
        "file_name",
        "relative_directory",
        "ruleset_id",
        "file_size",
        "page_count",
        "cracked_at",
        "document_kind",
    }
    assert ready.file_path == str(path)
    assert ready.relative_directory == "dnd5e"
    assert ready.page_count == 2
    assert ready.cracked_at.tzinfo is not None
    document = await store.get_document(ready.document_id)
    assert document.cracked_at == ready.cracked_at
    assert document.page_count == 2


@pytest.mark.asyncio
async def test_re_extraction_keeps_document_id_and_resets_progress(cracker, store, content_root: Path):
    path = content_root / "rules.md"
    path.write_text("first", encoding="utf-8")
    message = CrackDocumentMessage(file_path=str(path), ruleset_id="default", document_kind="Sourcebook")
    first = await cracker.process_document(message)
    await store.set_total_chunk_count(first.document_id, 3)

    path.write_text("second", encoding="utf-8")
    second = await cracker.process_document(message)

    assert first.document_id == second.document_id
    document = await store.get_document(second.document_id)
    assert document.content == "second"
    assert document.total_chunk_count == 0


@pytest.mark.asyncio
async def test_unsupported_file_is_a_no_op(cracker, store, bus, content_root: Path):
    path = content_root / "sheet.xlsx"
    path.write_text("x")

    result = await cracker.process_document(
        CrackDocumentMessage(file_path=str(path), ruleset_id="default", document_kind="Sourcebook")
    )

    assert result is None
    assert bus.published == []
    assert await store.get_document_by_path(str(path)) is None


@pytest.mark.asyncio
async def test_extraction_failure_propagates(cracker, bus, content_root: Path):
    path = content_root / "broken.pdf"
    path.write_bytes(b"this is not a pdf")

    with pytest.raises(ExtractionError):
        await cracker.process_document(
            CrackDocumentMessage(file_path=str(path), ruleset_id="default", document_kind="Sourcebook")
        )
    assert bus.published == []
