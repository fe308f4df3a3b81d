"""Unit tests for the DirectoryScanner and the ChangeTracker."""

from __future__ import annotations

import base64
import hashlib
from pathlib import Path

import pytest

from services.document_pipeline.ChangeTracker import ChangeTracker
from services.document_pipeline.DirectoryScanner import DirectoryScanner


@pytest.fixture
def scanner(helper_config) -> DirectoryScanner:
    return DirectoryScanner(helper_config)


@pytest.fixture
def tracker(helper_config) -> ChangeTracker:
    return ChangeTracker(helper_config)


class TestDirectoryScanner:
    def test_subdirectories_are_recursive_and_skip_hidden(self, scanner, content_root: Path):
        (content_root / "dnd5e" / "transcripts").mkdir(parents=True)
        (content_root / "pathfinder").mkdir()
        (content_root / ".git" / "objects").mkdir(parents=True)

        found = scanner.get_subdirectories(str(content_root))

        assert found == sorted([
            str(content_root / "dnd5e"),
            str(content_root / "dnd5e" / "transcripts"),
            str(content_root / "pathfinder"),
        ])

    def test_missing_root_raises(self, scanner, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            scanner.get_subdirectories(str(tmp_path / "nope"))

    def test_files_filtered_case_insensitively(self, scanner, content_root: Path):
        for name in ["a.PDF", "b.md", "c.txt", "d.docx", "e"]:
            (content_root / name).write_text("x")
        (content_root / "sub.md").mkdir()

        found = scanner.get_files(str(content_root), [".pdf", "md", ".TXT"])

        assert [Path(p).name for p in found] == ["a.PDF", "b.md", "c.txt"]

    def test_files_of_missing_directory_is_empty(self, scanner, tmp_path: Path):
        assert scanner.get_files(str(tmp_path / "gone"), [".md"]) == []


class TestChangeTracker:
    def test_hash_is_base64_sha256_of_content(self, tmp_path: Path):
        path = tmp_path / "a.md"
        path.write_bytes(b"hello rules")
        expected = base64.b64encode(hashlib.sha256(b"hello rules").digest()).decode("ascii")
        assert ChangeTracker.hash_file(str(path)) == expected

    @pytest.mark.asyncio
    async def test_hash_depends_on_content_only(self, tracker, tmp_path: Path):
        first = tmp_path / "first.md"
        second = tmp_path / "other_name.txt"
        first.write_text("same text")
        second.write_text("same text")

        assert await tracker.compute_file_hash(str(first)) == await tracker.compute_file_hash(str(second))

    @pytest.mark.asyncio
    async def test_large_file_hashed_in_blocks(self, tracker, tmp_path: Path):
        data = b"0123456789" * 20_000
        path = tmp_path / "big.txt"
        path.write_bytes(data)
        expected = base64.b64encode(hashlib.sha256(data).digest()).decode("ascii")
        assert await tracker.compute_file_hash(str(path)) == expected

    @pytest.mark.asyncio
    async def test_missing_file_raises(self, tracker, tmp_path: Path):
        with pytest.raises(OSError):
            await tracker.compute_file_hash(str(tmp_path / "missing.md"))
