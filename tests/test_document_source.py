"""Tests for document_source.py folder adapter."""

from __future__ import annotations

from datetime import datetime

import pytest

from document_source import FolderDocumentSource


@pytest.fixture()
def notes_dir(tmp_path):
    (tmp_path / "journal").mkdir()
    (tmp_path / "a.md").write_text("# Hello\n\nfirst note", encoding="utf-8")
    (tmp_path / "journal" / "b.MD").write_text("second", encoding="utf-8")
    (tmp_path / "ignore.txt").write_text("not a note", encoding="utf-8")
    return tmp_path


class TestListDocuments:
    def test_lists_matching_extensions(self, notes_dir):
        source = FolderDocumentSource(notes_dir)
        paths = [d["path"] for d in source.list_documents()]
        assert paths == ["a.md", "journal/b.MD"]

    def test_record_fields(self, notes_dir):
        (doc,) = [d for d in FolderDocumentSource(notes_dir).list_documents() if d["path"] == "a.md"]
        assert doc["size_bytes"] == len("# Hello\n\nfirst note")
        assert isinstance(doc["created_at"], datetime)
        assert isinstance(doc["modified_at"], datetime)

    def test_custom_extensions(self, notes_dir):
        source = FolderDocumentSource(notes_dir, extensions=[".txt"])
        assert [d["path"] for d in source.list_documents()] == ["ignore.txt"]


class TestReadText:
    @pytest.mark.asyncio
    async def test_reads_content(self, notes_dir):
        source = FolderDocumentSource(notes_dir)
        assert await source.read_text("journal/b.MD") == "second"

    @pytest.mark.asyncio
    async def test_missing_file_raises(self, notes_dir):
        with pytest.raises(FileNotFoundError):
            await FolderDocumentSource(notes_dir).read_text("nope.md")

    @pytest.mark.asyncio
    async def test_rejects_paths_outside_root(self, notes_dir):
        with pytest.raises(ValueError):
            await FolderDocumentSource(notes_dir / "journal").read_text("../a.md")
