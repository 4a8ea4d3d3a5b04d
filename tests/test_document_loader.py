"""Unit tests for DocumentLoader."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from models.document import DocumentInput
from services.document_loader import DocumentLoader


class TestDocumentLoader:
    """Test suite for DocumentLoader class."""

    def test_loads_text_and_markdown_in_name_order(self, tmp_path):
        (tmp_path / "b.md").write_text("# Dogs\n\nDogs bark.", encoding="utf-8")
        (tmp_path / "a.txt").write_text("Cats sleep.", encoding="utf-8")
        (tmp_path / "c.pdf").write_bytes(b"%PDF-1.4")

        documents = DocumentLoader(docs_directory=str(tmp_path)).load_documents()

        assert documents == [
            DocumentInput(name="a.txt", text="Cats sleep."),
            DocumentInput(name="b.md", text="# Dogs\n\nDogs bark."),
        ]

    def test_skips_files_that_are_not_utf8(self, tmp_path):
        (tmp_path / "bad.txt").write_bytes(b"\xff\xfe\xfa broken")
        (tmp_path / "good.txt").write_text("fine", encoding="utf-8")

        documents = DocumentLoader(docs_directory=str(tmp_path)).load_documents()

        assert [doc.name for doc in documents] == ["good.txt"]

    def test_missing_directory_returns_empty(self, tmp_path):
        loader = DocumentLoader(docs_directory=str(tmp_path / "missing"))

        assert loader.load_documents() == []

    def test_keeps_empty_files(self, tmp_path):
        """Test empty files load; the chunker decides they yield nothing."""
        (tmp_path / "empty.txt").write_text("", encoding="utf-8")

        documents = DocumentLoader(docs_directory=str(tmp_path)).load_documents()

        assert documents == [DocumentInput(name="empty.txt", text="")]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
