"""Tests for SourceScanner."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from indexscout.config import AnalysisConfig
from indexscout.scanner import SourceScanner


class TestIterFiles:
    def test_walks_matching_extensions(self, source_tree: Path) -> None:
        """Only .rs files outside excluded directories are listed."""
        files = SourceScanner().iter_files(source_tree)
        assert [f.relative_to(source_tree).as_posix() for f in files] == ["src/models.rs"]

    def test_custom_extensions(self, source_tree: Path) -> None:
        scanner = SourceScanner(AnalysisConfig(extensions=[".rs", ".md"]))
        names = [f.name for f in scanner.iter_files(source_tree)]
        assert names == ["README.md", "models.rs"]

    def test_excluded_dirs_can_be_included(self, source_tree: Path) -> None:
        scanner = SourceScanner(AnalysisConfig(exclude_dirs=[]))
        names = [f.relative_to(source_tree).as_posix() for f in scanner.iter_files(source_tree)]
        assert names == ["src/models.rs", "target/generated.rs"]

    def test_single_file(self, source_tree: Path) -> None:
        """A file path is scanned even when its extension is not configured."""
        readme = source_tree / "src" / "README.md"
        assert SourceScanner().iter_files(readme) == [readme]

    def test_missing_path(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError, match="Path not found"):
            SourceScanner().iter_files(tmp_path / "nope")


class TestRead:
    def test_reads_text(self, tmp_path: Path) -> None:
        path = tmp_path / "a.rs"
        path.write_text("struct A { id: i64 }", encoding="utf-8")
        assert SourceScanner().read(path) == "struct A { id: i64 }"

    def test_invalid_utf8_replaced(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.rs"
        path.write_bytes(b"struct A { id: i64 } \xff\xfe")
        text = SourceScanner().read(path)
        assert text is not None
        assert text.startswith("struct A")

    def test_oversized_file_skipped(self, tmp_path: Path, caplog) -> None:
        path = tmp_path / "big.rs"
        path.write_text("x" * 100, encoding="utf-8")
        scanner = SourceScanner(AnalysisConfig(max_file_size=10))
        with caplog.at_level(logging.WARNING):
            assert scanner.read(path) is None
        assert "exceeds max_file_size" in caplog.text

    def test_unreadable_file_skipped(self, tmp_path: Path) -> None:
        """A directory passed as a file cannot be read and yields None."""
        assert SourceScanner().read(tmp_path) is None


class TestScan:
    def test_display_paths_relative(self, source_tree: Path) -> None:
        sources = SourceScanner().scan(source_tree)
        assert [name for name, _ in sources] == ["src/models.rs"]
        assert "struct Ticket" in sources[0][1]

    def test_single_file_display_path(self, source_tree: Path) -> None:
        path = source_tree / "src" / "models.rs"
        ((name, _),) = SourceScanner().scan(path)
        assert name == path.as_posix()
