"""Source scanner — finds and reads the files an analysis pass covers."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from indexscout.config import AnalysisConfig

logger = logging.getLogger(__name__)


class SourceScanner:
    """Walk a file or directory and yield readable source files.

    Directories are walked in sorted order so repeated runs see files in the
    same sequence. Excluded directory names are never entered; files with
    other extensions or over the size limit are skipped.
    """

    def __init__(self, config: AnalysisConfig | None = None) -> None:
        self.config = config or AnalysisConfig()

    def iter_files(self, path: str | Path) -> list[Path]:
        """List the files to scan under ``path``.

        Raises:
            FileNotFoundError: If ``path`` does not exist.
        """
        root = Path(path)
        if not root.exists():
            raise FileNotFoundError(f"Path not found: {root}")
        if root.is_file():
            return [root]

        extensions = {e.lower() for e in self.config.extensions}
        excluded = set(self.config.exclude_dirs)
        files: list[Path] = []

        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(d for d in dirnames if d not in excluded)
            for name in sorted(filenames):
                if Path(name).suffix.lower() in extensions:
                    files.append(Path(dirpath) / name)

        return files

    def read(self, file_path: Path) -> str | None:
        """Read one file, or return None when it is too large or unreadable."""
        try:
            size = file_path.stat().st_size
            if size > self.config.max_file_size:
                logger.warning(
                    "Skipping %s: %d bytes exceeds max_file_size %d",
                    file_path,
                    size,
                    self.config.max_file_size,
                )
                return None
            return file_path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            logger.warning("Failed to read %s, skipping", file_path, exc_info=True)
            return None

    def scan(self, path: str | Path) -> list[tuple[str, str]]:
        """Return ``(display_path, text)`` for every readable file under ``path``."""
        root = Path(path)
        sources: list[tuple[str, str]] = []
        for file_path in self.iter_files(root):
            text = self.read(file_path)
            if text is None:
                continue
            display = file_path if root.is_file() else file_path.relative_to(root)
            sources.append((display.as_posix(), text))

        logger.info("Scanned %d files under %s", len(sources), root)
        return sources
