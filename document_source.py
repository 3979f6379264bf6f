"""Document source backed by a folder of note files."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable

logger = logging.getLogger(__name__)


class FolderDocumentSource:
    """Lists and reads the note files below *root*.

    Paths are reported relative to *root* with forward slashes.  Creation
    time is the file's birth time where the platform records one, else its
    inode change time.

    Args:
        root: Folder to scan recursively.
        extensions: File suffixes to include (case-insensitive).
    """

    def __init__(self, root: str | Path, extensions: Iterable[str] = (".md",)) -> None:
        self.root = Path(root).resolve()
        self.extensions = {e.lower() for e in extensions}

    def list_documents(self) -> list[dict]:
        documents = []
        for path in sorted(self.root.rglob("*")):
            if not path.is_file() or path.suffix.lower() not in self.extensions:
                continue
            try:
                stat = path.stat()
            except OSError as exc:
                logger.warning("Skipping %s: %s", path, exc)
                continue
            created = getattr(stat, "st_birthtime", stat.st_ctime)
            documents.append(
                {
                    "path": path.relative_to(self.root).as_posix(),
                    "created_at": datetime.fromtimestamp(created),
                    "modified_at": datetime.fromtimestamp(stat.st_mtime),
                    "size_bytes": stat.st_size,
                }
            )
        logger.debug("Found %d documents under %s", len(documents), self.root)
        return documents

    def _resolve(self, path: str) -> Path:
        full = (self.root / path).resolve()
        if not full.is_relative_to(self.root):
            raise ValueError(f"{path!r} is outside {self.root}")
        return full

    async def read_text(self, path: str) -> str:
        full = self._resolve(path)
        return await asyncio.to_thread(full.read_text, encoding="utf-8")
