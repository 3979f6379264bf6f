"""Shared test helpers for notes analytics tests.

Regular functions and classes (not fixtures) that can be imported by any
test module.
"""

from __future__ import annotations

import asyncio
from datetime import date, datetime, timedelta

FIXED_NOW = datetime(2024, 3, 15, 12, 0, 0)  # a Friday


def make_document(
    path: str,
    created: datetime | date | str,
    modified: datetime | date | str | None = None,
    size_bytes: int = 0,
) -> dict:
    """Build a document record.

    Args:
        path: Document path, e.g. "notes/a.md".
        created: Creation timestamp.  Dates and ISO strings are allowed.
        modified: Modification timestamp.  Defaults to *created*.
        size_bytes: Reported file size.

    Returns:
        A dict matching what a document source lists.
    """
    return {
        "path": path,
        "created_at": created,
        "modified_at": created if modified is None else modified,
        "size_bytes": size_bytes,
    }


def words(n: int) -> str:
    """Plain text of exactly *n* words."""
    return " ".join(f"w{i}" for i in range(n))


class FakeDocumentSource:
    """In-memory document source with call counters and failure switches.

    Args:
        fail_reads: Paths whose ``read_text`` raises ``OSError``.
        fail_listing: When True, ``list_documents`` raises ``OSError``.
    """

    def __init__(self, fail_reads: set[str] | None = None, fail_listing: bool = False) -> None:
        self.documents: list[dict] = []
        self.contents: dict[str, object] = {}
        self.fail_reads = set(fail_reads or ())
        self.fail_listing = fail_listing
        self.list_calls = 0
        self.read_calls = 0

    def add(
        self,
        path: str,
        created: datetime | date | str,
        content: object = "",
        modified: datetime | date | str | None = None,
        size_bytes: int | None = None,
    ) -> dict:
        if size_bytes is None:
            size_bytes = len(content.encode("utf-8")) if isinstance(content, str) else 0
        doc = make_document(path, created, modified, size_bytes)
        self.documents.append(doc)
        self.contents[path] = content
        return doc

    def remove(self, path: str) -> None:
        self.documents = [d for d in self.documents if d["path"] != path]
        self.contents.pop(path, None)

    def list_documents(self) -> list[dict]:
        self.list_calls += 1
        if self.fail_listing:
            raise OSError("vault unavailable")
        return [dict(d) for d in self.documents]

    async def read_text(self, path: str) -> object:
        self.read_calls += 1
        if path in self.fail_reads:
            raise OSError(f"cannot read {path}")
        return self.contents.get(path, "")


class GatedDocumentSource(FakeDocumentSource):
    """Document source whose reads block until ``gate`` is set.

    Content is captured before blocking, so a read in flight returns what
    the note held when the read started.  ``reading`` is set once any read
    has begun.
    """

    def __init__(self) -> None:
        super().__init__()
        self.gate = asyncio.Event()
        self.reading = asyncio.Event()

    async def read_text(self, path: str) -> object:
        content = await super().read_text(path)
        self.reading.set()
        await self.gate.wait()
        return content


def add_daily_notes(
    source: FakeDocumentSource,
    end: date,
    word_counts: list[int],
    prefix: str = "daily",
) -> None:
    """Add one note per day ending on *end*, oldest first.

    ``word_counts[i]`` is the length of the note created
    ``len(word_counts) - 1 - i`` days before *end*.
    """
    start = end - timedelta(days=len(word_counts) - 1)
    for i, n in enumerate(word_counts):
        day = start + timedelta(days=i)
        created = datetime.combine(day, datetime.min.time()).replace(hour=9)
        source.add(f"{prefix}/{day.isoformat()}.md", created, words(n))


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
