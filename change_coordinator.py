"""Turns corpus change events into cache invalidations.

Creations and deletions change which documents exist, so they bump the
corpus generation and drop every document-derived partition at once.
Modifications only change content; they arrive in bursts while a note is
being edited, so they are debounced and leave the file-count comparison
partition alone.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable

from analytics_cache import AnalyticsCache

logger = logging.getLogger(__name__)

CREATE = "create"
MODIFY = "modify"
DELETE = "delete"

_EVENT_ALIASES = {
    "create": CREATE,
    "created": CREATE,
    "add": CREATE,
    "added": CREATE,
    "new": CREATE,
    "modify": MODIFY,
    "modified": MODIFY,
    "change": MODIFY,
    "changed": MODIFY,
    "update": MODIFY,
    "updated": MODIFY,
    "delete": DELETE,
    "deleted": DELETE,
    "remove": DELETE,
    "removed": DELETE,
    # A rename moves a document out of one path and into another.
    "rename": DELETE,
    "renamed": DELETE,
}

STRUCTURAL_PARTITIONS = ("words", "analytics", "summary", "comparison", "streak", "sizes")
CONTENT_PARTITIONS = ("words", "analytics", "summary", "streak", "sizes")


def partition_pattern(partition: str) -> str:
    """Substring that every cache key of *partition* starts with."""
    return f"{partition}::"


def classify(event_type: str) -> str | None:
    """Map a raw event name to CREATE, MODIFY, DELETE, or None if unknown."""
    if not isinstance(event_type, str):
        return None
    return _EVENT_ALIASES.get(event_type.strip().lower())


class Debouncer:
    """Collapses a burst of triggers into one callback.

    Each ``trigger`` pushes the single pending deadline out to
    ``now + delay``.  One asyncio task sleeps until the latest deadline and
    then runs the callback once.

    Args:
        delay: Quiet period in seconds.
        callback: Zero-argument function run when the quiet period ends.
        clock: Monotonic time source in seconds.
    """

    def __init__(
        self,
        delay: float,
        callback: Callable[[], None],
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.delay = delay
        self._callback = callback
        self._clock = clock
        self._deadline: float | None = None
        self._task: asyncio.Task | None = None

    @property
    def pending(self) -> bool:
        return self._deadline is not None

    def trigger(self) -> None:
        """Schedule (or reschedule) the callback.

        Without a running event loop there is nothing to wait on, so the
        callback runs immediately.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; applying debounced change now")
            self._deadline = None
            self._callback()
            return

        self._deadline = self._clock() + self.delay
        if self._task is None or self._task.done():
            self._task = loop.create_task(self._run())

    async def _run(self) -> None:
        while self._deadline is not None:
            remaining = self._deadline - self._clock()
            if remaining > 0:
                await asyncio.sleep(remaining)
                continue
            self._deadline = None
            try:
                self._callback()
            except Exception:
                logger.exception("Debounced callback failed")

    def flush(self) -> None:
        """Run a pending callback now instead of waiting."""
        if self._deadline is None:
            return
        self.cancel()
        self._callback()

    def cancel(self) -> None:
        """Forget the pending callback, if any."""
        self._deadline = None
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None


class ChangeCoordinator:
    """Owns the corpus generation and invalidates cache partitions.

    ``generation`` moves on structural and settings changes only and is part
    of every cache key.  ``changes`` counts every applied invalidation,
    modifications included, so callers can tell that a result computed
    across one is already stale.

    Args:
        cache: The cache whose partitions are invalidated.
        debounce_seconds: Quiet period applied to modification events.
        clock: Monotonic time source in seconds.
    """

    def __init__(
        self,
        cache: AnalyticsCache,
        debounce_seconds: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.cache = cache
        self.generation = 0
        self.changes = 0
        self._modify_debouncer = Debouncer(debounce_seconds, self._apply_content_change, clock)

    def _invalidate(self, partitions: tuple[str, ...]) -> int:
        removed = sum(self.cache.invalidate(partition_pattern(p)) for p in partitions)
        logger.debug("Invalidated %d entries across %s", removed, ", ".join(partitions))
        return removed

    def _apply_content_change(self) -> None:
        self.changes += 1
        self._invalidate(CONTENT_PARTITIONS)

    def _apply_structural_change(self, path: str, kind: str) -> None:
        self.generation += 1
        self.changes += 1
        logger.info("Document %s: %s (generation %d)", kind, path, self.generation)
        self._invalidate(STRUCTURAL_PARTITIONS)

    def set_debounce(self, seconds: float) -> None:
        self._modify_debouncer.delay = seconds

    def on_document_created(self, path: str) -> None:
        self._apply_structural_change(path, "created")

    def on_document_deleted(self, path: str) -> None:
        self._apply_structural_change(path, "deleted")

    def on_document_modified(self, path: str) -> None:
        """Schedule a debounced content invalidation for *path*."""
        logger.debug("Document modified: %s", path)
        self._modify_debouncer.trigger()

    def on_settings_changed(self) -> None:
        """Drop everything: pending work, the generation, and every entry."""
        self._modify_debouncer.cancel()
        self.generation += 1
        self.changes += 1
        self.cache.clear()
        logger.info("Settings changed; cache cleared (generation %d)", self.generation)

    def handle_event(self, event_type: str, path: str) -> str | None:
        """Dispatch a raw change event.

        Returns:
            The classified change kind, or None when the event type is
            unknown (the event is then ignored).
        """
        kind = classify(event_type)
        if kind == CREATE:
            self.on_document_created(path)
        elif kind == MODIFY:
            self.on_document_modified(path)
        elif kind == DELETE:
            self.on_document_deleted(path)
        else:
            logger.warning("Ignoring unknown change event %r for %s", event_type, path)
        return kind

    @property
    def has_pending_changes(self) -> bool:
        return self._modify_debouncer.pending

    def flush(self) -> None:
        """Apply a pending modification invalidation immediately."""
        self._modify_debouncer.flush()

    def dispose(self) -> None:
        """Cancel pending work; the coordinator should not be used afterwards."""
        self._modify_debouncer.cancel()
