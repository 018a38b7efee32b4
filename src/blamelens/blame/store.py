"""Blame Store - memoized per-file blame with range views.

The store owns a cache of one asyncio task per file name. The task is
inserted before the first suspension point, so concurrent callers for the
same file share a single provider call. Invalidation only drops the cache
entry; a task that is still running completes for whoever already awaits it.

Example:
    >>> store = BlameStore(GitCommand())
    >>> blame = await store.get_blame_for_range("/repo/app.py", Range.from_lines(10, 20))
    >>> store.on_did_change_document("/repo/app.py")  # next call re-runs git
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Protocol

from blamelens.blame.parser import parse_blame
from blamelens.blame.types import Blame, Range, ShaBlame
from blamelens.errors import BlameLensError, ErrorCode

logger = logging.getLogger(__name__)

BlameTextProvider = Callable[[str], Awaitable[str]]
"""Async callable returning raw blame text for a file name."""

Unsubscribe = Callable[[], None]


class DocumentEvents(Protocol):
    """Host notifications the store listens to."""

    def on_did_close(self, callback: Callable[[str], None]) -> Unsubscribe:
        """Register a callback receiving the file name of a closed document."""
        ...

    def on_did_change(self, callback: Callable[[str], None]) -> Unsubscribe:
        """Register a callback receiving the file name of a changed document."""
        ...


@dataclass
class BlameStore:
    """Cache of parsed blame per file, invalidated by editor events."""

    provider: BlameTextProvider
    """Source of raw blame text (usually a GitCommand)."""

    _files: dict[str, asyncio.Task[Blame]] = field(default_factory=dict)
    """In-flight or completed blame computations by file name."""

    _subscriptions: list[Unsubscribe] = field(default_factory=list)

    async def blame_file(self, file_name: str) -> Blame:
        """Get the full blame for a file, computing it at most once.

        Raises:
            BlameLensError: If the provider failed. The failure stays cached
                until the file is invalidated.
        """
        task = self._files.get(file_name)
        if task is None:
            logger.debug("Blame cache miss: %s", file_name)
            task = asyncio.ensure_future(self._compute(file_name))
            self._files[file_name] = task
        else:
            logger.debug("Blame cache hit: %s", file_name)

        # one caller giving up must not cancel the shared computation
        return await asyncio.shield(task)

    async def _compute(self, file_name: str) -> Blame:
        try:
            data = await self.provider(file_name)
        except BlameLensError:
            logger.warning("Blame retrieval failed for %s", file_name, exc_info=True)
            raise
        except Exception as e:
            logger.warning("Blame retrieval failed for %s: %s", file_name, e)
            raise BlameLensError(
                code=ErrorCode.BLAME_RETRIEVAL_FAILED,
                context={"file_name": file_name, "detail": str(e) or type(e).__name__},
                cause=e,
            ) from e

        return parse_blame(data)

    async def get_blame_for_range(self, file_name: str, line_range: Range) -> Blame:
        """Get the lines within ``line_range`` and only the commits they reference."""
        blame = await self.blame_file(file_name)
        if not blame.lines:
            return blame

        lines = blame.lines[line_range.start.line : line_range.end.line + 1]
        # dict preserves first-seen order per sha
        commits = {line.sha: blame.commits[line.sha] for line in lines}

        return Blame(commits=commits, lines=lines)

    async def get_blame_for_sha_range(
        self,
        file_name: str,
        sha: str,
        line_range: Range,
    ) -> ShaBlame:
        """Get the lines within ``line_range`` that belong to commit ``sha``."""
        blame = await self.blame_file(file_name)

        return ShaBlame(
            commit=blame.commits.get(sha),
            lines=tuple(
                line
                for line in blame.lines[line_range.start.line : line_range.end.line + 1]
                if line.sha == sha
            ),
        )

    def invalidate(self, file_name: str) -> None:
        """Forget the cached blame for a file. No-op if absent."""
        if self._files.pop(file_name, None) is not None:
            logger.debug("Blame cache invalidated: %s", file_name)

    # Host notifications

    def on_did_close_document(self, file_name: str) -> None:
        self.invalidate(file_name)

    def on_did_change_document(self, file_name: str) -> None:
        self.invalidate(file_name)

    def attach(self, events: DocumentEvents) -> None:
        """Subscribe to the host's close/change notifications."""
        self._subscriptions.append(events.on_did_close(self.on_did_close_document))
        self._subscriptions.append(events.on_did_change(self.on_did_change_document))

    def is_cached(self, file_name: str) -> bool:
        return file_name in self._files

    @property
    def cache_size(self) -> int:
        """Number of cached (pending or finished) blame computations."""
        return len(self._files)

    def clear(self) -> None:
        """Drop every cached blame."""
        self._files.clear()

    def dispose(self) -> None:
        """Clear the cache and unsubscribe from host notifications."""
        self.clear()
        for unsubscribe in self._subscriptions:
            unsubscribe()
        self._subscriptions.clear()
