"""Tests for the memoized BlameStore."""

import asyncio
from collections.abc import Callable

import pytest

from blamelens.blame.store import BlameStore
from blamelens.blame.types import Range
from blamelens.errors import BlameLensError, ErrorCode

FILE = "/repo/src/app.py"
SHA_A = "1a2b3c4d"
SHA_B = "^5e6f7a8"
SHA_C = "9c8b7a6f"


class FakeDocumentEvents:
    """Host event source with manual firing."""

    def __init__(self) -> None:
        self.close_callbacks: list[Callable[[str], None]] = []
        self.change_callbacks: list[Callable[[str], None]] = []

    def on_did_close(self, callback: Callable[[str], None]) -> Callable[[], None]:
        self.close_callbacks.append(callback)
        return lambda: self.close_callbacks.remove(callback)

    def on_did_change(self, callback: Callable[[str], None]) -> Callable[[], None]:
        self.change_callbacks.append(callback)
        return lambda: self.change_callbacks.remove(callback)

    def close(self, file_name: str) -> None:
        for callback in list(self.close_callbacks):
            callback(file_name)

    def change(self, file_name: str) -> None:
        for callback in list(self.change_callbacks):
            callback(file_name)


class TestBlameFile:
    """Tests for blame_file memoization."""

    @pytest.mark.asyncio
    async def test_parses_provider_output(self, provider) -> None:
        """The provider's text is parsed into commits and lines."""
        store = BlameStore(provider)

        blame = await store.blame_file(FILE)

        assert provider.calls == [FILE]
        assert set(blame.commits) == {SHA_A, SHA_B, SHA_C}
        assert len(blame.lines) == 10

    @pytest.mark.asyncio
    async def test_second_call_returns_same_result(self, provider) -> None:
        """A second call reuses the cached result without calling git again."""
        store = BlameStore(provider)

        first = await store.blame_file(FILE)
        second = await store.blame_file(FILE)

        assert first is second
        assert len(provider.calls) == 1

    @pytest.mark.asyncio
    async def test_concurrent_calls_share_one_computation(self, provider) -> None:
        """Concurrent requests for one file await a single provider call."""
        provider.gate = asyncio.Event()
        store = BlameStore(provider)

        pending = asyncio.gather(store.blame_file(FILE), store.blame_file(FILE))
        await asyncio.sleep(0)
        provider.gate.set()
        first, second = await pending

        assert first is second
        assert len(provider.calls) == 1

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_cancel_shared_computation(self, provider) -> None:
        """Cancelling one awaiter leaves the other awaiters and the cache intact."""
        provider.gate = asyncio.Event()
        store = BlameStore(provider)

        first_task = asyncio.create_task(store.blame_file(FILE))
        second_task = asyncio.create_task(store.blame_file(FILE))
        await asyncio.sleep(0)
        first_task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await first_task
        provider.gate.set()

        second = await second_task
        later = await store.blame_file(FILE)

        assert len(second.lines) == 10
        assert later is second
        assert len(provider.calls) == 1

    @pytest.mark.asyncio
    async def test_files_cached_independently(self, provider) -> None:
        """Different files get their own provider call."""
        store = BlameStore(provider)

        await store.blame_file("/repo/a.py")
        await store.blame_file("/repo/b.py")

        assert provider.calls == ["/repo/a.py", "/repo/b.py"]
        assert store.cache_size == 2


class TestFailures:
    """Tests for provider failure handling."""

    @pytest.mark.asyncio
    async def test_failure_is_wrapped_in_typed_error(self, make_provider) -> None:
        """Provider exceptions surface as BLAME_RETRIEVAL_FAILED."""
        cause = RuntimeError("git exploded")
        store = BlameStore(make_provider(error=cause))

        with pytest.raises(BlameLensError) as exc_info:
            await store.blame_file(FILE)

        assert exc_info.value.code == ErrorCode.BLAME_RETRIEVAL_FAILED
        assert exc_info.value.cause is cause
        assert FILE in exc_info.value.message

    @pytest.mark.asyncio
    async def test_typed_errors_pass_through(self, make_provider) -> None:
        """A BlameLensError from the provider is not re-wrapped."""
        error = BlameLensError(ErrorCode.GIT_TIMEOUT, {"command": "blame", "timeout": 1})
        store = BlameStore(make_provider(error=error))

        with pytest.raises(BlameLensError) as exc_info:
            await store.blame_file(FILE)

        assert exc_info.value is error

    @pytest.mark.asyncio
    async def test_failure_stays_cached(self, make_provider) -> None:
        """Later callers see the same failure without a new provider call."""
        provider = make_provider(error=RuntimeError("boom"))
        store = BlameStore(provider)

        with pytest.raises(BlameLensError):
            await store.blame_file(FILE)
        with pytest.raises(BlameLensError):
            await store.blame_file(FILE)

        assert len(provider.calls) == 1

    @pytest.mark.asyncio
    async def test_invalidate_allows_retry(self, make_provider, sample_blame_text) -> None:
        """After invalidation a failed file is fetched again."""
        provider = make_provider(error=RuntimeError("boom"))
        store = BlameStore(provider)
        with pytest.raises(BlameLensError):
            await store.blame_file(FILE)

        provider.error = None
        provider.text = sample_blame_text
        store.invalidate(FILE)
        blame = await store.blame_file(FILE)

        assert len(blame.lines) == 10
        assert len(provider.calls) == 2


class TestInvalidation:
    """Tests for cache invalidation."""

    @pytest.mark.asyncio
    async def test_invalidate_recomputes(self, provider) -> None:
        """The next request after invalidation calls the provider again."""
        store = BlameStore(provider)
        first = await store.blame_file(FILE)

        store.invalidate(FILE)
        second = await store.blame_file(FILE)

        assert first is not second
        assert len(provider.calls) == 2

    def test_invalidate_unknown_file_is_noop(self, provider) -> None:
        """Invalidating a file that was never blamed does nothing."""
        store = BlameStore(provider)

        store.invalidate("/nowhere.py")

        assert store.cache_size == 0

    @pytest.mark.asyncio
    async def test_close_and_change_notifications(self, provider) -> None:
        """Both host notifications drop the cache entry."""
        store = BlameStore(provider)

        await store.blame_file(FILE)
        store.on_did_close_document(FILE)
        assert not store.is_cached(FILE)

        await store.blame_file(FILE)
        store.on_did_change_document(FILE)
        assert not store.is_cached(FILE)

        await store.blame_file(FILE)
        assert len(provider.calls) == 3

    @pytest.mark.asyncio
    async def test_invalidate_mid_flight_does_not_cancel(self, provider) -> None:
        """A pending computation still completes for its earlier awaiters."""
        provider.gate = asyncio.Event()
        store = BlameStore(provider)

        first_task = asyncio.create_task(store.blame_file(FILE))
        await asyncio.sleep(0)
        store.invalidate(FILE)
        second_task = asyncio.create_task(store.blame_file(FILE))
        await asyncio.sleep(0)
        provider.gate.set()

        first = await first_task
        second = await second_task

        assert len(first.lines) == 10
        assert first is not second
        assert len(provider.calls) == 2

    @pytest.mark.asyncio
    async def test_attach_subscribes_to_host_events(self, provider) -> None:
        """Host close/change events invalidate once attached."""
        events = FakeDocumentEvents()
        store = BlameStore(provider)
        store.attach(events)

        await store.blame_file(FILE)
        events.change(FILE)

        assert not store.is_cached(FILE)

        await store.blame_file(FILE)
        events.close(FILE)

        assert not store.is_cached(FILE)

    @pytest.mark.asyncio
    async def test_dispose_clears_and_unsubscribes(self, provider) -> None:
        """dispose() empties the cache and detaches from the host."""
        events = FakeDocumentEvents()
        store = BlameStore(provider)
        store.attach(events)
        await store.blame_file(FILE)

        store.dispose()

        assert store.cache_size == 0
        assert events.close_callbacks == []
        assert events.change_callbacks == []


class TestRangeViews:
    """Tests for get_blame_for_range and get_blame_for_sha_range."""

    @pytest.mark.asyncio
    async def test_range_is_end_inclusive(self, provider) -> None:
        """Rows start..end inclusive are returned."""
        store = BlameStore(provider)

        blame = await store.get_blame_for_range(FILE, Range.from_lines(2, 5))

        assert [line.line for line in blame.lines] == [2, 3, 4, 5]

    @pytest.mark.asyncio
    async def test_range_commits_limited_to_slice(self, provider) -> None:
        """Only commits referenced by the sliced lines are kept, in first-seen order."""
        store = BlameStore(provider)

        blame = await store.get_blame_for_range(FILE, Range.from_lines(2, 5))

        assert list(blame.commits) == [SHA_A, SHA_B]

    @pytest.mark.asyncio
    async def test_range_shares_cached_blame(self, provider) -> None:
        """Range views reuse the cached full blame."""
        store = BlameStore(provider)

        await store.get_blame_for_range(FILE, Range.from_lines(0, 1))
        await store.get_blame_for_sha_range(FILE, SHA_A, Range.from_lines(0, 9))

        assert len(provider.calls) == 1

    @pytest.mark.asyncio
    async def test_range_past_end_is_clipped(self, provider) -> None:
        """A range running past the file end returns the rows that exist."""
        store = BlameStore(provider)

        blame = await store.get_blame_for_range(FILE, Range.from_lines(8, 50))

        assert [line.line for line in blame.lines] == [8, 9]
        assert list(blame.commits) == [SHA_A, SHA_B]

    @pytest.mark.asyncio
    async def test_empty_file(self, make_provider) -> None:
        """A file with no blame lines returns the empty result unchanged."""
        store = BlameStore(make_provider(""))

        full = await store.blame_file(FILE)
        ranged = await store.get_blame_for_range(FILE, Range.from_lines(2, 5))

        assert ranged is full
        assert ranged.lines == ()
        assert ranged.commits == {}

    @pytest.mark.asyncio
    async def test_sha_range_filters_by_commit(self, provider) -> None:
        """Only rows of the requested commit are returned with its record."""
        store = BlameStore(provider)

        result = await store.get_blame_for_sha_range(FILE, SHA_B, Range.from_lines(0, 9))

        assert result.commit is not None
        assert result.commit.author == "Bob Smith"
        assert [line.line for line in result.lines] == [3, 4, 5, 9]
        assert all(line.sha == SHA_B for line in result.lines)

    @pytest.mark.asyncio
    async def test_sha_range_respects_range(self, provider) -> None:
        """Rows outside the range are excluded even for a matching sha."""
        store = BlameStore(provider)

        result = await store.get_blame_for_sha_range(FILE, SHA_A, Range.from_lines(1, 7))

        assert [line.line for line in result.lines] == [1, 2]

    @pytest.mark.asyncio
    async def test_sha_range_unknown_sha(self, provider) -> None:
        """An unknown sha yields no commit and no lines rather than an error."""
        store = BlameStore(provider)

        result = await store.get_blame_for_sha_range(FILE, "deadbeef", Range.from_lines(0, 9))

        assert result.commit is None
        assert result.lines == ()

    @pytest.mark.asyncio
    async def test_range_failure_propagates(self, make_provider) -> None:
        """Range views surface the cached retrieval failure."""
        store = BlameStore(make_provider(error=OSError("disk")))

        with pytest.raises(BlameLensError):
            await store.get_blame_for_range(FILE, Range.from_lines(0, 1))
