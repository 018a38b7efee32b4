"""Pytest fixtures for blamelens tests."""

import asyncio
import os
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from blamelens.config import reset_config

SAMPLE_SHAS = ["1a2b3c4d", "1a2b3c4d", "1a2b3c4d", "^5e6f7a8", "^5e6f7a8",
               "^5e6f7a8", "9c8b7a6f", "9c8b7a6f", "1a2b3c4d", "^5e6f7a8"]
SAMPLE_AUTHORS = {"1a2b3c4d": "Jane Doe", "^5e6f7a8": "Bob Smith", "9c8b7a6f": "Ann Lee"}
SAMPLE_DATES = {
    "1a2b3c4d": "2016-08-09 14:02:11 -0400",
    "^5e6f7a8": "2015-01-02 03:04:05 +0000",
    "9c8b7a6f": "2017-12-31 23:59:59 +0530",
}


def format_blame_line(
    sha: str,
    original_line: int,
    line: int,
    author: str = "Jane Doe",
    date: str = "2016-08-09 14:02:11 -0400",
    file_name: str = "src/app.py",
    code: str = "pass",
) -> str:
    """Format one line the way ``git blame -fn`` prints it (1-based numbers)."""
    return f"{sha} {file_name} {original_line:>3} ({author:<12} {date} {line:>3}) {code}"


class FakeProvider:
    """Blame text provider that counts calls and can block or fail."""

    def __init__(self, text: str = "", error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.calls: list[str] = []
        self.gate: asyncio.Event | None = None

    async def __call__(self, file_name: str) -> str:
        self.calls.append(file_name)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.text


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep config lookups away from the developer's real files and env."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)
    for key in [k for k in os.environ if k.startswith("BLAMELENS_")]:
        monkeypatch.delenv(key)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def blame_line() -> Callable[..., str]:
    """Formatter for single blame output lines."""
    return format_blame_line


@pytest.fixture
def sample_blame_text() -> str:
    """Ten attributed lines with shas A A A B B B C C A B, plus noise.

    A = 1a2b3c4d, B = ^5e6f7a8 (boundary commit), C = 9c8b7a6f.
    """
    rows = [
        format_blame_line(
            sha,
            i + 1,
            i + 1,
            author=SAMPLE_AUTHORS[sha],
            date=SAMPLE_DATES[sha],
            code=f"line {i}",
        )
        for i, sha in enumerate(SAMPLE_SHAS)
    ]
    rows.insert(4, "fatal: this line is not blame output")
    return "\n".join(rows) + "\n"


@pytest.fixture
def make_provider() -> type[FakeProvider]:
    """Factory for fake blame text providers."""
    return FakeProvider


@pytest.fixture
def provider(sample_blame_text: str) -> FakeProvider:
    """Provider returning the sample blame text."""
    return FakeProvider(sample_blame_text)
