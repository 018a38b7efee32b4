"""Blame Types.

All dataclasses for parsed blame output, range slicing, and blame URIs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

# =============================================================================
# Editor Coordinates
# =============================================================================


@dataclass(frozen=True, slots=True)
class Position:
    """A zero-based line/character position in a document."""

    line: int
    character: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"line": self.line, "character": self.character}


@dataclass(frozen=True, slots=True)
class Range:
    """A span between two positions, as supplied by the editor host.

    Only the line components matter for slicing; the end line is inclusive.
    """

    start: Position
    end: Position

    @classmethod
    def from_lines(cls, start_line: int, end_line: int) -> Range:
        """Build a range covering whole lines ``start_line`` to ``end_line``."""
        return cls(Position(start_line, 0), Position(end_line, 0))

    def to_list(self) -> list[dict[str, int]]:
        """Serialize as the host does: ``[start, end]`` position objects."""
        return [self.start.to_dict(), self.end.to_dict()]


# =============================================================================
# Blame Records
# =============================================================================


@dataclass(frozen=True, slots=True)
class BlameCommit:
    """A commit that owns at least one line of a blamed file."""

    sha: str
    """Abbreviated hash as printed by git blame (may start with ``^``)."""

    file_name: str
    """Path of the file at that commit, relative to the repository root."""

    author: str
    date: datetime


@dataclass(frozen=True, slots=True)
class BlameLine:
    """Attribution for a single line of the working copy."""

    sha: str
    original_line: int
    """Zero-based line number in the commit's version of the file."""

    line: int
    """Zero-based line number in the working copy."""


@dataclass(frozen=True, slots=True)
class Blame:
    """Parsed blame for one file at one snapshot."""

    commits: dict[str, BlameCommit] = field(default_factory=dict)
    """Commits keyed by sha, in order of first appearance."""

    lines: tuple[BlameLine, ...] = ()
    """Line attributions in physical file order."""


@dataclass(frozen=True, slots=True)
class ShaBlame:
    """Lines within a range that belong to a single commit."""

    commit: BlameCommit | None
    """The commit, or None if the sha does not appear in the file."""

    lines: tuple[BlameLine, ...] = ()


@dataclass(frozen=True, slots=True)
class BlameUriData:
    """Payload carried in the query of a blame URI."""

    file_name: str
    sha: str
    range: Range
    index: int
