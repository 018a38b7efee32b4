"""Blame URIs - addressable identifiers for a commit's slice of a file.

A blame URI reads well in an editor tab and carries a JSON query with
everything needed to reopen the blamed region::

    gitblame:03. Jane Doe, Aug 9, 2016 02:02pm - src/1a2b3c4d: app.py?{"fileName": ...}

Hosts usually sort documents alphabetically, so the display part starts with
a zero-padded index to keep commits in blame order.
"""

import json
import posixpath
from datetime import datetime
from enum import StrEnum
from pathlib import Path

from blamelens.blame.types import BlameCommit, BlameUriData, Position, Range
from blamelens.errors import BlameLensError, ErrorCode, uri_error


class DocumentSchemes(StrEnum):
    """URI schemes registered with the editor host."""

    GIT_BLAME = "gitblame"


_MONTHS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


def format_commit_date(date: datetime) -> str:
    """Format a commit date like ``Aug 9, 2016 02:02pm``, independent of locale."""
    hour = date.hour % 12 or 12
    suffix = "am" if date.hour < 12 else "pm"
    return f"{_MONTHS[date.month - 1]} {date.day}, {date.year} {hour:02d}:{date.minute:02d}{suffix}"


def _pad(index: int, count: int) -> str:
    width = len(str(count))
    return f"{index:0{width}d}"[-width:]


def to_blame_uri(
    repo_path: str | Path,
    commit: BlameCommit,
    line_range: Range,
    index: int,
    commit_count: int,
    scheme: str = DocumentSchemes.GIT_BLAME,
) -> str:
    """Build a blame URI for ``commit`` within ``line_range``.

    Args:
        repo_path: Repository root; joined with the commit's file name.
        commit: Commit owning the region.
        line_range: Region of the working copy the URI refers to.
        index: Position of this commit among the ones being shown.
        commit_count: Total commits being shown (sets the index padding).
        scheme: URI scheme registered with the host.

    Returns:
        The URI string.
    """
    base, ext = posixpath.splitext(posixpath.basename(commit.file_name))
    directory = posixpath.dirname(commit.file_name) or "."
    path = f"{directory}/{commit.sha}: {base}{ext}"

    data = {
        "fileName": str(Path(repo_path) / commit.file_name),
        "sha": commit.sha,
        "range": line_range.to_list(),
        "index": index,
    }

    return (
        f"{scheme}:{_pad(index, commit_count)}. {commit.author}, "
        f"{format_commit_date(commit.date)} - {path}?{json.dumps(data)}"
    )


def from_blame_uri(uri: str, scheme: str | None = None) -> BlameUriData:
    """Decode the query payload of a blame URI.

    Args:
        uri: URI produced by ``to_blame_uri``.
        scheme: If given, the URI's scheme must match it.

    Raises:
        BlameLensError: If the URI has no decodable payload or the wrong scheme.
    """
    uri_scheme = uri.partition(":")[0]
    if scheme is not None and uri_scheme != scheme:
        raise BlameLensError(
            code=ErrorCode.URI_SCHEME_MISMATCH,
            context={"expected": scheme, "scheme": uri_scheme},
        )

    # Authors and paths may contain "?", so split where the JSON query starts
    _, sep, query = uri.partition("?{")
    if not sep:
        raise uri_error("missing query")

    try:
        data = json.loads("{" + query)
        start, end = data["range"]
        return BlameUriData(
            file_name=data["fileName"],
            sha=data["sha"],
            range=Range(
                Position(start["line"], start["character"]),
                Position(end["line"], end["character"]),
            ),
            index=data["index"],
        )
    except (ValueError, KeyError, TypeError) as e:
        raise uri_error(str(e), cause=e) from e
