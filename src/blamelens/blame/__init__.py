"""Blame parsing, caching, and range views."""

from blamelens.blame.git import GitCommand
from blamelens.blame.parser import BLAME_PATTERN, parse_blame
from blamelens.blame.store import BlameStore, BlameTextProvider, DocumentEvents
from blamelens.blame.types import (
    Blame,
    BlameCommit,
    BlameLine,
    BlameUriData,
    Position,
    Range,
    ShaBlame,
)
from blamelens.blame.uri import DocumentSchemes, from_blame_uri, to_blame_uri

__all__ = [
    # Types
    "Blame",
    "BlameCommit",
    "BlameLine",
    "BlameUriData",
    "Position",
    "Range",
    "ShaBlame",
    # Parsing
    "BLAME_PATTERN",
    "parse_blame",
    # Store
    "BlameStore",
    "BlameTextProvider",
    "DocumentEvents",
    # Git
    "GitCommand",
    # URIs
    "DocumentSchemes",
    "from_blame_uri",
    "to_blame_uri",
]
