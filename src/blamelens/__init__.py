"""blamelens - cached git blame for editor line ranges.

Parses ``git blame`` output, caches it per file until the editor reports
the document closed or changed, and serves slices keyed by visible ranges.
"""

from blamelens.blame import (
    Blame,
    BlameCommit,
    BlameLine,
    BlameStore,
    BlameUriData,
    DocumentSchemes,
    GitCommand,
    Position,
    Range,
    ShaBlame,
    from_blame_uri,
    parse_blame,
    to_blame_uri,
)
from blamelens.errors import BlameLensError, ErrorCode

__version__ = "0.1.0"

__all__ = [
    # Store
    "BlameStore",
    "GitCommand",
    "parse_blame",
    # Types
    "Blame",
    "BlameCommit",
    "BlameLine",
    "BlameUriData",
    "Position",
    "Range",
    "ShaBlame",
    # URIs
    "DocumentSchemes",
    "from_blame_uri",
    "to_blame_uri",
    # Errors
    "BlameLensError",
    "ErrorCode",
]
