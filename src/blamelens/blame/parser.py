"""Parser for ``git blame -fn`` output.

Each attribution line looks like::

    ^1a2b3c4 src/app.py 12 (Jane Doe 2016-08-09 14:02:11 -0400 14) code...

Lines that do not match the pattern are skipped.
"""

import logging
import re
from datetime import datetime

from blamelens.blame.types import Blame, BlameCommit, BlameLine

logger = logging.getLogger(__name__)

BLAME_PATTERN = re.compile(
    r"^([\^0-9a-fA-F]{8})"  # sha
    r"\s([\S]*)"  # file name at that commit
    r"\s+([0-9]+)"  # original line (1-based)
    r"\s\((.*)"  # author
    r"\s([0-9]{4}-[0-9]{2}-[0-9]{2}\s[0-9]{2}:[0-9]{2}:[0-9]{2}\s[-+][0-9]{4})"  # date
    r"\s+([0-9]+)\)"  # current line (1-based)
    r"(.*)$",  # code
    re.MULTILINE,
)

_DATE_FORMAT = "%Y-%m-%d %H:%M:%S %z"


def parse_date(value: str) -> datetime:
    """Parse a blame timestamp like ``2016-08-09 14:02:11 -0400``."""
    return datetime.strptime(value, _DATE_FORMAT)


def parse_blame(text: str) -> Blame:
    """Parse raw blame output into commits and lines.

    The first occurrence of a sha decides its commit record. Line numbers
    are converted from git's 1-based numbering to 0-based.
    """
    commits: dict[str, BlameCommit] = {}
    lines: list[BlameLine] = []

    for match in BLAME_PATTERN.finditer(text):
        sha = match.group(1)
        if sha not in commits:
            commits[sha] = BlameCommit(
                sha=sha,
                file_name=match.group(2).strip(),
                author=match.group(4).strip(),
                date=parse_date(match.group(5)),
            )

        lines.append(BlameLine(
            sha=sha,
            original_line=int(match.group(3)) - 1,
            line=int(match.group(6)) - 1,
        ))

    logger.debug("Parsed %d blame lines across %d commits", len(lines), len(commits))
    return Blame(commits=commits, lines=tuple(lines))
