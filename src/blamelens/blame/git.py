"""Git runner - the raw blame text provider.

Runs git through asyncio subprocesses and turns failures into
BlameLensError so callers (and the BlameStore cache) see a typed error.
"""

import asyncio
import logging
import os
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from blamelens.errors import BlameLensError, ErrorCode, git_error

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GitCommand:
    """Run the git commands blamelens needs."""

    executable: str = "git"
    blame_args: tuple[str, ...] = ("-fnw", "--root", "--abbrev=7")
    """Options passed to git blame; output must stay in -f -n format with
    an 8-character hash column (``--abbrev=7`` plus the boundary marker)."""

    timeout: float = 30.0
    """Seconds before a git invocation is abandoned."""

    async def __call__(self, file_name: str) -> str:
        return await self.blame(file_name)

    async def blame(self, file_name: str) -> str:
        """Get raw ``git blame`` output for a file."""
        path = Path(file_name)
        return await self._run(["blame", *self.blame_args, "--", path.name], cwd=path.parent)

    async def repo_root(self, file_name: str) -> str:
        """Get the top-level directory of the repository containing a file."""
        path = Path(file_name)
        cwd = path if path.is_dir() else path.parent
        try:
            output = await self._run(["rev-parse", "--show-toplevel"], cwd=cwd)
        except BlameLensError as e:
            if e.code != ErrorCode.GIT_COMMAND_FAILED:
                raise
            raise BlameLensError(
                code=ErrorCode.NOT_A_REPOSITORY,
                context={"path": file_name},
                cause=e,
            ) from e
        return output.strip()

    async def version_text(self, repo_path: str, sha: str, file_name: str) -> str:
        """Get the contents of ``file_name`` as of commit ``sha``."""
        sha = sha.lstrip("^")
        return await self._run(["show", f"{sha}:{file_name}"], cwd=Path(repo_path))

    async def _run(self, args: Sequence[str], cwd: Path) -> str:
        """Run a git command and return its stdout."""
        command = args[0]
        logger.debug("Running git %s in %s", " ".join(args), cwd)

        if not cwd.is_dir():
            raise git_error(command, -1, f"no such directory: {cwd}")

        try:
            proc = await asyncio.create_subprocess_exec(
                self.executable,
                *args,
                cwd=cwd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env={**os.environ, "GIT_PAGER": "cat"},
            )
        except FileNotFoundError as e:
            raise BlameLensError(
                code=ErrorCode.GIT_NOT_FOUND,
                context={"executable": self.executable},
                cause=e,
            ) from e

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except TimeoutError as e:
            proc.kill()
            await proc.wait()
            raise BlameLensError(
                code=ErrorCode.GIT_TIMEOUT,
                context={"command": command, "timeout": self.timeout},
                cause=e,
            ) from e

        if proc.returncode != 0:
            raise git_error(command, proc.returncode, stderr.decode("utf-8", errors="replace"))

        return stdout.decode("utf-8", errors="replace")
