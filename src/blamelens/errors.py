"""blamelens Error System.

Provides structured error handling with:
- Numeric error codes for programmatic handling
- User-friendly messages
- Recovery hints for the CLI and editor host
"""


from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Numeric error codes organized by category.

    Format: XYYY where X = category, YYY = specific error

    Categories:
        1xxx - Git/retrieval errors
        2xxx - Parse/URI errors
        5xxx - Configuration errors
    """

    # 1xxx - Git/Retrieval Errors
    GIT_NOT_FOUND = 1001
    GIT_COMMAND_FAILED = 1002
    GIT_TIMEOUT = 1003
    BLAME_RETRIEVAL_FAILED = 1004
    NOT_A_REPOSITORY = 1005

    # 2xxx - Parse/URI Errors
    URI_INVALID = 2001
    URI_SCHEME_MISMATCH = 2002
    RANGE_INVALID = 2003

    # 5xxx - Configuration Errors
    CONFIG_INVALID = 5001

    @property
    def category(self) -> str:
        """Get the error category name."""
        prefix = self.value // 1000
        return {
            1: "git",
            2: "parse",
            5: "config",
        }.get(prefix, "unknown")

    @property
    def is_recoverable(self) -> bool:
        """Whether this error type is typically recoverable."""
        non_recoverable = {
            ErrorCode.GIT_NOT_FOUND,
            ErrorCode.CONFIG_INVALID,
        }
        return self not in non_recoverable


# Human-readable error messages
ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.GIT_NOT_FOUND: "Git executable '{executable}' not found.",
    ErrorCode.GIT_COMMAND_FAILED: "git {command} failed (exit {returncode}): {stderr}",
    ErrorCode.GIT_TIMEOUT: "git {command} timed out after {timeout}s.",
    ErrorCode.BLAME_RETRIEVAL_FAILED: "Could not retrieve blame for '{file_name}': {detail}",
    ErrorCode.NOT_A_REPOSITORY: "'{path}' is not inside a git repository.",
    ErrorCode.URI_INVALID: "Malformed blame URI: {detail}",
    ErrorCode.URI_SCHEME_MISMATCH: "Expected a '{expected}' URI, got '{scheme}'.",
    ErrorCode.RANGE_INVALID: "Invalid line range '{value}': {detail}",
    ErrorCode.CONFIG_INVALID: "Invalid configuration: {detail}",
}

# Recovery suggestions
RECOVERY_HINTS: dict[ErrorCode, list[str]] = {
    ErrorCode.GIT_NOT_FOUND: [
        "Install git and make sure it is on PATH",
        "Set git.executable in .blamelens/config.yaml",
        "Export BLAMELENS_GIT_EXECUTABLE=/path/to/git",
    ],
    ErrorCode.GIT_COMMAND_FAILED: [
        "Check that the file is tracked by git",
        "Run the git command manually to inspect the error",
    ],
    ErrorCode.GIT_TIMEOUT: [
        "Increase git.timeout in .blamelens/config.yaml",
    ],
    ErrorCode.BLAME_RETRIEVAL_FAILED: [
        "Save or reopen the file to invalidate the cached blame and retry",
    ],
    ErrorCode.NOT_A_REPOSITORY: [
        "Open a file inside a git working tree",
    ],
    ErrorCode.URI_INVALID: [
        "Blame URIs must carry a JSON query produced by to_blame_uri()",
    ],
    ErrorCode.RANGE_INVALID: [
        "Use START,END with 0-based line numbers, e.g. --lines 10,20",
    ],
}


class BlameLensError(Exception):
    """Base error type for all blamelens errors.

    Example:
        >>> err = BlameLensError(
        ...     code=ErrorCode.GIT_TIMEOUT,
        ...     context={"command": "blame", "timeout": 30},
        ... )
        >>> print(err)
        [BL-1003] git blame timed out after 30s.
    """

    def __init__(
        self,
        code: ErrorCode,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        self.code = code
        self.context = context or {}
        self.cause = cause
        super().__init__(str(self))

    @property
    def message(self) -> str:
        """Get the formatted user-friendly message."""
        template = ERROR_MESSAGES.get(self.code, "An error occurred: {detail}")
        try:
            return template.format(**self.context)
        except KeyError:
            # Fallback if context doesn't have all keys
            return template

    @property
    def recovery_hints(self) -> list[str]:
        """Get recovery suggestions for this error."""
        formatted = []
        for hint in RECOVERY_HINTS.get(self.code, []):
            try:
                formatted.append(hint.format(**self.context))
            except KeyError:
                formatted.append(hint)
        return formatted

    @property
    def is_recoverable(self) -> bool:
        """Whether this error is typically recoverable."""
        return self.code.is_recoverable

    @property
    def category(self) -> str:
        """Get the error category."""
        return self.code.category

    @property
    def error_id(self) -> str:
        """Get the error ID string (e.g., 'BL-1003')."""
        return f"BL-{self.code.value}"

    def __str__(self) -> str:
        return f"[{self.error_id}] {self.message}"

    def __repr__(self) -> str:
        return f"BlameLensError(code={self.code!r}, context={self.context!r})"

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dict for logging/CLI JSON output."""
        return {
            "error_id": self.error_id,
            "code": self.code.value,
            "category": self.category,
            "message": self.message,
            "recoverable": self.is_recoverable,
            "recovery_hints": self.recovery_hints,
            "context": self.context,
        }


# =============================================================================
# Factory helpers
# =============================================================================


def git_error(
    command: str,
    returncode: int,
    stderr: str,
    cause: Exception | None = None,
) -> BlameLensError:
    """Create an error for a failed git invocation."""
    return BlameLensError(
        code=ErrorCode.GIT_COMMAND_FAILED,
        context={
            "command": command,
            "returncode": returncode,
            "stderr": stderr.strip() or "(no output)",
        },
        cause=cause,
    )


def uri_error(detail: str, cause: Exception | None = None) -> BlameLensError:
    """Create an error for an undecodable blame URI."""
    return BlameLensError(
        code=ErrorCode.URI_INVALID,
        context={"detail": detail},
        cause=cause,
    )
