"""Logging setup for the blamelens CLI and embedding hosts.

The console handler stays at WARNING unless something asks for more:
an explicit ``level``, ``BLAMELENS_LOG_LEVEL``, ``BLAMELENS_DEBUG``, the
``--debug`` flag, or ``debug: true`` in config, checked in that order.
Cache hits and misses from the blame store are logged at DEBUG.
"""

import logging
import os
import sys
from datetime import datetime
from pathlib import Path

_DEBUG_FORMAT = "%(asctime)s %(name)s [%(levelname)s] %(message)s"
_DEFAULT_FORMAT = "%(name)s: %(message)s"

# git subprocess waits are noisy under asyncio debug
_NOISY_LOGGERS = ("asyncio",)

_MAX_LOG_SESSIONS = 10


def _get_log_directory() -> Path:
    """Return ``.blamelens/logs`` next to the active config, creating it."""
    for base in (Path.cwd(), Path.home()):
        if (base / ".blamelens").is_dir():
            log_dir = base / ".blamelens" / "logs"
            break
    else:
        log_dir = Path.cwd() / ".blamelens" / "logs"

    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def _cleanup_old_logs(log_dir: Path, max_sessions: int = _MAX_LOG_SESSIONS) -> None:
    """Delete all but the newest ``max_sessions`` session logs in ``log_dir``."""
    if not log_dir.exists():
        return

    by_age = sorted(
        log_dir.glob("session_*.log"),
        key=lambda p: p.stat().st_mtime,
        reverse=True,
    )
    for stale in by_age[max_sessions:]:
        try:
            stale.unlink()
        except OSError:
            continue


def _config_debug() -> bool:
    from blamelens.config import get_config
    from blamelens.errors import BlameLensError

    try:
        return get_config().debug
    except BlameLensError:
        # config errors are reported by the CLI, not here
        return False


def _resolve_level(debug: bool, level: int | str | None) -> int:
    if level is not None:
        return _parse_level(level)
    if env_level := os.environ.get("BLAMELENS_LOG_LEVEL"):
        return _parse_level(env_level)
    if os.environ.get("BLAMELENS_DEBUG", "").lower() in ("true", "1", "yes"):
        return logging.DEBUG
    if debug or _config_debug():
        return logging.DEBUG
    return logging.WARNING


def _session_file_handler() -> logging.Handler:
    log_dir = _get_log_directory()
    _cleanup_old_logs(log_dir)

    log_file = log_dir / f"session_{datetime.now():%Y-%m-%d_%H-%M-%S}.log"
    handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(_DEBUG_FORMAT))
    return handler


def configure_logging(
    *,
    debug: bool = False,
    level: int | str | None = None,
    stream: object = None,
    persist: bool = False,
) -> None:
    """Install blamelens handlers on the root logger.

    Args:
        debug: Log blame store and git activity at DEBUG.
        level: Explicit level, beating every other source.
        stream: Console stream (default: stderr).
        persist: Also write a full DEBUG session log under ``.blamelens/logs``.
    """
    resolved_level = _resolve_level(debug, level)

    root_logger = logging.getLogger()
    # the session file captures DEBUG regardless of the console level
    root_logger.setLevel(logging.DEBUG if persist else resolved_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(stream or sys.stderr)
    console_handler.setLevel(resolved_level)
    console_handler.setFormatter(
        logging.Formatter(_DEBUG_FORMAT if resolved_level <= logging.DEBUG else _DEFAULT_FORMAT)
    )
    root_logger.addHandler(console_handler)

    if persist:
        try:
            root_logger.addHandler(_session_file_handler())
        except OSError as e:
            sys.stderr.write(f"blamelens: session log disabled: {e}\n")

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        "blamelens logging at %s (persist=%s)",
        logging.getLevelName(resolved_level),
        persist,
    )


def _parse_level(level: int | str) -> int:
    """Accept ints, level names, or numeric strings; fall back to WARNING."""
    if isinstance(level, int):
        return level
    numeric = getattr(logging, level.upper(), None)
    if isinstance(numeric, int):
        return numeric
    try:
        return int(level)
    except ValueError:
        return logging.WARNING
