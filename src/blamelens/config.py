"""blamelens configuration management.

Loads configuration from .blamelens/config.yaml with sensible defaults.
All settings can be overridden via environment variables (BLAMELENS_*).

Config locations (in priority order):
1. Explicit path passed to load_config()
2. .blamelens/config.yaml (project-local)
3. ~/.blamelens/config.yaml (user-global)
4. Built-in defaults
"""


import logging
import os
import threading
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml

from blamelens.errors import BlameLensError, ErrorCode

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GitConfig:
    """How git is invoked."""

    executable: str = "git"
    """Git executable name or path."""

    blame_args: tuple[str, ...] = ("-fnw", "--root", "--abbrev=7")
    """Options passed to git blame (output must keep the -f -n layout)."""

    timeout: float = 30.0
    """Seconds before a git command is abandoned."""


@dataclass(frozen=True, slots=True)
class UriConfig:
    """Blame URI settings."""

    scheme: str = "gitblame"
    """Scheme registered with the editor host."""


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Logging settings."""

    persist: bool = False
    """Write session logs to .blamelens/logs/."""


@dataclass(frozen=True, slots=True)
class BlameLensConfig:
    """Root configuration for blamelens."""

    git: GitConfig = field(default_factory=GitConfig)
    uri: UriConfig = field(default_factory=UriConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    debug: bool = False
    """Enable debug logging by default."""


# Global config instance (lazy-loaded, thread-safe)
_config: BlameLensConfig | None = None
_config_lock = threading.Lock()

_SECTIONS = ("git", "uri", "logging")


def _deep_update(base: dict, updates: dict) -> dict:
    """Recursively update a dict with another dict."""
    for key, value in updates.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_update(base[key], value)
        else:
            base[key] = value
    return base


def _coerce(value: str) -> Any:
    """Coerce an environment string to bool/int/float where it looks like one."""
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    if value.isdigit() or (value.startswith("-") and value[1:].isdigit()):
        return int(value)
    try:
        return float(value)
    except ValueError:
        return value


def _apply_env_overrides(config_dict: dict) -> dict:
    """Apply environment variable overrides.

    Environment variables follow pattern: BLAMELENS_SECTION_KEY

    Examples:
        BLAMELENS_GIT_EXECUTABLE=/usr/local/bin/git
        BLAMELENS_GIT_TIMEOUT=60
        BLAMELENS_GIT_BLAME_ARGS="-fnw --root --abbrev=7 -M"
        BLAMELENS_URI_SCHEME=gitblame
        BLAMELENS_DEBUG=true
    """
    prefix = "BLAMELENS_"

    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue

        path_str = key[len(prefix):].lower()
        if path_str == "debug":
            config_dict["debug"] = _coerce(value)
            continue

        for section in _SECTIONS:
            if path_str.startswith(section + "_"):
                name = path_str[len(section) + 1:]
                if name == "blame_args":
                    config_dict[section][name] = value.split()
                else:
                    config_dict[section][name] = _coerce(value)
                break

    return config_dict


def _dict_to_config(data: dict) -> BlameLensConfig:
    """Convert a dict to BlameLensConfig."""
    try:
        git_data = dict(data.get("git", {}))
        if "blame_args" in git_data:
            git_data["blame_args"] = tuple(git_data["blame_args"])
        return BlameLensConfig(
            git=GitConfig(**git_data),
            uri=UriConfig(**data.get("uri", {})),
            logging=LoggingConfig(**data.get("logging", {})),
            debug=bool(data.get("debug", False)),
        )
    except TypeError as e:
        raise BlameLensError(
            code=ErrorCode.CONFIG_INVALID,
            context={"detail": str(e)},
            cause=e,
        ) from e


def load_config(path: str | Path | None = None) -> BlameLensConfig:
    """Load configuration from file with defaults and env overrides.

    Priority (highest to lowest):
    1. Environment variables (BLAMELENS_*)
    2. Explicit path if provided
    3. .blamelens/config.yaml (project-local)
    4. ~/.blamelens/config.yaml (user-global)
    5. Built-in defaults

    Args:
        path: Optional explicit config file path.

    Returns:
        Merged BlameLensConfig instance.

    Raises:
        BlameLensError: If the merged config has unknown keys.
    """
    global _config

    # Defaults come from the dataclasses (single source of truth)
    config_dict: dict[str, Any] = asdict(BlameLensConfig())

    config_paths = []
    if path:
        config_paths.append(Path(path))
    config_paths.extend([
        Path(".blamelens/config.yaml"),
        Path.home() / ".blamelens" / "config.yaml",
    ])

    for config_path in config_paths:
        if config_path.exists():
            try:
                with open(config_path) as f:
                    file_config = yaml.safe_load(f) or {}
                _deep_update(config_dict, file_config)
                logger.debug("Loaded config from %s", config_path)
                break  # Use first found config
            except (OSError, yaml.YAMLError) as e:
                logger.warning("Skipping invalid config file %s: %s", config_path, e)

    config_dict = _apply_env_overrides(config_dict)

    _config = _dict_to_config(config_dict)
    return _config


def get_config() -> BlameLensConfig:
    """Get the current configuration, loading if needed."""
    global _config

    if _config is not None:
        return _config

    with _config_lock:
        if _config is None:
            _config = load_config()
        return _config


def reset_config() -> None:
    """Reset the global config (useful for testing)."""
    global _config
    with _config_lock:
        _config = None


def save_default_config(path: str | Path = ".blamelens/config.yaml") -> Path:
    """Save the default configuration to a file.

    Args:
        path: Where to save the config.

    Returns:
        Path to the saved config file.
    """
    config_content = '''# blamelens Configuration
#
# NOTE: Actual defaults are defined in blamelens/config.py (the dataclasses).
# This file is an example template - edit values you want to override.

# How git is invoked
git:
  # Git executable name or absolute path
  executable: git

  # Options for git blame; keep -f (file names) and -n (line numbers)
  blame_args: ["-fnw", "--root", "--abbrev=7"]

  # Seconds before a git command is abandoned
  timeout: 30

# Blame URIs handed to the editor host
uri:
  scheme: gitblame

logging:
  # Write session logs to .blamelens/logs/
  persist: false

# Enable debug logging
debug: false
'''

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(config_content)
    return path
