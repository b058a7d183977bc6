"""Utilities for locating the runtime data directory and files inside it."""

from __future__ import annotations

import os
from pathlib import Path

_ENV_VAR = "DRAMA_WATCH_DATA_DIR"
_DEFAULT_DIRNAME = ".drama_watch"


def get_data_dir() -> Path:
    """Return the configured runtime data directory.

    Honors the DRAMA_WATCH_DATA_DIR environment variable (a relative value is
    taken relative to the working directory; a blank one counts as unset);
    otherwise defaults to ~/.drama_watch.
    """
    override = (os.getenv(_ENV_VAR) or "").strip()
    if override:
        return (Path.cwd() / Path(override).expanduser()).resolve()
    return (Path.home() / _DEFAULT_DIRNAME).resolve()


def ensure_data_dir() -> Path:
    """Ensure the data directory exists on disk and return it."""
    data_dir = get_data_dir()
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir


def resolve_data_path(*relative: str, ensure_parent: bool = False) -> Path:
    """Resolve a path underneath the runtime data directory."""
    full_path = ensure_data_dir().joinpath(*relative)
    if ensure_parent:
        full_path.parent.mkdir(parents=True, exist_ok=True)
    return full_path


def resolve_data_file(path: str, ensure_parent: bool = False) -> Path:
    """Resolve a configured file path against the data directory.

    Absolute paths are used as-is. Relative paths are interpreted relative to
    the runtime data dir.
    """
    candidate = Path(path).expanduser()
    if candidate.is_absolute():
        if ensure_parent:
            candidate.parent.mkdir(parents=True, exist_ok=True)
        return candidate
    return resolve_data_path(*candidate.parts, ensure_parent=ensure_parent)


def default_config_path() -> Path:
    """Return ``<data_dir>/config.yaml`` without creating anything."""
    return get_data_dir() / "config.yaml"


__all__ = [
    "get_data_dir",
    "ensure_data_dir",
    "resolve_data_path",
    "resolve_data_file",
    "default_config_path",
]
