"""
Utilities for platform directories and relative path handling.
"""

import os
import sys
from pathlib import Path, PurePath

APP_NAME = "release-sync"


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / APP_NAME


def default_install_dir() -> Path:
    """Returns the platform-specific default installation root."""
    home = Path.home()
    if os.name == "nt":
        return home / APP_NAME / "launcher"
    if sys.platform == "darwin":
        return home / "Library" / "Application Support" / APP_NAME / "launcher"
    return home / f".{APP_NAME}" / "launcher"


def to_relative_posix(path: Path, root: Path) -> str:
    """Relativizes ``path`` against ``root`` and normalizes separators to '/'."""
    return PurePath(os.path.relpath(path, root)).as_posix()


def is_hidden(relative_path: str) -> bool:
    """True if any segment of a '/'-separated relative path starts with a dot."""
    return any(part.startswith(".") for part in relative_path.split("/") if part)
