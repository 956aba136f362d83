"""
Persists the tag of the last verified installation under the installation root.
"""

import logging
from pathlib import Path
from typing import Optional

from release_sync.exceptions import StorageError

log = logging.getLogger(__name__)

STATE_FILE_NAME = ".release_info"


class StateStore:
    """
    Reads and writes the installed release tag.

    The tag file is the sole durable record of what is installed. It is hidden,
    so it never shows up when the installation tree is enumerated.
    """

    def __init__(self, install_dir: Path):
        self.install_dir = Path(install_dir)
        self.state_file = self.install_dir / STATE_FILE_NAME

    def read(self) -> Optional[str]:
        """Returns the stored tag, or None if nothing has been installed yet."""
        if not self.state_file.is_file():
            log.debug("No local release tag found.")
            return None
        try:
            tag = self.state_file.read_text(encoding="utf-8").strip()
        except (OSError, UnicodeDecodeError) as e:
            log.warning(f"Failed to read local release info: {e}")
            return None
        log.debug(f"Local release tag found: {tag}")
        return tag or None

    def write(self, tag: str) -> None:
        """Stores ``tag``, replacing any previous value."""
        try:
            self.install_dir.mkdir(parents=True, exist_ok=True)
            self.state_file.write_text(tag, encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to save local release info: {e}") from e
        log.debug(f"Saved local release tag: {tag}")

    def is_first_launch(self) -> bool:
        """True if the installation root or the tag file does not exist."""
        if not self.install_dir.exists():
            log.debug("Installation directory does not exist. First launch detected.")
            return True
        if not self.state_file.exists():
            log.debug("Local release info does not exist. First launch detected.")
            return True
        return False
