"""
Parses the indentation-structured directory listing published with each release
(the output of the ``tree`` command) into the set of files an installation must
contain.

Each entry line carries a connector, ``├──`` for a branch or ``└──`` for the
last branch, preceded by padding made of spaces and ``│`` characters. Every four
columns of padding is one level of depth::

    .
    ├── config
    │   └── settings.json
    └── mods
        ├── alpha.jar
        └── beta.jar
"""

import logging
import re
from pathlib import Path
from typing import Iterable

from release_sync.exceptions import TreeManifestError
from release_sync.models.release import ExpectedTree

log = logging.getLogger(__name__)

CONNECTORS = ("├──", "└──")
INDENT_WIDTH = 4
ROOT_MARKER = "."

# ``tree`` pads with no-break spaces in UTF-8 locales.
_PADDING_CHARS = frozenset(" \u00a0│")
_FILE_NAME_REGEX = re.compile(r"\S+\.[A-Za-z0-9]+")


def is_file_like(name: str) -> bool:
    """
    True if ``name`` ends in a dot-extension, e.g. ``alpha.jar``.

    A directory whose name contains an extension-like suffix is classified as a
    file, so it never becomes a path prefix for the entries beneath it.
    """
    return _FILE_NAME_REGEX.fullmatch(name) is not None


def _split_padding(line: str) -> tuple[int, str]:
    width = 0
    for char in line:
        if char not in _PADDING_CHARS:
            break
        width += 1
    return width, line[width:]


def parse_tree_manifest(lines: Iterable[str]) -> ExpectedTree:
    """
    Builds the expected tree from the lines of a tree manifest.

    Args:
        lines: The manifest, one entry per line.

    Returns:
        The relative paths of every file-like entry, joined with '/', and the
        count of all entry lines, directories included.
    """
    paths: set[str] = set()
    total_entry_count = 0
    stack: list[str] = []

    for raw_line in lines:
        line = raw_line.rstrip()
        if not line.strip() or line.strip() == ROOT_MARKER:
            continue

        width, rest = _split_padding(line)
        connector = next((c for c in CONNECTORS if rest.startswith(c)), None)
        if connector is None:
            # A named root line or the trailing summary; not an entry.
            continue

        total_entry_count += 1
        depth = width // INDENT_WIDTH
        del stack[depth:]

        name = rest[len(connector):].strip()
        if not name:
            continue

        if is_file_like(name):
            paths.add("/".join([*stack, name]))
        elif "." not in name:
            stack.append(name)

    log.debug(
        f"Parsed tree manifest: {len(paths)} files, {total_entry_count} entries."
    )
    return ExpectedTree(paths=frozenset(paths), total_entry_count=total_entry_count)


def parse_tree_file(path: Path) -> ExpectedTree:
    """
    Reads and parses a UTF-8 tree manifest file.

    Raises:
        TreeManifestError: If the file cannot be read or decoded.
    """
    try:
        with open(path, encoding="utf-8-sig") as f:
            return parse_tree_manifest(f)
    except UnicodeDecodeError as e:
        raise TreeManifestError(f"Tree manifest is not valid UTF-8: {e}") from e
    except OSError as e:
        raise TreeManifestError(f"Could not read tree manifest '{path}': {e}") from e
