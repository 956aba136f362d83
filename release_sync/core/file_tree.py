"""
Enumerates, compares and cleans the files of an installation root.
"""

import logging
import os
import shutil
from pathlib import Path
from typing import Iterable

from release_sync.models.release import ActualTree, ExpectedTree, TreeDiff
from release_sync.utils.path import is_hidden, to_relative_posix

log = logging.getLogger(__name__)


def collect_actual_tree(root: Path) -> ActualTree:
    """
    Recursively lists the visible files under ``root``.

    Paths are relative to ``root`` and '/'-separated. Any file or directory whose
    name starts with a dot is skipped together with everything beneath it.
    """
    root = Path(root)
    if not root.exists():
        log.debug(f"Installation root does not exist: {root}")
        return ActualTree()

    paths: set[str] = set()
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = [d for d in dirnames if not d.startswith(".")]
        for filename in filenames:
            if filename.startswith("."):
                continue
            relative = to_relative_posix(Path(dirpath) / filename, root)
            if not is_hidden(relative):
                paths.add(relative)
    return ActualTree(paths=frozenset(paths))


def compare_trees(expected: ExpectedTree, actual: ActualTree) -> TreeDiff:
    """Computes which expected files are missing and which actual files are extra."""
    diff = TreeDiff(
        missing=expected.paths - actual.paths,
        unexpected=actual.paths - expected.paths,
        expected_count=len(expected.paths),
        actual_count=len(actual.paths),
    )
    for path in sorted(diff.missing):
        log.debug(f"Missing expected file: {path}")
    for path in sorted(diff.unexpected):
        log.debug(f"Unexpected file found: {path}")
    return diff


def clean_expected_paths(root: Path, relative_paths: Iterable[str]) -> int:
    """
    Deletes the listed paths under ``root`` ahead of a re-extraction.

    Only listed paths are touched; anything else in the installation is left
    alone, and a path that resolves outside ``root`` is never touched.
    Directories are removed recursively. A path that cannot be deleted
    is logged and skipped, since re-extraction overwrites it anyway.

    Returns:
        The number of paths removed.
    """
    root = Path(root)
    resolved_root = root.resolve()
    removed = 0
    for relative in sorted(relative_paths):
        target = root / relative
        # The entry itself is not followed, so a listed symlink is unlinked in place.
        candidate = Path(os.path.normpath(target.parent.resolve() / target.name))
        if resolved_root not in candidate.parents:
            log.warning(f"Skipping '{relative}' during clean: outside the installation root.")
            continue
        if not target.exists() and not target.is_symlink():
            continue
        try:
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(target)
            else:
                target.unlink()
        except OSError as e:
            log.warning(f"Failed to delete '{target}' during clean: {e}")
            continue
        removed += 1
        log.debug(f"Deleted during clean: {target}")
    log.info(f"Removed {removed} installed paths before re-extraction.")
    return removed
