from __future__ import annotations

from pathlib import Path

from release_sync.core.file_tree import clean_expected_paths, collect_actual_tree, compare_trees
from release_sync.core.tree_parser import parse_tree_manifest
from release_sync.models.release import ActualTree, ExpectedTree


def _touch(root: Path, relative: str, data: bytes = b"x") -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


def test_collect_lists_files_relative_with_forward_slashes(tmp_path: Path) -> None:
    _touch(tmp_path, "mods/alpha.jar")
    _touch(tmp_path, "config/deep/settings.json")
    _touch(tmp_path, "readme.txt")
    (tmp_path / "empty").mkdir()

    tree = collect_actual_tree(tmp_path)

    assert tree.paths == {"mods/alpha.jar", "config/deep/settings.json", "readme.txt"}


def test_collect_excludes_hidden_files_and_directories(tmp_path: Path) -> None:
    _touch(tmp_path, ".cache")
    _touch(tmp_path, ".download-abc/data.zip")
    _touch(tmp_path, "mods/.DS_Store")
    _touch(tmp_path, "mods/a.jar")

    tree = collect_actual_tree(tmp_path)

    assert tree.paths == {"mods/a.jar"}
    assert ".cache" not in tree.paths


def test_collect_missing_root_is_empty(tmp_path: Path) -> None:
    assert collect_actual_tree(tmp_path / "nope").paths == frozenset()


def test_compare_reports_missing_and_unexpected() -> None:
    expected = ExpectedTree(paths=frozenset({"a.txt", "b.txt"}), total_entry_count=2)
    actual = ActualTree(paths=frozenset({"b.txt", "c.txt"}))

    diff = compare_trees(expected, actual)

    assert diff.missing == {"a.txt"}
    assert diff.unexpected == {"c.txt"}
    assert not diff.matches


def test_compare_matches_on_set_equality() -> None:
    paths = frozenset({"a.txt", "dir/b.txt"})

    diff = compare_trees(ExpectedTree(paths=paths, total_entry_count=3), ActualTree(paths=paths))

    assert diff.matches


def test_clean_removes_only_listed_paths(tmp_path: Path) -> None:
    _touch(tmp_path, "mods/a.jar")
    _touch(tmp_path, "mods/user-added.jar")
    _touch(tmp_path, "saves/world.dat")
    _touch(tmp_path, "lib.v2/core.jar")

    removed = clean_expected_paths(tmp_path, {"mods/a.jar", "lib.v2", "missing.txt"})

    assert removed == 2
    assert not (tmp_path / "mods/a.jar").exists()
    assert not (tmp_path / "lib.v2").exists()
    assert (tmp_path / "mods/user-added.jar").exists()
    assert (tmp_path / "saves/world.dat").exists()


def test_clean_never_touches_paths_outside_root(tmp_path: Path) -> None:
    root = tmp_path / "launcher"
    _touch(root, "mods/a.jar")
    outside = _touch(tmp_path, "precious.txt")
    absolute = _touch(tmp_path, "home/notes.txt")
    listed = parse_tree_manifest(["├── ../precious.txt"]).paths

    removed = clean_expected_paths(
        root, {*listed, "mods/../../precious.txt", str(absolute), "/" + str(absolute), "mods/a.jar"}
    )

    assert listed == {"../precious.txt"}
    assert removed == 1
    assert outside.exists()
    assert absolute.exists()
    assert not (root / "mods/a.jar").exists()


def test_clean_skips_the_root_itself(tmp_path: Path) -> None:
    _touch(tmp_path, "mods/a.jar")

    removed = clean_expected_paths(tmp_path / "mods", {"..", "."})

    assert removed == 0
    assert (tmp_path / "mods/a.jar").exists()
