# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Path utilities for makerel.

The release stages only ever write below the release directory. The helpers
here enumerate the staged tree and refuse paths that would escape it.
"""

import os
import shutil
import stat
from pathlib import Path
from typing import Iterator


def validate_path_within(target: Path, root: Path) -> Path:
    """
    Make sure a path doesn't escape the given root directory.

    Both paths are resolved before comparing, so `../../etc/passwd` style
    manifest entries get caught.

    Returns:
        The resolved absolute path if it's safe.

    Raises:
        ValueError: If the path escapes the root.
    """
    resolved_target = target.resolve()
    resolved_root = root.resolve()

    if not resolved_target.is_relative_to(resolved_root):
        raise ValueError(
            f"Path '{target}' resolves to '{resolved_target}' which is outside "
            f"'{resolved_root}'. This is not allowed."
        )

    return resolved_target


def iter_tree(root: Path) -> Iterator[tuple[Path, list[str], list[str]]]:
    """Walk a tree top-down in sorted order. Symlinks are not followed."""
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        filenames.sort()
        yield Path(dirpath), dirnames, filenames


def relative_files(root: Path) -> set[str]:
    """Return every regular file below root as a POSIX-style relative path."""
    found: set[str] = set()
    for dirpath, _dirnames, filenames in iter_tree(root):
        for filename in filenames:
            path = dirpath / filename
            if path.is_file() and not path.is_symlink():
                found.add(path.relative_to(root).as_posix())
    return found


def remove_tree(path: Path) -> None:
    """
    Recursively delete a directory, including read-only files and
    directories that a locked-down release tree is full of.
    """

    def _make_writable_and_retry(func, failed_path, _exc) -> None:  # type: ignore[no-untyped-def]
        parent = os.path.dirname(failed_path)
        os.chmod(parent, os.stat(parent).st_mode | stat.S_IWUSR | stat.S_IXUSR)
        os.chmod(failed_path, os.stat(failed_path).st_mode | stat.S_IWUSR)
        func(failed_path)

    shutil.rmtree(path, onexc=_make_writable_and_retry)
