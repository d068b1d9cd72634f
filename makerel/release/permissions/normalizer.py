# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Permission normalization for a staged release tree.

The order of operations matters:
  1. every regular file gets the read-only file mode (0444)
  2. every directory gets the traversable directory mode (0755)
  3. files matched by the executable globs gain the execute bits
  4. the writable allowlist regains owner write

Steps 3 and 4 only ever add bits, and they run after the blanket lockdown,
so an executable file on the allowlist ends up both executable and
writable.

The allowlist is maintained by hand and drifts from the real tree. A
missing allowlisted file is reported as exactly that, separately from a
chmod that failed on a file that does exist.
"""

import glob
import logging
import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

from makerel.logging.logger import get_logger
from makerel.release.exceptions import PermissionNormalizationError, PreconditionError
from makerel.utils.paths import iter_tree

_logger: logging.Logger = get_logger(__name__)

EXECUTE_BITS: int = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH
OWNER_WRITE: int = stat.S_IWUSR


@dataclass(frozen=True)
class PermissionReport:
    """What the normalizer touched."""

    files: int
    directories: int
    executables: tuple[str, ...]
    writable: tuple[str, ...]


def read_exec_globs(exec_bit_file: Path) -> list[str]:
    """
    Read the executable glob list. Blank lines and `#` comments are skipped.

    Raises:
        PreconditionError: If the file doesn't exist.
    """
    if not exec_bit_file.is_file():
        raise PreconditionError(f"Executable list not found: {exec_bit_file}")

    globs: list[str] = []
    for line in exec_bit_file.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        globs.append(stripped)
    return globs


def expand_exec_globs(release_dir: Path, patterns: Iterable[str]) -> list[str]:
    """Expand globs against the staged tree, keeping regular files only."""
    matched: list[str] = []
    seen: set[str] = set()
    for pattern in patterns:
        hits = sorted(glob.glob(pattern, root_dir=release_dir))
        if not hits:
            _logger.warning("Executable glob matched nothing", extra={"pattern": pattern})
        for hit in hits:
            rel_path = Path(hit).as_posix()
            if rel_path in seen or not (release_dir / rel_path).is_file():
                continue
            seen.add(rel_path)
            matched.append(rel_path)
    return matched


def _chmod(path: Path, mode: int) -> None:
    try:
        os.chmod(path, mode)
    except OSError as err:
        raise PermissionNormalizationError(f"chmod {mode:o} {path} failed: {err}") from err


def _add_bits(path: Path, bits: int) -> None:
    try:
        current = stat.S_IMODE(path.stat().st_mode)
    except OSError as err:
        raise PermissionNormalizationError(f"stat {path} failed: {err}") from err
    _chmod(path, current | bits)


def normalize_permissions(
    release_dir: Path,
    exec_globs: Sequence[str],
    writable_files: Sequence[str],
    file_mode: int = 0o444,
    dir_mode: int = 0o755,
) -> PermissionReport:
    """
    Apply the uniform modes, then the executable and writable exceptions.

    Args:
        release_dir: Root of the staged tree.
        exec_globs: Globs, relative to release_dir, of files to make executable.
        writable_files: Relative paths that must stay writable.
        file_mode: Mode for every regular file.
        dir_mode: Mode for every directory, release_dir included.

    Returns:
        PermissionReport summarizing what was touched.

    Raises:
        PermissionNormalizationError: A chmod failed, or an allowlisted
            file is not in the tree.
    """
    file_count = 0
    dir_count = 0

    # Directories are chmodded top-down; dir_mode must keep the owner's
    # write and search bits or the walk can't descend.
    _chmod(release_dir, dir_mode)
    dir_count += 1
    for dirpath, dirnames, filenames in iter_tree(release_dir):
        for filename in filenames:
            path = dirpath / filename
            if path.is_symlink() or not path.is_file():
                continue
            _chmod(path, file_mode)
            file_count += 1
        for dirname in dirnames:
            _chmod(dirpath / dirname, dir_mode)
            dir_count += 1

    executables = expand_exec_globs(release_dir, exec_globs)
    for rel_path in executables:
        _add_bits(release_dir / rel_path, EXECUTE_BITS)

    writable: list[str] = []
    for rel_path in writable_files:
        path = release_dir / rel_path
        if not path.exists():
            raise PermissionNormalizationError(
                f"Cannot make {rel_path} writable: it does not exist in {release_dir}. "
                f"The writable file list is out of date with the manifest."
            )
        try:
            _add_bits(path, OWNER_WRITE)
        except PermissionNormalizationError as err:
            raise PermissionNormalizationError(
                f"Cannot make {rel_path} writable: {err}"
            ) from err
        writable.append(rel_path)

    _logger.info(
        "Permissions normalized",
        extra={
            "files": file_count,
            "directories": dir_count,
            "executables": len(executables),
            "writable": len(writable),
        },
    )
    return PermissionReport(
        files=file_count,
        directories=dir_count,
        executables=tuple(executables),
        writable=tuple(writable),
    )
