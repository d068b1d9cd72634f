# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Pre-release cleanup.

Brings the source tree back to a pristine checkout and removes whatever an
earlier run left behind, so the staging preconditions hold again:

  1. the build-tree clean command (make distclean)
  2. the version-control clean command (git clean -dxf)
  3. the release directory and both tarballs, if present

This is destructive by design and only runs when the operator asks for it
with -c.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from makerel.config.schema import ToolSettings
from makerel.logging.logger import get_logger
from makerel.release.commands.runner import CommandRunner, require_success
from makerel.release.staging.stager import ReleaseLayout
from makerel.utils.paths import remove_tree

_logger: logging.Logger = get_logger(__name__)


@dataclass(frozen=True)
class CleanResult:
    """What the cleanup removed."""

    commands: tuple[str, ...]
    removed: tuple[str, ...]


def clean_release(
    source_root: Path,
    layout: ReleaseLayout,
    runner: CommandRunner,
    tools: ToolSettings,
) -> CleanResult:
    """
    Clean the source tree and delete earlier release output.

    Raises:
        ExternalToolError: If either clean command exits non-zero.
    """
    _logger.info(
        "Starting cleanup",
        extra={"source_root": str(source_root), "release_dir": str(layout.release_dir)},
    )

    commands: list[str] = []
    for argv in (tools.build_clean, tools.vcs_clean):
        result = require_success(runner.run(list(argv), cwd=source_root))
        commands.append(result.command)

    removed: list[str] = []
    release_dir = layout.release_dir
    if release_dir.is_dir() and not release_dir.is_symlink():
        remove_tree(release_dir)
        removed.append(str(release_dir))
    elif release_dir.exists() or release_dir.is_symlink():
        release_dir.unlink()
        removed.append(str(release_dir))

    for tarball in (layout.gzip_tarball, layout.xz_tarball):
        if tarball.exists():
            tarball.unlink()
            removed.append(str(tarball))

    for path in removed:
        _logger.debug("Removed", extra={"path": path})

    _logger.info("Cleanup complete", extra={"removed": len(removed)})
    return CleanResult(commands=tuple(commands), removed=tuple(removed))
