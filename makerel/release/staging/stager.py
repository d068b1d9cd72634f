# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Release tree staging.

Creates `{root}/{reldir}` and copies every manifested file into it,
preserving relative paths:

    ../perl-5.40.0/
    ├─ AUTHORS
    ├─ Porting/makerel
    └─ t/op/time.t

A release directory or tarball left over from an earlier run is never
overwritten: the operator reruns with cleanup (-c) instead. A failed copy
aborts the run and leaves the partial tree for inspection.
"""

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from makerel.logging.logger import get_logger
from makerel.release.exceptions import PreconditionError, StagingError
from makerel.release.manifests.manifest import ManifestEntry
from makerel.utils.paths import relative_files, validate_path_within

_logger: logging.Logger = get_logger(__name__)

RELEASE_DIR_MODE: int = 0o755
TARBALL_EXTENSIONS: tuple[str, ...] = (".tar.gz", ".tar.xz")


@dataclass(frozen=True)
class ReleaseLayout:
    """Where a release lands: the staged directory and its sibling tarballs."""

    root: Path
    reldir: str

    @property
    def release_dir(self) -> Path:
        return self.root / self.reldir

    @property
    def gzip_tarball(self) -> Path:
        return self.root / f"{self.reldir}.tar.gz"

    @property
    def xz_tarball(self) -> Path:
        return self.root / f"{self.reldir}.tar.xz"

    def outputs(self, include_xz: bool = True) -> list[Path]:
        paths = [self.release_dir, self.gzip_tarball]
        if include_xz:
            paths.append(self.xz_tarball)
        return paths


def check_outputs_absent(layout: ReleaseLayout, include_xz: bool) -> None:
    """
    Refuse to stage over an earlier run's output.

    Raises:
        PreconditionError: If the release directory or a tarball exists.
    """
    for path in layout.outputs(include_xz=include_xz):
        if path.exists():
            raise PreconditionError(
                f"{path} already exists. Rerun with -c to clean up the previous release first."
            )


def stage_tree(
    entries: Sequence[ManifestEntry],
    source_root: Path,
    layout: ReleaseLayout,
    include_xz: bool = False,
) -> Path:
    """
    Create the release directory and copy every manifested file into it.

    Files are copied in manifest order. Modes are fixed up later by the
    permission normalizer, so copy2 just carries over what the working
    tree has.

    Returns:
        The release directory.

    Raises:
        PreconditionError: If any output already exists.
        StagingError: If a copy fails or the staged tree doesn't match the manifest.
    """
    check_outputs_absent(layout, include_xz=include_xz)

    release_dir = layout.release_dir
    _logger.info(
        "Staging release",
        extra={"release_dir": str(release_dir), "files": len(entries)},
    )

    try:
        release_dir.mkdir(mode=RELEASE_DIR_MODE)
        os.chmod(release_dir, RELEASE_DIR_MODE)
    except FileExistsError as err:
        raise PreconditionError(
            f"{release_dir} already exists. Rerun with -c to clean up the previous release first."
        ) from err
    except OSError as err:
        raise StagingError(f"Cannot create {release_dir}: {err}") from err

    for entry in entries:
        source = source_root / entry.path
        try:
            destination = validate_path_within(release_dir / entry.path, release_dir)
        except ValueError as err:
            raise StagingError(str(err)) from err
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, destination)
        except OSError as err:
            raise StagingError(f"Copying {entry.path} into {release_dir} failed: {err}") from err
        _logger.debug("Staged file", extra={"path": entry.path})

    verify_staged_tree(entries, release_dir)

    _logger.info("Release staged", extra={"release_dir": str(release_dir)})
    return release_dir


def verify_staged_tree(entries: Sequence[ManifestEntry], release_dir: Path) -> None:
    """
    Check the staged file set is exactly the manifest: no extras, no omissions.

    Raises:
        StagingError: Listing the differences.
    """
    expected = {entry.path for entry in entries}
    staged = relative_files(release_dir)

    omitted = sorted(expected - staged)
    extra = sorted(staged - expected)
    if omitted or extra:
        problems = [f"    not staged: {path}" for path in omitted]
        problems += [f"    not in manifest: {path}" for path in extra]
        raise StagingError(
            f"Staged tree at {release_dir} does not match the manifest:\n" + "\n".join(problems)
        )
