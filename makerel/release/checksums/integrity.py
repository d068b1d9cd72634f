# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
SHA256 digests for the produced tarballs.

Output format, one line per tarball, matching GNU coreutils sha256sum so the
lines can be pasted into an announcement or checked with `sha256sum -c`:

    <sha256hex>  perl-5.40.0.tar.gz
    <sha256hex>  perl-5.40.0.tar.xz
"""

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, TextIO

from makerel.logging.logger import get_logger
from makerel.release.staging.stager import TARBALL_EXTENSIONS, ReleaseLayout
from makerel.utils.hashing import compute_sha256

_logger: logging.Logger = get_logger(__name__)


@dataclass(frozen=True)
class ArchiveArtifact:
    """A produced tarball and its digest."""

    path: Path
    digest: str

    def digest_line(self) -> str:
        return f"{self.digest}  {self.path.name}"


def find_artifacts(layout: ReleaseLayout) -> list[Path]:
    """Tarballs named after the release that exist in the output root, sorted."""
    candidates = [layout.root / f"{layout.reldir}{ext}" for ext in TARBALL_EXTENSIONS]
    return sorted(path for path in candidates if path.is_file())


def report_digests(layout: ReleaseLayout, stream: Optional[TextIO] = None) -> list[ArchiveArtifact]:
    """
    Hash every release tarball and print a digest line for each.

    Args:
        layout: Release layout whose tarballs to hash.
        stream: Where digest lines go. Defaults to stdout.

    Returns:
        One ArchiveArtifact per tarball found.
    """
    out = stream if stream is not None else sys.stdout
    artifacts: list[ArchiveArtifact] = []

    for path in find_artifacts(layout):
        artifact = ArchiveArtifact(path=path, digest=compute_sha256(path))
        artifacts.append(artifact)
        print(artifact.digest_line(), file=out)
        _logger.debug(
            "Computed digest",
            extra={"file": path.name, "sha256": artifact.digest[:16] + "..."},
        )

    if not artifacts:
        _logger.warning("No tarballs found to digest", extra={"root": str(layout.root)})
    out.flush()
    return artifacts
