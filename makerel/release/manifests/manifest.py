# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Release manifest reading and validation.

The manifest is the authoritative list of files that make up a release.
Each non-blank line is a relative path, optionally followed by whitespace
and a free-text description:

    AUTHORS                 Contact info for contributors
    Porting/makerel         Release making utility
    t/op/time.t             See if time functions work

A file not listed is never released. A listed file that is absent from the
working tree aborts the run, and every missing path is reported before
aborting rather than only the first.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

from makerel.logging.logger import get_logger
from makerel.release.exceptions import ManifestValidationError, PreconditionError
from makerel.utils.paths import relative_files

_logger: logging.Logger = get_logger(__name__)

_ENTRY_RE = re.compile(r"^(\S+)(?:\s+(.*))?$")

# Version control metadata that never belongs in the manifest.
DEFAULT_UNLISTED_IGNORE: frozenset[str] = frozenset({".git", ".gitignore", ".mailmap"})


@dataclass(frozen=True)
class ManifestEntry:
    """One manifest line: relative path plus optional description."""

    path: str
    description: str = ""


def parse_manifest(text: str) -> list[ManifestEntry]:
    """
    Parse manifest text into entries, keeping declaration order.

    Duplicate paths keep their first position; later duplicates are
    dropped with a warning.
    """
    entries: list[ManifestEntry] = []
    seen: set[str] = set()

    for line_num, line in enumerate(text.splitlines(), start=1):
        stripped = line.strip()
        if not stripped:
            continue
        match = _ENTRY_RE.match(stripped)
        if match is None:
            continue
        path = match.group(1)
        if path in seen:
            _logger.warning(
                "Duplicate manifest entry ignored",
                extra={"path": path, "line": line_num},
            )
            continue
        seen.add(path)
        entries.append(ManifestEntry(path=path, description=(match.group(2) or "").strip()))

    return entries


def read_manifest(manifest_path: Path) -> list[ManifestEntry]:
    """
    Read a manifest file from disk.

    Raises:
        PreconditionError: If the manifest file doesn't exist or can't be read.
    """
    if not manifest_path.is_file():
        raise PreconditionError(f"Manifest file not found: {manifest_path}")

    try:
        text = manifest_path.read_text(encoding="utf-8", errors="surrogateescape")
    except OSError as err:
        raise PreconditionError(f"Cannot read manifest {manifest_path}: {err}") from err

    entries = parse_manifest(text)
    _logger.debug(
        "Manifest read",
        extra={"path": str(manifest_path), "entries": len(entries)},
    )
    return entries


def find_missing(entries: Sequence[ManifestEntry], root: Path) -> list[str]:
    """Return every listed path that is not a file under root, in manifest order."""
    return [entry.path for entry in entries if not (root / entry.path).is_file()]


def find_unlisted(
    entries: Sequence[ManifestEntry],
    root: Path,
    ignore: Iterable[str] = DEFAULT_UNLISTED_IGNORE,
) -> list[str]:
    """
    Return files present under root that the manifest doesn't list.

    Any path whose first component is in `ignore` is skipped, so version
    control metadata never shows up here.
    """
    ignored = frozenset(ignore)
    listed = {entry.path for entry in entries}
    unlisted: list[str] = []
    for rel_path in sorted(relative_files(root)):
        if rel_path.split("/", 1)[0] in ignored:
            continue
        if rel_path not in listed:
            unlisted.append(rel_path)
    return unlisted


def validate_manifest(
    entries: Sequence[ManifestEntry],
    root: Path,
    report_unlisted: bool = True,
) -> None:
    """
    Cross-check the manifest against the working tree.

    Files in the tree but not in the manifest are only logged: they are
    simply left out of the release. Files in the manifest but not in the
    tree are fatal.

    Raises:
        ManifestValidationError: Carrying every missing path.
    """
    missing = find_missing(entries, root)

    if report_unlisted:
        for rel_path in find_unlisted(entries, root):
            _logger.warning("File not in manifest", extra={"path": rel_path})

    if missing:
        for rel_path in missing:
            _logger.error("File listed in manifest is missing", extra={"path": rel_path})
        raise ManifestValidationError(missing)

    _logger.info(
        "Manifest validated",
        extra={"entries": len(entries), "root": str(root)},
    )
