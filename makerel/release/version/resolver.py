# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Release identity from the version header.

The source of truth for a perl version is patchlevel.h:

    #define PERL_REVISION   5       /* age */
    #define PERL_VERSION    40      /* epoch */
    #define PERL_SUBVERSION 0       /* generation */
    ...
    static const char * const local_patches[] = {
            NULL
    #ifdef PERL_GIT_UNCOMMITTED_CHANGES
            ,"uncommitted-changes"
    #endif
            PERL_GIT_UNPUSHED_COMMITS       /* do not remove this line */
            ,"foo"
            ,NULL
    };

The three defines give the dotted version. Each quoted row of the
local_patches table is a local patch tag; the tags, joined with "-", form
the release suffix (perl-5.40.0-foo). The NULL sentinels and the
uncommitted-changes marker are not tags.

The parser walks the header line by line with a small state machine
instead of matching one pattern over the whole text, so a reordered or
reformatted header fails with a targeted message.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from makerel.config.exceptions import VersionHeaderError
from makerel.logging.logger import get_logger

_logger: logging.Logger = get_logger(__name__)

SUFFIX_SEPARATOR: str = "-"
UNCOMMITTED_CHANGES_TAG: str = "uncommitted-changes"
LOCAL_PATCHES_START: str = "local_patches[]"

_DEFINE_RE = re.compile(r"^\s*#\s*define\s+PERL_(REVISION|VERSION|SUBVERSION)\s+(\d+)\b")
_ROW_RE = re.compile(r'^\s*,?\s*"([^"]*)"')
_NULL_ROW_RE = re.compile(r"^\s*,?\s*NULL\b")
_TAG_RE = re.compile(r"\w+")


@dataclass(frozen=True)
class ReleaseIdentity:
    """Version triple plus the local patch tags, in declaration order."""

    revision: int
    version: int
    subversion: int
    local_patches: tuple[str, ...] = ()

    @property
    def version_string(self) -> str:
        return f"{self.revision}.{self.version}.{self.subversion}"

    @property
    def suffix(self) -> str:
        """Local patch tags joined with the separator; empty when there are none."""
        return SUFFIX_SEPARATOR.join(self.local_patches)

    def release_name(self, name: str, suffix_override: Optional[str] = None) -> str:
        """
        Build "{name}-{version}[-{suffix}]".

        An operator-supplied suffix replaces the derived one outright. An
        empty override means "no suffix at all", not "use the derived one".
        """
        suffix = self.suffix if suffix_override is None else suffix_override
        release = f"{name}-{self.version_string}"
        if suffix:
            release += f"{SUFFIX_SEPARATOR}{suffix}"
        return release


def _parse_defines(lines: list[str]) -> dict[str, int]:
    """Collect the first value seen for each PERL_* version define."""
    defines: dict[str, int] = {}
    for line in lines:
        match = _DEFINE_RE.match(line)
        if match is None:
            continue
        defines.setdefault(match.group(1), int(match.group(2)))
    return defines


def _parse_local_patches(lines: list[str]) -> tuple[str, ...]:
    """
    Extract tags from the local_patches table.

    A header without the table has no local patches. A table that is opened
    but never closed is an error.
    """
    in_table = False
    closed = False
    tags: list[str] = []

    for line in lines:
        if not in_table:
            if LOCAL_PATCHES_START in line and "{" in line:
                in_table = True
            continue

        stripped = line.strip()
        if stripped.startswith("}"):
            closed = True
            break
        if not stripped or stripped.startswith("#") or _NULL_ROW_RE.match(line):
            continue

        match = _ROW_RE.match(line)
        if match is None:
            # PERL_GIT_UNPUSHED_COMMITS and similar macro rows
            continue
        quoted = match.group(1)
        if quoted == UNCOMMITTED_CHANGES_TAG:
            continue
        # Rows read "NAME - description"; only NAME goes into the suffix.
        tag = _TAG_RE.match(quoted)
        if tag is None:
            continue
        tags.append(tag.group(0))

    if in_table and not closed:
        raise VersionHeaderError("local_patches table is not terminated by '};'")

    return tuple(tags)


def parse_version_header(text: str) -> ReleaseIdentity:
    """
    Parse the contents of a version header into a ReleaseIdentity.

    Raises:
        VersionHeaderError: No version defines, or any of revision, version
            or subversion missing, or an unterminated local patch table.
    """
    lines = text.splitlines()
    defines = _parse_defines(lines)

    if not defines:
        raise VersionHeaderError("No PERL_REVISION/PERL_VERSION/PERL_SUBVERSION defines found")
    if "SUBVERSION" not in defines:
        raise VersionHeaderError("PERL_SUBVERSION is not defined")
    for field_name in ("REVISION", "VERSION"):
        if field_name not in defines:
            raise VersionHeaderError(f"PERL_{field_name} is not defined")

    identity = ReleaseIdentity(
        revision=defines["REVISION"],
        version=defines["VERSION"],
        subversion=defines["SUBVERSION"],
        local_patches=_parse_local_patches(lines),
    )
    return identity


def resolve_release_identity(version_file: Path) -> ReleaseIdentity:
    """
    Read and parse the version header at `version_file`.

    Raises:
        VersionHeaderError: If the file can't be read or doesn't parse.
    """
    try:
        text = version_file.read_text(encoding="utf-8", errors="replace")
    except OSError as err:
        raise VersionHeaderError(f"Cannot read {version_file}: {err}") from err

    try:
        identity = parse_version_header(text)
    except VersionHeaderError as err:
        raise VersionHeaderError(f"{version_file}: {err}") from err

    _logger.info(
        "Resolved release identity",
        extra={
            "version": identity.version_string,
            "local_patches": list(identity.local_patches),
        },
    )
    return identity
