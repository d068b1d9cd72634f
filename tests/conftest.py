# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Shared pytest fixtures for makerel tests.

The main fixture is a miniature perl source tree: a manifest, a version
header with two local patches, an executable list and a handful of files.
Release output lands next to it, in the same tmp_path.
"""

import textwrap
from pathlib import Path
from typing import Optional, Sequence

import pytest

from makerel.config.schema import MakerelConfig, ReleaseSettings
from makerel.release.commands.runner import CommandResult, format_command, format_pipeline

PATCHLEVEL_H = textwrap.dedent("""\
    #ifndef __PATCHLEVEL_H_INCLUDED__

    #define PERL_REVISION\t5\t\t/* age */
    #define PERL_VERSION\t40\t\t/* epoch */
    #define PERL_SUBVERSION\t0\t\t/* generation */

    #define PERL_API_REVISION\t5
    #define PERL_API_VERSION\t40
    #define PERL_API_SUBVERSION\t0

    #if !defined(PERL_PATCHLEVEL_H_IMPLICIT) && !defined(LOCAL_PATCH_COUNT)
    static const char * const local_patches[] = {
    \tNULL
    #ifdef PERL_GIT_UNCOMMITTED_CHANGES
    \t,"uncommitted-changes"
    #endif
    \tPERL_GIT_UNPUSHED_COMMITS    \t/* do not remove this line */
    \t,"foo"
    \t,"bar"
    \t,NULL
    };

    #  define\tLOCAL_PATCH_COUNT\t\\
    \t((int)(sizeof(local_patches)/sizeof(local_patches[0])-2))
    #endif

    #define __PATCHLEVEL_H_INCLUDED__
    #endif
""")

SOURCE_FILES: dict[str, bytes] = {
    "MANIFEST": b"",
    "patchlevel.h": PATCHLEVEL_H.encode("ascii"),
    "Porting/exec-bit.txt": b"# executables\nConfigure\nPorting/*.pl\n",
    "Porting/makerel.pl": b"#!/usr/bin/perl\nprint qq{hello\\n};\n",
    "Configure": b"#!/bin/sh\necho configure\n",
    "README": b"Perl is a language.\n",
    "perly.h": b"/* generated by regen_perly.pl */\n",
    "lib/strict.pm": b"package strict;\n1;\n",
    "t/op/time.t": b"print \"ok 1\\n\";\n",
}

MANIFEST_LINES: list[tuple[str, str]] = [
    ("Configure", "Portability tool"),
    ("MANIFEST", "This list of files"),
    ("Porting/exec-bit.txt", "List of files that get +x in release tarballs"),
    ("Porting/makerel.pl", "Release making utility"),
    ("README", "The Instructions"),
    ("lib/strict.pm", "For \"use strict\""),
    ("patchlevel.h", "The current patch level of perl"),
    ("perly.h", "The header file for perly.c"),
    ("t/op/time.t", "See if time functions work"),
]


def manifest_text(lines: Sequence[tuple[str, str]] = MANIFEST_LINES) -> str:
    return "".join(f"{path:<32}{description}\n" for path, description in lines)


@pytest.fixture()
def source_tree(tmp_path: Path) -> Path:
    """A small perl-shaped source tree at tmp_path/perl."""
    root = tmp_path / "perl"
    for rel_path, content in SOURCE_FILES.items():
        path = root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
    (root / "MANIFEST").write_text(manifest_text(), encoding="ascii")
    return root


@pytest.fixture()
def output_root(tmp_path: Path) -> Path:
    root = tmp_path / "out"
    root.mkdir()
    return root


@pytest.fixture()
def test_config() -> MakerelConfig:
    """Defaults, except for a writable list that matches the fixture tree."""
    return MakerelConfig(release=ReleaseSettings(writable_files=("perly.h",)))


class FakeRunner:
    """
    CommandRunner double. Records every command line, pretends every tool
    succeeds unless its name is in `failing`, and writes a small
    placeholder file wherever a real compressor would write its output.
    """

    def __init__(
        self,
        banners: Optional[dict[str, str]] = None,
        failing: Sequence[str] = (),
    ) -> None:
        self.banners = banners if banners is not None else {}
        self.failing = set(failing)
        self.commands: list[str] = []
        self.probes: list[str] = []

    def run(self, argv: Sequence[str], cwd: Optional[Path] = None) -> CommandResult:
        command = format_command(argv)
        self.commands.append(command)
        if argv[0] in self.failing:
            return CommandResult(command=command, returncode=2, output=f"{argv[0]}: failed")
        return CommandResult(command=command, returncode=0)

    def pipe(
        self,
        producer: Sequence[str],
        consumer: Sequence[str],
        cwd: Optional[Path] = None,
        output: Optional[Path] = None,
    ) -> CommandResult:
        command = format_pipeline(producer, consumer, output)
        self.commands.append(command)
        if producer[0] in self.failing or consumer[0] in self.failing:
            return CommandResult(command=command, returncode=1, output="broken pipe")
        payload = f"{producer[-1]} via {consumer[0]}".encode("ascii")
        if output is not None:
            output.write_bytes(payload)
        elif cwd is not None:
            (cwd / consumer[-1]).write_bytes(payload)
        return CommandResult(command=command, returncode=0)

    def probe(self, argv: Sequence[str]) -> Optional[str]:
        self.probes.append(argv[0])
        return self.banners.get(argv[0])


@pytest.fixture()
def fake_runner() -> FakeRunner:
    """gzip path only: no 7-Zip, no advdef."""
    return FakeRunner()
