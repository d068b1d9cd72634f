# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for manifest reading and validation.
"""

from pathlib import Path

import pytest

from conftest import MANIFEST_LINES
from makerel.release.exceptions import ManifestValidationError, PreconditionError
from makerel.release.manifests.manifest import (
    ManifestEntry,
    find_missing,
    find_unlisted,
    parse_manifest,
    read_manifest,
    validate_manifest,
)


def test_parse_keeps_order_and_descriptions():
    text = "b/two.c\t\tSecond file\n\na/one.c   First file\nlone\n"
    entries = parse_manifest(text)
    assert entries == [
        ManifestEntry("b/two.c", "Second file"),
        ManifestEntry("a/one.c", "First file"),
        ManifestEntry("lone", ""),
    ]


def test_parse_drops_duplicate_paths():
    entries = parse_manifest("x  first\ny  other\nx  again\n")
    assert [e.path for e in entries] == ["x", "y"]
    assert entries[0].description == "first"


def test_read_manifest_from_tree(source_tree: Path):
    entries = read_manifest(source_tree / "MANIFEST")
    assert [e.path for e in entries] == [path for path, _ in MANIFEST_LINES]


def test_read_missing_manifest_is_precondition_error(tmp_path: Path):
    with pytest.raises(PreconditionError, match="Manifest file not found"):
        read_manifest(tmp_path / "MANIFEST")


def test_complete_tree_has_no_missing_files(source_tree: Path):
    entries = read_manifest(source_tree / "MANIFEST")
    assert find_missing(entries, source_tree) == []
    validate_manifest(entries, source_tree)


@pytest.mark.parametrize("victim", [path for path, _ in MANIFEST_LINES])
def test_removing_one_file_reports_exactly_that_file(source_tree: Path, victim: str):
    entries = read_manifest(source_tree / "MANIFEST")
    (source_tree / victim).unlink()
    assert find_missing(entries, source_tree) == [victim]


def test_validation_reports_every_missing_file(source_tree: Path):
    entries = read_manifest(source_tree / "MANIFEST")
    (source_tree / "README").unlink()
    (source_tree / "t/op/time.t").unlink()

    with pytest.raises(ManifestValidationError) as excinfo:
        validate_manifest(entries, source_tree)

    assert excinfo.value.missing == ("README", "t/op/time.t")
    assert "README" in str(excinfo.value)
    assert "t/op/time.t" in str(excinfo.value)


def test_unlisted_files_are_reported_but_not_fatal(source_tree: Path):
    (source_tree / "stray.o").write_bytes(b"\x7fELF")
    (source_tree / ".git").mkdir()
    (source_tree / ".git" / "HEAD").write_text("ref: refs/heads/blead\n")
    entries = read_manifest(source_tree / "MANIFEST")

    assert find_unlisted(entries, source_tree) == ["stray.o"]
    validate_manifest(entries, source_tree)
