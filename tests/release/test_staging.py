# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for release tree staging.
"""

import stat
from pathlib import Path

import pytest

from makerel.config.schema import ToolSettings
from makerel.release.cleanup.cleaner import clean_release
from makerel.release.exceptions import PreconditionError, StagingError
from makerel.release.manifests.manifest import ManifestEntry, read_manifest
from makerel.release.staging.stager import (
    ReleaseLayout,
    check_outputs_absent,
    stage_tree,
    verify_staged_tree,
)
from makerel.utils.paths import relative_files


@pytest.fixture()
def layout(output_root: Path) -> ReleaseLayout:
    return ReleaseLayout(root=output_root, reldir="perl-5.40.0-foo-bar")


def test_stage_copies_every_manifested_file(source_tree: Path, layout: ReleaseLayout):
    (source_tree / "not-listed.txt").write_text("left behind")
    entries = read_manifest(source_tree / "MANIFEST")

    release_dir = stage_tree(entries, source_tree, layout)

    assert release_dir == layout.release_dir
    assert relative_files(release_dir) == {e.path for e in entries}
    assert (release_dir / "t/op/time.t").read_bytes() == (source_tree / "t/op/time.t").read_bytes()
    assert not (release_dir / "not-listed.txt").exists()


def test_release_dir_mode_is_0755(source_tree: Path, layout: ReleaseLayout):
    entries = read_manifest(source_tree / "MANIFEST")
    release_dir = stage_tree(entries, source_tree, layout)
    assert stat.S_IMODE(release_dir.stat().st_mode) == 0o755


def test_second_stage_without_cleanup_fails(source_tree: Path, layout: ReleaseLayout):
    entries = read_manifest(source_tree / "MANIFEST")
    stage_tree(entries, source_tree, layout)

    with pytest.raises(PreconditionError, match="already exists"):
        stage_tree(entries, source_tree, layout)


def test_cleanup_between_stages_allows_second_run(
    source_tree: Path, layout: ReleaseLayout, fake_runner
):
    entries = read_manifest(source_tree / "MANIFEST")
    stage_tree(entries, source_tree, layout)
    for path in layout.release_dir.rglob("*"):
        if path.is_file():
            path.chmod(0o444)

    clean_release(source_tree, layout, fake_runner, ToolSettings())

    release_dir = stage_tree(entries, source_tree, layout)
    assert release_dir.is_dir()


def test_existing_gzip_tarball_blocks_staging(source_tree: Path, layout: ReleaseLayout):
    layout.gzip_tarball.write_bytes(b"old")
    entries = read_manifest(source_tree / "MANIFEST")

    with pytest.raises(PreconditionError, match=r"\.tar\.gz already exists"):
        stage_tree(entries, source_tree, layout)
    assert not layout.release_dir.exists()


def test_existing_xz_tarball_only_matters_when_requested(
    source_tree: Path, layout: ReleaseLayout
):
    layout.xz_tarball.write_bytes(b"old")

    with pytest.raises(PreconditionError):
        check_outputs_absent(layout, include_xz=True)
    check_outputs_absent(layout, include_xz=False)


def test_copy_failure_is_fatal_and_leaves_partial_tree(
    source_tree: Path, layout: ReleaseLayout
):
    entries = read_manifest(source_tree / "MANIFEST")
    (source_tree / "README").unlink()

    with pytest.raises(StagingError, match="README"):
        stage_tree(entries, source_tree, layout)
    assert layout.release_dir.is_dir()


def test_manifest_entry_escaping_release_dir_is_rejected(
    source_tree: Path, layout: ReleaseLayout
):
    entries = [ManifestEntry("../escape.txt")]
    (source_tree.parent / "escape.txt").write_text("nope")

    with pytest.raises(StagingError, match="outside"):
        stage_tree(entries, source_tree, layout)


def test_verify_detects_extra_staged_file(tmp_path: Path):
    (tmp_path / "a").write_text("a")
    (tmp_path / "b").write_text("b")

    with pytest.raises(StagingError, match="not in manifest: b"):
        verify_staged_tree([ManifestEntry("a")], tmp_path)
