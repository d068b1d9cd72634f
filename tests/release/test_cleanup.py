# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for pre-release cleanup.
"""

from pathlib import Path

import pytest

from conftest import FakeRunner
from makerel.config.schema import ToolSettings
from makerel.release.cleanup.cleaner import clean_release
from makerel.release.exceptions import ExternalToolError
from makerel.release.staging.stager import ReleaseLayout


@pytest.fixture()
def leftovers(output_root: Path) -> ReleaseLayout:
    """An earlier run's output: a locked-down release dir and both tarballs."""
    layout = ReleaseLayout(root=output_root, reldir="perl-5.40.0")
    nested = layout.release_dir / "lib"
    nested.mkdir(parents=True)
    (nested / "strict.pm").write_text("package strict;\n")
    (nested / "strict.pm").chmod(0o444)
    layout.gzip_tarball.write_bytes(b"gz")
    layout.xz_tarball.write_bytes(b"xz")
    return layout


def test_runs_both_clean_commands(source_tree: Path, leftovers: ReleaseLayout):
    runner = FakeRunner()

    result = clean_release(source_tree, leftovers, runner, ToolSettings())

    assert runner.commands == ["make distclean", "git clean -dxf"]
    assert result.commands == ("make distclean", "git clean -dxf")


def test_removes_previous_release_output(source_tree: Path, leftovers: ReleaseLayout):
    result = clean_release(source_tree, leftovers, FakeRunner(), ToolSettings())

    assert not leftovers.release_dir.exists()
    assert not leftovers.gzip_tarball.exists()
    assert not leftovers.xz_tarball.exists()
    assert len(result.removed) == 3


def test_nothing_to_remove_is_fine(source_tree: Path, output_root: Path):
    layout = ReleaseLayout(root=output_root, reldir="perl-5.40.0")
    result = clean_release(source_tree, layout, FakeRunner(), ToolSettings())
    assert result.removed == ()


def test_failing_clean_command_is_fatal(source_tree: Path, leftovers: ReleaseLayout):
    runner = FakeRunner(failing=["git"])

    with pytest.raises(ExternalToolError, match="git clean -dxf"):
        clean_release(source_tree, leftovers, runner, ToolSettings())

    assert leftovers.release_dir.exists()


def test_custom_clean_commands(source_tree: Path, output_root: Path):
    runner = FakeRunner()
    tools = ToolSettings(build_clean=("gmake", "-s", "realclean"), vcs_clean=("git", "clean", "-xf"))
    layout = ReleaseLayout(root=output_root, reldir="perl-5.40.0")

    clean_release(source_tree, layout, runner, tools)

    assert runner.commands == ["gmake -s realclean", "git clean -xf"]
