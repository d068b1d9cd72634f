# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Release pipeline orchestration.

One invocation makes one release, strictly in order:

  check inputs -> resolve identity -> [cleanup] -> validate manifest
  -> stage -> normalize permissions -> [transcode] -> [archive -> digests]

Each stage either completes or raises; nothing after a failed stage runs
and nothing already done is undone.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, TextIO

from makerel.config.schema import MakerelConfig
from makerel.logging.logger import get_logger
from makerel.release.archive.emitter import ArchiveOptions, emit_archives
from makerel.release.checksums.integrity import ArchiveArtifact, report_digests
from makerel.release.cleanup.cleaner import clean_release
from makerel.release.commands.runner import CommandRunner, SubprocessRunner
from makerel.release.exceptions import PreconditionError
from makerel.release.manifests.manifest import read_manifest, validate_manifest
from makerel.release.permissions.normalizer import normalize_permissions, read_exec_globs
from makerel.release.staging.stager import ReleaseLayout, stage_tree
from makerel.release.transcoding.transcoder import transcode_tree
from makerel.release.version.resolver import ReleaseIdentity, resolve_release_identity

_logger: logging.Logger = get_logger(__name__)


@dataclass(frozen=True)
class ReleaseOptions:
    """What the operator asked for on the command line."""

    root: Optional[Path] = None
    suffix: Optional[str] = None
    include_xz: bool = False
    stage_only: bool = False
    clean: bool = False
    ebcdic: bool = False


@dataclass(frozen=True)
class ReleaseResult:
    """Outcome of a successful run."""

    identity: ReleaseIdentity
    release_name: str
    release_dir: Path
    artifacts: tuple[ArchiveArtifact, ...] = field(default_factory=tuple)


def check_source_tree(source_root: Path, config: MakerelConfig) -> None:
    """
    Make sure we're at the root of the tree being released.

    Raises:
        PreconditionError: Naming every required input that is missing.
    """
    settings = config.release
    required = (settings.manifest_file, settings.version_file, settings.exec_bit_file)
    missing = [name for name in required if not (source_root / name).is_file()]
    if missing:
        raise PreconditionError(
            f"{source_root} does not look like the root of the source tree; "
            f"missing: {', '.join(missing)}. Run makerel from the top-level directory."
        )


def run_release(
    options: ReleaseOptions,
    config: MakerelConfig,
    runner: Optional[CommandRunner] = None,
    source_root: Optional[Path] = None,
    digest_stream: Optional[TextIO] = None,
) -> ReleaseResult:
    """
    Make one release.

    Args:
        options: Command-line choices.
        config: Loaded configuration.
        runner: External command runner. Defaults to real subprocesses.
        source_root: Tree to release. Defaults to the current directory.
        digest_stream: Where digest lines go. Defaults to stdout.

    Returns:
        ReleaseResult describing what was produced.

    Raises:
        ReleaseError: Any stage failure.
        VersionHeaderError: The version header doesn't parse.
    """
    runner = runner if runner is not None else SubprocessRunner()
    source_root = (source_root or Path.cwd()).resolve()
    output_root = (options.root or source_root.parent).resolve()
    settings = config.release

    check_source_tree(source_root, config)

    identity = resolve_release_identity(source_root / settings.version_file)
    release_name = identity.release_name(settings.name, options.suffix)
    layout = ReleaseLayout(root=output_root, reldir=release_name)

    _logger.info(
        "Making release",
        extra={
            "release": release_name,
            "output_root": str(output_root),
            "include_xz": options.include_xz,
            "stage_only": options.stage_only,
            "ebcdic": options.ebcdic,
        },
    )

    if options.clean:
        clean_release(source_root, layout, runner, config.tools)
        check_source_tree(source_root, config)

    entries = read_manifest(source_root / settings.manifest_file)
    validate_manifest(entries, source_root)

    release_dir = stage_tree(entries, source_root, layout, include_xz=options.include_xz)

    normalize_permissions(
        release_dir,
        exec_globs=read_exec_globs(source_root / settings.exec_bit_file),
        writable_files=settings.writable_files,
        file_mode=settings.file_mode,
        dir_mode=settings.dir_mode,
    )

    if options.ebcdic:
        transcode_tree(release_dir, settings.manifest_file, code_page_name=settings.code_page)

    if options.stage_only:
        _logger.info("Stage only, skipping archives", extra={"release_dir": str(release_dir)})
        return ReleaseResult(identity=identity, release_name=release_name, release_dir=release_dir)

    emit_archives(
        layout,
        runner,
        config.tools,
        ArchiveOptions(include_xz=options.include_xz, allow_sevenzip=not options.ebcdic),
    )
    artifacts = report_digests(layout, stream=digest_stream)

    _logger.info(
        "Release complete",
        extra={"release": release_name, "artifacts": [a.path.name for a in artifacts]},
    )
    return ReleaseResult(
        identity=identity,
        release_name=release_name,
        release_dir=release_dir,
        artifacts=tuple(artifacts),
    )
