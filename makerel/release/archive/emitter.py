# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tarball creation for a staged release.

One ustar stream of the release directory is produced per tarball and
piped into a compressor:

  .tar.gz   7-Zip in gzip mode when it's installed (best ratio), otherwise
            gzip --best followed by an advdef recompression pass when
            advdef is installed
  .tar.xz   xz, only when requested

Tools are probed before use. Any non-zero exit aborts the release with the
failing command line.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from makerel.config.schema import ToolSettings
from makerel.logging.logger import get_logger
from makerel.release.commands.runner import CommandRunner, require_success
from makerel.release.staging.stager import ReleaseLayout

_logger: logging.Logger = get_logger(__name__)

SEVENZIP_BANNER: str = "7-Zip"


@dataclass(frozen=True)
class ArchiveOptions:
    include_xz: bool = False
    allow_sevenzip: bool = True


def sevenzip_available(runner: CommandRunner, tools: ToolSettings) -> bool:
    banner = runner.probe(list(tools.sevenzip))
    return banner is not None and SEVENZIP_BANNER in banner


def advdef_available(runner: CommandRunner, tools: ToolSettings) -> bool:
    return runner.probe([*tools.advdef, "--version"]) is not None


def _tar_command(tools: ToolSettings, reldir: str) -> list[str]:
    return [*tools.tar, reldir]


def emit_gzip_tarball(
    layout: ReleaseLayout,
    runner: CommandRunner,
    tools: ToolSettings,
    allow_sevenzip: bool = True,
) -> Path:
    """
    Write `{reldir}.tar.gz` next to the release directory.

    Raises:
        ExternalToolError: If tar or a compressor fails.
    """
    tarball = layout.gzip_tarball
    tar = _tar_command(tools, layout.reldir)

    if allow_sevenzip and sevenzip_available(runner, tools):
        _logger.info("Compressing with 7-Zip", extra={"tarball": str(tarball)})
        compress = [*tools.sevenzip, "a", "-tgzip", "-mx9", "-bd", "-si", tarball.name]
        require_success(runner.pipe(tar, compress, cwd=layout.root))
        return tarball

    _logger.info("Compressing with gzip", extra={"tarball": str(tarball)})
    require_success(runner.pipe(tar, list(tools.gzip), cwd=layout.root, output=tarball))

    if advdef_available(runner, tools):
        _logger.info("Recompressing with advdef", extra={"tarball": str(tarball)})
        require_success(runner.run([*tools.advdef, "-z", "-4", tarball.name], cwd=layout.root))
    else:
        _logger.debug("advdef not available, keeping gzip output")

    return tarball


def emit_xz_tarball(layout: ReleaseLayout, runner: CommandRunner, tools: ToolSettings) -> Path:
    """
    Write `{reldir}.tar.xz` next to the release directory.

    Raises:
        ExternalToolError: If tar or xz fails.
    """
    tarball = layout.xz_tarball
    _logger.info("Compressing with xz", extra={"tarball": str(tarball)})
    require_success(
        runner.pipe(_tar_command(tools, layout.reldir), list(tools.xz), cwd=layout.root, output=tarball)
    )
    return tarball


def emit_archives(
    layout: ReleaseLayout,
    runner: CommandRunner,
    tools: ToolSettings,
    options: ArchiveOptions,
) -> list[Path]:
    """Produce the gzip tarball and, if requested, the xz tarball."""
    produced = [emit_gzip_tarball(layout, runner, tools, allow_sevenzip=options.allow_sevenzip)]
    if options.include_xz:
        produced.append(emit_xz_tarball(layout, runner, tools))
    return produced
