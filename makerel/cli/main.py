# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
CLI entrypoint for makerel.

Run from the top of the source tree:

    makerel                     # ../perl-5.40.0.tar.gz
    makerel -x                  # also ../perl-5.40.0.tar.xz
    makerel -c -s RC1           # clean first, release as perl-5.40.0-RC1
    makerel -n -r /tmp          # stage /tmp/perl-5.40.0 only, no tarballs
    makerel -e                  # EBCDIC-ready release

Positional arguments are not accepted; any given is a usage error.
"""

import argparse
import sys
from typing import NoReturn, Optional, Sequence

from makerel.cli.commands import handle_release
from makerel.cli.exit_codes import USER_ERROR


class _ReleaseArgumentParser(argparse.ArgumentParser):
    """Argument parser whose usage errors exit with USER_ERROR instead of 2."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(USER_ERROR, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = _ReleaseArgumentParser(
        prog="makerel",
        description="Stage, archive and checksum a release of the current source tree.",
    )
    parser.add_argument(
        "-r",
        dest="root",
        metavar="ROOT",
        default=None,
        help="Directory to create the release in (default: the parent of the current directory).",
    )
    parser.add_argument(
        "-s",
        dest="suffix",
        metavar="SUFFIX",
        default=None,
        help="Release suffix, replacing the one derived from the local patches.",
    )
    parser.add_argument(
        "-x",
        dest="xz",
        action="store_true",
        default=False,
        help="Also create a .tar.xz tarball.",
    )
    parser.add_argument(
        "-n",
        dest="stage_only",
        action="store_true",
        default=False,
        help="Stage the release directory only; create no tarballs.",
    )
    parser.add_argument(
        "-c",
        dest="clean",
        action="store_true",
        default=False,
        help="Clean the tree and remove earlier release output first. Destructive.",
    )
    parser.add_argument(
        "-e",
        dest="ebcdic",
        action="store_true",
        default=False,
        help="Transcode the staged tree to EBCDIC. Does not use 7-Zip.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a YAML configuration file.",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        dest="log_level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging verbosity (default: from config, else INFO).",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    """
    Main CLI entrypoint. This is what pyproject.toml's [project.scripts] points to.

    Any usage error, including arguments argparse doesn't recognize, prints
    usage to stderr and exits with USER_ERROR.
    """
    parser = build_parser()
    args, leftover = parser.parse_known_args(argv)

    if leftover:
        parser.error(f"unexpected arguments: {' '.join(leftover)}")

    sys.exit(handle_release(args))


if __name__ == "__main__":
    main()
