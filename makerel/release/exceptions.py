# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Failure taxonomy for the release pipeline.

Every stage fails by raising one of these. Nothing retries and nothing rolls
back: the CLI maps the exception family to an exit code, logs the message,
and leaves whatever was half-built in place for inspection.
"""

from pathlib import Path
from typing import Sequence


class ReleaseError(Exception):
    """Base for every fatal release pipeline error."""


class PreconditionError(ReleaseError):
    """
    The environment is not in a state where the stage can start: wrong
    working directory, missing input files, an output path that already
    exists, or a platform that cannot run the transcoder.
    """


class ManifestValidationError(ReleaseError):
    """The manifest and the working tree disagree. Carries every missing path."""

    def __init__(self, missing: Sequence[str]) -> None:
        self.missing: tuple[str, ...] = tuple(missing)
        listing = "\n".join(f"    {path}" for path in self.missing)
        super().__init__(
            f"{len(self.missing)} file(s) listed in the manifest are missing:\n{listing}"
        )


class StagingError(ReleaseError):
    """Copying the manifested files into the release directory failed."""


class PermissionNormalizationError(ReleaseError):
    """Setting modes on the staged tree failed."""


class ExternalToolError(ReleaseError):
    """An external command exited non-zero."""

    def __init__(self, command: str, returncode: int, output: str = "") -> None:
        self.command = command
        self.returncode = returncode
        self.output = output
        message = f"Command failed with exit status {returncode}: {command}"
        if output.strip():
            message += f"\n{output.strip()}"
        super().__init__(message)


class TranscodeError(ReleaseError):
    """A staged file could not be transcoded."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot transcode {path}: {reason}")
