# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
External command execution.

The archive and cleanup stages talk to tar, the compressors, make and git
only through a CommandRunner. SubprocessRunner is the real implementation;
tests pass a fake that records commands and returns canned results.

A runner never raises for a non-zero exit. It returns a CommandResult and
the caller decides; `require_success` turns a failure into an
ExternalToolError carrying the command line.
"""

import logging
import shlex
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, Sequence

from makerel.logging.logger import get_logger
from makerel.release.exceptions import ExternalToolError

_logger: logging.Logger = get_logger(__name__)

# Exit status reported when the executable doesn't exist, as a shell would.
COMMAND_NOT_FOUND: int = 127
PROBE_TIMEOUT_SECONDS: int = 10


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one external command or pipeline."""

    command: str
    returncode: int
    output: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def format_command(argv: Sequence[str]) -> str:
    return shlex.join(argv)


def format_pipeline(
    producer: Sequence[str], consumer: Sequence[str], output: Optional[Path] = None
) -> str:
    line = f"{format_command(producer)} | {format_command(consumer)}"
    if output is not None:
        line += f" > {shlex.quote(str(output))}"
    return line


class CommandRunner(Protocol):
    def run(self, argv: Sequence[str], cwd: Optional[Path] = None) -> CommandResult:
        """Run a command to completion."""
        ...

    def pipe(
        self,
        producer: Sequence[str],
        consumer: Sequence[str],
        cwd: Optional[Path] = None,
        output: Optional[Path] = None,
    ) -> CommandResult:
        """Run `producer | consumer [> output]`."""
        ...

    def probe(self, argv: Sequence[str]) -> Optional[str]:
        """Run a command for its banner. None if the executable is absent."""
        ...


class SubprocessRunner:
    """CommandRunner backed by the subprocess module."""

    def run(self, argv: Sequence[str], cwd: Optional[Path] = None) -> CommandResult:
        command = format_command(argv)
        _logger.info("Running command", extra={"command": command, "cwd": str(cwd or ".")})
        try:
            completed = subprocess.run(
                list(argv),
                cwd=cwd,
                capture_output=True,
                text=True,
                check=False,
            )
        except FileNotFoundError as err:
            return CommandResult(command=command, returncode=COMMAND_NOT_FOUND, output=str(err))
        return CommandResult(
            command=command,
            returncode=completed.returncode,
            output=(completed.stdout or "") + (completed.stderr or ""),
        )

    def pipe(
        self,
        producer: Sequence[str],
        consumer: Sequence[str],
        cwd: Optional[Path] = None,
        output: Optional[Path] = None,
    ) -> CommandResult:
        command = format_pipeline(producer, consumer, output)
        _logger.info("Running pipeline", extra={"command": command, "cwd": str(cwd or ".")})

        sink = open(output, "wb") if output is not None else subprocess.PIPE
        # Producer stderr is not read until both processes exit, so it goes
        # to a file rather than a pipe.
        with tempfile.TemporaryFile() as first_err_file:
            try:
                try:
                    first = subprocess.Popen(
                        list(producer), cwd=cwd, stdout=subprocess.PIPE, stderr=first_err_file
                    )
                except FileNotFoundError as err:
                    return CommandResult(
                        command=command, returncode=COMMAND_NOT_FOUND, output=str(err)
                    )

                try:
                    second = subprocess.Popen(
                        list(consumer),
                        cwd=cwd,
                        stdin=first.stdout,
                        stdout=sink,
                        stderr=subprocess.PIPE,
                    )
                except FileNotFoundError as err:
                    first.kill()
                    first.communicate()
                    return CommandResult(
                        command=command, returncode=COMMAND_NOT_FOUND, output=str(err)
                    )

                # Only the consumer reads the pipe now, so the producer gets
                # SIGPIPE if the consumer exits early.
                assert first.stdout is not None
                first.stdout.close()
                second_out, second_err = second.communicate()
                first.wait()
            finally:
                if output is not None:
                    sink.close()  # type: ignore[union-attr]

            first_err_file.seek(0)
            first_err = first_err_file.read()

        returncode = first.returncode or second.returncode
        messages = [
            chunk.decode("utf-8", errors="replace")
            for chunk in (first_err, second_out or b"", second_err or b"")
            if chunk
        ]
        return CommandResult(command=command, returncode=returncode, output="".join(messages))

    def probe(self, argv: Sequence[str]) -> Optional[str]:
        try:
            completed = subprocess.run(
                list(argv),
                capture_output=True,
                text=True,
                timeout=PROBE_TIMEOUT_SECONDS,
                check=False,
            )
        except (FileNotFoundError, PermissionError, subprocess.TimeoutExpired):
            return None
        return (completed.stdout or "") + (completed.stderr or "")


def require_success(result: CommandResult) -> CommandResult:
    """
    Raise for a failed command, otherwise pass the result through.

    Raises:
        ExternalToolError: With the failing command line and its output.
    """
    if not result.ok:
        _logger.error(
            "Command failed",
            extra={"command": result.command, "returncode": result.returncode},
        )
        raise ExternalToolError(result.command, result.returncode, result.output)
    return result
