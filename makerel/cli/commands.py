# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Command handler for the makerel CLI.

Loads the config, applies the log level, runs the release pipeline and
turns each failure family into its exit code. Diagnostics go through the
structured logger; the only plain stdout output is the digest lines.
"""

import argparse
import logging
from pathlib import Path

from makerel.cli.exit_codes import (
    CONFIG_ERROR,
    PRECONDITION_ERROR,
    RUNTIME_ERROR,
    SUCCESS,
    VALIDATION_ERROR,
)
from makerel.config.exceptions import ConfigError
from makerel.config.loader import load_config
from makerel.config.schema import MakerelConfig
from makerel.logging.logger import get_logger, set_package_log_level
from makerel.release.exceptions import (
    ExternalToolError,
    ManifestValidationError,
    PermissionNormalizationError,
    PreconditionError,
    ReleaseError,
    StagingError,
    TranscodeError,
)
from makerel.release.pipeline import ReleaseOptions, run_release


def _load_and_configure(
    args: argparse.Namespace,
) -> tuple[int, MakerelConfig | None, logging.Logger]:
    """
    Load the config and apply logging settings.

    The command-line --log-level wins over the config file's log_level.
    Returns (exit_code, config, logger); a non-SUCCESS code means stop.
    """
    logger = get_logger("makerel.cli.release", log_level=args.log_level or "INFO")

    try:
        config = load_config(Path(args.config) if args.config else None)
    except ConfigError as err:
        logger.error("Configuration error", extra={"error": str(err)})
        return CONFIG_ERROR, None, logger

    level = args.log_level or config.log_level
    set_package_log_level(level, Path(config.log_file) if config.log_file else None)
    return SUCCESS, config, logger


def _options_from_args(args: argparse.Namespace) -> ReleaseOptions:
    return ReleaseOptions(
        root=Path(args.root) if args.root else None,
        suffix=args.suffix,
        include_xz=args.xz,
        stage_only=args.stage_only,
        clean=args.clean,
        ebcdic=args.ebcdic,
    )


def handle_release(args: argparse.Namespace) -> int:
    """Make one release and return the process exit code."""
    exit_code, config, logger = _load_and_configure(args)
    if exit_code != SUCCESS or config is None:
        return exit_code

    try:
        run_release(_options_from_args(args), config)
    except ConfigError as err:
        logger.error("Configuration error", extra={"error": str(err)})
        return CONFIG_ERROR
    except PreconditionError as err:
        logger.error("Precondition failed", extra={"error": str(err)})
        return PRECONDITION_ERROR
    except ManifestValidationError as err:
        logger.error(
            "Manifest validation failed",
            extra={"error": str(err), "missing": list(err.missing)},
        )
        return VALIDATION_ERROR
    except ExternalToolError as err:
        logger.error(
            "External command failed",
            extra={"command": err.command, "returncode": err.returncode, "error": str(err)},
        )
        return RUNTIME_ERROR
    except TranscodeError as err:
        logger.error("Transcoding failed", extra={"file": str(err.path), "error": err.reason})
        return RUNTIME_ERROR
    except (StagingError, PermissionNormalizationError) as err:
        logger.error("Release tree preparation failed", extra={"error": str(err)})
        return RUNTIME_ERROR
    except ReleaseError as err:
        logger.error("Release failed", extra={"error": str(err)})
        return RUNTIME_ERROR

    return SUCCESS
