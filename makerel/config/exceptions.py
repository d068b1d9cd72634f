# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Custom exceptions for the configuration system.

We keep these separate so that the CLI and the release stages can catch
config-specific failures without importing the config machinery.
"""


class ConfigError(Exception):
    """Base for all configuration errors."""


class ConfigLoadError(ConfigError):
    """Raised when a config file cannot be read from disk or parsed as YAML."""


class ConfigValidationError(ConfigError):
    """
    Raised when a config file parses fine but fails schema validation.
    This covers unknown keys, type mismatches and out-of-range values.
    """


class VersionHeaderError(ConfigError):
    """
    Raised when the version header (patchlevel.h) cannot be turned into a
    release identity: a missing PERL_SUBVERSION define, no defines at all,
    or an unterminated local patch table.
    """
