# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Type-safe configuration schemas for makerel.

Every section is a frozen pydantic model. Frozen means once you create it,
you cannot mutate it. The release stages receive these objects as plain
arguments; nothing reads configuration from process-wide state.

The models use pydantic v2's ConfigDict with:
  - frozen=True: immutability after construction
  - extra="forbid": unknown fields cause immediate failure
  - validate_default=True: even defaults get type-checked

All defaults reproduce the layout of a perl source tree, so running
`makerel` with no config file packages perl.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Generated files that downstream tooling (regen scripts, Configure,
# the Windows and VMS makefiles) rewrites in place. They stay writable after
# the release tree is locked down.
DEFAULT_WRITABLE_FILES: tuple[str, ...] = (
    "charclass_invlists.h",
    "embed.h",
    "embedvar.h",
    "feature.h",
    "keywords.c",
    "keywords.h",
    "l1_char_class_tab.h",
    "lib/B/Op_private.pm",
    "lib/feature.pm",
    "lib/overload/numbers.pm",
    "lib/warnings.pm",
    "mg_names.inc",
    "mg_raw.h",
    "mg_vtable.h",
    "opcode.h",
    "opnames.h",
    "overload.h",
    "overload.inc",
    "perly.act",
    "perly.h",
    "perly.tab",
    "pp_proto.h",
    "proto.h",
    "reentr.c",
    "reentr.h",
    "regcharclass.h",
    "regnodes.h",
    "uconfig.h",
    "uni_keywords.h",
    "unicode_constants.h",
    "warnings.h",
    "vms/descrip_mms.template",
    "win32/GNUmakefile",
    "win32/Makefile",
    "win32/config_H.gc",
    "win32/config_H.vc",
)

SUPPORTED_CODE_PAGES: frozenset[str] = frozenset({"1047", "037"})


class ReleaseSettings(BaseModel):
    """
    What gets released and how the staged tree is laid out.

    All paths are relative to the root of the source tree being packaged.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    name: str = Field(default="perl", min_length=1, description="Distribution name prefix")
    manifest_file: str = Field(default="MANIFEST", description="Authoritative file list")
    version_file: str = Field(
        default="patchlevel.h", description="Header holding the version defines"
    )
    exec_bit_file: str = Field(
        default="Porting/exec-bit.txt",
        description="Globs of files that must carry the executable bit",
    )
    writable_files: tuple[str, ...] = Field(
        default=DEFAULT_WRITABLE_FILES,
        description="Generated files that stay writable after lockdown",
    )
    file_mode: int = Field(default=0o444, ge=0, le=0o7777)
    dir_mode: int = Field(default=0o755, ge=0, le=0o7777)
    code_page: str = Field(
        default="1047", description="EBCDIC code page used by the -e transcoding stage"
    )

    @field_validator("code_page")
    @classmethod
    def _check_code_page(cls, value: str) -> str:
        if value not in SUPPORTED_CODE_PAGES:
            raise ValueError(
                f"Unsupported code page '{value}'. "
                f"Must be one of: {', '.join(sorted(SUPPORTED_CODE_PAGES))}"
            )
        return value


class ToolSettings(BaseModel):
    """
    Command lines for the external tools. Each entry is an argv prefix; the
    archive stage appends its own operands.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    tar: tuple[str, ...] = ("tar", "--format=ustar", "-cf", "-")
    gzip: tuple[str, ...] = ("gzip", "--best")
    sevenzip: tuple[str, ...] = ("7z",)
    advdef: tuple[str, ...] = ("advdef",)
    xz: tuple[str, ...] = ("xz", "-z", "-c")
    build_clean: tuple[str, ...] = ("make", "distclean")
    vcs_clean: tuple[str, ...] = ("git", "clean", "-dxf")


class MakerelConfig(BaseModel):
    """
    Root config object. Every section has defaults, so an empty YAML
    mapping is a valid config.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    release: ReleaseSettings = Field(default_factory=ReleaseSettings)
    tools: ToolSettings = Field(default_factory=ToolSettings)
    log_level: str = Field(
        default="INFO", description="One of DEBUG, INFO, WARNING, ERROR, CRITICAL"
    )
    log_file: Optional[str] = Field(
        default=None, description="Optional path for file-based log output"
    )

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        upper = value.upper()
        if upper not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level '{value}'")
        return upper
