# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
EBCDIC transcoding of a staged release tree.

Used to build a release that unpacks as native text on an EBCDIC machine.
Every file listed in the staged copy of the manifest is classified and
rewritten in place:

  BINARY     left untouched
  UTF16_BE   UTF-16 with a big-endian BOM: the low byte of every unit whose
  UTF16_LE   high byte is zero goes through the Latin-1 table; other units
             pass through unchanged
  LATIN1     every byte goes through the Latin-1 table
  UTF8       every code point is re-encoded as UTF-EBCDIC

The stage translates *from* ASCII, so it must run where the native text
encoding is ASCII-based.
"""

import locale
import logging
import os
import stat
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from makerel.logging.logger import get_logger
from makerel.release.exceptions import PreconditionError, TranscodeError
from makerel.release.manifests.manifest import read_manifest
from makerel.release.transcoding.sniff import ContentKind, classify
from makerel.release.transcoding.tables import CodePage, encode_utf_ebcdic, get_code_page

_logger: logging.Logger = get_logger(__name__)


@dataclass(frozen=True)
class TranscodeReport:
    """How many files of each kind were processed."""

    code_page: str
    files: int
    kinds: dict[str, int] = field(default_factory=dict)


def check_native_encoding(native_encoding: Optional[str] = None) -> str:
    """
    Make sure the platform's native text encoding is ASCII-based.

    Raises:
        PreconditionError: If "A" doesn't encode to 0x41 natively.
    """
    encoding = native_encoding or locale.getpreferredencoding(False)
    try:
        encoded = "A".encode(encoding)
    except (LookupError, UnicodeEncodeError) as err:
        raise PreconditionError(f"Cannot use native encoding {encoding!r}: {err}") from err
    if encoded != b"A":
        raise PreconditionError(
            f"EBCDIC transcoding must run on an ASCII platform; native encoding is {encoding!r}"
        )
    return encoding


def _translate_utf16(data: bytes, table: bytes, big_endian: bool) -> bytes:
    if len(data) % 2:
        raise ValueError(f"UTF-16 content has odd length {len(data)}")
    out = bytearray(data)
    high, low = (0, 1) if big_endian else (1, 0)
    for offset in range(0, len(out), 2):
        if out[offset + high] == 0:
            out[offset + low] = table[out[offset + low]]
    return bytes(out)


def _translate_utf16_be(data: bytes, code_page: CodePage) -> bytes:
    return _translate_utf16(data, code_page.latin1, big_endian=True)


def _translate_utf16_le(data: bytes, code_page: CodePage) -> bytes:
    return _translate_utf16(data, code_page.latin1, big_endian=False)


def _translate_latin1(data: bytes, code_page: CodePage) -> bytes:
    return data.translate(code_page.latin1)


def _translate_utf8(data: bytes, code_page: CodePage) -> bytes:
    return encode_utf_ebcdic(data.decode("utf-8"), code_page)


_HANDLERS: dict[ContentKind, Callable[[bytes, CodePage], bytes]] = {
    ContentKind.UTF16_BE: _translate_utf16_be,
    ContentKind.UTF16_LE: _translate_utf16_le,
    ContentKind.LATIN1: _translate_latin1,
    ContentKind.UTF8: _translate_utf8,
}


def transcode_bytes(data: bytes, code_page: CodePage) -> tuple[ContentKind, bytes]:
    """
    Classify and translate content.

    Returns:
        (kind, translated bytes). Binary content comes back unchanged.

    Raises:
        ValueError: Malformed content for its kind (odd-length UTF-16).
    """
    kind = classify(data)
    handler = _HANDLERS.get(kind)
    if handler is None:
        return kind, data
    return kind, handler(data, code_page)


def transcode_file(path: Path, code_page: CodePage) -> ContentKind:
    """
    Rewrite one file in place.

    The file is opened read-write even when it turns out to be binary. A
    locked-down file gets owner write for the duration of the rewrite and
    its mode back afterwards.

    Raises:
        TranscodeError: If the content can't be translated or the file can't be rewritten.
    """
    try:
        original_mode = stat.S_IMODE(path.stat().st_mode)
    except OSError as err:
        raise TranscodeError(path, str(err)) from err

    needs_write = not original_mode & stat.S_IWUSR
    try:
        if needs_write:
            os.chmod(path, original_mode | stat.S_IWUSR)
        with open(path, "r+b") as fh:
            data = fh.read()
            try:
                kind, translated = transcode_bytes(data, code_page)
            except (ValueError, UnicodeDecodeError) as err:
                raise TranscodeError(path, str(err)) from err
            if kind is not ContentKind.BINARY:
                fh.seek(0)
                fh.write(translated)
                fh.truncate()
    except OSError as err:
        raise TranscodeError(path, str(err)) from err
    finally:
        if needs_write:
            os.chmod(path, original_mode)

    _logger.debug("Transcoded file", extra={"path": str(path), "kind": kind.value})
    return kind


def transcode_tree(
    release_dir: Path,
    manifest_file: str,
    code_page_name: str = "1047",
    native_encoding: Optional[str] = None,
) -> TranscodeReport:
    """
    Transcode every manifested file of a staged release.

    The manifest is re-read from the staged copy so files are processed in
    the order the release itself records.

    Raises:
        PreconditionError: Non-ASCII platform, or no manifest in the staged tree.
        TranscodeError: The first file that fails.
    """
    encoding = check_native_encoding(native_encoding)
    code_page = get_code_page(code_page_name)
    entries = read_manifest(release_dir / manifest_file)

    _logger.info(
        "Transcoding release to EBCDIC",
        extra={
            "release_dir": str(release_dir),
            "code_page": code_page.name,
            "native_encoding": encoding,
            "files": len(entries),
        },
    )

    kinds: Counter[str] = Counter()
    for entry in entries:
        kind = transcode_file(release_dir / entry.path, code_page)
        kinds[kind.value] += 1

    _logger.info("Transcoding complete", extra={"kinds": dict(kinds)})
    return TranscodeReport(code_page=code_page.name, files=len(entries), kinds=dict(kinds))
