# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Content classification for the EBCDIC transcoder.

Every staged file lands in exactly one ContentKind, and the transcoder
dispatches on the kind.
"""

import enum

from makerel.release.transcoding.tables import INVARIANT_LIMIT

SNIFF_BLOCK_SIZE: int = 512
BOM_BIG_ENDIAN: bytes = b"\xfe\xff"
BOM_LITTLE_ENDIAN: bytes = b"\xff\xfe"

# Control characters that are normal in text files: BS, TAB, LF, FF, CR, ESC.
_TEXT_CONTROLS: frozenset[int] = frozenset({0x08, 0x09, 0x0A, 0x0C, 0x0D, 0x1B})


class ContentKind(enum.Enum):
    BINARY = "binary"
    UTF16_BE = "utf16_be"
    UTF16_LE = "utf16_le"
    LATIN1 = "latin1"
    UTF8 = "utf8"


def _decodes_as_utf8(block: bytes, truncated: bool) -> bool:
    try:
        block.decode("utf-8")
    except UnicodeDecodeError as err:
        # A multi-byte character cut off by the sniff window still counts.
        return truncated and err.end == len(block) and err.reason == "unexpected end of data"
    return True


def looks_binary(data: bytes) -> bool:
    """
    Decide whether content is binary, in the spirit of perl's -B test.

    Looks at the first block only. An empty file counts as binary, and so
    does anything with a NUL byte, unless it starts with a UTF-16 byte order
    mark. Valid UTF-8 is text. Otherwise the block is binary when more than
    a third of its bytes are control characters or have the high bit set.
    """
    if not data:
        return True
    if data.startswith((BOM_BIG_ENDIAN, BOM_LITTLE_ENDIAN)):
        return False

    block = data[:SNIFF_BLOCK_SIZE]
    if b"\x00" in block:
        return True
    if _decodes_as_utf8(block, truncated=len(data) > len(block)):
        return False

    odd = sum(1 for byte in block if byte >= 0x80 or (byte < 0x20 and byte not in _TEXT_CONTROLS))
    return odd * 3 > len(block)


def is_invariant_text(text: str) -> bool:
    """True when every code point is one of the 160 invariant characters."""
    return all(ord(ch) < INVARIANT_LIMIT for ch in text)


def classify(data: bytes) -> ContentKind:
    """
    Classify file content.

    Narrow text that is not valid UTF-8, and valid UTF-8 that only uses the
    invariant characters, are both LATIN1: the single-byte table gives the
    same result as UTF-EBCDIC for them.
    """
    if looks_binary(data):
        return ContentKind.BINARY
    if data.startswith(BOM_BIG_ENDIAN):
        return ContentKind.UTF16_BE
    if data.startswith(BOM_LITTLE_ENDIAN):
        return ContentKind.UTF16_LE

    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError:
        return ContentKind.LATIN1
    if is_invariant_text(text):
        return ContentKind.LATIN1
    return ContentKind.UTF8
