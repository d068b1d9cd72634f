# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Latin-1 to EBCDIC translation tables and the UTF-EBCDIC encoder.

Two tables exist per code page:

  latin1 table   byte-for-byte Latin-1 -> EBCDIC, used for legacy
                 single-byte text and for the low byte of UTF-16 units.
  i8 table       UTF-8-Mod (I8) byte -> UTF-EBCDIC byte, used for text
                 that carries code points at or above U+00A0.

The first 160 positions (U+0000..U+009F: controls, ASCII, C1 controls) are
identical in both tables. Those are the invariant characters: they encode
to the same single byte whether the target is plain EBCDIC or UTF-EBCDIC.
The remaining 96 EBCDIC byte values, those not used by an invariant, are
handed out to I8 bytes 0xA0..0xFF in ascending order.

Code page 037 comes straight from Python's cp037 codec. Code page 1047
differs from 037 in six printable positions and, following the z/OS Unix
convention, maps LF to 0x15 and NEL to 0x25.
"""

INVARIANT_LIMIT: int = 0xA0
I8_CONTINUATION_BITS: int = 5
I8_CONTINUATION_MARK: int = 0xA0
I8_CONTINUATION_MASK: int = 0x1F

# Latin-1 byte -> EBCDIC byte where 1047 differs from 037.
_CP1047_OVERRIDES: dict[int, int] = {
    0x0A: 0x15,  # LF
    0x85: 0x25,  # NEL
    0x5B: 0xAD,  # [
    0x5D: 0xBD,  # ]
    0x5E: 0x5F,  # ^
    0xA8: 0xBB,  # diaeresis
    0xAC: 0xB0,  # not sign
    0xDD: 0xBA,  # Y acute
}


def _latin1_to_cp037() -> bytes:
    return bytes(range(256)).decode("latin-1").encode("cp037")


def _latin1_to_cp1047() -> bytes:
    table = bytearray(_latin1_to_cp037())
    for latin1_byte, ebcdic_byte in _CP1047_OVERRIDES.items():
        table[latin1_byte] = ebcdic_byte
    return bytes(table)


def _build_i8_table(latin1_table: bytes) -> bytes:
    table = bytearray(latin1_table[:INVARIANT_LIMIT])
    unused = sorted(set(range(256)) - set(table))
    table.extend(unused)
    return bytes(table)


def inverse_table(table: bytes) -> bytes:
    """Invert a 256-entry permutation table."""
    if len(table) != 256 or len(set(table)) != 256:
        raise ValueError("translation table is not a permutation of 0..255")
    inverse = bytearray(256)
    for source, target in enumerate(table):
        inverse[target] = source
    return bytes(inverse)


class CodePage:
    """Translation tables for one EBCDIC code page."""

    def __init__(self, name: str, latin1_table: bytes) -> None:
        self.name = name
        self.latin1 = latin1_table
        self.i8 = _build_i8_table(latin1_table)
        self.latin1_inverse = inverse_table(self.latin1)
        self.i8_inverse = inverse_table(self.i8)

    def __repr__(self) -> str:
        return f"CodePage({self.name!r})"


_CODE_PAGE_BUILDERS = {
    "037": _latin1_to_cp037,
    "1047": _latin1_to_cp1047,
}
_CODE_PAGES: dict[str, CodePage] = {}


def get_code_page(name: str) -> CodePage:
    """Return the (cached) tables for a code page name such as "1047"."""
    if name not in _CODE_PAGE_BUILDERS:
        raise ValueError(
            f"Unknown code page '{name}'. Known: {', '.join(sorted(_CODE_PAGE_BUILDERS))}"
        )
    if name not in _CODE_PAGES:
        _CODE_PAGES[name] = CodePage(name, _CODE_PAGE_BUILDERS[name]())
    return _CODE_PAGES[name]


def encode_utf8_mod(code_point: int) -> bytes:
    """
    Encode one code point as UTF-8-Mod (I8).

    Below 0xA0 the code point is its own byte. Above, the lead byte carries
    n one-bits, a zero, then payload; each continuation byte is 101xxxxx
    with five payload bits.

        < 0x400      110xxxxx 101xxxxx
        < 0x4000     1110xxxx 101xxxxx 101xxxxx
        < 0x40000    11110xxx 101xxxxx * 3
        < 0x400000   111110xx 101xxxxx * 4
    """
    if code_point < 0:
        raise ValueError(f"negative code point {code_point}")
    if code_point < INVARIANT_LIMIT:
        return bytes((code_point,))

    if code_point < 0x400:
        length = 2
    elif code_point < 0x4000:
        length = 3
    elif code_point < 0x40000:
        length = 4
    elif code_point < 0x400000:
        length = 5
    else:
        raise ValueError(f"code point {code_point:#x} is beyond Unicode")

    trail = bytearray()
    for _ in range(length - 1):
        trail.append(I8_CONTINUATION_MARK | (code_point & I8_CONTINUATION_MASK))
        code_point >>= I8_CONTINUATION_BITS
    trail.reverse()

    lead_mark = (0xFF << (8 - length)) & 0xFF
    return bytes((lead_mark | code_point,)) + bytes(trail)


def decode_utf8_mod(data: bytes) -> str:
    """Decode an I8 byte string back into text."""
    chars: list[str] = []
    i = 0
    while i < len(data):
        lead = data[i]
        if lead < INVARIANT_LIMIT:
            chars.append(chr(lead))
            i += 1
            continue
        length = 0
        while length < 8 and lead & (0x80 >> length):
            length += 1
        if length < 2 or i + length > len(data):
            raise ValueError(f"malformed I8 sequence at offset {i}")
        code_point = lead & (0xFF >> (length + 1))
        for byte in data[i + 1 : i + length]:
            if byte & 0xE0 != I8_CONTINUATION_MARK:
                raise ValueError(f"malformed I8 continuation at offset {i}")
            code_point = (code_point << I8_CONTINUATION_BITS) | (byte & I8_CONTINUATION_MASK)
        chars.append(chr(code_point))
        i += length
    return "".join(chars)


def encode_utf_ebcdic(text: str, code_page: CodePage) -> bytes:
    """Encode text as UTF-EBCDIC: I8 first, then the code page's i8 permutation."""
    i8 = b"".join(encode_utf8_mod(ord(ch)) for ch in text)
    return i8.translate(code_page.i8)


def decode_utf_ebcdic(data: bytes, code_page: CodePage) -> str:
    """Inverse of encode_utf_ebcdic."""
    return decode_utf8_mod(data.translate(code_page.i8_inverse))
