"""WBXML 1.3 global tokens, multi-byte integers, tag-byte bits and the document header."""

from __future__ import annotations

from dataclasses import dataclass
from typing import BinaryIO

# Global token codes (OMA-WBXML 1.3 section 5.5).
SWITCH_PAGE = 0x00
END = 0x01
ENTITY = 0x02
STR_I = 0x03
LITERAL = 0x04

EXT_I_0 = 0x40
EXT_I_1 = 0x41
EXT_I_2 = 0x42
PI = 0x43
LITERAL_C = 0x44

EXT_T_0 = 0x80
EXT_T_1 = 0x81
EXT_T_2 = 0x82
STR_T = 0x83
LITERAL_A = 0x84

EXT_0 = 0xC0
EXT_1 = 0xC1
EXT_2 = 0xC2
OPAQUE = 0xC3
LITERAL_AC = 0xC4

_TAG_ATTR_BIT = 0x80
_TAG_CONTENT_BIT = 0x40
_TAG_ID_MASK = 0x3F

_MB_UINT32_MAX_BYTES = 5
_UINT32_MAX = 0xFFFFFFFF

# Upper bound on the per-document string table. Real EAS documents carry at
# most a few hundred bytes; the cap guards against pathological lengths.
MAX_STRING_TABLE_SIZE = 16 << 20


class WBXMLError(Exception):
    """Raised for malformed or unsupported WBXML data."""


class UnexpectedEOFError(WBXMLError, EOFError):
    """Raised when the input ends in the middle of a token or structure."""


def _read_byte(stream: BinaryIO) -> int:
    """Read one byte; raise EOFError when the stream is exhausted."""
    chunk = stream.read(1)
    if not chunk:
        raise EOFError("wbxml: end of input")
    return chunk[0]


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    """Read exactly size bytes or raise UnexpectedEOFError."""
    parts = []
    remaining = size
    while remaining > 0:
        chunk = stream.read(remaining)
        if not chunk:
            raise UnexpectedEOFError(
                f"wbxml: wanted {size} bytes, input ended after {size - remaining}"
            )
        parts.append(chunk)
        remaining -= len(chunk)
    return b"".join(parts)


def tag_has_attributes(b: int) -> bool:
    """Report whether bit 7 (0x80) is set on a tag byte."""
    return bool(b & _TAG_ATTR_BIT)


def tag_has_content(b: int) -> bool:
    """Report whether bit 6 (0x40) is set on a tag byte."""
    return bool(b & _TAG_CONTENT_BIT)


def tag_identity(b: int) -> int:
    """Return the 6-bit tag identity within the active code page."""
    return b & _TAG_ID_MASK


def encode_tag(identity: int, has_attributes: bool = False, has_content: bool = False) -> int:
    """Compose a tag byte from its 6-bit identity and flag bits."""
    if not 0 <= identity <= _TAG_ID_MASK:
        raise ValueError(f"wbxml: tag identity 0x{identity:02X} does not fit in 6 bits")
    out = identity
    if has_attributes:
        out |= _TAG_ATTR_BIT
    if has_content:
        out |= _TAG_CONTENT_BIT
    return out


def encode_mb_uint32(value: int) -> bytes:
    """Encode value as a shortest-form WBXML multi-byte integer."""
    if not 0 <= value <= _UINT32_MAX:
        raise ValueError(f"wbxml: {value} is outside the mb_u_int32 range")
    groups = [value & 0x7F]
    value >>= 7
    while value:
        groups.append((value & 0x7F) | 0x80)
        value >>= 7
    return bytes(reversed(groups))


def write_mb_uint32(stream: BinaryIO, value: int) -> None:
    """Write value to stream as a multi-byte integer."""
    stream.write(encode_mb_uint32(value))


def read_mb_uint32(stream: BinaryIO) -> tuple[int, int]:
    """Read a multi-byte integer; return (value, number of bytes consumed).

    At most five bytes are read. EOFError is raised when the stream is empty,
    UnexpectedEOFError when it ends inside the integer.
    """
    value = 0
    for count in range(1, _MB_UINT32_MAX_BYTES + 1):
        try:
            b = _read_byte(stream)
        except EOFError:
            if count > 1:
                raise UnexpectedEOFError("wbxml: truncated mb_u_int32") from None
            raise
        value = (value << 7) | (b & 0x7F)
        if not b & 0x80:
            return value, count
    raise WBXMLError("wbxml: mb_u_int32 longer than 5 bytes")


@dataclass
class Header:
    """The WBXML document preamble.

    The public id is always written inline; on reading, the
    "0 followed by a string-table offset" form is accepted and the offset
    is exposed as public_id.
    """

    version: int = 0x03
    public_id: int = 0x01
    charset: int = 0x6A
    string_table: bytes = b""

    def to_bytes(self) -> bytes:
        """Serialise the header."""
        table = bytes(self.string_table)
        return b"".join((
            bytes([self.version]),
            encode_mb_uint32(self.public_id),
            encode_mb_uint32(self.charset),
            encode_mb_uint32(len(table)),
            table,
        ))

    def write(self, stream: BinaryIO) -> None:
        """Write the serialised header to stream."""
        stream.write(self.to_bytes())

    @classmethod
    def read(cls, stream: BinaryIO) -> Header:
        """Parse a header from stream."""
        version = _read_byte(stream)
        public_id, _ = read_mb_uint32(stream)
        if public_id == 0:
            public_id, _ = read_mb_uint32(stream)
        charset, _ = read_mb_uint32(stream)
        length, _ = read_mb_uint32(stream)
        if length == 0:
            return cls(version, public_id, charset, b"")
        if length > MAX_STRING_TABLE_SIZE:
            raise WBXMLError(
                f"wbxml: string-table length {length} exceeds "
                f"{MAX_STRING_TABLE_SIZE}-byte limit"
            )
        return cls(version, public_id, charset, _read_exact(stream, length))