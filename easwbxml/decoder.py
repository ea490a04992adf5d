"""Streaming WBXML 1.3 decoder with transparent code page switching."""

from __future__ import annotations

import io
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO, Union

from .codepages import page_by_id
from .tokens import (
    END,
    OPAQUE,
    STR_I,
    STR_T,
    SWITCH_PAGE,
    Header,
    UnexpectedEOFError,
    WBXMLError,
    tag_has_attributes,
    tag_has_content,
    tag_identity,
)

# Upper bound on a single OPAQUE payload. EAS payloads are far smaller; the
# cap guards against pathological lengths that would request huge buffers.
MAX_OPAQUE_SIZE = 64 << 20

# Upper bound on a single inline (STR_I) string.
MAX_INLINE_STRING_SIZE = 16 << 20

# Upper bound on the total bytes gathered by one Decoder.capture_raw call.
MAX_RAW_ELEMENT_SIZE = 64 << 20

_MB_UINT32_MAX_BYTES = 5

Source = Union[BinaryIO, bytes, bytearray, memoryview]


class TokenKind(Enum):
    """Classification of a logical WBXML token."""

    TAG = 1
    END = 2
    STRING = 3
    OPAQUE = 4

    def __str__(self) -> str:
        return self.name.capitalize()


@dataclass(frozen=True)
class Token:
    """A decoded WBXML event.

    page, tag, has_attrs and has_content are meaningful for TAG tokens,
    text for STRING tokens and data for OPAQUE tokens.
    """

    kind: TokenKind
    page: int = 0
    tag: int = 0
    has_attrs: bool = False
    has_content: bool = False
    text: str = ""
    data: bytes = b""


class Decoder:
    """Reads WBXML tokens from a binary stream or a bytes object.

    SWITCH_PAGE tokens are consumed internally; the active code page starts
    at 0 (AirSync) and is reported on every tag token.
    """

    def __init__(
        self,
        source: Source,
        *,
        max_opaque_size: int = MAX_OPAQUE_SIZE,
        max_inline_string_size: int = MAX_INLINE_STRING_SIZE,
        max_raw_element_size: int = MAX_RAW_ELEMENT_SIZE,
    ) -> None:
        if isinstance(source, (bytes, bytearray, memoryview)):
            source = io.BytesIO(bytes(source))
        self._stream = source
        self._page = 0
        self._string_table = b""
        self._max_opaque = max_opaque_size
        self._max_inline = max_inline_string_size
        self._max_raw = max_raw_element_size

    @property
    def page(self) -> int:
        """The currently active code page."""
        return self._page

    def read_header(self) -> Header:
        """Parse the document header and remember its string table."""
        header = Header.read(self._stream)
        self._string_table = header.string_table
        return header

    def __iter__(self) -> Iterator[Token]:
        """Yield tokens until the input ends cleanly between tokens."""
        while True:
            try:
                token = self.next_token()
            except UnexpectedEOFError:
                raise
            except EOFError:
                return
            yield token

    def next_token(self) -> Token:
        """Read the next logical token.

        Raises EOFError when the input ends between tokens, and
        UnexpectedEOFError when it ends inside one.
        """
        while True:
            b = self._read_byte()
            if b == SWITCH_PAGE:
                self._switch_page(self._next_byte("SWITCH_PAGE"))
                continue
            if b == END:
                return Token(TokenKind.END)
            if b == STR_I:
                return Token(TokenKind.STRING, text=_decode(self._read_inline_bytes()))
            if b == STR_T:
                _, offset = self._copy_mb_uint32()
                return Token(TokenKind.STRING, text=self._string_at(offset))
            if b == OPAQUE:
                _, length = self._copy_mb_uint32()
                self._check_opaque(length)
                return Token(TokenKind.OPAQUE, data=self._read_exact(length))
            return Token(
                TokenKind.TAG,
                page=self._page,
                tag=tag_identity(b),
                has_attrs=tag_has_attributes(b),
                has_content=tag_has_content(b),
            )

    def capture_raw(self, has_content: bool) -> bytes | None:
        """Capture the verbatim body of the element whose open tag was just read.

        The result holds everything between the open tag and its matching
        END, exclusive, including inner SWITCH_PAGE markers. The active page
        follows those markers. Returns None when has_content is false.
        """
        if not has_content:
            return None
        buf = bytearray()
        depth = 1
        while True:
            b = self._next_byte("element body")
            if b == SWITCH_PAGE:
                page = self._next_byte("SWITCH_PAGE")
                self._switch_page(page)
                buf += bytes([SWITCH_PAGE, page])
            elif b == END:
                depth -= 1
                if depth == 0:
                    return bytes(buf)
                buf.append(END)
            elif b == STR_I:
                buf.append(STR_I)
                buf += self._read_inline_bytes()
                buf.append(0x00)
            elif b == STR_T:
                buf.append(STR_T)
                raw, _ = self._copy_mb_uint32()
                buf += raw
            elif b == OPAQUE:
                buf.append(OPAQUE)
                raw, length = self._copy_mb_uint32()
                buf += raw
                self._check_opaque(length)
                buf += self._read_exact(length)
            else:
                buf.append(b)
                if tag_has_content(b):
                    depth += 1
            if len(buf) > self._max_raw:
                raise WBXMLError(
                    f"wbxml: raw element exceeds {self._max_raw}-byte limit"
                )

    def _read_byte(self) -> int:
        chunk = self._stream.read(1)
        if not chunk:
            raise EOFError("wbxml: end of input")
        return chunk[0]

    def _next_byte(self, context: str) -> int:
        chunk = self._stream.read(1)
        if not chunk:
            raise UnexpectedEOFError(f"wbxml: {context}: input ended")
        return chunk[0]

    def _read_exact(self, size: int) -> bytes:
        parts = []
        remaining = size
        while remaining > 0:
            chunk = self._stream.read(remaining)
            if not chunk:
                raise UnexpectedEOFError(
                    f"wbxml: wanted {size} bytes, input ended after {size - remaining}"
                )
            parts.append(chunk)
            remaining -= len(chunk)
        return b"".join(parts)

    def _switch_page(self, page: int) -> None:
        if page_by_id(page) is None:
            raise WBXMLError(f"wbxml: SWITCH_PAGE to unknown code page {page}")
        self._page = page

    def _read_inline_bytes(self) -> bytes:
        buf = bytearray()
        while True:
            b = self._next_byte("STR_I")
            if b == 0x00:
                return bytes(buf)
            if len(buf) >= self._max_inline:
                raise WBXMLError(f"wbxml: STR_I exceeds {self._max_inline}-byte limit")
            buf.append(b)

    def _copy_mb_uint32(self) -> tuple[bytes, int]:
        """Read a multi-byte integer, returning its raw bytes and its value."""
        raw = bytearray()
        value = 0
        for _ in range(_MB_UINT32_MAX_BYTES):
            b = self._next_byte("mb_u_int32")
            raw.append(b)
            value = (value << 7) | (b & 0x7F)
            if not b & 0x80:
                return bytes(raw), value
        raise WBXMLError("wbxml: mb_u_int32 longer than 5 bytes")

    def _check_opaque(self, length: int) -> None:
        if length > self._max_opaque:
            raise WBXMLError(
                f"wbxml: OPAQUE length {length} exceeds {self._max_opaque}-byte limit"
            )

    def _string_at(self, offset: int) -> str:
        table = self._string_table
        if offset >= len(table):
            raise WBXMLError(
                f"wbxml: STR_T offset {offset} out of range (table={len(table)})"
            )
        end = table.find(b"\x00", offset)
        if end < 0:
            end = len(table)
        return _decode(table[offset:end])


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")