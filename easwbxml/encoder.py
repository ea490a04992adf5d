"""Streaming WBXML 1.3 encoder with automatic code page switching."""

from __future__ import annotations

from typing import BinaryIO

from .codepages import page_by_id
from .tokens import (
    END,
    OPAQUE,
    STR_I,
    SWITCH_PAGE,
    Header,
    WBXMLError,
    encode_mb_uint32,
    encode_tag,
)


def _require_page(page: int) -> None:
    if page_by_id(page) is None:
        raise WBXMLError(f"wbxml: unknown code page {page}")


class Encoder:
    """Writes WBXML tokens to a binary stream.

    The active code page starts at 0 (AirSync), so a document needs no
    leading SWITCH_PAGE for page-0 tags. A SWITCH_PAGE is emitted whenever
    the next tag lives on a different page.
    """

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream
        self._page = 0
        self._page_known = True

    @property
    def page(self) -> int:
        """The code page most recently made active."""
        return self._page

    @property
    def page_known(self) -> bool:
        """False after write_raw, when the active page on the wire is unknown."""
        return self._page_known

    def write_header(self, header: Header) -> None:
        """Serialise the document header."""
        header.write(self._stream)

    def start_tag(
        self,
        page: int,
        identity: int,
        has_attrs: bool = False,
        has_content: bool = False,
    ) -> None:
        """Emit a tag byte, switching code page first if necessary."""
        _require_page(page)
        tag = encode_tag(identity, has_attrs, has_content)
        if not self._page_known or self._page != page:
            self._stream.write(bytes([SWITCH_PAGE, page]))
            self._page = page
            self._page_known = True
        self._stream.write(bytes([tag]))

    def end_tag(self) -> None:
        """Emit END, closing the most recently opened element."""
        self._stream.write(bytes([END]))

    def str_i(self, text: str) -> None:
        """Emit an inline string: STR_I, the UTF-8 bytes and a NUL terminator."""
        self._stream.write(bytes([STR_I]) + text.encode("utf-8") + b"\x00")

    def opaque(self, data: bytes) -> None:
        """Emit OPAQUE followed by the length-prefixed payload."""
        payload = bytes(data)
        self._stream.write(bytes([OPAQUE]) + encode_mb_uint32(len(payload)) + payload)

    def force_switch_page(self, page: int) -> None:
        """Emit SWITCH_PAGE to page unconditionally and make it active."""
        _require_page(page)
        self._stream.write(bytes([SWITCH_PAGE, page]))
        self._page = page
        self._page_known = True

    def write_raw(self, data: bytes) -> None:
        """Write pre-encoded tokens verbatim.

        Afterwards the active page is treated as unknown, so the next
        start_tag is always preceded by a SWITCH_PAGE. Balancing END tokens
        for caller-managed elements is the caller's job.
        """
        self._stream.write(bytes(data))
        self._page_known = False