import io

import pytest
from hypothesis import example, given, settings
from hypothesis import strategies as st

from easwbxml.codepages import PAGE_AIRSYNC, PAGE_AIRSYNC_BASE, PAGE_EMAIL, page_by_id
from easwbxml.decoder import Decoder, Token, TokenKind
from easwbxml.tokens import (
    END,
    OPAQUE,
    STR_I,
    STR_T,
    SWITCH_PAGE,
    Header,
    UnexpectedEOFError,
    WBXMLError,
    encode_mb_uint32,
)

DEFAULT_HEADER = Header(version=0x03, public_id=0x01, charset=0x6A)


def test_tag_and_switch_page():
    data = bytes([0x03, 0x01, 0x6A, 0x00, 0x45, 0x00, 0x11, 0x4A, 0x01, 0x01])
    dec = Decoder(io.BytesIO(data))
    header = dec.read_header()
    assert (header.version, header.public_id, header.charset) == (0x03, 0x01, 0x6A)

    tok = dec.next_token()
    assert tok == Token(TokenKind.TAG, page=PAGE_AIRSYNC, tag=0x05, has_content=True)
    tok = dec.next_token()
    assert tok.kind is TokenKind.TAG
    assert tok.page == PAGE_AIRSYNC_BASE
    assert tok.tag == 0x0A
    assert dec.next_token().kind is TokenKind.END
    assert dec.next_token().kind is TokenKind.END
    with pytest.raises(EOFError) as info:
        dec.next_token()
    assert not isinstance(info.value, UnexpectedEOFError)


def test_iteration_stops_at_clean_end():
    data = bytes([0x45, 0x00, 0x11, 0x4A, 0x01, 0x01])
    kinds = [tok.kind for tok in Decoder(data)]
    assert kinds == [TokenKind.TAG, TokenKind.TAG, TokenKind.END, TokenKind.END]


def test_iteration_raises_on_truncation():
    with pytest.raises(UnexpectedEOFError):
        list(Decoder(bytes([0x45, STR_I, ord("a")])))


def test_str_i():
    tok = Decoder(bytes([0x03, ord("o"), ord("k"), 0x00])).next_token()
    assert tok.kind is TokenKind.STRING
    assert tok.text == "ok"


def test_opaque():
    tok = Decoder(bytes([0xC3, 0x04, 0xDE, 0xAD, 0xBE, 0xEF])).next_token()
    assert tok.kind is TokenKind.OPAQUE
    assert tok.data == bytes([0xDE, 0xAD, 0xBE, 0xEF])


def test_tag_before_switch_page_uses_page_zero():
    tok = Decoder(bytes([0x05])).next_token()
    assert tok.kind is TokenKind.TAG
    assert tok.page == 0
    assert tok.tag == 0x05


def test_switch_page_unknown():
    with pytest.raises(WBXMLError):
        Decoder(bytes([SWITCH_PAGE, 0xFE, 0x05])).next_token()


def test_switch_page_truncated():
    with pytest.raises(UnexpectedEOFError):
        Decoder(bytes([SWITCH_PAGE])).next_token()


def test_str_t_offset_out_of_range():
    data = DEFAULT_HEADER.to_bytes() + bytes([STR_T]) + encode_mb_uint32(5)
    dec = Decoder(data)
    dec.read_header()
    with pytest.raises(WBXMLError, match="out of range"):
        dec.next_token()


def test_str_t_truncated_offset():
    dec = Decoder(DEFAULT_HEADER.to_bytes() + bytes([STR_T]))
    dec.read_header()
    with pytest.raises(UnexpectedEOFError):
        dec.next_token()


def test_opaque_truncated_header():
    with pytest.raises(UnexpectedEOFError):
        Decoder(bytes([OPAQUE])).next_token()


def test_opaque_truncated_payload():
    with pytest.raises(UnexpectedEOFError):
        Decoder(bytes([OPAQUE, 0x05, 0xAA, 0xBB])).next_token()


def test_str_i_unterminated():
    with pytest.raises(UnexpectedEOFError):
        Decoder(bytes([STR_I, ord("a"), ord("b")])).next_token()


def test_opaque_exceeds_limit():
    data = bytes([OPAQUE]) + encode_mb_uint32(9)
    with pytest.raises(WBXMLError, match="exceeds"):
        Decoder(data, max_opaque_size=8).next_token()


def test_str_i_exceeds_limit():
    data = bytes([STR_I]) + b"abcde" + b"\x00"
    with pytest.raises(WBXMLError, match="exceeds"):
        Decoder(data, max_inline_string_size=4).next_token()


def test_string_table_lookup():
    header = Header(version=0x03, public_id=0x01, charset=0x6A, string_table=b"hi\x00bye\x00")
    data = header.to_bytes() + bytes([STR_T]) + encode_mb_uint32(3)
    dec = Decoder(io.BytesIO(data))
    dec.read_header()
    tok = dec.next_token()
    assert tok.kind is TokenKind.STRING
    assert tok.text == "bye"


def test_string_table_in_document():
    doc = bytes([
        0x03, 0x01, 0x6A,
        0x05,
        ord("h"), ord("i"), 0,
        ord("!"), 0,
        0x45,
        0x83, 0x00,
        0x01,
    ])
    dec = Decoder(doc)
    dec.read_header()
    assert dec.next_token().kind is TokenKind.TAG
    tok = dec.next_token()
    assert tok.kind is TokenKind.STRING
    assert tok.text == "hi"
    assert dec.next_token().kind is TokenKind.END


class _FailingReader:
    def read(self, size=-1):
        raise OSError("forced read error")


class _PlainReader:
    def __init__(self, data):
        self._inner = io.BytesIO(data)

    def read(self, size=-1):
        return self._inner.read(size)


def test_read_error_propagates():
    with pytest.raises(OSError, match="forced"):
        Decoder(_FailingReader()).next_token()


def test_plain_reader_header():
    dec = Decoder(_PlainReader(bytes([0x03, 0x01, 0x6A, 0x00])))
    assert dec.read_header().version == 0x03


@pytest.mark.parametrize(
    "kind, text",
    [
        (TokenKind.TAG, "Tag"),
        (TokenKind.END, "End"),
        (TokenKind.STRING, "String"),
        (TokenKind.OPAQUE, "Opaque"),
    ],
)
def test_token_kind_str(kind, text):
    assert str(kind) == text


def test_token_kind_unknown_value():
    with pytest.raises(ValueError):
        TokenKind(99)


def test_page_tracks_switch():
    dec = Decoder(bytes([SWITCH_PAGE, PAGE_EMAIL, 0x40]))
    tok = dec.next_token()
    assert tok.page == PAGE_EMAIL
    assert dec.page == PAGE_EMAIL


def test_capture_raw_no_content():
    assert Decoder(b"").capture_raw(False) is None


def test_capture_raw_truncated_tag():
    with pytest.raises(UnexpectedEOFError):
        Decoder(b"").capture_raw(True)


def test_capture_raw_truncated_switch_page():
    with pytest.raises(UnexpectedEOFError):
        Decoder(bytes([SWITCH_PAGE])).capture_raw(True)


def test_capture_raw_unknown_page():
    with pytest.raises(WBXMLError):
        Decoder(bytes([SWITCH_PAGE, 0xFF])).capture_raw(True)


def test_capture_raw_truncated_str_i():
    with pytest.raises(UnexpectedEOFError):
        Decoder(bytes([STR_I, ord("a")])).capture_raw(True)


def test_capture_raw_exceeds_element_limit():
    stream = bytes([0x40, 0x41, 0x42, 0x43, 0x44, 0x45, 0x46, END])
    with pytest.raises(WBXMLError, match="exceeds"):
        Decoder(stream, max_raw_element_size=4).capture_raw(True)


def test_capture_raw_str_i_exceeds_limit():
    stream = bytes([STR_I]) + b"aaaaaaaa" + bytes([0x00, END])
    with pytest.raises(WBXMLError, match="exceeds"):
        Decoder(stream, max_inline_string_size=4).capture_raw(True)


def test_capture_raw_str_i_boundary():
    at_limit = bytes([STR_I]) + b"aaaa" + bytes([0x00, END])
    body = Decoder(at_limit, max_inline_string_size=4).capture_raw(True)
    assert body == bytes([STR_I]) + b"aaaa" + b"\x00"

    over_limit = bytes([STR_I]) + b"aaaaa" + bytes([0x00, END])
    with pytest.raises(WBXMLError):
        Decoder(over_limit, max_inline_string_size=4).capture_raw(True)


def test_capture_raw_str_t_and_opaque():
    assert Decoder(bytes([STR_T, 0x05, END])).capture_raw(True) == bytes([STR_T, 0x05])
    body = Decoder(bytes([OPAQUE, 0x02, 0xAA, 0xBB, END])).capture_raw(True)
    assert body == bytes([OPAQUE, 0x02, 0xAA, 0xBB])


def test_capture_raw_truncated_opaque_length():
    with pytest.raises(UnexpectedEOFError):
        Decoder(bytes([OPAQUE, 0x80])).capture_raw(True)


def test_capture_raw_overlong_length():
    with pytest.raises(WBXMLError, match="longer than 5"):
        Decoder(bytes([STR_T, 0x80, 0x80, 0x80, 0x80, 0x80, 0x80])).capture_raw(True)


def test_capture_raw_opaque_exceeds_limit():
    stream = bytes([OPAQUE, 0x05, 1, 2, 3, 4, 5, END])
    with pytest.raises(WBXMLError, match="exceeds"):
        Decoder(stream, max_opaque_size=2).capture_raw(True)


def test_capture_raw_truncated_opaque_payload():
    with pytest.raises(UnexpectedEOFError):
        Decoder(bytes([OPAQUE, 0x05, 1, 2])).capture_raw(True)


def test_capture_raw_nested_and_page_tracking():
    # Email.Subject "x" inside the element, then the closing END, then a sibling.
    stream = bytes([SWITCH_PAGE, PAGE_EMAIL, 0x54, STR_I, ord("x"), 0x00, END, END, 0x05])
    dec = Decoder(stream)
    body = dec.capture_raw(True)
    assert body == bytes([SWITCH_PAGE, PAGE_EMAIL, 0x54, STR_I, ord("x"), 0x00, END])
    assert dec.page == PAGE_EMAIL
    tok = dec.next_token()
    assert (tok.page, tok.tag) == (PAGE_EMAIL, 0x05)


def _decode_all(data):
    dec = Decoder(data)
    try:
        dec.read_header()
    except (EOFError, WBXMLError):
        pass
    tokens = []
    failure = None
    try:
        for _ in range(1024):
            tokens.append(dec.next_token())
    except (EOFError, WBXMLError) as exc:
        failure = type(exc).__name__
    return tokens, failure, dec.page


@settings(max_examples=200)
@given(st.binary(max_size=256))
@example(b"")
@example(bytes([0x03, 0x01, 0x6A, 0x00]))
@example(bytes([0x03, 0x01, 0x6A, 0x00, 0x45, 0x01]))
@example(bytes([0x03, 0x01, 0x6A, 0x00, 0x45, 0x00, 0x11, 0x4A, 0x01, 0x01]))
@example(bytes([0x03, ord("o"), ord("k"), 0x00]))
@example(bytes([0xC3, 0x04, 0xDE, 0xAD, 0xBE, 0xEF]))
def test_decode_arbitrary_input(data):
    first = _decode_all(data)
    second = _decode_all(data)
    assert first == second

    tokens, _, page = first
    tag_tokens = [tok for tok in tokens if tok.kind is TokenKind.TAG]
    assert all(page_by_id(tok.page) is not None for tok in tag_tokens)
    assert all(0 <= tok.tag <= 0x3F for tok in tag_tokens)
    assert page_by_id(page) is not None