# easwbxml

A streaming WAP Binary XML (WBXML) 1.3 codec for the Exchange ActiveSync
wire protocol. It ships the 25 ActiveSync 14.1 code pages and has no
runtime dependencies.

The package has four modules:

- `easwbxml.codepages`: the code page tables and tag lookups.
- `easwbxml.tokens`: global token codes, tag-byte bits, multi-byte
  integers, the document `Header` and the error classes.
- `easwbxml.encoder`: `Encoder`, which writes tokens to a binary stream.
- `easwbxml.decoder`: `Decoder`, which reads tokens back.

## Installation

```
pip install easwbxml
```

## Code pages

```python
from easwbxml.codepages import all_page_ids, page_by_name, tag_by_token, token_by_tag

page = page_by_name("AirSync")
print(page.id, page.name)          # 0 AirSync
print(page.token_of("Sync"))       # 5
print(token_by_tag(0, "Sync"))     # 5
print(tag_by_token(17, 0x0A))      # Body
print(sorted(all_page_ids()))      # [0, 1, ..., 24]
```

Lookups return `None` for an unknown page, name or token. The page ids are
also available as constants such as `PAGE_AIRSYNC` and `PAGE_AIRSYNC_BASE`.

## Tokens, integers and the header

```python
import io

from easwbxml.tokens import (
    Header, encode_mb_uint32, encode_tag, read_mb_uint32,
    tag_has_content, tag_identity,
)

encode_mb_uint32(0xA4)                          # b'\x81\x24'
read_mb_uint32(io.BytesIO(b"\x81\x24"))         # (164, 2)
encode_tag(0x05, False, True)                   # 0x45
tag_identity(0x45), tag_has_content(0x45)       # (5, True)

Header().to_bytes()                             # b'\x03\x01\x6a\x00'
Header.read(io.BytesIO(b"\x03\x01\x6a\x00"))
```

`Header` defaults to version 1.3, public id 1, UTF-8 (charset 106) and an
empty string table. When reading, a public id given as "0 followed by a
string-table offset" is accepted and the offset is stored in `public_id`.
`encode_tag` and `encode_mb_uint32` raise `ValueError` for values that do
not fit.

## Streaming encoder

The encoder starts on code page 0 (AirSync) and writes a `SWITCH_PAGE`
whenever the next tag lives on another page.

```python
import io

from easwbxml.encoder import Encoder
from easwbxml.tokens import Header

out = io.BytesIO()
enc = Encoder(out)
enc.write_header(Header(version=0x03, public_id=0x01, charset=0x6A))
enc.start_tag(0, 0x05, False, True)    # AirSync.Sync
enc.start_tag(17, 0x0A, False, True)   # AirSyncBase.Body
enc.end_tag()
enc.end_tag()

print(out.getvalue().hex(" "))
# 03 01 6a 00 45 00 11 4a 01 01
```

`str_i` writes an inline string, `opaque` writes an `OPAQUE` payload.
`force_switch_page` always writes a `SWITCH_PAGE`; `write_raw` writes bytes
verbatim and then treats the active page as unknown, so the next
`start_tag` is preceded by a `SWITCH_PAGE`. Unknown code pages raise
`WBXMLError`.

## Streaming decoder

```python
from easwbxml.decoder import Decoder, TokenKind

data = bytes.fromhex("03016a0045001 14a0101".replace(" ", ""))
dec = Decoder(data)                  # a bytes object or a binary stream
header = dec.read_header()

tok = dec.next_token()
assert tok.kind is TokenKind.TAG and tok.page == 0 and tok.tag == 0x05

for tok in dec:                      # remaining tokens until clean end of input
    print(tok.kind, tok.page, tok.tag)
```

`SWITCH_PAGE` tokens are consumed by the decoder; every tag token carries
the page that was active when it was read, and `Decoder.page` reports the
current one. `STRING` tokens carry `text` (inline strings and `STR_T`
references resolved against the header's string table); `OPAQUE` tokens
carry `data`.

`next_token` raises `EOFError` when the input ends between tokens and
`UnexpectedEOFError` when it ends inside one.

### Capturing an element verbatim

`capture_raw(has_content)` reads the whole body of the element whose open
tag was just returned and gives back its bytes, inner page switches
included, so that it can be written back unchanged with `write_raw`:

```python
dec = Decoder(bytes.fromhex("03016a004500114a0101"))
dec.read_header()
tok = dec.next_token()                      # AirSync.Sync
body = dec.capture_raw(tok.has_content)     # b'\x00\x11\x4a\x01'
assert dec.page == 17
```

It returns `None` when `has_content` is false.

### Limits

To keep hostile or corrupt input from exhausting memory, the decoder caps
a single opaque payload (64 MiB), a single inline string (16 MiB) and a
single captured raw element (64 MiB); each can be changed with the
`max_opaque_size`, `max_inline_string_size` and `max_raw_element_size`
keyword arguments of `Decoder`. The string table in a header is capped at
16 MiB (`easwbxml.tokens.MAX_STRING_TABLE_SIZE`). Exceeding a limit raises
`WBXMLError`.

## Errors

Codec failures raise `easwbxml.tokens.WBXMLError`; input that ends in the
middle of a token raises `easwbxml.tokens.UnexpectedEOFError`, a subclass
of both `WBXMLError` and `EOFError`.

## What the package does not do

There is no mapping between Python classes and whole documents: documents
are built with `Encoder` and read with `Decoder`, token by token. Attributes,
entities, literals and extension tokens are not handled.

## Running the tests

```
pip install "easwbxml[test]"
pytest
```