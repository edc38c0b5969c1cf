"""RFC 4648 base32 without padding.

Decoding is lenient the way authenticator apps are: whitespace anywhere and
trailing ``=`` are ignored, lowercase is accepted, and leftover bits that do
not fill a whole byte are dropped. Encoding never emits ``=``.
"""

from __future__ import annotations

from twofactor_auth.errors import InvalidCharacter

ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"

_SYMBOL_VALUES: dict[str, int] = {ch: i for i, ch in enumerate(ALPHABET)}


def normalize(text: str) -> str:
    """Strip whitespace and trailing padding, and uppercase."""
    return "".join(text.split()).rstrip("=").upper()


def decode(text: str) -> bytes:
    """Decode base32 text into bytes.

    Raises:
        InvalidCharacter: if a symbol is outside ``A-Z2-7``.
    """
    out = bytearray()
    buffer = 0
    bits = 0
    for position, char in enumerate(normalize(text)):
        value = _SYMBOL_VALUES.get(char)
        if value is None:
            raise InvalidCharacter(char, position)
        buffer = (buffer << 5) | value
        bits += 5
        if bits >= 8:
            bits -= 8
            out.append((buffer >> bits) & 0xFF)
            buffer &= (1 << bits) - 1
    return bytes(out)


def encode(data: bytes) -> str:
    """Encode bytes as unpadded base32.

    A final group shorter than 5 bits is zero-filled on the right.
    """
    symbols: list[str] = []
    buffer = 0
    bits = 0
    for byte in data:
        buffer = (buffer << 8) | byte
        bits += 8
        while bits >= 5:
            bits -= 5
            symbols.append(ALPHABET[(buffer >> bits) & 0x1F])
        buffer &= (1 << bits) - 1
    if bits:
        symbols.append(ALPHABET[(buffer << (5 - bits)) & 0x1F])
    return "".join(symbols)


def is_valid(text: str) -> bool:
    """True if ``text`` decodes to at least one byte."""
    try:
        return len(decode(text)) > 0
    except InvalidCharacter:
        return False
