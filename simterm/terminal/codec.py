"""Conversions between ASCII-hex text and raw bytes."""

import re

from simterm.terminal.state import IOMode

LEADING_INT = re.compile(r"\s*([+-]?\d+)")
INT_MIN, INT_MAX = -(2 ** 31), 2 ** 31 - 1


def hex_char_to_nibble(ch: str) -> int:
    """Anything that is not a hex digit decodes as 0."""
    if "0" <= ch <= "9":
        return ord(ch) - ord("0")
    if "A" <= ch <= "F":
        return ord(ch) - ord("A") + 10
    if "a" <= ch <= "f":
        return ord(ch) - ord("a") + 10
    return 0


def nibble_to_hex_char(nibble: int) -> str:
    if 0x0 <= nibble <= 0x9:
        return chr(ord("0") + nibble)
    if 0xA <= nibble <= 0xF:
        return chr(ord("A") + nibble - 0xA)
    return "."


def hex_decode(text: str) -> bytes:
    """
    Decodes pairs of hex digits into bytes. An odd-length input is padded
    with a trailing '0', so "ABC" decodes the same as "ABC0".
    """
    if len(text) % 2:
        text += "0"
    return bytes(
        (hex_char_to_nibble(text[i]) << 4) + hex_char_to_nibble(text[i + 1])
        for i in range(0, len(text), 2)
    )


def hex_encode(data: bytes) -> str:
    return "".join(nibble_to_hex_char((b & 0xF0) >> 4) + nibble_to_hex_char(b & 0x0F) for b in data)


def render_output(data: bytes, mode: IOMode) -> str:
    """Formats bytes read back from the bus for display, with a trailing newline."""
    if not data:
        return ""
    if mode == IOMode.HEX:
        return "".join(" 0x" + hex_encode(bytes([b])) for b in data) + "\n"
    return data.decode("latin-1") + "\n"


def parse_leading_int(text: str) -> int | None:
    """
    Reads the decimal integer at the start of text, ignoring whatever follows,
    so "5abc" gives 5. Returns None when text does not start with a number or
    the number does not fit in 32 bits.
    """
    match = LEADING_INT.match(text)
    if match is None:
        return None
    value = int(match.group(1))
    if not INT_MIN <= value <= INT_MAX:
        return None
    return value
