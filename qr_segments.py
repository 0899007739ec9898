"""
Segment construction for QR data encoding.

Splits input into numeric, alphanumeric or byte mode segments and
works out how many bits they need at a given version.
"""

import re
from dataclasses import dataclass
from typing import Optional

NUMERIC_REGEX = re.compile(r'[0-9]*')
ALPHANUMERIC_CHARSET = '0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ $%*+-./:'
ALPHANUMERIC_REGEX = re.compile(r'[A-Z0-9 $%*+./:-]*')


@dataclass(frozen=True)
class Mode:
    """
    Segment mode.

    @param indicator: 4-bit mode indicator
    @param char_count_bits: Width of the length field for versions 1-9, 10-26, 27-40
    """
    name: str
    indicator: int
    char_count_bits: tuple

    def num_char_count_bits(self, version: int) -> int:
        return self.char_count_bits[(version + 7) // 17]


NUMERIC = Mode('numeric', 0x1, (10, 12, 14))
ALPHANUMERIC = Mode('alphanumeric', 0x2, (9, 11, 13))
BYTE = Mode('byte', 0x4, (8, 16, 16))


@dataclass(frozen=True)
class QrSegment:
    """A run of characters in one mode, with its data bits as a '0'/'1' string."""
    mode: Mode
    num_chars: int
    bits: str


def to_bits(value: int, length: int) -> str:
    """
    Format value as a fixed width binary string.

    @param value: Non-negative integer to write
    @param length: Number of bits
    @return: String of binary digits, most significant first
    """
    if length < 0 or value < 0 or value >> length:
        raise ValueError("Value out of range")
    return f'{value:0{length}b}' if length else ''


def to_bitstring(data: bytes) -> str:
    """
    Convert a bytes object to a continuous bit string representation.

    @param data: Binary data to convert
    @return: String of binary digits representing the input data
    """
    return ''.join(f'{b:08b}' for b in data)


def make_bytes(data) -> QrSegment:
    """
    Build a byte mode segment.

    @param data: bytes or any sequence of ints 0-255
    @return: Byte mode segment holding every value
    """
    data = bytes(data)
    return QrSegment(BYTE, len(data), to_bitstring(data))


def make_numeric(digits: str) -> QrSegment:
    """
    Build a numeric mode segment, packing three digits per 10 bits.

    @param digits: String of ASCII digits
    @return: Numeric mode segment
    """
    if not NUMERIC_REGEX.fullmatch(digits):
        raise ValueError("String contains non-numeric characters")
    bits = ''.join(
        to_bits(int(digits[i:i+3]), len(digits[i:i+3]) * 3 + 1)
        for i in range(0, len(digits), 3)
    )
    return QrSegment(NUMERIC, len(digits), bits)


def make_alphanumeric(text: str) -> QrSegment:
    """
    Build an alphanumeric mode segment, packing two characters per 11 bits.

    @param text: String drawn from ALPHANUMERIC_CHARSET
    @return: Alphanumeric mode segment
    """
    if not ALPHANUMERIC_REGEX.fullmatch(text):
        raise ValueError("String contains unencodable characters in alphanumeric mode")
    bits = ''
    for i in range(0, len(text) - 1, 2):
        value = ALPHANUMERIC_CHARSET.index(text[i]) * 45 + ALPHANUMERIC_CHARSET.index(text[i+1])
        bits += to_bits(value, 11)
    if len(text) % 2:
        bits += to_bits(ALPHANUMERIC_CHARSET.index(text[-1]), 6)
    return QrSegment(ALPHANUMERIC, len(text), bits)


def make_segments(text: str) -> list[QrSegment]:
    """
    Pick the most compact single mode for the text.

    @param text: Unicode text
    @return: Empty list for empty text, otherwise one segment
    """
    if text == '':
        return []
    if NUMERIC_REGEX.fullmatch(text):
        return [make_numeric(text)]
    if ALPHANUMERIC_REGEX.fullmatch(text):
        return [make_alphanumeric(text)]
    return [make_bytes(text.encode('utf-8'))]


def get_total_bits(segments, version: int) -> Optional[int]:
    """
    Count the bits the segments occupy at the given version.

    @return: Bit count, or None if a length field would overflow
    """
    total = 0
    for seg in segments:
        cc_bits = seg.mode.num_char_count_bits(version)
        if seg.num_chars >= (1 << cc_bits):
            return None
        total += 4 + cc_bits + len(seg.bits)
    return total
