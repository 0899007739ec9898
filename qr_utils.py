"""
Terminal escapes and colour parsing for the QR renderers.
"""

import re

from PIL import ImageColor

# Background escapes used by the ANSI renderer
ANSI_BLACK_BG = '\x1b[40m'
ANSI_WHITE_BG = '\x1b[47m'
ANSI_RESET = '\x1b[0m'

ANSI_CODE = re.compile(r'(?:\x1b\[)?(\d{1,3})m?')


def build_ansi_palette():
    """
    RGB values for the ANSI foreground codes 30-37 and their bright forms 90-97.

    Bit 0 of the offset is red, bit 1 green and bit 2 blue.
    """
    palette = {}
    for offset in range(8):
        channels = (offset & 1, offset >> 1 & 1, offset >> 2 & 1)
        palette[30 + offset] = tuple(128 * on for on in channels)
        palette[90 + offset] = tuple(255 * on for on in channels)
    # Plain white is light grey and bright black is dark grey
    palette[37] = (192, 192, 192)
    palette[90] = (128, 128, 128)
    return palette


ANSI_PALETTE = build_ansi_palette()


def parse_colour(value, default):
    """
    Resolve a colour option to an RGB tuple.

    @param value: ANSI code (int, "31", "\\x1b[31m"), or any colour string
        Pillow understands ("#f00", "red", "rgb(255,0,0)"); empty for default
    @param default: RGB tuple returned for an empty value
    @return: Tuple of (R, G, B)
    @raise ValueError: If the value names no known colour
    """
    if value is None or value == '':
        return default
    if isinstance(value, int):
        code = value
    else:
        match = ANSI_CODE.fullmatch(value.strip())
        if match is None:
            return ImageColor.getrgb(value)[:3]
        code = int(match.group(1))
    if code not in ANSI_PALETTE:
        raise ValueError(f"Unknown ANSI colour code: {code}")
    return ANSI_PALETTE[code]
