"""
Text and raster renderers for QR codes.

Every renderer takes either raw input, which is encoded with the same
options first, or a QrCodeResult from encode(), which is rendered as is.
None of them modify the result.
"""

import io
import logging
from dataclasses import replace

from PIL import Image, ImageDraw

from qr_encode import ensure_result, get_data_at
from qr_types import ImageOptions, UnicodeOptions, resolve_options
from qr_utils import ANSI_BLACK_BG, ANSI_RESET, ANSI_WHITE_BG

logger = logging.getLogger(__name__)

# Glyphs for a (top, bottom) pair of modules
COMPACT_PALETTE = {
    (False, False): '█',
    (False, True): '▀',
    (True, False): '▄',
    (True, True): ' ',
}

# Full-width space, so one module is roughly square in a terminal
ANSI_CELL = '　'


def render_unicode(data, options=None) -> str:
    """
    Render a QR code as one line of characters per matrix row.

    Light modules use white_char (default full block) and dark modules use
    black_char (default light shade).

    @param data: Input to encode, or an existing QrCodeResult
    @param options: UnicodeOptions, a mapping of its fields, or None
    @return: Rows joined by newlines, no trailing newline
    """
    opts = resolve_options(options, UnicodeOptions)
    result = ensure_result(data, opts)
    return '\n'.join(
        ''.join(opts.black_char if mod else opts.white_char for mod in row)
        for row in result.data
    )


def render_ansi(data, options=None) -> str:
    """
    Render a QR code for terminals using ANSI background colours.

    Any white_char or black_char passed in options is replaced by the
    colour escapes.

    @param data: Input to encode, or an existing QrCodeResult
    @param options: Generation options; character options are ignored
    @return: Rows of coloured full-width spaces joined by newlines
    """
    opts = replace(
        resolve_options(options, UnicodeOptions),
        black_char=f'{ANSI_BLACK_BG}{ANSI_CELL}{ANSI_RESET}',
        white_char=f'{ANSI_WHITE_BG}{ANSI_CELL}{ANSI_RESET}',
    )
    return render_unicode(data, opts)


def render_unicode_compact(data, options=None) -> str:
    """
    Render a QR code at half height, two matrix rows per line, using
    half block characters.

    For an odd size the missing row below the last one reads as light.

    @param data: Input to encode, or an existing QrCodeResult
    @param options: Generation options, or None
    @return: ceil(size / 2) lines of size characters each
    """
    result = ensure_result(data, options)

    lines = []
    for row in range(0, result.size, 2):
        lines.append(''.join(
            COMPACT_PALETTE[(
                get_data_at(result.data, col, row, False),
                get_data_at(result.data, col, row + 1, False),
            )]
            for col in range(result.size)
        ))
    return '\n'.join(lines)


def render_image(data, options=None) -> Image.Image:
    """
    Render the QR code as a Pillow image, one scale x scale square per module.

    @param data: Input to encode, or an existing QrCodeResult
    @param options: ImageOptions, a mapping of its fields, or None
    @return: RGB image of (size * scale) pixels square
    @raise InvalidColour: If a colour option cannot be parsed
    """
    opts = resolve_options(options, ImageOptions)
    result = ensure_result(data, opts)
    scale = opts.scale

    img = Image.new("RGB", (result.size * scale, result.size * scale), opts.bg_rgb)
    draw = ImageDraw.Draw(img)
    for r, row in enumerate(result.data):
        for c, mod in enumerate(row):
            if mod:
                x = c * scale
                y = r * scale
                draw.rectangle([x, y, x + scale - 1, y + scale - 1], fill=opts.fg_rgb)
    return img


def save_image(data, filename="qr_output.png", options=None):
    """
    Save the QR code as a PNG image.

    @param data: Input to encode, or an existing QrCodeResult
    @param filename: Path or BytesIO object to write to
    @param options: ImageOptions, a mapping of its fields, or None
    """
    img = render_image(data, options)
    if isinstance(filename, io.BytesIO):
        img.save(filename, format="PNG")
    else:
        img.save(filename)
        logger.info("QR code saved as: %s", filename)
