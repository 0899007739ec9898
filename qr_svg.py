"""
SVG renderer for QR codes.

Builds the markup by hand: one background rect and a single path holding
a unit square for every dark module.
"""

from xml.sax.saxutils import quoteattr

from qr_encode import ensure_result
from qr_types import SvgOptions, resolve_options


def render_svg(data, options=None) -> str:
    """
    Render a QR code as an SVG document.

    @param data: Input to encode, or an existing QrCodeResult
    @param options: SvgOptions, a mapping of its fields, or None
    @return: SVG markup with a viewBox of size * pixel_size on each side
    """
    opts = resolve_options(options, SvgOptions)
    result = ensure_result(data, opts)
    pixel_size = opts.pixel_size
    width = result.size * pixel_size
    height = result.size * pixel_size

    paths = []
    for row in range(result.size):
        for col in range(result.size):
            if result.data[row][col]:
                x = col * pixel_size
                y = row * pixel_size
                paths.append(f'M{x},{y}h{pixel_size}v{pixel_size}h-{pixel_size}z')

    path_data = ''.join(paths)
    svg = f'<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 {width} {height}">'
    svg += f'<rect fill={quoteattr(opts.white_color)} width="{width}" height="{height}"/>'
    svg += f'<path fill={quoteattr(opts.black_color)} d="{path_data}"/>'
    svg += '</svg>'
    return svg
