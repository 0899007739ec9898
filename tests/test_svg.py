"""Test the SVG renderer.

Tests for qr_svg:
    - Document dimensions and namespace
    - One background rect, one path
    - One closed square per dark module

Run:
    pytest tests/test_svg.py -v
"""

import re
import xml.etree.ElementTree as ET

from qr_encode import encode
from qr_svg import render_svg
from qr_types import QrCodeResult, QrDataType, SvgOptions

SVG_NS = '{http://www.w3.org/2000/svg}'


def make_result(rows):
    size = len(rows)
    return QrCodeResult(
        version=1,
        mask_pattern=0,
        size=size,
        data=[[bool(v) for v in row] for row in rows],
        types=[[QrDataType.DATA] * size for _ in range(size)],
    )


def test_render_svg_exact_markup():
    svg = render_svg(make_result([[1, 0], [0, 1]]))

    assert svg == (
        '<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 20 20">'
        '<rect fill="white" width="20" height="20"/>'
        '<path fill="black" d="M0,0h10v10h-10zM10,10h10v10h-10z"/>'
        '</svg>'
    )


def test_render_svg_parses_as_xml():
    result = encode('hello world')
    root = ET.fromstring(render_svg(result))

    assert root.tag == f'{SVG_NS}svg'
    assert root.get('viewBox') == f'0 0 {result.size * 10} {result.size * 10}'
    assert len(root.findall(f'{SVG_NS}rect')) == 1
    assert len(root.findall(f'{SVG_NS}path')) == 1


def test_render_svg_command_count():
    result = encode('hello world')
    dark = sum(mod for row in result.data for mod in row)
    svg = render_svg(result)
    d = re.search(r' d="([^"]*)"', svg).group(1)

    assert svg.count('<path') == 1
    assert len(re.findall('[Mhv]', d)) == 4 * dark
    assert d.count('z') == dark


def test_render_svg_options():
    svg = render_svg(make_result([[1]]), SvgOptions(pixel_size=3, white_color='#fff', black_color='red'))

    assert 'viewBox="0 0 3 3"' in svg
    assert '<rect fill="#fff" width="3" height="3"/>' in svg
    assert '<path fill="red" d="M0,0h3v3h-3z"/>' in svg


def test_render_svg_rect_uses_white_color():
    svg = render_svg('A', {'white_color': 'ivory'})

    assert svg.count('<rect') == 1
    assert '<rect fill="ivory"' in svg


def test_render_svg_all_light():
    svg = render_svg(make_result([[0, 0], [0, 0]]))

    assert '<path fill="black" d=""/>' in svg


def test_render_svg_encodes_with_options():
    root = ET.fromstring(render_svg('A', {'border': 0, 'pixel_size': 1}))

    assert root.get('viewBox') == '0 0 21 21'


def test_render_svg_quotes_colour_attributes():
    svg = render_svg(make_result([[1]]), {'white_color': 'a"b', 'black_color': 'x" onload="y'})
    root = ET.fromstring(svg)

    assert root.find(f'{SVG_NS}rect').get('fill') == 'a"b'
    assert root.find(f'{SVG_NS}path').get('fill') == 'x" onload="y'
    assert root.find(f'{SVG_NS}path').get('onload') is None


def test_render_svg_ignores_other_renderer_options():
    root = ET.fromstring(render_svg('A', {'border': 0, 'pixel_size': 1, 'white_char': '.', 'scale': 3}))

    assert root.get('viewBox') == '0 0 21 21'
