"""Test the encoding entry point and post-processing.

Tests for qr_encode:
    - Border ring size, value and type
    - Inversion, including the border ring
    - Input dispatch and error kinds
    - on_encoded observation
    - get_data_at bounds handling

Run:
    pytest tests/test_encode.py -v
"""

import pytest

from qr_encode import add_border, encode, ensure_result, get_data_at, invert
from qr_matrix import encode_segments
from qr_segments import make_segments
from qr_types import (
    Ecc, EncodingFailed, GenerateOptions, InvalidEccLevel, QrCodeResult,
    QrDataType, QrError, UnsupportedInputType,
)


def ring_cells(size, border):
    for y in range(size):
        for x in range(size):
            if x < border or y < border or x >= size - border or y >= size - border:
                yield x, y


@pytest.mark.parametrize("border", [0, 1, 4])
def test_border_size_and_ring(border):
    raw = encode_segments(make_segments('hello'), Ecc.LOW, boost_ecl=False)
    result = encode('hello', {'border': border})

    assert result.size == raw.size + 2 * border
    assert len(result.data) == result.size
    assert all(len(row) == result.size for row in result.data)
    assert len(result.types) == result.size
    assert all(len(row) == result.size for row in result.types)
    for x, y in ring_cells(result.size, border):
        assert result.data[y][x] is False
        assert result.types[y][x] == QrDataType.BORDER


def test_border_keeps_matrix():
    raw = encode_segments(make_segments('hello'), Ecc.LOW, boost_ecl=False)
    result = encode('hello', GenerateOptions(border=2))

    inner = [row[2:-2] for row in result.data[2:-2]]
    assert inner == raw.modules
    assert result.version == raw.version
    assert result.mask_pattern == raw.mask


def test_default_border_is_one():
    result = encode('hello')

    assert result.size == 23


def test_invert_flips_border():
    result = encode('A', {'invert': True})

    assert result.data[0][0] is True
    assert result.types[0][0] == QrDataType.BORDER


def test_invert_flips_every_module():
    plain = encode('A')
    inverted = encode('A', {'invert': True})

    assert inverted.data == [[not mod for mod in row] for row in plain.data]
    assert inverted.types == plain.types


def test_double_invert_round_trip():
    plain = encode('A')
    result = invert(invert(encode('A')))

    assert result.data == plain.data


def test_add_border_zero_returns_input():
    result = encode('A', {'border': 0})
    before = [row[:] for row in result.data]

    assert add_border(result, 0) is result
    assert result.data == before


def test_bytes_and_list_match():
    from_bytes = encode(b'\x00\x01\xff')
    from_list = encode([0, 1, 255])
    from_bytearray = encode(bytearray([0, 1, 255]))

    assert from_bytes.data == from_list.data == from_bytearray.data


def test_text_and_utf8_bytes_match():
    assert encode('héllo').data == encode('héllo'.encode('utf-8')).data


@pytest.mark.parametrize("value, type_name", [(42, 'int'), (1.5, 'float'), ({'a': 1}, 'dict'), (None, 'NoneType')])
def test_unsupported_input_type(value, type_name):
    with pytest.raises(UnsupportedInputType, match=type_name):
        encode(value)


def test_list_with_bad_values():
    with pytest.raises(UnsupportedInputType):
        encode([1, 2, 300])
    with pytest.raises(UnsupportedInputType):
        encode(['a', 'b'])


def test_invalid_ecc_level():
    with pytest.raises(InvalidEccLevel):
        encode('hello', {'ecc': 'X'})


@pytest.mark.parametrize("ecc", ['L', 'M', 'Q', 'H'])
def test_valid_ecc_levels(ecc):
    result = encode('hello', {'ecc': ecc})

    assert result.size == 23


def test_encoding_failed_carries_message():
    with pytest.raises(EncodingFailed, match="Max capacity"):
        encode('x' * 100, {'max_version': 1})


def test_encoding_failed_bad_mask():
    with pytest.raises(EncodingFailed):
        encode('hello', {'mask_pattern': 9})


def test_errors_share_base():
    assert issubclass(UnsupportedInputType, QrError)
    assert issubclass(InvalidEccLevel, QrError)
    assert issubclass(EncodingFailed, QrError)


def test_mask_pattern_option():
    assert encode('hello', {'mask_pattern': 3}).mask_pattern == 3


def test_min_version_option():
    result = encode('hello', {'min_version': 3, 'border': 0})

    assert result.version == 3
    assert result.size == 29


def test_boost_ecc_option():
    plain = encode('A', {'mask_pattern': 0})
    boosted = encode('A', {'mask_pattern': 0, 'boost_ecc': True})

    assert plain.data != boosted.data


def test_on_encoded_called_once_with_final_result():
    seen = []
    result = encode('A', {'invert': True, 'on_encoded': seen.append})

    assert seen == [result]
    assert seen[0] is result
    assert seen[0].data[0][0] is True


def test_on_encoded_return_value_ignored():
    result = encode('A', {'on_encoded': lambda r: 'ignored'})

    assert isinstance(result, QrCodeResult)


def test_on_encoded_error_propagates():
    def boom(result):
        raise RuntimeError("observer failed")

    with pytest.raises(RuntimeError, match="observer failed"):
        encode('A', {'on_encoded': boom})


def test_results_are_independent():
    first = encode('A')
    second = encode('A')
    first.data[0][0] = True

    assert second.data[0][0] is False


def test_get_data_at():
    grid = [[True, False], [False, True]]

    assert get_data_at(grid, 0, 0) is True
    assert get_data_at(grid, 1, 0) is False
    assert get_data_at(grid, 1, 1) is True


@pytest.mark.parametrize("x, y", [(-1, 0), (0, -1), (2, 0), (0, 2)])
def test_get_data_at_out_of_bounds(x, y):
    grid = [[True, True], [True, True]]

    assert get_data_at(grid, x, y) is False
    assert get_data_at(grid, x, y, True) is True


def test_ensure_result_passes_result_through():
    result = encode('A')

    assert ensure_result(result) is result
    assert isinstance(ensure_result('A'), QrCodeResult)
