"""
QR matrix construction.

Turns a list of segments into a finished module grid: data codewords,
Reed-Solomon error correction, function patterns, format and version
information, and masking. Every module is tagged with a QrDataType.
"""

import logging
from dataclasses import dataclass
from itertools import groupby

import reedsolo

from qr_segments import get_total_bits, to_bits
from qr_types import Ecc, QrDataType

logger = logging.getLogger(__name__)

MIN_VERSION = 1
MAX_VERSION = 40

# Total error correction codewords per version, columns L, M, Q, H
ECC_CODEWORDS = (
    (7, 10, 13, 17), (10, 16, 22, 28), (15, 26, 36, 44), (20, 36, 52, 64),
    (26, 48, 72, 88), (36, 64, 96, 112), (40, 72, 108, 130), (48, 88, 132, 156),
    (60, 110, 160, 192), (72, 130, 192, 224), (80, 150, 224, 264), (96, 176, 260, 308),
    (104, 198, 288, 352), (120, 216, 320, 384), (132, 240, 360, 432), (144, 280, 408, 480),
    (168, 308, 448, 532), (180, 338, 504, 588), (196, 364, 546, 650), (224, 416, 600, 700),
    (224, 442, 644, 750), (252, 476, 690, 816), (270, 504, 750, 900), (300, 560, 810, 960),
    (312, 588, 870, 1050), (336, 644, 952, 1110), (360, 700, 1020, 1200), (390, 728, 1050, 1260),
    (420, 784, 1140, 1350), (450, 812, 1200, 1440), (480, 868, 1290, 1530), (510, 924, 1350, 1620),
    (540, 980, 1440, 1710), (570, 1036, 1530, 1800), (570, 1064, 1590, 1890), (600, 1120, 1680, 1980),
    (630, 1204, 1770, 2100), (660, 1260, 1860, 2220), (720, 1316, 1950, 2310), (750, 1372, 2040, 2430),
)

# Error correction blocks per version, columns L, M, Q, H
NUM_ERROR_CORRECTION_BLOCKS = (
    (1, 1, 1, 1), (1, 1, 1, 1), (1, 1, 2, 2), (1, 2, 2, 4), (1, 2, 4, 4),
    (2, 4, 4, 4), (2, 4, 6, 5), (2, 4, 6, 6), (2, 5, 8, 8), (4, 5, 8, 8),
    (4, 5, 8, 11), (4, 8, 10, 11), (4, 9, 12, 16), (4, 9, 16, 16), (6, 10, 12, 18),
    (6, 10, 17, 16), (6, 11, 16, 19), (6, 13, 18, 21), (7, 14, 21, 25), (8, 16, 20, 25),
    (8, 17, 23, 25), (9, 17, 23, 34), (9, 18, 25, 30), (10, 20, 27, 32), (12, 21, 29, 35),
    (12, 23, 34, 37), (12, 25, 34, 40), (13, 26, 35, 42), (14, 28, 38, 45), (15, 29, 40, 48),
    (16, 31, 43, 51), (17, 33, 45, 54), (18, 35, 48, 57), (19, 37, 51, 60), (19, 38, 53, 63),
    (20, 40, 56, 66), (21, 43, 59, 70), (22, 45, 62, 74), (24, 47, 65, 77), (25, 49, 68, 81),
)

FINDER_PATTERN = [
    [1,1,1,1,1,1,1],
    [1,0,0,0,0,0,1],
    [1,0,1,1,1,0,1],
    [1,0,1,1,1,0,1],
    [1,0,1,1,1,0,1],
    [1,0,0,0,0,0,1],
    [1,1,1,1,1,1,1]
]

ALIGNMENT_PATTERN = [
    [1, 1, 1, 1, 1],
    [1, 0, 0, 0, 1],
    [1, 0, 1, 0, 1],
    [1, 0, 0, 0, 1],
    [1, 1, 1, 1, 1]
]

DATA_TYPES = (QrDataType.DATA, QrDataType.ERROR_CORRECTION)


class DataTooLongError(ValueError):
    """The segments do not fit in any version of the requested range."""
    pass


@dataclass
class RawQrCode:
    """Finished matrix as produced by encode_segments, before any border."""
    version: int
    mask: int
    size: int
    modules: list[list[bool]]
    types: list[list[QrDataType]]


def get_num_raw_data_modules(version: int) -> int:
    """
    Count the modules left for data and error correction once every
    function pattern is drawn.

    @param version: QR code version (1-40)
    @return: Number of data modules, including remainder bits
    """
    result = (16 * version + 128) * version + 64
    if version >= 2:
        num_align = version // 7 + 2
        result -= (25 * num_align - 10) * num_align - 55
        if version >= 7:
            result -= 36
    return result

def get_num_data_codewords(version: int, ecl: Ecc) -> int:
    return get_num_raw_data_modules(version) // 8 - ECC_CODEWORDS[version - 1][ecl]

def get_alignment_positions(version: int) -> list[int]:
    """
    Row and column centres of the alignment patterns, ascending.

    @param version: QR code version (1-40)
    @return: Empty list for version 1
    """
    if version == 1:
        return []
    size = version * 4 + 17
    num_align = version // 7 + 2
    step = (version * 8 + num_align * 3 + 5) // (num_align * 4 - 4) * 2
    result = [size - 7 - i * step for i in range(num_align - 1)] + [6]
    return list(reversed(result))


def make_data_codewords(segments, version: int, ecl: Ecc) -> list[int]:
    """
    Construct the data codewords: segment headers and payloads, terminator,
    and padding bytes up to the capacity of the version.

    @param segments: Segments to encode
    @param version: QR code version
    @param ecl: Error correction level
    @return: List of data codewords
    """
    bitstream = ''
    for seg in segments:
        bitstream += to_bits(seg.mode.indicator, 4)
        bitstream += to_bits(seg.num_chars, seg.mode.num_char_count_bits(version))
        bitstream += seg.bits

    max_data_cw = get_num_data_codewords(version, ecl)
    max_bits = max_data_cw * 8
    term = min(4, max_bits - len(bitstream))
    bitstream += '0' * term
    while len(bitstream) % 8:
        bitstream += '0'
    pads = ['11101100', '00010001']
    i = 0
    while len(bitstream) // 8 < max_data_cw:
        bitstream += pads[i % 2]
        i += 1
    return [int(bitstream[i:i+8], 2) for i in range(0, len(bitstream), 8)]

def generate_error_correction(data_cw: list[int], version: int, ecl: Ecc) -> list[int]:
    """
    Split the data into blocks, append Reed-Solomon error correction to each
    and interleave the result.

    @param data_cw: List of data codewords
    @param version: QR code version
    @param ecl: Error correction level
    @return: Interleaved data codewords followed by interleaved error correction codewords
    """
    num_blocks = NUM_ERROR_CORRECTION_BLOCKS[version - 1][ecl]
    ec_cw = ECC_CODEWORDS[version - 1][ecl] // num_blocks
    raw_cw = get_num_raw_data_modules(version) // 8
    num_short_blocks = num_blocks - raw_cw % num_blocks
    short_data_len = raw_cw // num_blocks - ec_cw

    rs = reedsolo.RSCodec(ec_cw)
    blocks = []
    k = 0
    for i in range(num_blocks):
        data_len = short_data_len + (0 if i < num_short_blocks else 1)
        dat = data_cw[k:k + data_len]
        k += data_len
        full = rs.encode(bytes(dat))
        blocks.append((dat, list(full[-ec_cw:])))

    result = []
    for i in range(short_data_len + 1):
        for dat, _ in blocks:
            if i < len(dat):
                result.append(dat[i])
    for i in range(ec_cw):
        for _, ecc in blocks:
            result.append(ecc[i])
    return result


def initialise_matrix(size: int):
    """
    Create an empty module grid with every position set to -1, and a
    type grid with every position set to None.

    @param size: Dimension of square matrix (size x size)
    @return: (modules, types)
    """
    return [[-1] * size for _ in range(size)], [[None] * size for _ in range(size)]

def set_function_module(m, types, r, c, value, kind: QrDataType):
    m[r][c] = int(value)
    types[r][c] = kind

def place_finder_pattern(m, types, r, c):
    """
    Insert a 7x7 finder pattern at specified coordinates, surrounded by
    a light separator wherever it stays inside the matrix.

    @param m: QR code matrix
    @param types: Type grid
    @param r: Top-left row coordinate
    @param c: Top-left column coordinate
    """
    size = len(m)
    for dr in range(-1, 8):
        for dc in range(-1, 8):
            nr = r + dr
            nc = c + dc
            if not (0 <= nr < size and 0 <= nc < size):
                continue
            if 0 <= dr < 7 and 0 <= dc < 7:
                set_function_module(m, types, nr, nc, FINDER_PATTERN[dr][dc], QrDataType.POSITION)
            else:
                set_function_module(m, types, nr, nc, 0, QrDataType.SEPARATOR)

def place_alignment_pattern(m, types, r, c):
    """
    Insert a 5x5 alignment pattern centred on the given coordinates.

    @param r: Centre row coordinate
    @param c: Centre column coordinate
    """
    for dr in range(-2, 3):
        for dc in range(-2, 3):
            set_function_module(m, types, r + dr, c + dc, ALIGNMENT_PATTERN[dr + 2][dc + 2], QrDataType.ALIGNMENT)

def apply_patterns(m, types, version):
    """
    Apply all functional patterns to the QR code matrix including:
    - Timing patterns
    - Finder patterns and separators
    - Alignment patterns (version 2+)
    - Version information (version 7+)
    - Dark module

    @param m: QR code matrix
    @param types: Type grid
    @param version: QR code version number
    """
    size = len(m)
    for i in range(8, size - 8):
        set_function_module(m, types, 6, i, i % 2 == 0, QrDataType.TIMING)
        set_function_module(m, types, i, 6, i % 2 == 0, QrDataType.TIMING)

    for (r, c) in [(0, 0), (0, size - 7), (size - 7, 0)]:
        place_finder_pattern(m, types, r, c)

    positions = get_alignment_positions(version)
    last = len(positions) - 1
    for i, r in enumerate(positions):
        for j, c in enumerate(positions):
            # These three overlap the finder patterns
            if (i, j) in ((0, 0), (0, last), (last, 0)):
                continue
            place_alignment_pattern(m, types, r, c)

    place_version_info(m, types, version)

    set_function_module(m, types, size - 8, 8, 1, QrDataType.DARK)

def place_format_info(m, types, ecl: Ecc, mask_id: int):
    """
    Encode format information in the matrix containing error correction level and mask pattern.

    @param m: QR code matrix
    @param types: Type grid
    @param ecl: Error correction level
    @param mask_id: Numeric identifier for mask pattern (0-7)
    """
    data = ecl.format_bits << 3 | mask_id
    rem = data
    for _ in range(10):
        rem = (rem << 1) ^ ((rem >> 9) * 0x537)
    fmt = to_bits((data << 10 | rem) ^ 0x5412, 15)

    size = len(m)
    pos1 = [*((8, i) for i in range(0, 6)), (8, 7), (8, 8), (7, 8), *((i, 8) for i in range(5, -1, -1))]
    pos2 = [*((size - 1 - i, 8) for i in range(0, 7)), *((8, size - 8 + i) for i in range(0, 8))]
    for positions in (pos1, pos2):
        for idx, (r, c) in enumerate(positions):
            set_function_module(m, types, r, c, fmt[idx] == '1', QrDataType.FORMAT)

def place_version_info(m, types, version: int):
    """
    Encode the version number with its BCH error correction in the two
    6x3 blocks next to the upper right and lower left finder patterns.

    @param version: QR code version number, ignored below 7
    """
    if version < 7:
        return
    rem = version
    for _ in range(12):
        rem = (rem << 1) ^ ((rem >> 11) * 0x1F25)
    bits = version << 12 | rem

    size = len(m)
    for i in range(18):
        bit = (bits >> i) & 1
        a = size - 11 + i % 3
        b = i // 3
        set_function_module(m, types, b, a, bit, QrDataType.VERSION)
        set_function_module(m, types, a, b, bit, QrDataType.VERSION)

def map_data(m, types, full_cw, num_data_cw):
    """
    Map data and error correction codewords into the matrix using zig-zag pattern.

    Skips functional module areas. Modules left over after the last
    codeword are remainder bits and stay light.

    @param m: QR code matrix
    @param types: Type grid
    @param full_cw: Combined data and error correction codewords
    @param num_data_cw: How many of full_cw are data codewords
    """
    bits = ''.join(f'{cw:08b}' for cw in full_cw)
    data_bits = num_data_cw * 8
    bit_idx = 0
    up = True
    col = len(m) - 1
    while col > 0:
        if col == 6:
            col -= 1
            continue
        rows = range(len(m) - 1, -1, -1) if up else range(len(m))
        for r in rows:
            for c in (col, col - 1):
                if types[r][c] is not None:
                    continue
                if bit_idx < len(bits):
                    m[r][c] = int(bits[bit_idx])
                    types[r][c] = QrDataType.DATA if bit_idx < data_bits else QrDataType.ERROR_CORRECTION
                    bit_idx += 1
                else:
                    m[r][c] = 0
                    types[r][c] = QrDataType.DATA
        up = not up
        col -= 2


# Mask conditions indexed by mask pattern; a module flips where the condition holds
MASK_PATTERNS = (
    lambda r, c: (r + c) % 2 == 0,
    lambda r, c: r % 2 == 0,
    lambda r, c: c % 3 == 0,
    lambda r, c: (r + c) % 3 == 0,
    lambda r, c: (r // 2 + c // 3) % 2 == 0,
    lambda r, c: r * c % 2 + r * c % 3 == 0,
    lambda r, c: (r * c % 2 + r * c % 3) % 2 == 0,
    lambda r, c: ((r + c) % 2 + r * c % 3) % 2 == 0,
)

# Penalty weights for runs, 2x2 blocks, finder-like patterns and balance
PENALTY_N1 = 3
PENALTY_N2 = 3
PENALTY_N3 = 40
PENALTY_N4 = 10


def apply_mask(m, types, mask_id):
    """
    Flip the data and error correction modules selected by a mask pattern.

    @param m: QR code matrix
    @param types: Type grid, used to tell data modules from function modules
    @param mask_id: Numeric identifier for mask pattern (0-7)
    """
    condition = MASK_PATTERNS[mask_id]
    for r, row in enumerate(m):
        for c in range(len(row)):
            if types[r][c] in DATA_TYPES and condition(r, c):
                row[c] ^= 1

def count_finder_like(line) -> int:
    """
    Count 1:1:3:1:1 dark/light patterns with a light run of four units on one side.

    The area outside the symbol counts as light, so a pattern touching the
    edge of the line still scores. A pattern light on both sides counts twice.

    @param line: One row or column of the matrix
    @return: Number of matches
    """
    size = len(line)
    lengths = [len(list(run)) for _, run in groupby(line)]
    # Runs alternate light/dark starting and ending with light
    if line[0]:
        lengths.insert(0, 0)
    if line[-1]:
        lengths.append(0)
    lengths[0] += size
    lengths[-1] += size

    count = 0
    for i in range(0, len(lengths) - 6, 2):
        before, d1, l1, d3, l2, d2, after = lengths[i:i + 7]
        n = d1
        if n == l1 == l2 == d2 and d3 == 3 * n:
            count += (before >= 4 * n and after >= n) + (after >= 4 * n and before >= n)
    return count

def balance_penalty(dark: int, total: int) -> int:
    """
    Penalty for every full 5% step the dark proportion strays from 50%.

    @param dark: Number of dark modules
    @param total: Number of modules in the symbol
    """
    k = (abs(dark * 20 - total * 10) + total - 1) // total - 1
    return k * PENALTY_N4

def score_penalty(m) -> int:
    """
    Calculate penalty score for QR code matrix based on ISO/IEC 18004 evaluation criteria.

    Evaluation rules:
    1. Consecutive modules in row/column
    2. 2x2 blocks of same colour
    3. Finder-like patterns
    4. Dark/light module balance

    @param m: QR code matrix to evaluate
    @return: Calculated penalty score (lower is better)
    """
    size = len(m)
    columns = [[m[r][c] for r in range(size)] for c in range(size)]
    score = 0

    for line in (*m, *columns):
        # Rule 1: Runs of five or more
        for _, run in groupby(line):
            run_len = len(list(run))
            if run_len >= 5:
                score += PENALTY_N1 + (run_len - 5)
        # Rule 3: Finder patterns
        score += count_finder_like(line) * PENALTY_N3

    # Rule 2: 2x2 blocks
    for r in range(size - 1):
        for c in range(size - 1):
            if m[r][c] == m[r][c+1] == m[r+1][c] == m[r+1][c+1]:
                score += PENALTY_N2

    # Rule 4: Colour balance
    dark = sum(cell == 1 for row in m for cell in row)
    score += balance_penalty(dark, size * size)
    return score


def build_matrix(version, ecl, full_cw, num_data_cw, mask_id):
    """
    Lay out a complete matrix for one mask.

    @return: (modules, types) with modules as 0/1 ints
    """
    matrix, types = initialise_matrix(version * 4 + 17)
    apply_patterns(matrix, types, version)
    place_format_info(matrix, types, ecl, mask_id)
    map_data(matrix, types, full_cw, num_data_cw)
    apply_mask(matrix, types, mask_id)
    return matrix, types

def encode_segments(segments, ecl: Ecc, min_version: int = MIN_VERSION, max_version: int = MAX_VERSION,
                    mask: int = -1, boost_ecl: bool = True) -> RawQrCode:
    """
    Encode segments into a QR code using the smallest version in range that fits.

    @param segments: Segments from make_segments or make_bytes
    @param ecl: Requested error correction level
    @param min_version: Smallest version to try
    @param max_version: Largest version to try
    @param mask: Mask pattern 0-7, or -1 to pick the lowest penalty score
    @param boost_ecl: Raise the error correction level while the data still fits
    @return: The finished matrix with its type grid
    """
    if not (MIN_VERSION <= min_version <= max_version <= MAX_VERSION):
        raise ValueError(f"Invalid version range: {min_version} to {max_version}")
    if not -1 <= mask <= 7:
        raise ValueError(f"Mask pattern must be between -1 and 7, got {mask}")

    for version in range(min_version, max_version + 1):
        capacity_bits = get_num_data_codewords(version, ecl) * 8
        used_bits = get_total_bits(segments, version)
        if used_bits is not None and used_bits <= capacity_bits:
            break
        if version >= max_version:
            if used_bits is None:
                raise DataTooLongError("Segment too long")
            raise DataTooLongError(f"Data length = {used_bits} bits, Max capacity = {capacity_bits} bits")

    if boost_ecl:
        for new_ecl in (Ecc.MEDIUM, Ecc.QUARTILE, Ecc.HIGH):
            if new_ecl > ecl and used_bits <= get_num_data_codewords(version, new_ecl) * 8:
                ecl = new_ecl

    data_cw = make_data_codewords(segments, version, ecl)
    full_cw = generate_error_correction(data_cw, version, ecl)

    best_mask = 0
    lowest_score = float('inf')
    best_matrix = None
    best_types = None
    for mask_id in (range(8) if mask == -1 else [mask]):
        matrix, types = build_matrix(version, ecl, full_cw, len(data_cw), mask_id)
        score = score_penalty(matrix) if mask == -1 else 0
        if score < lowest_score:
            best_mask = mask_id
            lowest_score = score
            best_matrix = matrix
            best_types = types

    logger.debug("Encoded version %d, ecc %s, mask %d", version, ecl.name, best_mask)
    return RawQrCode(
        version=version,
        mask=best_mask,
        size=len(best_matrix),
        modules=[[bool(v) for v in row] for row in best_matrix],
        types=best_types,
    )
