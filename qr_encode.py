"""
QR encoding entry point.

Validates the input, runs the matrix generator, adds the quiet zone and
applies inversion before handing the result to the renderers.
"""

import logging

from qr_matrix import encode_segments
from qr_segments import make_bytes, make_segments
from qr_types import (
    ECC_MAP, EncodingFailed, GenerateOptions, InvalidEccLevel, QrCodeResult,
    UnsupportedInputType, resolve_options,
)

logger = logging.getLogger(__name__)


def _to_segments(data):
    if isinstance(data, str):
        return make_segments(data)
    if isinstance(data, (bytes, bytearray)):
        return [make_bytes(data)]
    if isinstance(data, (list, tuple)):
        if all(isinstance(b, int) and not isinstance(b, bool) and 0 <= b <= 255 for b in data):
            return [make_bytes(data)]
        raise UnsupportedInputType(
            f"Byte sequences may only hold integers 0-255, got a {type(data).__name__} with other values")
    raise UnsupportedInputType(
        f"Only text and binary data can be encoded, but got: {type(data).__name__}")


def encode(data, options=None) -> QrCodeResult:
    """
    Encode text or bytes into a QR code matrix.

    @param data: str, bytes, bytearray, or a list/tuple of ints 0-255
    @param options: GenerateOptions, a mapping of its fields, or None for defaults
    @return: The bordered (and optionally inverted) QrCodeResult
    """
    opts = resolve_options(options, GenerateOptions)
    segments = _to_segments(data)

    ecl = ECC_MAP.get(opts.ecc)
    if ecl is None:
        raise InvalidEccLevel(f"Unknown error correction level: {opts.ecc!r}")

    try:
        qr = encode_segments(
            segments,
            ecl,
            opts.min_version,
            opts.max_version,
            opts.mask_pattern,
            opts.boost_ecc,
        )
    except ValueError as exc:
        raise EncodingFailed(str(exc)) from exc

    result = add_border(QrCodeResult(
        version=qr.version,
        mask_pattern=qr.mask,
        size=qr.size,
        data=qr.modules,
        types=qr.types,
    ), opts.border)

    if opts.invert:
        invert(result)

    logger.debug("QR code ready: version %d, size %d", result.version, result.size)

    if opts.on_encoded is not None:
        opts.on_encoded(result)

    return result


def add_border(result: QrCodeResult, border: int = 1) -> QrCodeResult:
    """
    Add a quiet zone of light modules on every side.

    @param result: Result to grow in place
    @param border: Width in modules, 0 leaves the result untouched
    @return: The same result
    """
    return result.insert_border_ring(border)


def invert(result: QrCodeResult) -> QrCodeResult:
    """Swap dark and light modules, border included."""
    return result.negate_polarity()


def get_data_at(data: list[list[bool]], x: int, y: int, default: bool = False) -> bool:
    """
    Returns the module at a given coordinate in the QR code matrix.

    @param data: The QR code data matrix
    @param x: Column index
    @param y: Row index
    @param default: Value returned when the coordinate is outside the matrix
    @return: Module value, or default when out of bounds
    """
    if x < 0 or y < 0 or x >= len(data) or y >= len(data):
        return default
    return data[y][x]


def ensure_result(data, options=None) -> QrCodeResult:
    """Return data unchanged if it is already a QrCodeResult, otherwise encode it."""
    if isinstance(data, QrCodeResult):
        return data
    return encode(data, options)
