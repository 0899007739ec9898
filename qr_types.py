"""
Shared types for QR code generation and rendering.

Holds the module type categories, error correction levels, error classes,
the per-call option records and the generation result.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from enum import IntEnum
from typing import Callable, Optional

from qr_utils import parse_colour


class QrDataType(IntEnum):
    """Semantic category of a single module in the matrix."""
    BORDER = -1
    DATA = 0
    ERROR_CORRECTION = 1
    DARK = 2
    POSITION = 3
    SEPARATOR = 4
    TIMING = 5
    ALIGNMENT = 6
    FORMAT = 7
    VERSION = 8


class Ecc(IntEnum):
    """
    Error correction levels, valued by their ordinal.

    @property format_bits: 2-bit value placed in the format information
    """
    LOW = 0
    MEDIUM = 1
    QUARTILE = 2
    HIGH = 3

    @property
    def format_bits(self) -> int:
        return (1, 0, 3, 2)[self]


ECC_MAP = {
    'L': Ecc.LOW,
    'M': Ecc.MEDIUM,
    'Q': Ecc.QUARTILE,
    'H': Ecc.HIGH,
}


class QrError(Exception):
    """Base error for QR generation."""
    pass

class UnsupportedInputType(QrError, TypeError):
    """Input is neither text nor a byte sequence."""
    pass

class InvalidEccLevel(QrError, ValueError):
    """Error correction symbol is not one of L, M, Q, H."""
    pass

class EncodingFailed(QrError):
    """The matrix could not be generated within the requested constraints."""
    pass

class InvalidColour(QrError, ValueError):
    """A raster colour option names no known colour."""
    pass



@dataclass
class QrCodeResult:
    """
    A generated QR code: the module grid and its parallel type grid.

    Both grids are always size x size. Structural edits go through
    insert_border_ring and negate_polarity so the two never drift apart.
    """
    version: int
    mask_pattern: int
    size: int
    data: list[list[bool]]
    types: list[list[QrDataType]]

    def insert_border_ring(self, width: int) -> 'QrCodeResult':
        """
        Surround both grids with a quiet zone of light BORDER modules.

        @param width: Number of modules added on every side
        @return: This result, grown by 2 * width
        """
        if width < 0:
            raise ValueError(f"Border must be non-negative, got {width}")
        if not width:
            return self

        new_size = self.size + width * 2
        for grid, fill in ((self.data, False), (self.types, QrDataType.BORDER)):
            for row in grid:
                row[:0] = [fill] * width
                row.extend([fill] * width)
            grid[:0] = [[fill] * new_size for _ in range(width)]
            grid.extend([fill] * new_size for _ in range(width))

        self.size = new_size
        return self

    def negate_polarity(self) -> 'QrCodeResult':
        """Swap dark and light modules. Types are left as they are."""
        self.data = [[not mod for mod in row] for row in self.data]
        return self


@dataclass
class GenerateOptions:
    """
    Options for encode().

    @param ecc: Error correction level symbol, one of L, M, Q, H
    @param boost_ecc: Raise the level when it fits in the same version
    @param min_version: Smallest version to try (1-40)
    @param max_version: Largest version to try (1-40)
    @param mask_pattern: Mask 0-7, or -1 to pick the lowest penalty
    @param border: Quiet zone width in modules
    @param invert: Negate every module after the border is added
    @param on_encoded: Called once with the final result
    """
    ecc: str = 'L'
    boost_ecc: bool = False
    min_version: int = 1
    max_version: int = 40
    mask_pattern: int = -1
    border: int = 1
    invert: bool = False
    on_encoded: Optional[Callable[[QrCodeResult], object]] = field(default=None, repr=False)


@dataclass
class UnicodeOptions(GenerateOptions):
    """Characters used by render_unicode for light and dark modules."""
    white_char: str = '█'
    black_char: str = '░'


@dataclass
class SvgOptions(GenerateOptions):
    """Module size in user units and the two fill colours for render_svg."""
    pixel_size: int = 10
    white_color: str = 'white'
    black_color: str = 'black'


@dataclass
class ImageOptions(GenerateOptions):
    """
    Options for the raster renderer.

    Colours are parsed when the record is built; fg_rgb and bg_rgb hold the
    result, black on white when left empty.

    @param scale: Pixels per module, at least 1
    @param fg_colour: ANSI code, hex string or colour name for dark modules
    @param bg_colour: ANSI code, hex string or colour name for light modules
    @raise InvalidColour: If either colour cannot be parsed
    """
    scale: int = 10
    fg_colour: str = ''
    bg_colour: str = ''
    fg_rgb: tuple = field(init=False, repr=False)
    bg_rgb: tuple = field(init=False, repr=False)

    def __post_init__(self):
        if self.scale < 1:
            raise ValueError(f"Image scale must be at least 1, got {self.scale}")
        try:
            self.fg_rgb = parse_colour(self.fg_colour, (0, 0, 0))
            self.bg_rgb = parse_colour(self.bg_colour, (255, 255, 255))
        except ValueError as exc:
            raise InvalidColour(str(exc)) from exc


def resolve_options(options, cls):
    """
    Turn whatever the caller passed into an instance of cls.

    Records and mappings may carry options meant for other renderers;
    keys that cls does not define are ignored.

    @param options: None, an option record or a mapping of field names
    @param cls: Option record class wanted by the caller
    @return: Instance of cls
    """
    if options is None:
        return cls()
    if isinstance(options, cls):
        return options
    wanted = {f.name for f in fields(cls) if f.init}
    if isinstance(options, GenerateOptions):
        return cls(**{f.name: getattr(options, f.name) for f in fields(options) if f.name in wanted})
    if isinstance(options, Mapping):
        return cls(**{key: value for key, value in options.items() if key in wanted})
    raise TypeError(f"Options must be a mapping or {cls.__name__}, got {type(options).__name__}")
