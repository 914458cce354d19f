"""
Continuous palette coloring for fractal rendering.

A palette maps the scalar produced by an evaluator to a color. Values are
cyclic with period ``max_value``: they are wrapped, eased toward the color
boundaries and interpolated between two adjacent palette entries.
Non-converged pixels get the palette's divergence color.
"""

import math
from dataclasses import dataclass
from typing import Dict, Sequence, Tuple

import numpy as np

from ..exceptions import InvalidParametersError


CHANNEL_MAX = 0xFFFF

RGBA16 = Tuple[int, int, int, int]


class PaletteError(InvalidParametersError):
    """Raised for palettes that cannot map values to colors."""


@dataclass(frozen=True)
class ColorRGB:
    """RGB color representation."""
    r: float
    g: float
    b: float

    def __post_init__(self):
        """Validate RGB values."""
        for component in [self.r, self.g, self.b]:
            if not 0 <= component <= 1:
                raise PaletteError("RGB components must be between 0 and 1")

    @classmethod
    def from_uint8(cls, r: int, g: int, b: int) -> 'ColorRGB':
        """Create a color from 8-bit channel values."""
        return cls(r / 255.0, g / 255.0, b / 255.0)

    def to_tuple(self) -> Tuple[float, float, float]:
        """Convert to RGB tuple."""
        return (self.r, self.g, self.b)

    def to_rgba16(self) -> RGBA16:
        """Convert to an opaque 16-bit RGBA tuple."""
        return (_to_channel(self.r), _to_channel(self.g), _to_channel(self.b), CHANNEL_MAX)


def _to_channel(component: float) -> int:
    return int(round(min(max(component, 0.0), 1.0) * CHANNEL_MAX))


NAMED_COLORS: Dict[str, ColorRGB] = {
    'blue': ColorRGB.from_uint8(0, 0, 255),
    'red': ColorRGB.from_uint8(255, 0, 0),
    'green': ColorRGB.from_uint8(0, 255, 0),
    'yellow': ColorRGB.from_uint8(255, 255, 0),
    'magenta': ColorRGB.from_uint8(255, 0, 255),
    'cyan': ColorRGB.from_uint8(0, 255, 255),
    'black': ColorRGB.from_uint8(0, 0, 0),
    'white': ColorRGB.from_uint8(255, 255, 255),
    'darkgreen': ColorRGB.from_uint8(0, 100, 0),
    'champagne': ColorRGB.from_uint8(247, 231, 206),
    'darkchampagne': ColorRGB.from_uint8(41, 25, 0),
    'orange': ColorRGB.from_uint8(255, 127, 0),
    'violet': ColorRGB.from_uint8(139, 0, 255),
    'lightpink': ColorRGB.from_uint8(255, 182, 193),
    'lightgreen': ColorRGB.from_uint8(172, 225, 175),
    'purple': ColorRGB.from_uint8(148, 0, 211),
    'indigo': ColorRGB.from_uint8(75, 0, 130),
    'teal': ColorRGB.from_uint8(0, 128, 128),
    'darkblue': ColorRGB.from_uint8(0, 0, 128),
    'softpink': ColorRGB.from_uint8(255, 221, 244),
}


@dataclass(frozen=True)
class Palette:
    """
    Cyclic color palette.

    Attributes:
        divergence: Color for pixels without a usable value
        colors: Ordered colors interpolated across one period
        max_value: Period of the palette in value units
    """
    divergence: ColorRGB
    colors: Tuple[ColorRGB, ...]
    max_value: float = 100

    def __post_init__(self):
        # Accept any sequence but store an immutable tuple
        object.__setattr__(self, 'colors', tuple(self.colors))
        self.validate()

    def validate(self) -> None:
        """Validate palette contents."""
        if not isinstance(self.divergence, ColorRGB):
            raise PaletteError(f"Invalid divergence color: {self.divergence!r}")
        if len(self.colors) < 1:
            raise PaletteError("Palette must contain at least 1 color")
        for color in self.colors:
            if not isinstance(color, ColorRGB):
                raise PaletteError(f"Invalid color format: {color!r}")
        if isinstance(self.max_value, bool) or not isinstance(self.max_value, (int, float)):
            raise PaletteError("max_value must be numeric")
        if not math.isfinite(self.max_value) or self.max_value <= 0:
            raise PaletteError(f"max_value must be positive, got {self.max_value}")

    @classmethod
    def from_names(cls, divergence: str, names: Sequence[str], max_value: float = 100) -> 'Palette':
        """
        Build a palette from color names.

        Args:
            divergence: Name of the divergence color
            names: Names of the palette colors, in order
            max_value: Palette period

        Returns:
            Palette instance
        """
        return cls(named_color(divergence), tuple(named_color(n) for n in names), max_value)


def named_color(name: str) -> ColorRGB:
    """Look up a color by name (case-insensitive)."""
    color = NAMED_COLORS.get(name.strip().lower())
    if color is None:
        available = ', '.join(sorted(NAMED_COLORS))
        raise PaletteError(f"Unknown color '{name}'. Available: {available}")
    return color


def ease(normalized: float) -> float:
    """Cubic easing that flattens the middle of each color transition."""
    return ((normalized - 0.5) ** 3 + 0.125) / 0.25


def color_from_palette(raw_value: float, converged: bool, palette: Palette) -> RGBA16:
    """
    Map a computed value to a 16-bit RGBA color.

    Args:
        raw_value: Scalar produced by an evaluator
        converged: Whether the scalar is usable
        palette: Palette to sample

    Returns:
        (r, g, b, a) with 16-bit channels
    """
    if not converged or not math.isfinite(raw_value):
        return palette.divergence.to_rgba16()

    colors = palette.colors
    if len(colors) == 1:
        return colors[0].to_rgba16()

    segments = len(colors) - 1
    value = raw_value % palette.max_value
    # Tiny negative inputs can round up to max_value, which is the wrap point
    if value >= palette.max_value:
        value = 0.0
    position = segments * ease(value / palette.max_value)

    index = int(math.floor(position)) % segments
    fraction = position - index

    c1 = colors[index]
    c2 = colors[index + 1]

    return (
        _to_channel(c2.r * fraction + c1.r * (1 - fraction)),
        _to_channel(c2.g * fraction + c1.g * (1 - fraction)),
        _to_channel(c2.b * fraction + c1.b * (1 - fraction)),
        CHANNEL_MAX,
    )


def colors_from_palette(values: np.ndarray, converged: np.ndarray, palette: Palette) -> np.ndarray:
    """
    Vectorized version of color_from_palette.

    Args:
        values: Array of scalars produced by an evaluator
        converged: Boolean array of the same shape
        palette: Palette to sample

    Returns:
        uint16 array of shape values.shape + (4,)
    """
    values = np.asarray(values, dtype=np.float64)
    usable = np.asarray(converged, dtype=bool) & np.isfinite(values)

    rgba = np.empty(values.shape + (4,), dtype=np.uint16)
    rgba[...] = palette.divergence.to_rgba16()

    colors = palette.colors
    if len(colors) == 1:
        rgba[usable] = colors[0].to_rgba16()
        return rgba

    segments = len(colors) - 1
    table = np.array([color.to_tuple() for color in colors], dtype=np.float64)

    value = np.mod(values[usable], palette.max_value)
    value[value >= palette.max_value] = 0.0
    position = segments * ease(value / palette.max_value)

    index = np.floor(position).astype(np.int64) % segments
    fraction = (position - index)[:, np.newaxis]

    blended = table[index + 1] * fraction + table[index] * (1 - fraction)
    channels = np.rint(np.clip(blended, 0.0, 1.0) * CHANNEL_MAX).astype(np.uint16)

    rgba[usable, :3] = channels
    rgba[usable, 3] = CHANNEL_MAX
    return rgba


class ContinuousColoring:
    """Pixel coloring function bound to one palette."""

    def __init__(self, palette: Palette):
        self.palette = palette

    def __call__(self, value: float, converged: bool) -> RGBA16:
        return color_from_palette(value, converged, self.palette)

    def colorize(self, values: np.ndarray, converged: np.ndarray) -> np.ndarray:
        """Color a whole block of values at once."""
        return colors_from_palette(values, converged, self.palette)


DEFAULT_PALETTE = Palette(
    NAMED_COLORS['black'],
    (NAMED_COLORS['white'], NAMED_COLORS['black'], NAMED_COLORS['white']),
    max_value=100,
)


def _create_builtin_palettes() -> Dict[str, Palette]:
    """Create built-in color palettes."""
    palettes = {'default': DEFAULT_PALETTE}

    # Classic hot palette
    palettes['hot'] = Palette.from_names('black', ['black', 'red', 'yellow', 'white'])

    # Cool palette
    palettes['cool'] = Palette.from_names('black', ['black', 'blue', 'cyan', 'white'])

    # Grayscale
    palettes['gray'] = Palette.from_names('black', ['black', 'white', 'black'])

    palettes['fire'] = Palette(
        NAMED_COLORS['black'],
        (
            ColorRGB(0, 0, 0),
            ColorRGB(0.5, 0, 0),
            ColorRGB(1, 0, 0),
            ColorRGB(1, 0.5, 0),
            ColorRGB(1, 1, 0),
            ColorRGB(1, 1, 1),
        ),
    )

    palettes['ocean'] = Palette(
        NAMED_COLORS['black'],
        (
            ColorRGB(0, 0, 0.2),
            ColorRGB(0, 0, 0.8),
            ColorRGB(0, 0.5, 1),
            ColorRGB(0, 1, 1),
            ColorRGB(0.5, 1, 1),
            ColorRGB(1, 1, 1),
        ),
    )

    palettes['champagne'] = Palette.from_names(
        'darkchampagne', ['champagne', 'darkchampagne', 'champagne'])

    palettes['rainbow'] = Palette.from_names(
        'black', ['red', 'orange', 'yellow', 'green', 'cyan', 'blue', 'violet', 'red'])

    return palettes


BUILTIN_PALETTES: Dict[str, Palette] = _create_builtin_palettes()


def get_palette(name: str) -> Palette:
    """Get a built-in palette by name."""
    if name not in BUILTIN_PALETTES:
        available = ', '.join(BUILTIN_PALETTES.keys())
        raise PaletteError(f"Unknown color palette '{name}'. Available: {available}")
    return BUILTIN_PALETTES[name]
