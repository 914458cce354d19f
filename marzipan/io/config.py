"""
Text configuration parsing.

Turns the textual settings accepted by the command line into validated
values: palettes as comma-separated color names, orbit traps as
``point(x,y,d)``, ``line(a,b,c,d)`` or ``raster(name[,d])``, viewports
given by their edges or by a center and half-width, and Julia constants.
"""

import math
import re
from pathlib import Path
from typing import Iterable, Optional, Tuple, Union
import logging

from ..core import params as defaults
from ..core.fractal_types import FRACTAL_TYPES, JULIA_PRESETS
from ..core.orbits import Orbit, create_image_orbit, create_line_orbit, create_point_orbit
from ..core.params import ImageParams
from ..exceptions import InvalidParametersError, MaskLoadError
from ..rendering.coloring import (
    BUILTIN_PALETTES, DEFAULT_PALETTE, NAMED_COLORS, ColorRGB, Palette, get_palette,
)

logger = logging.getLogger(__name__)

DEFAULT_PALETTE_SIZE = 100

DEFAULT_MASK_DIR = Path('orbits')

# Used in place of any orbit that cannot be parsed or loaded
DEFAULT_ORBIT = ('point', 0.5, -0.7, 100.0)

MASK_NAME_PATTERN = re.compile(r'^[a-zA-Z0-9\-]+$')

_ORBIT_PATTERN = re.compile(r'^\s*(point|line|raster)\((.*)\)\s*$')


def parse_color(name: str) -> ColorRGB:
    """Look up a color name, falling back to black."""
    color = NAMED_COLORS.get(name.strip().lower())
    if color is None:
        logger.warning(f"Unknown color '{name}', using black")
        return NAMED_COLORS['black']
    return color


def parse_palette(text: Optional[str], palette_size: float = DEFAULT_PALETTE_SIZE) -> Palette:
    """
    Parse a palette given as "divergence,color1,color2,...".

    A built-in palette name is accepted as well. Empty text gives the
    default palette.

    Args:
        text: Palette description
        palette_size: Period of the palette in value units

    Returns:
        Palette instance
    """
    if not text:
        return Palette(DEFAULT_PALETTE.divergence, DEFAULT_PALETTE.colors, palette_size)

    if text in BUILTIN_PALETTES:
        builtin = get_palette(text)
        return Palette(builtin.divergence, builtin.colors, palette_size)

    names = [name for name in text.split(',') if name.strip()]
    if len(names) < 2:
        raise InvalidParametersError(f"Palette '{text}' needs a divergence color and at least one color")

    return Palette(parse_color(names[0]), tuple(parse_color(n) for n in names[1:]), palette_size)


def palette_to_text(palette: Palette) -> str:
    """Describe a palette as comma-separated color names (hex for unnamed colors)."""
    by_color = {color: name for name, color in NAMED_COLORS.items()}

    def describe(color: ColorRGB) -> str:
        if color in by_color:
            return by_color[color]
        return '#{:02x}{:02x}{:02x}'.format(*(int(round(c * 255)) for c in color.to_tuple()))

    names = [describe(palette.divergence)] + [describe(c) for c in palette.colors]
    return ','.join(names)


def parse_viewport(left: Optional[float] = None, right: Optional[float] = None,
                   top: Optional[float] = None, bottom: Optional[float] = None,
                   x: Optional[float] = None, y: Optional[float] = None,
                   window: Optional[float] = None) -> Tuple[float, float, float, float]:
    """
    Resolve the viewport edges.

    A center (x, y) with a half-width ``window`` takes precedence over the
    individual edges; missing edges fall back to the defaults.

    Returns:
        Tuple of (left, right, top, bottom)
    """
    if x is not None and y is not None and window is not None:
        return x - window, x + window, y + window, y - window

    return (
        defaults.LEFT if left is None else left,
        defaults.RIGHT if right is None else right,
        defaults.TOP if top is None else top,
        defaults.BOTTOM if bottom is None else bottom,
    )


def parse_julia_constant(text: Optional[str]) -> complex:
    """
    Parse a Julia constant given as a preset name or "real,imag".

    Raises:
        InvalidParametersError: If the text is neither
    """
    if not text:
        return defaults.JULIA_C
    if text in JULIA_PRESETS:
        return JULIA_PRESETS[text]

    parts = text.split(',')
    if len(parts) != 2:
        raise InvalidParametersError(f"Invalid Julia constant '{text}'. Use 'real,imag' or a preset name")
    try:
        return complex(float(parts[0]), float(parts[1]))
    except ValueError as e:
        raise InvalidParametersError(f"Invalid Julia constant '{text}': {e}") from e


def default_orbit() -> Orbit:
    """Orbit used when none is given or when one cannot be built."""
    _, x, y, distance = DEFAULT_ORBIT
    return create_point_orbit(x, y, distance)


def _parse_numbers(text: str) -> Tuple[float, ...]:
    values = tuple(float(part) for part in text.split(','))
    if not all(math.isfinite(v) for v in values):
        raise ValueError(f"non-finite value in '{text}'")
    return values


def _build_orbit(kind: str, arguments: str, mask_dir: Path) -> Orbit:
    if kind == 'point':
        numbers = _parse_numbers(arguments)
        if len(numbers) != 3:
            raise ValueError("point orbit takes x, y and distance")
        return create_point_orbit(*numbers)

    if kind == 'line':
        numbers = _parse_numbers(arguments)
        if len(numbers) != 4:
            raise ValueError("line orbit takes a, b, c and distance")
        return create_line_orbit(*numbers)

    parts = arguments.split(',')
    if len(parts) > 2:
        raise ValueError("raster orbit takes a name and an optional distance")
    name = parts[0].strip()
    if not MASK_NAME_PATTERN.match(name):
        raise ValueError(f"invalid mask name '{name}'")
    distance = float(parts[1]) if len(parts) == 2 else 100.0
    return create_image_orbit(Path(mask_dir) / f"{name}.png", distance)


def parse_orbit(text: str, mask_dir: Union[str, Path] = DEFAULT_MASK_DIR) -> Orbit:
    """
    Parse one orbit trap description.

    Any description that cannot be parsed, or whose mask cannot be loaded,
    is replaced by the default orbit.

    Args:
        text: "point(x,y,d)", "line(a,b,c,d)" or "raster(name[,d])"
        mask_dir: Directory holding raster masks as <name>.png

    Returns:
        Orbit instance
    """
    match = _ORBIT_PATTERN.match(text)
    if match is None:
        logger.warning(f"Unrecognized orbit '{text}', using the default orbit")
        return default_orbit()

    try:
        return _build_orbit(match.group(1), match.group(2), Path(mask_dir))
    except (ValueError, MaskLoadError) as e:
        logger.warning(f"Invalid orbit '{text}' ({e}), using the default orbit")
        return default_orbit()


def parse_orbits(texts: Iterable[str], mask_dir: Union[str, Path] = DEFAULT_MASK_DIR) -> Tuple[Orbit, ...]:
    """Parse several orbit descriptions."""
    return tuple(parse_orbit(text, mask_dir) for text in texts)


def parse_fractal_type(text: Optional[str], default: str = 'mandelbrot') -> str:
    """Validate a fractal type name, falling back to the default."""
    if text and text.lower() in FRACTAL_TYPES:
        return text.lower()
    if text:
        logger.warning(f"Unknown fractal type '{text}', using {default}")
    return default


def build_image_params(width: Optional[int] = None, height: Optional[int] = None, size: Optional[int] = None,
                       left: Optional[float] = None, right: Optional[float] = None,
                       top: Optional[float] = None, bottom: Optional[float] = None,
                       x: Optional[float] = None, y: Optional[float] = None, window: Optional[float] = None,
                       max_iter: Optional[int] = None, palette: Optional[str] = None,
                       palette_size: float = DEFAULT_PALETTE_SIZE, power: float = 2.0,
                       julia_c: Optional[str] = None) -> ImageParams:
    """
    Build validated image parameters from optional textual settings.

    ``size`` sets both dimensions of a square image and overrides width
    and height.

    Returns:
        ImageParams instance
    """
    if size is not None:
        width = height = size

    left, right, top, bottom = parse_viewport(left, right, top, bottom, x, y, window)

    return ImageParams(
        left=left,
        right=right,
        top=top,
        bottom=bottom,
        width=defaults.WIDTH if width is None else width,
        height=defaults.HEIGHT if height is None else height,
        max_iter=defaults.MAX_ITER if max_iter is None else max_iter,
        palette=parse_palette(palette, palette_size),
        power=power,
        julia_c=parse_julia_constant(julia_c),
    )
