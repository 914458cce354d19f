"""
Escape-time and chaos-game fractal rendering library.

This library computes Mandelbrot, Julia and Multibrot sets, orbit-trapped
variants (point, line and raster traps), and the fern, Sierpinski and flame
iterated function systems, colors them with cyclic palettes and rasterizes
them in parallel into 16-bit RGBA buffers.

Key Features:
- Native precision JIT-compiled with numba, arbitrary precision with mpmath
- Automatic precision selection for deep zooms
- Orbit traps including a Euclidean distance transform of mask images
- Process or thread based parallel rasterization
- PNG, TIFF and JPEG export with embedded metadata

Example usage:
    >>> from marzipan import ImageParams, create_computation, rasterize
    >>> params = ImageParams(width=300, height=200)
    >>> computation = create_computation(params, 'mandelbrot')
    >>> image = rasterize(computation, params.width, params.height)
"""

__version__ = "1.0.0"
__author__ = "Marzipan Team"

from marzipan.exceptions import InvalidParametersError, MaskLoadError
from marzipan.core.params import ImageParams, zoom_sequence
from marzipan.core.precision import LargeComplex
from marzipan.core.orbits import (
    Orbit, PointOrbit, LineOrbit, ImageOrbit,
    create_point_orbit, create_line_orbit, create_image_orbit,
)
from marzipan.core.fractal_types import FRACTAL_TYPES, FractalRegistry, create_computation
from marzipan.acceleration.parallel import rasterize
from marzipan.rendering.coloring import ColorRGB, Palette, color_from_palette
from marzipan.rendering.image_output import ImageExporter, load_mask

# Main API classes
from marzipan.api import FractalRenderer, RenderConfig

__all__ = [
    "FractalRenderer",
    "RenderConfig",
    "ImageParams",
    "zoom_sequence",
    "LargeComplex",
    "Orbit",
    "PointOrbit",
    "LineOrbit",
    "ImageOrbit",
    "create_point_orbit",
    "create_line_orbit",
    "create_image_orbit",
    "FRACTAL_TYPES",
    "FractalRegistry",
    "create_computation",
    "rasterize",
    "ColorRGB",
    "Palette",
    "color_from_palette",
    "ImageExporter",
    "load_mask",
    "InvalidParametersError",
    "MaskLoadError",
]
