"""
Arbitrary precision mathematics for deep fractal zooms.

This module provides high-precision arithmetic capabilities using mpmath
for zoom levels where adjacent pixels are no longer distinguishable in
double precision, together with the policy that decides when to use it.
"""

import math
from typing import Tuple, Union
import logging

import mpmath as mp

from ..acceleration.numba_backend import ESCAPE_RADIUS, NOT_ESCAPED
from .params import ImageParams

logger = logging.getLogger(__name__)

# Distinct x coordinates allowed to collide before switching precision
PRECISION_TOLERANCE = 5

MIN_DECIMAL_PLACES = 20
GUARD_DIGITS = 10

Real = Union[str, float, int, 'mp.mpf']


class LargeComplex:
    """Immutable complex number over mpmath reals."""

    __slots__ = ('real', 'imag')

    def __init__(self, real: Real, imag: Real = 0):
        """
        Initialize high-precision complex number.

        Args:
            real: Real part
            imag: Imaginary part
        """
        object.__setattr__(self, 'real', mp.mpf(real))
        object.__setattr__(self, 'imag', mp.mpf(imag))

    def __setattr__(self, name, value):
        raise AttributeError("LargeComplex is immutable")

    def __add__(self, other: 'LargeComplex') -> 'LargeComplex':
        """Add two high-precision complex numbers."""
        return LargeComplex(self.real + other.real, self.imag + other.imag)

    def square(self) -> 'LargeComplex':
        """Return z^2."""
        real = self.real * self.real - self.imag * self.imag
        imag = 2 * self.real * self.imag
        return LargeComplex(real, imag)

    def magnitude(self) -> 'mp.mpf':
        """Calculate absolute value at full precision."""
        return mp.sqrt(self.real * self.real + self.imag * self.imag)

    def abs64(self) -> float:
        """Absolute value truncated to a native float."""
        return float(self.magnitude())

    def to_complex(self) -> complex:
        """Convert to standard Python complex (may lose precision)."""
        return complex(float(self.real), float(self.imag))

    def __eq__(self, other) -> bool:
        if not isinstance(other, LargeComplex):
            return NotImplemented
        return self.real == other.real and self.imag == other.imag

    def __hash__(self) -> int:
        return hash((self.real, self.imag))

    def __reduce__(self):
        return (LargeComplex, (self.real, self.imag))

    def __str__(self) -> str:
        real_str = mp.nstr(self.real, n=10)
        if self.imag >= 0:
            return f"{real_str} + {mp.nstr(self.imag, n=10)}i"
        return f"{real_str} - {mp.nstr(-self.imag, n=10)}i"

    def __repr__(self) -> str:
        return f"LargeComplex({self.real}, {self.imag})"


def scale_high(x: int, y: int, params: ImageParams) -> LargeComplex:
    """Convert pixel coordinates to a complex number at the working precision."""
    ratio_x = mp.mpf(x) / params.width
    ratio_y = mp.mpf(y) / params.height

    re = mp.mpf(params.left) + ratio_x * (mp.mpf(params.right) - mp.mpf(params.left))
    im = mp.mpf(params.top) + ratio_y * (mp.mpf(params.bottom) - mp.mpf(params.top))
    return LargeComplex(re, im)


def requires_high_precision(params: ImageParams, tolerance: int = PRECISION_TOLERANCE) -> bool:
    """
    Detect whether double precision can resolve every column of the image.

    Every x coordinate is scaled exactly like the native scaler does; when
    fewer than ``width - tolerance`` distinct real parts come out, adjacent
    pixels collapse onto the same float and arbitrary precision is needed.
    """
    span = params.right - params.left
    coords = {params.left + x / params.width * span for x in range(params.width)}
    return len(coords) < params.width - tolerance


def required_decimal_places(params: ImageParams) -> int:
    """
    Decimal places needed to separate adjacent pixels of the viewport.

    Returns:
        Number of significant decimal digits for mpmath
    """
    spacing = min(abs(params.right - params.left) / params.width,
                  abs(params.bottom - params.top) / params.height)
    magnitude = max(abs(params.left), abs(params.right), abs(params.top), abs(params.bottom), 1.0)

    digits_needed = math.log10(magnitude) - math.log10(spacing)
    return max(MIN_DECIMAL_PLACES, int(math.ceil(digits_needed)) + GUARD_DIGITS)


def mandelbrot_value_high(c: LargeComplex, max_iter: int) -> Tuple[float, bool]:
    """
    Compute the smoothed Mandelbrot escape time in high precision.

    Args:
        c: Complex parameter
        max_iter: Maximum iterations

    Returns:
        Tuple of (smoothed iteration count, escaped)
    """
    z = LargeComplex(0, 0)
    for i in range(max_iter):
        z = z.square() + c
        absz = z.abs64()
        if absz > ESCAPE_RADIUS:
            return i + 1 - math.log2(math.log2(absz)), True
    return NOT_ESCAPED, False


def julia_value_high(z: LargeComplex, c: LargeComplex, max_iter: int) -> Tuple[float, bool]:
    """
    Compute the smoothed Julia escape time in high precision.

    Args:
        z: Initial complex value
        c: Julia constant

    Returns:
        Tuple of (smoothed iteration count, escaped)
    """
    for i in range(max_iter):
        z = z.square() + c
        absz = z.abs64()
        if absz > ESCAPE_RADIUS:
            return i + 1 - math.log2(math.log2(absz)), True
    return NOT_ESCAPED, False
