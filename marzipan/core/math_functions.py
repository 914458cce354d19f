"""
Core mathematical functions for fractal iteration.

This module provides the coordinate scaler, the orbit-trap iteration loops
and the base classes every fractal computation builds on. A computation
turns a rectangular band of pixel coordinates into a block of 16-bit RGBA
pixels; value computations produce the (value, converged) pairs that the
palette mapper colors.
"""

import math
from abc import ABC, abstractmethod
from typing import Sequence, Tuple
import logging

import numpy as np

from ..acceleration.numba_backend import complex_power
from ..rendering.coloring import ContinuousColoring, RGBA16
from .orbits import Orbit
from .params import ImageParams
from .precision import LargeComplex

logger = logging.getLogger(__name__)

# Orbit-trap iterations stop once |z| reaches this bound
ORBIT_BOUND = 4.0


def scale(x: int, y: int, params: ImageParams) -> complex:
    """Convert pixel coordinates to a point of the complex plane."""
    re = params.left + x / params.width * (params.right - params.left)
    im = params.top + y / params.height * (params.bottom - params.top)
    return complex(re, im)


def scale_grid(params: ImageParams, x_start: int, x_end: int, y_start: int, y_end: int) -> np.ndarray:
    """
    Scale a rectangle of pixel coordinates at once.

    Each element is computed with the same operations as scale(), so the
    results are bit-identical.

    Returns:
        complex128 array indexed [row, column]
    """
    xs = np.arange(x_start, x_end, dtype=np.float64)
    ys = np.arange(y_start, y_end, dtype=np.float64)

    re = params.left + xs / params.width * (params.right - params.left)
    im = params.top + ys / params.height * (params.bottom - params.top)

    points = np.empty((len(ys), len(xs)), dtype=np.complex128)
    points.real = re[np.newaxis, :]
    points.imag = im[:, np.newaxis]
    return points


def orbit_trap_value(z: complex, c: complex, orbits: Sequence[Orbit], max_iter: int,
                     power: float = 2.0) -> Tuple[float, bool]:
    """
    Closest normalized approach of an orbit to any of the traps.

    Args:
        z: Starting value
        c: Additive constant of the recurrence
        orbits: Traps to measure against
        max_iter: Maximum iterations
        power: Exponent of the recurrence z -> z^power + c

    Returns:
        Tuple of (minimum distance, converged); points that never leave
        the bound are reported as (inf, False)
    """
    dist = math.inf
    i = 0
    while i < max_iter and abs(z) < ORBIT_BOUND:
        if power == 2.0:
            z = z * z + c
        else:
            z = complex_power(z, power) + c
        for orbit in orbits:
            dist = min(dist, orbit.value(orbit.fast_value(z)))
        i += 1

    if i == max_iter or math.isinf(dist):
        return math.inf, False
    return dist, True


def orbit_trap_value_high(z: LargeComplex, c: LargeComplex, orbits: Sequence[Orbit],
                          max_iter: int) -> Tuple[float, bool]:
    """
    Arbitrary-precision variant of orbit_trap_value for z -> z^2 + c.

    Iteration stays at the working precision; traps are measured on the
    native conversion of each iterate.
    """
    dist = math.inf
    i = 0
    while i < max_iter and z.abs64() < ORBIT_BOUND:
        z = z.square() + c
        native = z.to_complex()
        for orbit in orbits:
            dist = min(dist, orbit.value(orbit.fast_value(native)))
        i += 1

    if i == max_iter or math.isinf(dist):
        return math.inf, False
    return dist, True


class Computation(ABC):
    """
    Abstract base class for per-pixel computations.

    Instances are built once per render, are read-only afterwards, and are
    picklable so they can be shipped to worker processes.
    """

    high_precision = False

    @abstractmethod
    def compute_band(self, band) -> np.ndarray:
        """
        Compute the pixels of a band.

        Args:
            band: Object with x_start, x_end, y_start and y_end attributes

        Returns:
            uint16 array of shape (rows, columns, 4)
        """
        pass

    @abstractmethod
    def compute_pixel(self, x: int, y: int) -> RGBA16:
        """Compute a single pixel color."""
        pass


class ValueComputation(ABC):
    """Abstract base class for computations producing (value, converged) pairs."""

    high_precision = False

    def __init__(self, params: ImageParams):
        self.params = params

    @abstractmethod
    def value(self, x: int, y: int) -> Tuple[float, bool]:
        """Compute the raw value of pixel (x, y)."""
        pass

    def value_band(self, band) -> Tuple[np.ndarray, np.ndarray]:
        """
        Compute raw values for every pixel of a band.

        Returns:
            Tuple of (values, converged) arrays indexed [row, column]
        """
        rows = band.y_end - band.y_start
        cols = band.x_end - band.x_start
        values = np.empty((rows, cols), dtype=np.float64)
        converged = np.empty((rows, cols), dtype=bool)

        for row, y in enumerate(range(band.y_start, band.y_end)):
            for col, x in enumerate(range(band.x_start, band.x_end)):
                values[row, col], converged[row, col] = self.value(x, y)

        return values, converged


class PixelComputation(Computation):
    """Computation coloring the output of a value computation with a palette."""

    def __init__(self, values: ValueComputation, coloring: ContinuousColoring):
        self.values = values
        self.coloring = coloring

    @property
    def params(self) -> ImageParams:
        return self.values.params

    @property
    def high_precision(self) -> bool:
        return self.values.high_precision

    def value(self, x: int, y: int) -> Tuple[float, bool]:
        return self.values.value(x, y)

    def compute_band(self, band) -> np.ndarray:
        values, converged = self.values.value_band(band)
        return self.coloring.colorize(values, converged)

    def compute_pixel(self, x: int, y: int) -> RGBA16:
        return self.coloring(*self.values.value(x, y))

    def __repr__(self) -> str:
        return f"PixelComputation({self.values!r})"
