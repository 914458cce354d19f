"""
Fractal type definitions and computation selection.

This module defines the escape-time and orbit-trap value computations and
a registry mapping fractal type names to builders. create_computation is
the single entry point turning image parameters and a type name into a
ready-to-rasterize computation; it also decides, once per render, whether
native or arbitrary precision is used.
"""

from typing import Callable, Dict, Optional, Sequence, Tuple
import logging

import mpmath as mp
import numpy as np

from ..acceleration.numba_backend import (
    julia_grid, julia_value, mandelbrot_grid, mandelbrot_value, multibrot_grid, multibrot_value,
)
from ..exceptions import InvalidParametersError
from ..rendering.coloring import ContinuousColoring
from . import ifs
from .math_functions import (
    Computation, PixelComputation, ValueComputation,
    orbit_trap_value, orbit_trap_value_high, scale, scale_grid,
)
from .orbits import Orbit
from .params import ImageParams
from .precision import (
    LargeComplex, julia_value_high, mandelbrot_value_high,
    required_decimal_places, requires_high_precision, scale_high,
)

logger = logging.getLogger(__name__)


class EscapeTimeComputation(ValueComputation):
    """Smoothed escape time of the Mandelbrot, Julia or Multibrot recurrence."""

    def __init__(self, params: ImageParams, kind: str = 'mandelbrot'):
        super().__init__(params)
        if kind not in ('mandelbrot', 'julia', 'multibrot'):
            raise InvalidParametersError(f"Unknown escape-time recurrence '{kind}'")
        if kind == 'multibrot' and params.power <= 1:
            raise InvalidParametersError(f"Multibrot power must be greater than 1, got {params.power}")
        self.kind = kind

    def value(self, x: int, y: int) -> Tuple[float, bool]:
        point = scale(x, y, self.params)
        if self.kind == 'julia':
            return julia_value(point, complex(self.params.julia_c), self.params.max_iter)
        if self.kind == 'multibrot':
            return multibrot_value(point, self.params.max_iter, self.params.power)
        return mandelbrot_value(point, self.params.max_iter)

    def value_band(self, band) -> Tuple[np.ndarray, np.ndarray]:
        points = scale_grid(self.params, band.x_start, band.x_end, band.y_start, band.y_end)
        if self.kind == 'julia':
            return julia_grid(points, complex(self.params.julia_c), self.params.max_iter)
        if self.kind == 'multibrot':
            return multibrot_grid(points, self.params.max_iter, float(self.params.power))
        return mandelbrot_grid(points, self.params.max_iter)

    def __repr__(self) -> str:
        return f"EscapeTimeComputation({self.kind})"


class HighPrecisionComputation(ValueComputation):
    """
    Escape time of the Mandelbrot or Julia recurrence in arbitrary precision.

    The working precision is derived from the pixel spacing of the viewport
    and applied with mpmath.workdps around every evaluation.
    """

    high_precision = True

    def __init__(self, params: ImageParams, kind: str = 'mandelbrot'):
        super().__init__(params)
        if kind not in ('mandelbrot', 'julia'):
            raise InvalidParametersError(f"No arbitrary-precision evaluator for '{kind}'")
        self.kind = kind
        self.decimal_places = required_decimal_places(params)

    def value(self, x: int, y: int) -> Tuple[float, bool]:
        with mp.workdps(self.decimal_places):
            point = scale_high(x, y, self.params)
            if self.kind == 'julia':
                c = LargeComplex(self.params.julia_c.real, self.params.julia_c.imag)
                return julia_value_high(point, c, self.params.max_iter)
            return mandelbrot_value_high(point, self.params.max_iter)

    def value_band(self, band) -> Tuple[np.ndarray, np.ndarray]:
        with mp.workdps(self.decimal_places):
            return super().value_band(band)

    def __repr__(self) -> str:
        return f"HighPrecisionComputation({self.kind}, dps={self.decimal_places})"


class OrbitTrapComputation(ValueComputation):
    """Minimum normalized distance from an orbit to a set of traps."""

    def __init__(self, params: ImageParams, orbits: Sequence[Orbit], kind: str = 'mandelbrot',
                 high_precision: bool = False):
        super().__init__(params)
        if kind not in ('mandelbrot', 'julia'):
            raise InvalidParametersError(f"Orbit traps are not available for '{kind}'")
        if not orbits:
            raise InvalidParametersError("At least one orbit is required")
        self.orbits = tuple(orbits)
        self.kind = kind
        self.high_precision = high_precision
        self.decimal_places = required_decimal_places(params) if high_precision else None

    def value(self, x: int, y: int) -> Tuple[float, bool]:
        if self.high_precision:
            return self._value_high(x, y)

        point = scale(x, y, self.params)
        if self.kind == 'julia':
            return orbit_trap_value(point, self.params.julia_c, self.orbits, self.params.max_iter)
        return orbit_trap_value(0j, point, self.orbits, self.params.max_iter, self.params.power)

    def _value_high(self, x: int, y: int) -> Tuple[float, bool]:
        with mp.workdps(self.decimal_places):
            point = scale_high(x, y, self.params)
            if self.kind == 'julia':
                c = LargeComplex(self.params.julia_c.real, self.params.julia_c.imag)
                return orbit_trap_value_high(point, c, self.orbits, self.params.max_iter)
            return orbit_trap_value_high(LargeComplex(0, 0), point, self.orbits, self.params.max_iter)

    def __repr__(self) -> str:
        precision = 'high' if self.high_precision else 'native'
        return f"OrbitTrapComputation({self.kind}, {len(self.orbits)} orbits, {precision})"


def _select_precision(params: ImageParams, supported: bool, name: str) -> bool:
    """Apply the precision policy once for the whole render."""
    if not requires_high_precision(params):
        return False
    if supported:
        logger.info(f"Viewport too narrow for double precision, using "
                    f"{required_decimal_places(params)} decimal places for {name}")
        return True
    logger.warning(f"Viewport too narrow for double precision but {name} has no "
                   f"arbitrary-precision evaluator; rendering in native precision")
    return False


def _build_mandelbrot(params, coloring, orbits, iterations, seed) -> Computation:
    multibrot = params.power != 2.0
    if multibrot and params.power <= 1:
        raise InvalidParametersError(f"Multibrot power must be greater than 1, got {params.power}")

    name = 'multibrot' if multibrot else 'mandelbrot'
    high = _select_precision(params, not multibrot, name)

    if orbits:
        values = OrbitTrapComputation(params, orbits, 'mandelbrot', high)
    elif high:
        values = HighPrecisionComputation(params, 'mandelbrot')
    else:
        values = EscapeTimeComputation(params, name)
    return PixelComputation(values, coloring)


def _build_julia(params, coloring, orbits, iterations, seed) -> Computation:
    high = _select_precision(params, True, 'julia')

    if orbits:
        values = OrbitTrapComputation(params, orbits, 'julia', high)
    elif high:
        values = HighPrecisionComputation(params, 'julia')
    else:
        values = EscapeTimeComputation(params, 'julia')
    return PixelComputation(values, coloring)


def _build_fern(params, coloring, orbits, iterations, seed) -> Computation:
    return ifs.create_ifs_computation(params, ifs.FERN, coloring, iterations, seed)


def _build_sierpinski(params, coloring, orbits, iterations, seed) -> Computation:
    return ifs.create_ifs_computation(params, ifs.SIERPINSKI, coloring, iterations, seed)


def _build_flame(params, coloring, orbits, iterations, seed) -> Computation:
    return ifs.create_flame_computation(params, iterations, seed)


class FractalRegistry:
    """Registry for managing available fractal types."""

    _builders: Dict[str, Callable[..., Computation]] = {}
    _descriptions: Dict[str, str] = {}

    @classmethod
    def register(cls, name: str, builder: Callable[..., Computation], description: str = '') -> None:
        """
        Register a new fractal type.

        Args:
            name: Name to register the fractal under
            builder: Callable (params, coloring, orbits, iterations, seed) -> Computation
            description: One-line description
        """
        if not callable(builder):
            raise ValueError("Fractal builder must be callable")
        cls._builders[name.lower()] = builder
        cls._descriptions[name.lower()] = description
        logger.debug(f"Registered fractal type: {name}")

    @classmethod
    def get(cls, name: str) -> Callable[..., Computation]:
        """
        Get a fractal builder by name.

        Raises:
            InvalidParametersError: If the fractal type is unknown
        """
        builder = cls._builders.get(name.lower())
        if builder is None:
            available = ', '.join(cls._builders.keys())
            raise InvalidParametersError(f"Unknown fractal type '{name}'. Available: {available}")
        return builder

    @classmethod
    def list_fractals(cls) -> Dict[str, str]:
        """Get the registered fractal types with their descriptions."""
        return dict(cls._descriptions)


FractalRegistry.register('mandelbrot', _build_mandelbrot,
                         "Mandelbrot set, or Multibrot when the power is not 2")
FractalRegistry.register('julia', _build_julia, "Julia set of z^2 + c")
FractalRegistry.register('fern', _build_fern, "Barnsley fern (chaos game)")
FractalRegistry.register('sierp', _build_sierpinski, "Sierpinski triangle (chaos game)")
FractalRegistry.register('flame', _build_flame, "Fractal flame (chaos game)")

FRACTAL_TYPES = tuple(FractalRegistry.list_fractals())

# Julia constants, usable wherever a constant is parsed from text
JULIA_PRESETS = {
    'dragon': complex(-0.75, 0.1),
    'spiral': complex(-0.4, 0.6),
    'dendrite': complex(-0.235125, 0.827215),
    'lightning': complex(-0.8, 0.156),
    'rabbit': complex(-0.123, 0.745),
    'airplane': complex(-1.25, 0.0),
    'san_marco': complex(-0.75, 0.0),
    'siegel_disk': complex(-0.391, -0.587),
}


def create_computation(params: ImageParams, fractal_type: str, orbits: Optional[Sequence[Orbit]] = None,
                       *, iterations: Optional[int] = None, seed: Optional[int] = None) -> Computation:
    """
    Build the computation rendering a fractal type with the given parameters.

    Chaos-game accumulation and precision selection happen here, before
    any rasterization.

    Args:
        params: Image parameters
        fractal_type: One of FRACTAL_TYPES
        orbits: Orbit traps (escape-time types only)
        iterations: Chaos-game iteration count override
        seed: Chaos-game random seed

    Returns:
        Computation ready to be passed to rasterize()

    Raises:
        InvalidParametersError: For unknown types or unusable parameters
    """
    if not isinstance(params, ImageParams):
        raise InvalidParametersError("params must be an ImageParams instance")
    builder = FractalRegistry.get(fractal_type)

    orbits = tuple(orbits or ())
    if orbits and fractal_type.lower() not in ('mandelbrot', 'julia'):
        logger.warning(f"Orbit traps are ignored for {fractal_type}")
        orbits = ()

    computation = builder(params, ContinuousColoring(params.palette), orbits, iterations, seed)
    logger.info(f"Created {computation!r} for {params.width}x{params.height} {fractal_type}")
    return computation
