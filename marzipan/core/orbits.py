"""
Orbit traps scoring how close an iterated trajectory comes to a shape.

Every orbit exposes a cheap ``fast_value`` evaluated at each iteration and
a ``value`` that maps a fast value onto the range [0, max_value]. The
mapping is calibrated once at construction from the corners of the
canonical viewport [-2, 1] x [-1, 1].
"""

import math
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, Tuple, Union
import logging

import numpy as np

from ..exceptions import InvalidParametersError
from ..rendering.image_output import load_mask
from .distance_transform import DistanceField, euclidean_distance_transform

logger = logging.getLogger(__name__)

CALIBRATION_CORNERS = (complex(-2, -1), complex(-2, 1), complex(1, 1), complex(1, -1))

# Canonical viewport the raster masks are laid over
MASK_LEFT = -2.0
MASK_RIGHT = 1.0
MASK_TOP = 1.0
MASK_BOTTOM = -1.0


def _calibrate(corner_distances: Iterable[float], max_value: float) -> Tuple[float, float]:
    """
    Find the linear map sending raw distances onto [0, max_value].

    Returns:
        Tuple of (translation, factor)
    """
    distances = list(corner_distances)
    translation = min(0.0, *distances)
    span = max(distances) - translation
    if span <= 0:
        return translation, 1.0
    return translation, (max_value - translation) / span


def _check_max_value(max_value: float) -> float:
    if isinstance(max_value, bool) or not isinstance(max_value, (int, float)):
        raise InvalidParametersError("Orbit max_value must be numeric")
    if not math.isfinite(max_value) or max_value <= 0:
        raise InvalidParametersError(f"Orbit max_value must be positive, got {max_value}")
    return float(max_value)


class Orbit(ABC):
    """Abstract base class for orbit traps."""

    max_value: float
    translation: float
    factor: float

    @abstractmethod
    def fast_value(self, z: complex) -> float:
        """Cheap monotonic surrogate of the distance from z to the trap."""
        pass

    @abstractmethod
    def value(self, fast: float) -> float:
        """Map a fast value to the normalized distance."""
        pass

    def distance(self, z: complex) -> float:
        """Normalized distance from z to the trap."""
        return self.value(self.fast_value(z))


class PointOrbit(Orbit):
    """Trap at a single point of the plane."""

    def __init__(self, x: float, y: float, max_value: float = 100):
        self.x = float(x)
        self.y = float(y)
        self.max_value = _check_max_value(max_value)

        corners = (math.sqrt(self.fast_value(corner)) for corner in CALIBRATION_CORNERS)
        self.translation, self.factor = _calibrate(corners, self.max_value)

    def fast_value(self, z: complex) -> float:
        dx = z.real - self.x
        dy = z.imag - self.y
        return dx * dx + dy * dy

    def value(self, fast: float) -> float:
        return (math.sqrt(fast) - self.translation) * self.factor

    def __repr__(self) -> str:
        return f"PointOrbit({self.x}, {self.y}, max_value={self.max_value})"


class LineOrbit(Orbit):
    """Trap along the line a*x + b*y + c = 0."""

    def __init__(self, a: float, b: float, c: float, max_value: float = 100):
        self.a = float(a)
        self.b = float(b)
        self.c = float(c)
        self.max_value = _check_max_value(max_value)

        self.norm = math.sqrt(self.a * self.a + self.b * self.b)
        if self.norm == 0 or not math.isfinite(self.norm):
            raise InvalidParametersError("Line orbit needs a or b to be non-zero")

        corners = (math.sqrt(self.fast_value(corner)) / self.norm for corner in CALIBRATION_CORNERS)
        self.translation, self.factor = _calibrate(corners, self.max_value)

    def fast_value(self, z: complex) -> float:
        coeff = self.a * z.real + self.b * z.imag + self.c
        return coeff * coeff

    def value(self, fast: float) -> float:
        return (math.sqrt(fast) / self.norm - self.translation) * self.factor

    def __repr__(self) -> str:
        return f"LineOrbit({self.a}, {self.b}, {self.c}, max_value={self.max_value})"


class ImageOrbit(Orbit):
    """
    Trap shaped by the black pixels of a mask image.

    The mask is stretched over the canonical viewport and its distance field
    is computed once here; lookups are read-only afterwards.
    """

    def __init__(self, mask: np.ndarray, max_value: float = 100):
        self.max_value = _check_max_value(max_value)

        mask = np.asarray(mask, dtype=bool)
        self.mask_height, self.mask_width = mask.shape if mask.ndim == 2 else (0, 0)
        if self.mask_width == 0 or self.mask_height == 0:
            raise InvalidParametersError(f"Image orbit needs a non-empty 2-D mask, got shape {mask.shape}")

        self.distances: DistanceField = euclidean_distance_transform(mask, self.max_value)

        corners = (self.fast_value(corner) for corner in CALIBRATION_CORNERS)
        self.translation, self.factor = _calibrate(corners, self.max_value)

    def to_mask_pixel(self, z: complex) -> Tuple[int, int]:
        """Convert a plane coordinate to mask pixel coordinates."""
        px = (z.real - MASK_LEFT) / (MASK_RIGHT - MASK_LEFT) * self.mask_width
        py = (z.imag - MASK_TOP) / (MASK_BOTTOM - MASK_TOP) * self.mask_height
        return int(math.floor(px)), int(math.floor(py))

    def fast_value(self, z: complex) -> float:
        if not (math.isfinite(z.real) and math.isfinite(z.imag)):
            return self.max_value
        return self.distances.lookup(*self.to_mask_pixel(z))

    def value(self, fast: float) -> float:
        return (fast - self.translation) * self.factor

    def __repr__(self) -> str:
        return f"ImageOrbit({self.mask_width}x{self.mask_height}, max_value={self.max_value})"


def create_point_orbit(x: float, y: float, max_value: float = 100) -> PointOrbit:
    """Create a point orbit trap at x + iy."""
    return PointOrbit(x, y, max_value)


def create_line_orbit(a: float, b: float, c: float, max_value: float = 100) -> LineOrbit:
    """Create a line orbit trap for a*x + b*y + c = 0."""
    return LineOrbit(a, b, c, max_value)


def create_image_orbit(source: Union[str, Path, np.ndarray], max_value: float = 100) -> ImageOrbit:
    """
    Create a raster orbit trap.

    Args:
        source: Mask image path, or a boolean mask array
        max_value: Distance cap and normalized range

    Returns:
        ImageOrbit instance

    Raises:
        MaskLoadError: If the mask image is missing or cannot be decoded
    """
    if isinstance(source, np.ndarray):
        mask = source
    else:
        mask = load_mask(source)

    orbit = ImageOrbit(mask, max_value)
    logger.info(f"Created {orbit!r}")
    return orbit
