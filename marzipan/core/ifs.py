"""
Chaos-game renderers for iterated function systems.

The fern, the Sierpinski triangle and the fractal flame are built by
iterating a randomly chosen map on a single running point. Accumulation is
sequential and happens once per render in a JIT-compiled kernel; the
resulting hit counts are frozen into read-only snapshots that pixel
computations look up concurrently.
"""

from dataclasses import dataclass
from typing import Optional, Tuple
import logging
import time

import numpy as np

from ..acceleration.numba_backend import affine_chaos_game, flame_chaos_game
from ..exceptions import InvalidParametersError
from ..rendering.coloring import CHANNEL_MAX, ContinuousColoring, RGBA16
from .math_functions import Computation, PixelComputation, ValueComputation
from .params import ImageParams

logger = logging.getLogger(__name__)

# Number of initial flame iterations not plotted
FLAME_SKIP = 20


def _frozen(array: np.ndarray) -> np.ndarray:
    array = np.ascontiguousarray(array)
    array.flags.writeable = False
    return array


@dataclass(frozen=True)
class AffineSystem:
    """
    Weighted affine maps together with the window they are plotted in.

    Attributes:
        name: Short identifier
        transforms: Rows of (a, b, c, d, e, f) for x' = ax + by + e, y' = cx + dy + f
        thresholds: Cumulative selection probabilities, one per row
        bounds: Plotted window as (xmin, xmax, ytop, ybottom)
        iterations: Default number of chaos-game iterations
    """
    name: str
    transforms: Tuple[Tuple[float, ...], ...]
    thresholds: Tuple[float, ...]
    bounds: Tuple[float, float, float, float]
    iterations: int

    def __post_init__(self):
        if len(self.transforms) != len(self.thresholds):
            raise InvalidParametersError(f"{self.name}: one threshold is needed per transform")
        for transform in self.transforms:
            if len(transform) != 6:
                raise InvalidParametersError(f"{self.name}: affine maps need 6 coefficients")

    def arrays(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Coefficients, thresholds and bounds as float64 arrays for the kernels."""
        return (np.array(self.transforms, dtype=np.float64),
                np.array(self.thresholds, dtype=np.float64),
                np.array(self.bounds, dtype=np.float64))


FERN = AffineSystem(
    name='fern',
    transforms=(
        (0.0, 0.0, 0.0, 0.16, 0.0, 0.0),
        (0.85, 0.04, -0.04, 0.85, 0.0, 1.6),
        (-0.15, 0.28, 0.26, 0.24, 0.0, 0.44),
        (0.20, -0.26, 0.23, 0.22, 0.0, 1.6),
    ),
    thresholds=(0.05, 0.86, 0.93, 1.0),
    bounds=(-2.1820, 2.6558, 9.9983, 0.0),
    iterations=100_000_000,
)

SIERPINSKI = AffineSystem(
    name='sierp',
    transforms=(
        (0.5, 0.0, 0.0, 0.5, 0.0, 0.0),
        (0.5, 0.0, 0.0, 0.5, 0.5, 0.0),
        (0.5, 0.0, 0.0, 0.5, 0.0, 0.5),
    ),
    thresholds=(1 / 3, 2 / 3, 1.0),
    bounds=(0.0, 1.0, 1.0, 0.0),
    iterations=50_000_000,
)

# Flame function i applies affine map i followed by variation i
FLAME = AffineSystem(
    name='flame',
    transforms=(
        (-0.98, -0.12, -0.6, 0.01, -0.028, 0.07),
        (-0.5, 0.43, -0.06, -0.44, -0.09, -0.88),
        (0.18, -0.12, -0.18, 0.04, 0.18, 0.40),
        (1.62, 1.03, 0.59, -0.66, 0.25, -0.72),
        (0.02, 0.13, -1.17, -1.44, -0.17, -0.14),
    ),
    thresholds=(0.08, 0.8, 0.85, 0.87, 1.0),
    bounds=(-1.0, 1.0, -1.0, 1.0),
    iterations=100_000_000,
)

FLAME_COLORS = (
    (1.0, 0.0, 0.0),
    (1.0, 0.25, 0.0),
    (1.0, 0.5, 0.0),
    (1.0, 0.75, 0.0),
    (1.0, 1.0, 0.0),
)


def _check_run(iterations: int, seed: Optional[int]) -> None:
    if isinstance(iterations, bool) or not isinstance(iterations, int) or iterations < 0:
        raise InvalidParametersError(f"iterations must be a non-negative integer, got {iterations!r}")
    if seed is not None and (not isinstance(seed, int) or seed < 0):
        raise InvalidParametersError(f"seed must be a non-negative integer, got {seed!r}")


class HitCountSnapshot:
    """Read-only hit counts of a finished chaos game, indexed [row, column]."""

    def __init__(self, hits: np.ndarray):
        self.hits = _frozen(hits)

    @property
    def max_count(self) -> int:
        return int(self.hits.max()) if self.hits.size else 0

    @property
    def total(self) -> int:
        return int(self.hits.sum())

    def count(self, x: int, y: int) -> int:
        return int(self.hits[y, x])


class FlameSnapshot:
    """
    Read-only tone-mapped flame.

    Attributes:
        hits: Hit counts indexed [row, column]
        colors: Average running color per pixel, shape (rows, columns, 3)
        alpha: log(count + 1) / log(max_count + 1) per pixel
    """

    def __init__(self, hits: np.ndarray, color_sums: np.ndarray):
        self.hits = _frozen(hits)

        max_count = int(hits.max()) if hits.size else 0
        counts = hits.astype(np.float64)

        colors = np.zeros_like(color_sums)
        np.divide(color_sums, counts[..., np.newaxis], out=colors, where=counts[..., np.newaxis] > 0)
        self.colors = _frozen(colors)

        logs = np.log(counts + 1)
        if max_count > 0:
            # The brightest pixel is exactly opaque
            alpha = logs / logs.max()
        else:
            alpha = np.zeros_like(counts)
        self.alpha = _frozen(alpha)


def build_hit_counts(system: AffineSystem, width: int, height: int,
                     iterations: Optional[int] = None, seed: Optional[int] = None) -> HitCountSnapshot:
    """
    Play the chaos game of an affine system into a width x height grid.

    Args:
        system: Maps and plotting window
        width, height: Grid size in pixels
        iterations: Number of iterations (defaults to the system's own)
        seed: Random seed for reproducible output

    Returns:
        HitCountSnapshot
    """
    iterations = system.iterations if iterations is None else iterations
    _check_run(iterations, seed)

    start_time = time.time()
    transforms, thresholds, bounds = system.arrays()
    hits = affine_chaos_game(transforms, thresholds, bounds, width, height,
                             iterations, -1 if seed is None else seed)

    snapshot = HitCountSnapshot(hits)
    logger.info(f"{system.name}: {iterations} iterations, {snapshot.total} hits "
                f"in {time.time() - start_time:.2f}s")
    return snapshot


def build_flame(width: int, height: int, iterations: Optional[int] = None,
                seed: Optional[int] = None, skip: int = FLAME_SKIP) -> FlameSnapshot:
    """
    Play the flame chaos game into a width x height grid.

    Returns:
        FlameSnapshot
    """
    iterations = FLAME.iterations if iterations is None else iterations
    _check_run(iterations, seed)

    start_time = time.time()
    transforms, thresholds, bounds = FLAME.arrays()
    colors = np.array(FLAME_COLORS, dtype=np.float64)
    hits, color_sums = flame_chaos_game(transforms, thresholds, colors, bounds, width, height,
                                        iterations, skip, -1 if seed is None else seed)

    snapshot = FlameSnapshot(hits, color_sums)
    logger.info(f"flame: {iterations} iterations, {int(hits.sum())} hits "
                f"in {time.time() - start_time:.2f}s")
    return snapshot


class HitCountComputation(ValueComputation):
    """Value computation reporting chaos-game hit counts."""

    def __init__(self, params: ImageParams, snapshot: HitCountSnapshot):
        super().__init__(params)
        self.snapshot = snapshot

    def value(self, x: int, y: int) -> Tuple[float, bool]:
        count = self.snapshot.count(x, y)
        if count > 0:
            return float(count), True
        return 0.0, False

    def value_band(self, band) -> Tuple[np.ndarray, np.ndarray]:
        hits = self.snapshot.hits[band.y_start:band.y_end, band.x_start:band.x_end]
        converged = hits > 0
        values = np.where(converged, hits, 0).astype(np.float64)
        return values, converged

    def __repr__(self) -> str:
        return f"HitCountComputation({self.params.width}x{self.params.height})"


class FlameComputation(Computation):
    """Computation painting a flame snapshot over the divergence color."""

    def __init__(self, params: ImageParams, snapshot: FlameSnapshot):
        self.params = params
        self.snapshot = snapshot

    def compute_band(self, band) -> np.ndarray:
        rows = slice(band.y_start, band.y_end)
        cols = slice(band.x_start, band.x_end)
        hit = self.snapshot.hits[rows, cols] > 0

        rgba = np.empty(hit.shape + (4,), dtype=np.uint16)
        rgba[...] = self.params.palette.divergence.to_rgba16()

        colors = self.snapshot.colors[rows, cols][hit]
        alpha = self.snapshot.alpha[rows, cols][hit]
        rgba[hit, :3] = np.rint(np.clip(colors, 0.0, 1.0) * CHANNEL_MAX).astype(np.uint16)
        rgba[hit, 3] = np.rint(np.clip(alpha, 0.0, 1.0) * CHANNEL_MAX).astype(np.uint16)
        return rgba

    def compute_pixel(self, x: int, y: int) -> RGBA16:
        if self.snapshot.hits[y, x] == 0:
            return self.params.palette.divergence.to_rgba16()
        r, g, b = (_channel(c) for c in self.snapshot.colors[y, x])
        return r, g, b, _channel(self.snapshot.alpha[y, x])

    def __repr__(self) -> str:
        return f"FlameComputation({self.params.width}x{self.params.height})"


def _channel(component: float) -> int:
    return int(np.rint(min(max(float(component), 0.0), 1.0) * CHANNEL_MAX))


def create_ifs_computation(params: ImageParams, system: AffineSystem, coloring: ContinuousColoring,
                           iterations: Optional[int] = None, seed: Optional[int] = None) -> PixelComputation:
    """Play an affine system and wrap its hit counts in a colored computation."""
    snapshot = build_hit_counts(system, params.width, params.height, iterations, seed)
    return PixelComputation(HitCountComputation(params, snapshot), coloring)


def create_flame_computation(params: ImageParams, iterations: Optional[int] = None,
                             seed: Optional[int] = None) -> FlameComputation:
    """Play the flame and wrap the snapshot in a computation."""
    return FlameComputation(params, build_flame(params.width, params.height, iterations, seed))
