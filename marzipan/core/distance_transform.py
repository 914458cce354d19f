"""
Euclidean distance transform over binary mask images.

The transform is separable: the 1-D lower-envelope transform runs along
every row, the grid is transposed, the transform runs along every former
column and the grid is transposed back. The grid is padded by
``max_value`` cells on each side and distances are capped at
``max_value``.
"""

import math
from typing import Tuple
import logging
import time

import numpy as np

from ..acceleration.numba_backend import squared_distance_rows
from ..exceptions import InvalidParametersError

logger = logging.getLogger(__name__)


class DistanceField:
    """
    Read-only mapping from mask pixel coordinates to distances.

    Coordinates are expressed in the unpadded mask grid, so (0, 0) is the
    top-left mask pixel and negative coordinates reach into the padding.
    Anything outside the padded grid is reported at ``max_value``.
    """

    def __init__(self, distances: np.ndarray, padding: int, max_value: float):
        distances = np.array(distances, dtype=np.float64)
        distances.flags.writeable = False
        self._distances = distances
        self.padding = padding
        self.max_value = float(max_value)

    @property
    def shape(self) -> Tuple[int, int]:
        """Padded grid size as (width, height)."""
        return self._distances.shape[1], self._distances.shape[0]

    def lookup(self, x: int, y: int) -> float:
        """Distance from mask pixel (x, y) to the nearest marked pixel."""
        row = y + self.padding
        col = x + self.padding
        if 0 <= row < self._distances.shape[0] and 0 <= col < self._distances.shape[1]:
            return float(self._distances[row, col])
        return self.max_value

    def as_array(self) -> np.ndarray:
        """Padded distance grid indexed [row, column] (read-only)."""
        return self._distances


def euclidean_distance_transform(mask: np.ndarray, max_value: float) -> DistanceField:
    """
    Compute the distance from every cell to the nearest marked cell.

    Args:
        mask: 2-D boolean array, True on marked cells
        max_value: Padding width and distance cap

    Returns:
        DistanceField over the padded grid
    """
    mask = np.asarray(mask, dtype=bool)
    if mask.ndim != 2:
        raise InvalidParametersError(f"Mask must be a 2-D array, got shape {mask.shape}")
    if not math.isfinite(max_value) or max_value <= 0:
        raise InvalidParametersError(f"max_value must be positive, got {max_value}")

    start_time = time.time()

    height, width = mask.shape
    padding = int(math.ceil(max_value))
    cap = float(max_value) ** 2

    # Unmarked cells start at the cap so far-away cells stay bounded
    grid = np.full((height + 2 * padding, width + 2 * padding), cap, dtype=np.float64)
    grid[padding:padding + height, padding:padding + width][mask] = 0.0

    rows = squared_distance_rows(grid)
    np.minimum(rows, cap, out=rows)

    columns = squared_distance_rows(np.ascontiguousarray(rows.T))
    squared = np.minimum(columns.T, cap)

    field = DistanceField(np.sqrt(squared), padding, max_value)

    logger.info(f"Distance transform of {width}x{height} mask "
                f"(padding {padding}) computed in {time.time() - start_time:.2f}s")
    return field
