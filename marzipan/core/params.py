"""
Image parameters shared by every computation of a render.

An ImageParams value describes the viewport, the output resolution and the
iteration budget. It is validated once at construction so that malformed
configurations never reach the rasterizer.
"""

import math
import numbers
from dataclasses import dataclass, field, replace
from typing import Iterator

from ..exceptions import InvalidParametersError
from ..rendering.coloring import Palette, DEFAULT_PALETTE

# Defaults used when a parameter is not supplied
LEFT = -2.0
RIGHT = 1.0
TOP = 1.0
BOTTOM = -1.0
WIDTH = 900
HEIGHT = 600
MAX_ITER = 100

JULIA_C = complex(-0.4, 0.6)


@dataclass(frozen=True)
class ImageParams:
    """Viewport, resolution and iteration settings for one render."""

    left: float = LEFT
    right: float = RIGHT
    top: float = TOP
    bottom: float = BOTTOM
    width: int = WIDTH
    height: int = HEIGHT
    max_iter: int = MAX_ITER
    palette: Palette = field(default=DEFAULT_PALETTE)
    power: float = 2.0
    julia_c: complex = JULIA_C

    def __post_init__(self):
        self.validate()
        # numpy integers are accepted but stored as plain ints
        for name in ('width', 'height', 'max_iter'):
            object.__setattr__(self, name, int(getattr(self, name)))

    def validate(self) -> None:
        """Validate parameter values."""
        for name in ('left', 'right', 'top', 'bottom', 'power'):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or not math.isfinite(value):
                raise InvalidParametersError(f"{name} must be a finite number, got {value!r}")

        if not isinstance(self.julia_c, (complex, int, float)):
            raise InvalidParametersError("julia_c must be a complex number")
        if not (math.isfinite(self.julia_c.real) and math.isfinite(self.julia_c.imag)):
            raise InvalidParametersError("julia_c must be finite")

        for name in ('width', 'height', 'max_iter'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, numbers.Integral) or value <= 0:
                raise InvalidParametersError(f"{name} must be a positive integer, got {value!r}")

        # Flipped axes are allowed, an empty viewport is not
        if self.left == self.right:
            raise InvalidParametersError("left and right bounds must differ")
        if self.top == self.bottom:
            raise InvalidParametersError("top and bottom bounds must differ")

        if not isinstance(self.palette, Palette):
            raise InvalidParametersError("palette must be a Palette instance")

    @property
    def bounds(self):
        """Viewport as (left, right, top, bottom)."""
        return (self.left, self.right, self.top, self.bottom)

    def with_bounds(self, left: float, right: float, top: float, bottom: float) -> 'ImageParams':
        """Return a copy of these parameters looking at another viewport."""
        return replace(self, left=left, right=right, top=top, bottom=bottom)


def zoom_sequence(params: ImageParams, frames: int = 200) -> Iterator[ImageParams]:
    """
    Yield parameters for a centered zoom into the viewport.

    Frame i moves every edge toward the center by i/2 steps of 1/frames of
    the viewport extent, so the last frame keeps about 1/frames of it.
    Flipped axes keep their orientation.

    Args:
        params: Starting parameters (frame 0)
        frames: Number of frames to produce

    Yields:
        ImageParams for each frame
    """
    if frames <= 0:
        raise InvalidParametersError("frames must be positive")

    step_x = (params.right - params.left) / frames
    step_y = (params.bottom - params.top) / frames

    for i in range(frames):
        shrink = i / 2
        yield params.with_bounds(
            params.left + shrink * step_x,
            params.right - shrink * step_x,
            params.top + shrink * step_y,
            params.bottom - shrink * step_y,
        )
