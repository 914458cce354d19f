"""
Main API classes for fractal generation.

This module provides the high-level interface for fractal generation,
combining computation selection, parallel rasterization and image export
into easy-to-use classes.
"""

import numpy as np
from typing import List, Optional, Sequence, Union
from dataclasses import dataclass
from pathlib import Path
import logging
import time

from .acceleration.parallel import DEFAULT_STRIP_WIDTH, EXECUTORS, Rasterizer
from .core.fractal_types import FRACTAL_TYPES, create_computation
from .core.orbits import Orbit
from .core.params import ImageParams, zoom_sequence
from .exceptions import InvalidParametersError
from .io.config import palette_to_text
from .rendering.image_output import ImageExporter, RenderMetadata

logger = logging.getLogger(__name__)

DEFAULT_ZOOM_FRAMES = 200


@dataclass
class RenderConfig:
    """Configuration for fractal rendering."""

    # Fractal selection
    fractal_type: str = 'mandelbrot'
    iterations: Optional[int] = None  # chaos-game iterations
    seed: Optional[int] = None

    # Performance
    processes: Optional[int] = None
    executor: str = 'process'
    strip_width: int = DEFAULT_STRIP_WIDTH

    # Output
    output_format: str = 'png'
    jpeg_quality: int = 95
    save_metadata: bool = True

    def validate(self):
        """Validate configuration parameters."""
        if self.fractal_type not in FRACTAL_TYPES:
            raise InvalidParametersError(
                f"Unknown fractal type '{self.fractal_type}'. Available: {', '.join(FRACTAL_TYPES)}")

        if self.executor not in EXECUTORS:
            raise InvalidParametersError(f"executor must be one of {', '.join(EXECUTORS)}")

        if self.processes is not None and self.processes < 1:
            raise InvalidParametersError("processes must be at least 1")

        if self.strip_width < 1:
            raise InvalidParametersError("strip_width must be at least 1")

        if self.iterations is not None and self.iterations < 0:
            raise InvalidParametersError("iterations must not be negative")

        if not 1 <= self.jpeg_quality <= 100:
            raise InvalidParametersError("jpeg_quality must be between 1 and 100")


class FractalRenderer:
    """Main fractal rendering engine."""

    def __init__(self, config: Optional[RenderConfig] = None):
        """
        Initialize fractal renderer.

        Args:
            config: Rendering configuration (uses defaults if None)
        """
        self.config = config or RenderConfig()
        self.config.validate()

        self.rasterizer = Rasterizer(self.config.processes, self.config.executor, self.config.strip_width)
        self.image_exporter = ImageExporter()

        logger.info(f"FractalRenderer initialized: {self.config.fractal_type}, "
                    f"{self.rasterizer.processes} {self.config.executor} workers")

    def compute(self, params: ImageParams, orbits: Optional[Sequence[Orbit]] = None) -> np.ndarray:
        """
        Compute an image without saving it.

        Args:
            params: Image parameters
            orbits: Orbit traps for escape-time fractals

        Returns:
            uint16 RGBA array of shape (height, width, 4)
        """
        image, _ = self._compute(params, orbits)
        return image

    def _compute(self, params: ImageParams, orbits: Optional[Sequence[Orbit]]):
        start_time = time.time()
        computation = create_computation(params, self.config.fractal_type, orbits,
                                         iterations=self.config.iterations, seed=self.config.seed)
        image = self.rasterizer.rasterize(computation, params.width, params.height)
        render_time = time.time() - start_time

        metadata = self._create_metadata(params, orbits, computation.high_precision, render_time)
        logger.info(f"Rendered {params.width}x{params.height} {self.config.fractal_type} in {render_time:.2f}s")
        return image, metadata

    def render(self, params: ImageParams, output_path: Union[str, Path],
               orbits: Optional[Sequence[Orbit]] = None) -> np.ndarray:
        """
        Render a fractal image and save it.

        Args:
            params: Image parameters
            output_path: Output file path
            orbits: Orbit traps for escape-time fractals

        Returns:
            uint16 RGBA array of shape (height, width, 4)
        """
        image, metadata = self._compute(params, orbits)
        self.image_exporter.save_image(image, output_path, metadata if self.config.save_metadata else None,
                                       quality=self.config.jpeg_quality)
        return image

    def render_zoom(self, params: ImageParams, output_dir: Union[str, Path],
                    orbits: Optional[Sequence[Orbit]] = None, frames: int = DEFAULT_ZOOM_FRAMES,
                    base_name: str = 'frame') -> List[Path]:
        """
        Render a centered zoom as a numbered frame sequence.

        Frames are written as soon as they are computed.

        Args:
            params: Parameters of the first frame
            output_dir: Directory receiving the frames
            orbits: Orbit traps for escape-time fractals
            frames: Number of frames
            base_name: Frame file name prefix

        Returns:
            List of written file paths
        """
        def rendered_frames():
            for i, frame_params in enumerate(zoom_sequence(params, frames)):
                image, metadata = self._compute(frame_params, orbits)
                logger.info(f"Frame {i + 1}/{frames} done")
                yield image, metadata if self.config.save_metadata else None

        start_time = time.time()
        saved_paths = self.image_exporter.create_image_sequence(
            rendered_frames(), output_dir, base_name=base_name,
            format=self.config.output_format, quality=self.config.jpeg_quality)

        logger.info(f"Zoom sequence of {frames} frames rendered in {time.time() - start_time:.2f}s")
        return saved_paths

    def _create_metadata(self, params: ImageParams, orbits: Optional[Sequence[Orbit]],
                         high_precision: bool, render_time: float) -> RenderMetadata:
        """Create render metadata."""
        if self.config.fractal_type not in ('mandelbrot', 'julia'):
            orbits = ()
        return RenderMetadata(
            fractal_type=self.config.fractal_type,
            bounds=params.bounds,
            resolution=(params.width, params.height),
            max_iterations=params.max_iter,
            power=params.power,
            julia_c=str(params.julia_c),
            palette=palette_to_text(params.palette),
            orbits=[repr(orbit) for orbit in orbits or ()],
            precision='arbitrary' if high_precision else 'native',
            render_time_seconds=render_time,
        )
