"""
Parallel rasterization of fractal computations.

The image is cut into column strips and every strip into row bands, one
task per band. Tasks run on a process pool (or a thread pool) and only
return their own pixels; the parent writes each block into its disjoint
region of the output buffer once every task has finished.
"""

from typing import List, Optional
import multiprocessing as mp
import logging
import time
from dataclasses import dataclass
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor, as_completed

import numpy as np

from ..exceptions import InvalidParametersError

logger = logging.getLogger(__name__)

EXECUTORS = ('process', 'thread')

DEFAULT_STRIP_WIDTH = 16


@dataclass(frozen=True)
class BandSpec:
    """Specification for a single band in parallel rendering."""
    band_id: int
    x_start: int
    x_end: int
    y_start: int
    y_end: int

    @property
    def width(self) -> int:
        return self.x_end - self.x_start

    @property
    def height(self) -> int:
        return self.y_end - self.y_start


@dataclass
class BandResult:
    """Pixels computed for a single band."""
    band_id: int
    x_start: int
    y_start: int
    pixels: np.ndarray
    processing_time: float


def create_band_grid(width: int, height: int, bands_per_strip: Optional[int] = None,
                     strip_width: int = DEFAULT_STRIP_WIDTH) -> List[BandSpec]:
    """
    Create the grid of bands for parallel processing.

    Args:
        width: Total image width
        height: Total image height
        bands_per_strip: Row bands per column strip (None for CPU count)
        strip_width: Width of the column strips in pixels

    Returns:
        List of BandSpec objects covering the image exactly once
    """
    if width <= 0 or height <= 0:
        raise InvalidParametersError("Width and height must be positive")
    if strip_width <= 0:
        raise InvalidParametersError("strip_width must be positive")

    bands_per_strip = min(max(1, bands_per_strip or mp.cpu_count()), height)
    row_edges = [k * height // bands_per_strip for k in range(bands_per_strip + 1)]

    bands = []
    band_id = 0
    for x in range(0, width, strip_width):
        x_end = min(x + strip_width, width)
        for y, y_end in zip(row_edges, row_edges[1:]):
            bands.append(BandSpec(band_id, x, x_end, y, y_end))
            band_id += 1

    logger.debug(f"Created {len(bands)} bands: {bands_per_strip} per {strip_width}-pixel strip")
    return bands


# Computation installed in each worker process by the pool initializer
_worker_computation = None


def _install_computation(computation) -> None:
    global _worker_computation
    _worker_computation = computation


def process_band(band: BandSpec, computation=None) -> BandResult:
    """
    Compute the pixels of a single band.

    Args:
        band: Band to compute
        computation: Computation to run (defaults to the one installed in
            this worker process)

    Returns:
        BandResult object
    """
    if computation is None:
        computation = _worker_computation
    if computation is None:
        raise RuntimeError("No computation installed in this worker")

    start_time = time.time()
    pixels = computation.compute_band(band)

    expected = (band.height, band.width, 4)
    if pixels.shape != expected:
        raise RuntimeError(f"Band {band.band_id} produced shape {pixels.shape}, expected {expected}")

    return BandResult(band.band_id, band.x_start, band.y_start,
                      np.asarray(pixels, dtype=np.uint16), time.time() - start_time)


def assemble_bands(band_results: List[BandResult], width: int, height: int) -> np.ndarray:
    """
    Assemble band results into a complete RGBA buffer.

    Returns:
        uint16 array of shape (height, width, 4)
    """
    image = np.zeros((height, width, 4), dtype=np.uint16)
    for result in band_results:
        rows, cols = result.pixels.shape[:2]
        image[result.y_start:result.y_start + rows, result.x_start:result.x_start + cols] = result.pixels
    return image


class Rasterizer:
    """Fork-join rasterizer running one task per band."""

    def __init__(self, processes: Optional[int] = None, executor: str = 'process',
                 strip_width: int = DEFAULT_STRIP_WIDTH):
        """
        Initialize the rasterizer.

        Args:
            processes: Number of workers and of bands per strip (None for CPU count)
            executor: 'process' or 'thread'
            strip_width: Width of the column strips in pixels
        """
        if executor not in EXECUTORS:
            raise InvalidParametersError(f"Unknown executor '{executor}'. Available: {', '.join(EXECUTORS)}")
        if processes is not None and processes < 1:
            raise InvalidParametersError("processes must be at least 1")

        self.processes = processes or mp.cpu_count()
        self.executor = executor
        self.strip_width = strip_width

    def _make_executor(self, computation):
        if self.executor == 'thread':
            return ThreadPoolExecutor(max_workers=self.processes)
        return ProcessPoolExecutor(max_workers=self.processes,
                                   initializer=_install_computation, initargs=(computation,))

    def rasterize(self, computation, width: int, height: int) -> np.ndarray:
        """
        Compute every pixel of a width x height image.

        Blocks until all bands are done; a failing band cancels the rest
        and its exception propagates to the caller.

        Returns:
            uint16 RGBA array of shape (height, width, 4)
        """
        start_time = time.time()
        bands = create_band_grid(width, height, self.processes, self.strip_width)

        logger.info(f"Rasterizing {width}x{height} in {len(bands)} bands "
                    f"with {self.processes} {self.executor} workers")

        # Threads share the caller's computation; processes get it from the initializer
        shared = computation if self.executor == 'thread' else None

        results = []
        with self._make_executor(computation) as executor:
            future_to_band = {executor.submit(process_band, band, shared): band for band in bands}

            for future in as_completed(future_to_band):
                band = future_to_band[future]
                try:
                    results.append(future.result())
                except Exception as e:
                    logger.error(f"Band {band.band_id} ({band.x_start},{band.y_start}) failed: {e}")
                    for pending in future_to_band:
                        pending.cancel()
                    raise

                if len(results) % max(1, len(bands) // 10) == 0:
                    progress = len(results) / len(bands) * 100
                    logger.debug(f"Completed {len(results)}/{len(bands)} bands ({progress:.1f}%)")

        image = assemble_bands(results, width, height)

        total_time = time.time() - start_time
        busy_time = sum(r.processing_time for r in results)
        logger.info(f"Rasterization complete: {total_time:.2f}s total, {busy_time:.2f}s in bands")
        return image


def rasterize(computation, width: int, height: int, processes: Optional[int] = None,
              executor: str = 'process', strip_width: int = DEFAULT_STRIP_WIDTH) -> np.ndarray:
    """
    Rasterize a computation into a 16-bit RGBA buffer.

    Args:
        computation: Object with compute_band(band), e.g. from create_computation()
        width, height: Image size in pixels
        processes: Number of workers (None for CPU count)
        executor: 'process' or 'thread'
        strip_width: Width of the column strips in pixels

    Returns:
        uint16 array of shape (height, width, 4)
    """
    return Rasterizer(processes, executor, strip_width).rasterize(computation, width, height)
