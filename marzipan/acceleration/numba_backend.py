"""
Numba JIT compilation backend for the numeric hot loops.

This module provides JIT-compiled kernels for the native-precision
escape-time evaluators, the one-dimensional Euclidean distance transform
and the chaos-game accumulators. The kernels are plain functions of
scalars and arrays so they can be called from pure Python, from other
kernels, and from worker processes alike.
"""

import math
import logging

import numba
import numpy as np
from numba import jit

logger = logging.getLogger(__name__)
logger.debug(f"Numba available: {numba.__version__}")

# Escape-time constants
ESCAPE_RADIUS = 1000.0
NOT_ESCAPED = float(2 ** 63 - 1)

# Smallest radius used by the flame variations
FLAME_EPSILON = 1e-12


@jit(nopython=True, cache=True)
def mandelbrot_value(c, max_iter):
    """
    JIT-compiled smoothed escape time of z -> z^2 + c from z = 0.

    Args:
        c: Complex parameter
        max_iter: Maximum iterations

    Returns:
        Tuple of (smoothed iteration count, escaped)
    """
    z = 0j
    for i in range(max_iter):
        z = z * z + c
        absz = abs(z)
        if absz > ESCAPE_RADIUS:
            return i + 1 - math.log2(math.log2(absz)), True
    return NOT_ESCAPED, False


@jit(nopython=True, cache=True)
def julia_value(z, c, max_iter):
    """JIT-compiled smoothed escape time of z -> z^2 + c from the given seed."""
    for i in range(max_iter):
        z = z * z + c
        absz = abs(z)
        if absz > ESCAPE_RADIUS:
            return i + 1 - math.log2(math.log2(absz)), True
    return NOT_ESCAPED, False


@jit(nopython=True, cache=True)
def complex_power(z, power):
    """Raise a complex number to a real power using its polar form."""
    if z == 0:
        return 0j
    magnitude = abs(z) ** power
    angle = math.atan2(z.imag, z.real) * power
    return complex(magnitude * math.cos(angle), magnitude * math.sin(angle))


@jit(nopython=True, cache=True)
def multibrot_value(c, max_iter, power):
    """
    JIT-compiled smoothed escape time of z -> z^power + c from z = 0.

    The smoothing uses the bailout B = 2^(1/(power-1)) of the generalized
    recurrence, so power must be greater than 1.
    """
    log_bailout = math.log(2.0) / (power - 1.0)
    log2_power = math.log2(power)

    z = 0j
    for i in range(max_iter):
        z = complex_power(z, power) + c
        absz = abs(z)
        if absz > ESCAPE_RADIUS:
            return i + 1 - math.log(math.log(absz) / log_bailout) / log2_power, True
    return NOT_ESCAPED, False


@jit(nopython=True, cache=True)
def mandelbrot_grid(points, max_iter):
    """
    Evaluate the Mandelbrot escape time over a 2-D array of points.

    Returns:
        Tuple of (values, escaped) arrays shaped like ``points``
    """
    values = np.empty(points.shape, dtype=np.float64)
    escaped = np.empty(points.shape, dtype=np.bool_)
    for row in range(points.shape[0]):
        for col in range(points.shape[1]):
            value, ok = mandelbrot_value(points[row, col], max_iter)
            values[row, col] = value
            escaped[row, col] = ok
    return values, escaped


@jit(nopython=True, cache=True)
def julia_grid(points, c, max_iter):
    """Evaluate the Julia escape time for every seed in ``points``."""
    values = np.empty(points.shape, dtype=np.float64)
    escaped = np.empty(points.shape, dtype=np.bool_)
    for row in range(points.shape[0]):
        for col in range(points.shape[1]):
            value, ok = julia_value(points[row, col], c, max_iter)
            values[row, col] = value
            escaped[row, col] = ok
    return values, escaped


@jit(nopython=True, cache=True)
def multibrot_grid(points, max_iter, power):
    """Evaluate the Multibrot escape time over a 2-D array of points."""
    values = np.empty(points.shape, dtype=np.float64)
    escaped = np.empty(points.shape, dtype=np.bool_)
    for row in range(points.shape[0]):
        for col in range(points.shape[1]):
            value, ok = multibrot_value(points[row, col], max_iter, power)
            values[row, col] = value
            escaped[row, col] = ok
    return values, escaped


@jit(nopython=True, cache=True)
def _parabola_intersection(f, q, p):
    return ((f[q] + q * q) - (f[p] + p * p)) / (2 * q - 2 * p)


@jit(nopython=True, cache=True)
def squared_distance_1d(f, out):
    """
    One-dimensional squared distance transform of a sampled function.

    Computes out[q] = min_p (q - p)^2 + f[p] by building the lower envelope
    of the parabolas rooted at every sample and then marching across it.

    Args:
        f: Sampled function values (0 on marked cells)
        out: Output array of the same length
    """
    n = f.shape[0]
    if n == 0:
        return

    # Envelope vertices and the breakpoints between consecutive parabolas
    vertices = np.zeros(n, dtype=np.int64)
    breaks = np.empty(n + 1, dtype=np.float64)

    k = 0
    breaks[0] = -np.inf
    breaks[1] = np.inf
    for q in range(1, n):
        s = _parabola_intersection(f, q, vertices[k])
        while s <= breaks[k]:
            k -= 1
            s = _parabola_intersection(f, q, vertices[k])
        k += 1
        vertices[k] = q
        breaks[k] = s
        breaks[k + 1] = np.inf

    k = 0
    for q in range(n):
        while breaks[k + 1] < q:
            k += 1
        d = q - vertices[k]
        out[q] = d * d + f[vertices[k]]


@jit(nopython=True, cache=True)
def squared_distance_rows(grid):
    """Apply the 1-D transform to every row of a C-contiguous grid."""
    out = np.empty_like(grid)
    for row in range(grid.shape[0]):
        squared_distance_1d(grid[row], out[row])
    return out


@jit(nopython=True, cache=True)
def _to_pixel(x, y, bounds, width, height):
    # bounds = (xmin, xmax, ytop, ybottom) in attractor coordinates
    fx = (x - bounds[0]) / (bounds[1] - bounds[0]) * width
    fy = (bounds[2] - y) / (bounds[2] - bounds[3]) * height
    if fx >= 0.0 and fx < width and fy >= 0.0 and fy < height:
        return int(fx), int(fy), True
    return -1, -1, False


@jit(nopython=True, cache=True)
def _pick_transform(thresholds):
    rule = np.random.random()
    k = 0
    last = thresholds.shape[0] - 1
    while k < last and rule >= thresholds[k]:
        k += 1
    return k


@jit(nopython=True, cache=True)
def affine_chaos_game(transforms, thresholds, bounds, width, height, iterations, seed):
    """
    JIT-compiled chaos game over weighted affine maps.

    Each row of ``transforms`` is (a, b, c, d, e, f) for
    x' = a x + b y + e, y' = c x + d y + f. ``thresholds`` holds the
    cumulative selection probabilities of the rows.

    Returns:
        (height, width) int64 array of hit counts
    """
    if seed >= 0:
        np.random.seed(seed)

    hits = np.zeros((height, width), dtype=np.int64)

    x = 0.0
    y = 0.0
    for _ in range(iterations):
        t = transforms[_pick_transform(thresholds)]
        x, y = t[0] * x + t[1] * y + t[4], t[2] * x + t[3] * y + t[5]

        px, py, inside = _to_pixel(x, y, bounds, width, height)
        if inside:
            hits[py, px] += 1

    return hits


@jit(nopython=True, cache=True)
def flame_variation(index, x, y):
    """Nonlinear warp applied after the affine map of flame function ``index``."""
    r = math.sqrt(x * x + y * y)
    if r < FLAME_EPSILON:
        r = FLAME_EPSILON
    theta = math.atan2(x, y)

    if index == 0:
        return (x - y) * (x + y) / r, 2.0 * x * y / r
    elif index == 1:
        return math.sin(x), y
    elif index == 2:
        return (math.cos(theta) + math.sin(r)) / r, (math.sin(theta) - math.cos(r)) / r
    elif index == 3:
        nx = x if x >= 0 else 2.0 * x
        ny = y if y >= 0 else y / 2.0
        return nx, ny
    return math.sin(theta) * math.cos(r), math.cos(theta) * math.sin(r)


@jit(nopython=True, cache=True)
def flame_chaos_game(transforms, thresholds, colors, bounds, width, height, iterations, skip, seed):
    """
    JIT-compiled fractal flame accumulation.

    The running color moves halfway toward the color of each chosen
    function. Hits and color sums are only recorded after ``skip``
    iterations so the point has settled on the attractor.

    Returns:
        Tuple of (hit counts (height, width), color sums (height, width, 3))
    """
    if seed >= 0:
        np.random.seed(seed)

    hits = np.zeros((height, width), dtype=np.int64)
    color_sums = np.zeros((height, width, 3), dtype=np.float64)

    x = 0.0
    y = 0.0
    red = 1.0
    green = 0.0
    blue = 0.0

    for i in range(iterations):
        k = _pick_transform(thresholds)
        t = transforms[k]
        x, y = flame_variation(k, t[0] * x + t[1] * y + t[4], t[2] * x + t[3] * y + t[5])

        if not (math.isfinite(x) and math.isfinite(y)):
            x = 2.0 * np.random.random() - 1.0
            y = 2.0 * np.random.random() - 1.0
            continue

        red = (red + colors[k, 0]) / 2.0
        green = (green + colors[k, 1]) / 2.0
        blue = (blue + colors[k, 2]) / 2.0

        if i < skip:
            continue

        px, py, inside = _to_pixel(x, y, bounds, width, height)
        if inside:
            hits[py, px] += 1
            color_sums[py, px, 0] += red
            color_sums[py, px, 1] += green
            color_sums[py, px, 2] += blue

    return hits, color_sums
