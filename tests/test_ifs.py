"""
Tests for the chaos-game renderers (fern, Sierpinski triangle and flame).
"""

import unittest
import os
import sys

import numpy as np

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from marzipan.acceleration.parallel import BandSpec
from marzipan.core.ifs import (
    FERN, SIERPINSKI, AffineSystem, FlameComputation, HitCountComputation,
    build_flame, build_hit_counts, create_ifs_computation,
)
from marzipan.core.params import ImageParams
from marzipan.exceptions import InvalidParametersError
from marzipan.rendering.coloring import ContinuousColoring


class TestAffineChaosGame(unittest.TestCase):
    def test_sierpinski_stays_in_lower_left_triangle(self):
        snapshot = build_hit_counts(SIERPINSKI, 64, 64, iterations=20000, seed=1)
        self.assertGreater(snapshot.total, 0)
        self.assertLessEqual(snapshot.total, 20000)

        rows, cols = np.nonzero(snapshot.hits)
        # x + y <= 1 on the attractor, with y growing upward
        self.assertTrue(np.all(cols <= rows + 1))

    def test_same_seed_is_reproducible(self):
        a = build_hit_counts(FERN, 40, 60, iterations=5000, seed=7)
        b = build_hit_counts(FERN, 40, 60, iterations=5000, seed=7)
        np.testing.assert_array_equal(a.hits, b.hits)

    def test_hits_are_read_only(self):
        snapshot = build_hit_counts(FERN, 20, 20, iterations=1000, seed=2)
        with self.assertRaises(ValueError):
            snapshot.hits[0, 0] = 1

    def test_zero_iterations_gives_empty_grid(self):
        snapshot = build_hit_counts(SIERPINSKI, 8, 8, iterations=0, seed=1)
        self.assertEqual(snapshot.total, 0)
        self.assertEqual(snapshot.max_count, 0)

    def test_invalid_runs(self):
        with self.assertRaises(InvalidParametersError):
            build_hit_counts(SIERPINSKI, 8, 8, iterations=-1)
        with self.assertRaises(InvalidParametersError):
            build_hit_counts(SIERPINSKI, 8, 8, iterations=10, seed=-5)

    def test_system_shape_is_validated(self):
        with self.assertRaises(InvalidParametersError):
            AffineSystem('bad', ((1, 0, 0, 1, 0, 0),), (0.5, 1.0), (0, 1, 1, 0), 10)
        with self.assertRaises(InvalidParametersError):
            AffineSystem('bad', ((1, 0, 0, 1),), (1.0,), (0, 1, 1, 0), 10)


class TestHitCountComputation(unittest.TestCase):
    def setUp(self):
        self.params = ImageParams(width=32, height=32, max_iter=10)
        self.snapshot = build_hit_counts(SIERPINSKI, 32, 32, iterations=10000, seed=4)
        self.values = HitCountComputation(self.params, self.snapshot)

    def test_values_follow_hit_counts(self):
        rows, cols = np.nonzero(self.snapshot.hits)
        y, x = int(rows[0]), int(cols[0])
        self.assertEqual(self.values.value(x, y), (float(self.snapshot.count(x, y)), True))

        empty_rows, empty_cols = np.nonzero(self.snapshot.hits == 0)
        y, x = int(empty_rows[0]), int(empty_cols[0])
        self.assertEqual(self.values.value(x, y), (0.0, False))

    def test_band_matches_pixels(self):
        band = BandSpec(0, 4, 20, 8, 30)
        values, converged = self.values.value_band(band)
        self.assertEqual(values.shape, (22, 16))
        for row, y in enumerate(range(8, 30)):
            for col, x in enumerate(range(4, 20)):
                value, ok = self.values.value(x, y)
                self.assertEqual(values[row, col], value)
                self.assertEqual(bool(converged[row, col]), ok)

    def test_colored_band(self):
        computation = create_ifs_computation(self.params, SIERPINSKI, ContinuousColoring(self.params.palette),
                                             iterations=10000, seed=4)
        pixels = computation.compute_band(BandSpec(0, 0, 32, 0, 32))
        self.assertEqual(pixels.shape, (32, 32, 4))
        self.assertEqual(pixels.dtype, np.uint16)
        np.testing.assert_allclose(pixels[5, 7].astype(int), computation.compute_pixel(7, 5), atol=1)


class TestFlame(unittest.TestCase):
    def setUp(self):
        self.snapshot = build_flame(32, 32, iterations=20000, seed=3)

    def test_alpha_is_normalized(self):
        alpha = self.snapshot.alpha
        self.assertTrue(np.all(alpha >= 0.0))
        self.assertTrue(np.all(alpha <= 1.0))
        self.assertTrue(np.all(alpha[self.snapshot.hits == 0] == 0.0))
        self.assertEqual(float(alpha.max()), 1.0)

    def test_colors_are_averaged(self):
        hit = self.snapshot.hits > 0
        self.assertTrue(hit.any())
        colors = self.snapshot.colors[hit]
        self.assertTrue(np.all(colors >= 0.0))
        self.assertTrue(np.all(colors <= 1.0))
        # Every flame color is fully red
        np.testing.assert_allclose(colors[:, 0], 1.0)

    def test_snapshot_is_read_only(self):
        with self.assertRaises(ValueError):
            self.snapshot.alpha[0, 0] = 0.5
        with self.assertRaises(ValueError):
            self.snapshot.colors[0, 0, 0] = 0.5

    def test_reproducible(self):
        again = build_flame(32, 32, iterations=20000, seed=3)
        np.testing.assert_array_equal(again.hits, self.snapshot.hits)

    def test_computation_paints_divergence_on_empty_pixels(self):
        params = ImageParams(width=32, height=32)
        computation = FlameComputation(params, self.snapshot)
        pixels = computation.compute_band(BandSpec(0, 0, 32, 0, 32))

        divergence = params.palette.divergence.to_rgba16()
        empty = self.snapshot.hits == 0
        self.assertTrue(np.all(pixels[empty] == divergence))

        rows, cols = np.nonzero(~empty)
        y, x = int(rows[0]), int(cols[0])
        self.assertEqual(tuple(int(c) for c in pixels[y, x]), computation.compute_pixel(x, y))
        self.assertEqual(pixels[y, x, 0], 0xFFFF)


if __name__ == '__main__':
    unittest.main()
