"""
Tests for the escape-time evaluators in native and arbitrary precision.
"""

import unittest
import os
import sys
import math
import pickle

import mpmath as mp
import numpy as np

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from marzipan.acceleration.numba_backend import (
    NOT_ESCAPED, julia_grid, julia_value, mandelbrot_grid, mandelbrot_value, multibrot_value,
)
from marzipan.core.precision import LargeComplex, julia_value_high, mandelbrot_value_high


class TestNativeEvaluators(unittest.TestCase):
    def test_origin_never_escapes(self):
        for max_iter in (1, 10, 100, 1000):
            value, escaped = mandelbrot_value(0j, max_iter)
            self.assertFalse(escaped)
            self.assertEqual(value, NOT_ESCAPED)

    def test_outside_point_escapes(self):
        value, escaped = mandelbrot_value(complex(-2.0, 1.0), 100)
        self.assertTrue(escaped)
        self.assertTrue(math.isfinite(value))

    def test_slow_escape_has_larger_value(self):
        slow, slow_escaped = mandelbrot_value(complex(0.3, 0.0), 1000)
        fast, fast_escaped = mandelbrot_value(complex(2.0, 0.0), 1000)
        self.assertTrue(slow_escaped and fast_escaped)
        self.assertGreater(slow, fast)

    def test_julia_seed_outside_escapes(self):
        value, escaped = julia_value(complex(1.5, 1.5), complex(-0.4, 0.6), 100)
        self.assertTrue(escaped)
        self.assertTrue(math.isfinite(value))

    def test_julia_fixed_point_never_escapes(self):
        # z = 0 is a fixed point of z^2 + 0
        value, escaped = julia_value(0j, 0j, 200)
        self.assertFalse(escaped)
        self.assertEqual(value, NOT_ESCAPED)

    def test_multibrot(self):
        value, escaped = multibrot_value(0j, 100, 3.0)
        self.assertFalse(escaped)
        self.assertEqual(value, NOT_ESCAPED)

        value, escaped = multibrot_value(complex(2.0, 0.0), 100, 3.0)
        self.assertTrue(escaped)
        self.assertTrue(math.isfinite(value))

    def test_multibrot_smoothing(self):
        # Orbit of c = 2 under z^3 + c is 2, 10, 1002, escaping on the third step
        value, escaped = multibrot_value(complex(2.0, 0.0), 100, 3.0)
        log_bailout = math.log(2.0) / 2.0
        expected = 3 - math.log(math.log(1002.0) / log_bailout) / math.log2(3.0)
        self.assertTrue(escaped)
        self.assertAlmostEqual(value, expected, delta=1e-9)

    def test_grid_matches_scalar(self):
        re = np.linspace(-2.0, 1.0, 7)
        im = np.linspace(1.0, -1.0, 5)
        points = re[np.newaxis, :] + 1j * im[:, np.newaxis]

        values, escaped = mandelbrot_grid(points, 60)
        self.assertEqual(values.shape, (5, 7))
        for row in range(5):
            for col in range(7):
                value, ok = mandelbrot_value(points[row, col], 60)
                self.assertEqual(values[row, col], value)
                self.assertEqual(bool(escaped[row, col]), ok)

        c = complex(-0.8, 0.156)
        values, escaped = julia_grid(points, c, 60)
        value, ok = julia_value(points[2, 3], c, 60)
        self.assertEqual(values[2, 3], value)
        self.assertEqual(bool(escaped[2, 3]), ok)


class TestLargeComplex(unittest.TestCase):
    def test_arithmetic(self):
        z = LargeComplex(1, 2)
        self.assertEqual(z.square(), LargeComplex(-3, 4))
        self.assertEqual(z + LargeComplex(0.5, -1), LargeComplex(1.5, 1))
        self.assertAlmostEqual(LargeComplex(3, 4).abs64(), 5.0)
        self.assertEqual(LargeComplex(0.25, -0.5).to_complex(), complex(0.25, -0.5))

    def test_immutable(self):
        z = LargeComplex(1, 1)
        with self.assertRaises(AttributeError):
            z.real = 2

    def test_pickle_round_trip(self):
        with mp.workdps(40):
            z = LargeComplex(mp.mpf(1) / 3, mp.mpf(-2) / 7)
            restored = pickle.loads(pickle.dumps(z))
            self.assertEqual(restored, z)

    def test_keeps_precision_beyond_double(self):
        with mp.workdps(40):
            tiny = mp.mpf('1e-30')
            z = LargeComplex(1, 0) + LargeComplex(tiny, 0)
            self.assertNotEqual(z.real, mp.mpf(1))
            self.assertEqual(z.to_complex(), complex(1.0, 0.0))


class TestHighPrecisionEvaluators(unittest.TestCase):
    def test_mandelbrot_agrees_with_native(self):
        native_value, native_escaped = mandelbrot_value(complex(0.5, 0.5), 100)
        with mp.workdps(30):
            high_value, high_escaped = mandelbrot_value_high(LargeComplex(0.5, 0.5), 100)

        self.assertEqual(high_escaped, native_escaped)
        self.assertAlmostEqual(high_value, native_value, delta=1e-6)

    def test_mandelbrot_origin_in_set(self):
        with mp.workdps(30):
            value, escaped = mandelbrot_value_high(LargeComplex(0, 0), 50)
        self.assertFalse(escaped)
        self.assertEqual(value, NOT_ESCAPED)

    def test_julia_agrees_with_native(self):
        c = complex(-0.4, 0.6)
        native_value, native_escaped = julia_value(complex(1.0, 1.0), c, 100)
        with mp.workdps(30):
            high_value, high_escaped = julia_value_high(LargeComplex(1, 1), LargeComplex(c.real, c.imag), 100)

        self.assertTrue(native_escaped)
        self.assertEqual(high_escaped, native_escaped)
        self.assertAlmostEqual(high_value, native_value, delta=1e-6)


if __name__ == '__main__':
    unittest.main()
