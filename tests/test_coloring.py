"""
Tests for palettes and the palette mapper.
"""

import unittest
import os
import sys
import math

import numpy as np

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from marzipan.rendering.coloring import (
    BUILTIN_PALETTES, CHANNEL_MAX, NAMED_COLORS, ColorRGB, ContinuousColoring, Palette, PaletteError,
    color_from_palette, colors_from_palette, ease, get_palette, named_color,
)

RED = (CHANNEL_MAX, 0, 0, CHANNEL_MAX)
BLACK = (0, 0, 0, CHANNEL_MAX)


class TestColorRGB(unittest.TestCase):
    def test_channel_range(self):
        with self.assertRaises(PaletteError):
            ColorRGB(1.5, 0, 0)
        with self.assertRaises(PaletteError):
            ColorRGB(0, -0.1, 0)

    def test_to_rgba16(self):
        self.assertEqual(NAMED_COLORS['white'].to_rgba16(), (CHANNEL_MAX,) * 4)
        self.assertEqual(NAMED_COLORS['red'].to_rgba16(), RED)

    def test_named_color_lookup(self):
        self.assertIs(named_color(' Red '), NAMED_COLORS['red'])
        with self.assertRaises(PaletteError):
            named_color('nosuchcolor')


class TestPalette(unittest.TestCase):
    def test_requires_a_color(self):
        with self.assertRaises(PaletteError):
            Palette(NAMED_COLORS['black'], ())

    def test_requires_positive_period(self):
        for bad in (0, -10, math.nan):
            with self.assertRaises(PaletteError):
                Palette(NAMED_COLORS['black'], (NAMED_COLORS['red'],), bad)

    def test_builtin_palettes(self):
        self.assertIn('default', BUILTIN_PALETTES)
        self.assertIs(get_palette('hot'), BUILTIN_PALETTES['hot'])
        with self.assertRaises(PaletteError):
            get_palette('nope')


class TestColorFromPalette(unittest.TestCase):
    def setUp(self):
        self.palette = Palette.from_names('black', ['red', 'blue'], max_value=1)

    def test_period_boundaries_map_to_first_color(self):
        for raw in (0.0, 1.0, 3.0):
            self.assertEqual(color_from_palette(raw, True, self.palette), RED)

    def test_midpoint_blends(self):
        r, g, b, a = color_from_palette(0.5, True, self.palette)
        self.assertAlmostEqual(r, CHANNEL_MAX / 2, delta=1)
        self.assertEqual(g, 0)
        self.assertAlmostEqual(b, CHANNEL_MAX / 2, delta=1)
        self.assertEqual(a, CHANNEL_MAX)

    def test_not_converged_uses_divergence(self):
        self.assertEqual(color_from_palette(0.3, False, self.palette), BLACK)
        self.assertEqual(color_from_palette(math.nan, True, self.palette), BLACK)
        self.assertEqual(color_from_palette(math.inf, True, self.palette), BLACK)

    def test_single_color_palette(self):
        palette = Palette.from_names('black', ['green'], max_value=10)
        for raw in (0.0, 2.5, 123.0):
            self.assertEqual(color_from_palette(raw, True, palette), NAMED_COLORS['green'].to_rgba16())

    def test_negative_values_wrap(self):
        color = color_from_palette(-0.25, True, self.palette)
        self.assertEqual(color, color_from_palette(0.75, True, self.palette))

    def test_tiny_negative_value_wraps_to_first_color(self):
        palette = Palette.from_names('black', ['red', 'green', 'blue'], max_value=100)
        self.assertEqual(color_from_palette(-1e-15, True, palette), RED)

        rgba = colors_from_palette(np.array([-1e-15, 0.0]), np.array([True, True]), palette)
        self.assertEqual(tuple(int(c) for c in rgba[0]), RED)
        self.assertEqual(tuple(int(c) for c in rgba[1]), RED)

    def test_ease_endpoints(self):
        self.assertEqual(ease(0.0), 0.0)
        self.assertEqual(ease(0.5), 0.5)
        self.assertEqual(ease(1.0), 1.0)

    def test_vectorized_matches_scalar(self):
        palette = BUILTIN_PALETTES['rainbow']
        values = np.array([[0.0, 3.7, 12.5, 49.9], [50.0, 99.99, 250.3, -7.0]])
        converged = np.array([[True, True, False, True], [True, True, True, True]])

        rgba = colors_from_palette(values, converged, palette)
        self.assertEqual(rgba.shape, (2, 4, 4))
        self.assertEqual(rgba.dtype, np.uint16)

        for index in np.ndindex(values.shape):
            expected = color_from_palette(float(values[index]), bool(converged[index]), palette)
            np.testing.assert_allclose(rgba[index].astype(int), expected, atol=1)

    def test_vectorized_divergence(self):
        values = np.array([np.nan, np.inf, 0.2])
        converged = np.array([True, True, False])
        rgba = colors_from_palette(values, converged, self.palette)
        self.assertTrue(np.all(rgba == BLACK))

    def test_coloring_object(self):
        coloring = ContinuousColoring(self.palette)
        self.assertEqual(coloring(0.0, True), RED)
        block = coloring.colorize(np.zeros((2, 3)), np.ones((2, 3), dtype=bool))
        self.assertTrue(np.all(block == RED))


if __name__ == '__main__':
    unittest.main()
