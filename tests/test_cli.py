"""
Tests for the high-level renderer and the command-line interface.
"""

import unittest
import os
import sys
import tempfile
from pathlib import Path

import numpy as np
from click.testing import CliRunner

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from marzipan.api import FractalRenderer, RenderConfig
from marzipan.cli.main import main
from marzipan.core.orbits import PointOrbit
from marzipan.core.params import ImageParams
from marzipan.exceptions import InvalidParametersError
from marzipan.rendering.image_output import ImageExporter


class TestFractalRenderer(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.output = Path(self.tmpdir.name)
        self.params = ImageParams(width=12, height=8, max_iter=30)

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_invalid_config(self):
        for config in (RenderConfig(fractal_type='newton'), RenderConfig(executor='gpu'),
                       RenderConfig(processes=0), RenderConfig(jpeg_quality=0)):
            with self.assertRaises(InvalidParametersError):
                FractalRenderer(config)

    def test_compute(self):
        renderer = FractalRenderer(RenderConfig(executor='thread', processes=2))
        image = renderer.compute(self.params)
        self.assertEqual(image.shape, (8, 12, 4))
        self.assertEqual(image.dtype, np.uint16)

    def test_render_writes_metadata(self):
        renderer = FractalRenderer(RenderConfig(fractal_type='julia', executor='thread', processes=2))
        renderer.render(self.params, self.output / 'julia.png', [PointOrbit(0, 0, 50)])

        metadata = ImageExporter().extract_metadata_from_image(self.output / 'julia.png')
        self.assertEqual(metadata.fractal_type, 'julia')
        self.assertEqual(metadata.resolution, (12, 8))
        self.assertEqual(metadata.precision, 'native')
        self.assertEqual(len(metadata.orbits), 1)

    def test_render_zoom(self):
        renderer = FractalRenderer(RenderConfig(executor='thread', processes=2))
        paths = renderer.render_zoom(self.params, self.output / 'zoom', frames=3)
        self.assertEqual([p.name for p in paths], ['frame_000000.png', 'frame_000001.png', 'frame_000002.png'])
        self.assertTrue(all(p.exists() for p in paths))

        first = ImageExporter().extract_metadata_from_image(paths[0])
        last = ImageExporter().extract_metadata_from_image(paths[-1])
        self.assertEqual(first.bounds, self.params.bounds)
        self.assertLess(last.bounds[1] - last.bounds[0], first.bounds[1] - first.bounds[0])

    def test_render_zoom_without_metadata(self):
        renderer = FractalRenderer(RenderConfig(executor='thread', processes=2, save_metadata=False))
        paths = renderer.render_zoom(self.params, self.output / 'plain', frames=2)
        self.assertEqual(len(paths), 2)
        self.assertIsNone(ImageExporter().extract_metadata_from_image(paths[0]))


class TestCommandLine(unittest.TestCase):
    def setUp(self):
        self.runner = CliRunner()
        self.tmpdir = tempfile.TemporaryDirectory()
        self.output = Path(self.tmpdir.name)

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_palettes(self):
        result = self.runner.invoke(main, ['palettes'])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn('champagne', result.output)
        self.assertIn('rabbit', result.output)

    def test_fractals(self):
        result = self.runner.invoke(main, ['fractals'])
        self.assertEqual(result.exit_code, 0, result.output)
        for name in ('mandelbrot', 'julia', 'fern', 'sierp', 'flame'):
            self.assertIn(name, result.output)

    def test_render_mandelbrot(self):
        path = self.output / 'mandel.png'
        result = self.runner.invoke(main, [
            'render', str(path), '--size', '16', '--max-iter', '20',
            '--palette', 'black,white,blue', '--executor', 'thread', '--processes', '2',
        ])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertTrue(path.exists())

        metadata = ImageExporter().extract_metadata_from_image(path)
        self.assertEqual(metadata.fractal_type, 'mandelbrot')
        self.assertEqual(metadata.palette, 'black,white,blue')

    def test_render_fern(self):
        path = self.output / 'fern.png'
        result = self.runner.invoke(main, [
            'render', str(path), '--type', 'fern', '--width', '20', '--height', '30',
            '--iterations', '2000', '--seed', '1', '--executor', 'thread', '--processes', '2',
        ])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertTrue(path.exists())

    def test_render_with_orbit(self):
        path = self.output / 'trap.png'
        result = self.runner.invoke(main, [
            'render', str(path), '--size', '12', '--max-iter', '20', '--orbit', 'point(0,0,100)',
            '--orbit', 'line(1,0,0,100)', '--executor', 'thread', '--processes', '2',
        ])
        self.assertEqual(result.exit_code, 0, result.output)

        metadata = ImageExporter().extract_metadata_from_image(path)
        self.assertEqual(len(metadata.orbits), 2)

    def test_zoom(self):
        frames_dir = self.output / 'frames'
        result = self.runner.invoke(main, [
            'zoom', str(frames_dir), '--size', '8', '--max-iter', '10', '--frames', '3',
            '--x', '-0.5', '--y', '0', '--window', '1', '--executor', 'thread', '--processes', '2',
        ])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(len(list(frames_dir.glob('frame_*.png'))), 3)

    def test_invalid_parameters_exit_with_error(self):
        result = self.runner.invoke(main, ['render', str(self.output / 'bad.png'), '--width', '0'])
        self.assertEqual(result.exit_code, 1)
        self.assertIn('Error', result.output)


if __name__ == '__main__':
    unittest.main()
