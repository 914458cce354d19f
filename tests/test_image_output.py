"""
Tests for image export, metadata embedding and mask loading.
"""

import unittest
import os
import sys
import tempfile
from pathlib import Path

import numpy as np
from PIL import Image

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from marzipan.exceptions import MaskLoadError
from marzipan.rendering.image_output import ImageExporter, RenderMetadata, load_mask, to_8bit


def sample_metadata():
    return RenderMetadata(
        fractal_type='julia',
        bounds=(-1.5, 1.5, 1.0, -1.0),
        resolution=(8, 6),
        max_iterations=64,
        julia_c='(-0.4+0.6j)',
        palette='black,white,red',
        orbits=['PointOrbit(0.0, 0.0, max_value=100.0)'],
    )


class TestRenderMetadata(unittest.TestCase):
    def test_json_round_trip(self):
        metadata = sample_metadata()
        restored = RenderMetadata.from_json(metadata.to_json())
        self.assertEqual(restored, metadata)
        self.assertIsInstance(restored.bounds, tuple)

    def test_timestamp_is_filled_in(self):
        self.assertTrue(sample_metadata().timestamp)


class TestImageExporter(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.output = Path(self.tmpdir.name)
        self.exporter = ImageExporter()

        self.image = np.zeros((6, 8, 4), dtype=np.uint16)
        self.image[..., 0] = 0xFFFF
        self.image[..., 3] = 0xFFFF

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_to_8bit(self):
        converted = to_8bit(self.image)
        self.assertEqual(converted.dtype, np.uint8)
        self.assertTrue(np.all(converted[..., 0] == 255))
        self.assertTrue(np.all(converted[..., 1] == 0))
        with self.assertRaises(ValueError):
            to_8bit(np.zeros((4, 4), dtype=np.uint16))

    def test_png_with_metadata(self):
        path = self.exporter.save_image(self.image, self.output / 'out.png', sample_metadata())
        with Image.open(path) as img:
            self.assertEqual(img.size, (8, 6))
            self.assertEqual(img.mode, 'RGBA')
            self.assertEqual(img.getpixel((0, 0)), (255, 0, 0, 255))

        metadata = self.exporter.extract_metadata_from_image(path)
        self.assertEqual(metadata.fractal_type, 'julia')
        self.assertEqual(metadata.resolution, (8, 6))

    def test_tiff_with_metadata(self):
        path = self.exporter.save_image(self.image, self.output / 'out.tiff', sample_metadata())
        metadata = self.exporter.extract_metadata_from_image(path)
        self.assertEqual(metadata.max_iterations, 64)

    def test_jpeg_writes_companion_json(self):
        path = self.exporter.save_image(self.image, self.output / 'out.jpg', sample_metadata())
        self.assertTrue(path.with_suffix('.json').exists())
        self.assertEqual(self.exporter.extract_metadata_from_image(path).palette, 'black,white,red')

    def test_png_without_metadata(self):
        path = self.exporter.save_image(self.image, self.output / 'plain.png')
        self.assertIsNone(self.exporter.extract_metadata_from_image(path))

    def test_unsupported_format(self):
        with self.assertRaises(ValueError):
            self.exporter.save_image(self.image, self.output / 'out.bmp')

    def test_image_sequence(self):
        frames = ((self.image, sample_metadata() if i == 0 else None) for i in range(2))
        paths = self.exporter.create_image_sequence(frames, self.output / 'seq')
        self.assertEqual([p.name for p in paths], ['frame_000000.png', 'frame_000001.png'])
        self.assertEqual(self.exporter.extract_metadata_from_image(paths[0]).fractal_type, 'julia')
        self.assertIsNone(self.exporter.extract_metadata_from_image(paths[1]))


class TestLoadMask(unittest.TestCase):
    def test_marks_black_pixels_only(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            pixels = np.full((4, 5, 3), 255, dtype=np.uint8)
            pixels[1, 2] = (0, 0, 0)
            pixels[3, 4] = (1, 0, 0)
            path = os.path.join(tmpdir, 'mask.png')
            Image.fromarray(pixels).save(path)

            mask = load_mask(path)
            self.assertEqual(mask.shape, (4, 5))
            self.assertEqual(int(mask.sum()), 1)
            self.assertTrue(mask[1, 2])

    def test_missing_file(self):
        with self.assertRaises(MaskLoadError):
            load_mask('/nonexistent/mask.png')

    def test_undecodable_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, 'broken.png')
            with open(path, 'w') as f:
                f.write('not an image')
            with self.assertRaises(MaskLoadError):
                load_mask(path)


if __name__ == '__main__':
    unittest.main()
