"""
Image export and mask loading for fractal rendering.

This module saves rasterized 16-bit RGBA buffers as PNG, TIFF or JPEG
files with the render metadata embedded, writes frame sequences for zoom
animations, and decodes the mask images used by raster orbit traps.
"""

import numpy as np
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union
from pathlib import Path
from dataclasses import dataclass, asdict, field
import json
import logging
from datetime import datetime

from PIL import Image, PngImagePlugin

from ..exceptions import MaskLoadError

logger = logging.getLogger(__name__)

SOFTWARE_VERSION = "1.0.0"

METADATA_KEY = "FractalMetadata"


@dataclass
class RenderMetadata:
    """Metadata for fractal renders."""

    # Fractal parameters
    fractal_type: str
    bounds: Tuple[float, float, float, float]  # left, right, top, bottom
    resolution: Tuple[int, int]  # width, height
    max_iterations: int
    power: float = 2.0
    julia_c: str = ""

    # Rendering parameters
    palette: str = ""
    orbits: List[str] = field(default_factory=list)
    precision: str = "native"

    # Timing
    render_time_seconds: float = 0.0

    # Generation info
    timestamp: str = ""
    software_version: str = SOFTWARE_VERSION

    def __post_init__(self):
        """Set default timestamp if not provided."""
        if not self.timestamp:
            self.timestamp = datetime.now().isoformat()
        self.bounds = tuple(self.bounds)
        self.resolution = tuple(self.resolution)

    def to_dict(self) -> Dict[str, Any]:
        """Convert metadata to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RenderMetadata':
        """Create metadata from dictionary."""
        return cls(**data)

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, json_str: str) -> 'RenderMetadata':
        """Create metadata from JSON string."""
        return cls.from_dict(json.loads(json_str))


def to_8bit(image_array: np.ndarray) -> np.ndarray:
    """Convert a 16-bit RGBA buffer to 8 bits per channel."""
    if image_array.ndim != 3 or image_array.shape[2] != 4:
        raise ValueError(f"Expected RGBA image array (H, W, 4), got {image_array.shape}")
    if image_array.dtype == np.uint8:
        return image_array
    return np.rint(image_array.astype(np.float64) / 257.0).astype(np.uint8)


class ImageExporter:
    """Image export with metadata support."""

    def __init__(self):
        """Initialize image exporter."""
        self.supported_formats = {
            '.png': self._save_png,
            '.tiff': self._save_tiff,
            '.tif': self._save_tiff,
            '.jpg': self._save_jpeg,
            '.jpeg': self._save_jpeg,
        }

    def save_image(self, image_array: np.ndarray, filepath: Union[str, Path],
                   metadata: Optional[RenderMetadata] = None, quality: int = 95) -> Path:
        """
        Save an RGBA image buffer to file with metadata.

        Args:
            image_array: RGBA array (height, width, 4), uint16 or uint8
            filepath: Output file path
            metadata: Render metadata to embed
            quality: JPEG quality (1-100)

        Returns:
            Path of the written file
        """
        filepath = Path(filepath)
        suffix = filepath.suffix.lower()

        if suffix not in self.supported_formats:
            supported = ', '.join(self.supported_formats.keys())
            raise ValueError(f"Unsupported format '{suffix}'. Supported: {supported}")

        pil_image = Image.fromarray(to_8bit(image_array))

        save_method = self.supported_formats[suffix]
        save_method(pil_image, filepath, metadata, quality)

        logger.info(f"Saved image: {filepath} ({pil_image.size[0]}x{pil_image.size[1]})")
        return filepath

    def _save_png(self, pil_image: Image.Image, filepath: Path,
                  metadata: Optional[RenderMetadata], quality: int) -> None:
        """Save as PNG with metadata."""
        pnginfo = PngImagePlugin.PngInfo()

        if metadata:
            pnginfo.add_text("Title", f"Fractal: {metadata.fractal_type}")
            pnginfo.add_text("Software", f"marzipan v{metadata.software_version}")
            pnginfo.add_text("Creation Time", metadata.timestamp)
            pnginfo.add_text(METADATA_KEY, metadata.to_json())

        pil_image.save(filepath, "PNG", pnginfo=pnginfo)

    def _save_tiff(self, pil_image: Image.Image, filepath: Path,
                   metadata: Optional[RenderMetadata], quality: int) -> None:
        """Save as TIFF with the metadata in the image description."""
        save_kwargs = {'format': 'TIFF', 'compression': 'tiff_lzw'}
        if metadata:
            save_kwargs['description'] = metadata.to_json()
        pil_image.save(filepath, **save_kwargs)

    def _save_jpeg(self, pil_image: Image.Image, filepath: Path,
                   metadata: Optional[RenderMetadata], quality: int) -> None:
        """Save as JPEG with a companion JSON metadata file."""
        pil_image.convert('RGB').save(filepath, "JPEG", quality=quality, optimize=True)

        if metadata:
            json_path = filepath.with_suffix('.json')
            with open(json_path, 'w') as f:
                f.write(metadata.to_json())
            logger.info(f"Saved metadata: {json_path}")

    def create_image_sequence(self, frames: Iterable[Tuple[np.ndarray, Optional[RenderMetadata]]],
                              output_dir: Union[str, Path], base_name: str = "frame",
                              format: str = "png", quality: int = 95, padding: int = 6) -> List[Path]:
        """
        Save a sequence of images with sequential numbering.

        Frames are written as they are produced, so ``frames`` may be a
        generator computing each image on demand.

        Args:
            frames: Iterable of (image array, metadata or None) pairs
            output_dir: Output directory
            base_name: Base filename
            format: Image format
            quality: JPEG quality
            padding: Number of digits for frame numbering

        Returns:
            List of saved file paths
        """
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        saved_paths = []
        for i, (image_array, metadata) in enumerate(frames):
            filepath = output_dir / f"{base_name}_{str(i).zfill(padding)}.{format}"
            saved_paths.append(self.save_image(image_array, filepath, metadata, quality=quality))

        logger.info(f"Saved {len(saved_paths)} images to {output_dir}")
        return saved_paths

    def extract_metadata_from_image(self, filepath: Union[str, Path]) -> Optional[RenderMetadata]:
        """
        Extract fractal metadata from a saved image.

        Returns:
            Extracted metadata or None
        """
        filepath = Path(filepath)

        if filepath.suffix.lower() in ['.jpg', '.jpeg']:
            json_path = filepath.with_suffix('.json')
            if json_path.exists():
                return RenderMetadata.from_json(json_path.read_text())
            return None

        with Image.open(filepath) as img:
            if hasattr(img, 'text') and METADATA_KEY in img.text:
                return RenderMetadata.from_json(img.text[METADATA_KEY])

            description = getattr(img, 'tag_v2', {}).get(270)
            if description:
                try:
                    return RenderMetadata.from_json(description)
                except (ValueError, TypeError) as e:
                    logger.warning(f"Could not parse metadata from {filepath}: {e}")

        return None


def load_mask(filepath: Union[str, Path]) -> np.ndarray:
    """
    Decode a mask image for a raster orbit trap.

    Args:
        filepath: Path of the mask image

    Returns:
        Boolean array indexed [row, column], True on pure black pixels

    Raises:
        MaskLoadError: If the file is missing or cannot be decoded
    """
    filepath = Path(filepath)
    try:
        with Image.open(filepath) as img:
            rgb = np.asarray(img.convert('RGB'))
    except (OSError, ValueError) as e:
        raise MaskLoadError(f"Could not load mask image {filepath}: {e}") from e

    mask = np.all(rgb == 0, axis=2)
    logger.info(f"Loaded mask {filepath}: {mask.shape[1]}x{mask.shape[0]}, {int(mask.sum())} marked pixels")
    return mask
