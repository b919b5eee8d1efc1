"""Raster image input: RGBA pixel buffers and Pillow-backed loading."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import numpy as np
from PIL import Image

from ..errors import InvalidInput

# Rec. 601 luma weights
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114])


@dataclass(frozen=True)
class RasterImage:
    """An immutable RGBA image.

    ``pixels`` has shape ``(height, width, 4)`` and dtype ``uint8``; row 0 is
    the top of the image.
    """

    width: int
    height: int
    pixels: np.ndarray

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise InvalidInput(
                f"image must have positive dimensions, got "
                f"{self.width}x{self.height}"
            )
        if self.pixels.shape != (self.height, self.width, 4):
            raise InvalidInput(
                f"pixel buffer shape {self.pixels.shape} does not match "
                f"{self.width}x{self.height} RGBA"
            )
        pixels = np.array(self.pixels, dtype=np.uint8)
        pixels.setflags(write=False)
        object.__setattr__(self, "pixels", pixels)

    @classmethod
    def from_bytes(cls, width: int, height: int, data: bytes) -> "RasterImage":
        """Build an image from a flat RGBA byte buffer (canvas ImageData order)."""
        if width <= 0 or height <= 0:
            raise InvalidInput(
                f"image must have positive dimensions, got {width}x{height}"
            )
        expected = width * height * 4
        if len(data) != expected:
            raise InvalidInput(
                f"expected {expected} RGBA bytes for {width}x{height}, "
                f"got {len(data)}"
            )
        arr = np.frombuffer(bytes(data), dtype=np.uint8).reshape(height, width, 4)
        return cls(width=width, height=height, pixels=arr)

    @classmethod
    def from_array(cls, arr: np.ndarray) -> "RasterImage":
        """Build an image from an (h, w), (h, w, 3) or (h, w, 4) uint8 array."""
        arr = np.asarray(arr)
        if arr.ndim == 2:
            arr = np.stack([arr, arr, arr, np.full_like(arr, 255)], axis=-1)
        elif arr.ndim == 3 and arr.shape[2] == 3:
            alpha = np.full(arr.shape[:2] + (1,), 255, dtype=arr.dtype)
            arr = np.concatenate([arr, alpha], axis=-1)
        if arr.ndim != 3 or arr.shape[2] != 4:
            raise InvalidInput(f"unsupported pixel array shape {arr.shape}")
        return cls(width=arr.shape[1], height=arr.shape[0],
                   pixels=arr.astype(np.uint8))

    def luminance(self) -> np.ndarray:
        """Weighted-sum luminance on [0, 1] channels, shape (h, w)."""
        rgb = self.pixels[..., :3].astype(np.float64) / 255.0
        return rgb @ LUMA_WEIGHTS


def load_image(path: Path) -> RasterImage:
    """Decode an image file into an owned RGBA buffer.

    Raises FileNotFoundError or InvalidInput on failure.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Image file not found: {path}")
    try:
        with Image.open(path) as img:
            rgba = img.convert("RGBA")
            arr = np.asarray(rgba, dtype=np.uint8)
    except OSError as exc:
        raise InvalidInput(f"could not decode image {path.name}: {exc}") from exc
    return RasterImage.from_array(arr)
