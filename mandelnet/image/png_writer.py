from __future__ import annotations

import os

import numpy as np
from PIL import Image

from mandelnet.errors import EncodingError
from mandelnet.util.logging_setup import get_logger

def encode_png(raster: np.ndarray, output_file: str, *, downsample: int = 1) -> str:
    """Write an (H, W, 4) uint8 raster as PNG, optionally shrunk by `downsample`."""
    logger = get_logger("image")
    if raster.ndim != 3 or raster.shape[2] != 4 or raster.dtype != np.uint8:
        raise EncodingError(f"Expected an (H, W, 4) uint8 raster, got {raster.shape} {raster.dtype}")
    if downsample < 1:
        raise EncodingError("downsample must be >= 1")

    try:
        img = Image.fromarray(raster)
        if downsample > 1:
            h, w = raster.shape[:2]
            img = img.resize((max(1, w // downsample), max(1, h // downsample)), Image.LANCZOS)
        parent = os.path.dirname(output_file)
        if parent:
            os.makedirs(parent, exist_ok=True)
        img.save(output_file, format="PNG", optimize=True)
    except (OSError, ValueError) as e:
        raise EncodingError(f"Failed to write {output_file}: {e}") from e

    logger.info("Image written: %s (%sx%s)", output_file, img.size[0], img.size[1])
    return output_file
