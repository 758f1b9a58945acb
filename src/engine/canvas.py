"""Bitmap intake and fit-and-crop drawing into a working buffer."""

import logging

import cv2
import numpy as np
from PIL import Image

from engine.geometry import fit_cover

logger = logging.getLogger(__name__)


def to_rgba(image) -> np.ndarray:
    """Convert a decoded bitmap into an RGBA uint8 array (H, W, 4).

    Accepts a Pillow image or an (H, W), (H, W, 3) or (H, W, 4) uint8 array.
    Arrays that are already RGBA are returned as-is (no copy).
    """
    if isinstance(image, Image.Image):
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        return np.array(image, dtype=np.uint8)

    if not isinstance(image, np.ndarray):
        raise TypeError(f"Unsupported bitmap type: {type(image).__name__}")
    if image.dtype != np.uint8:
        raise TypeError(f"Bitmap must be uint8, got {image.dtype}")

    if image.ndim == 2:
        rgb = np.repeat(image[:, :, np.newaxis], 3, axis=2)
    elif image.ndim == 3 and image.shape[2] == 3:
        rgb = image
    elif image.ndim == 3 and image.shape[2] == 4:
        return image
    else:
        raise ValueError(f"Bitmap must have shape (H, W[, 3|4]), got {image.shape}")

    alpha = np.full(rgb.shape[:2] + (1,), 255, dtype=np.uint8)
    return np.concatenate([rgb, alpha], axis=2)


def draw_fitted(
    image,
    dest_width: int,
    dest_height: int,
    *,
    smoothing: bool = True,
) -> np.ndarray:
    """Draw ``image`` cover-fitted into a new ``dest_width x dest_height`` buffer.

    Pixel centers are mapped like a 2D canvas ``drawImage`` call: destination
    pixel ``i`` samples the source at ``(i + 0.5 - x) / scale - 0.5``.
    Overflow outside the destination is cropped.
    """
    src = to_rgba(image)
    src_h, src_w = src.shape[:2]
    rect = fit_cover(src_w, src_h, dest_width, dest_height)

    sx = rect.width / src_w
    sy = rect.height / src_h
    matrix = np.array(
        [
            [sx, 0.0, rect.x + 0.5 * sx - 0.5],
            [0.0, sy, rect.y + 0.5 * sy - 0.5],
        ],
        dtype=np.float64,
    )

    interpolation = cv2.INTER_LINEAR if smoothing else cv2.INTER_NEAREST
    output = cv2.warpAffine(
        np.ascontiguousarray(src),
        matrix,
        (int(dest_width), int(dest_height)),
        flags=interpolation,
        borderMode=cv2.BORDER_REPLICATE,
    )
    logger.debug(
        "Drew %dx%d source at %s into %dx%d (smoothing=%s)",
        src_w,
        src_h,
        rect,
        dest_width,
        dest_height,
        smoothing,
    )
    return output
