"""Median — per-channel rank smoothing of the dithered image."""

import cv2
import numpy as np

EFFECT_ID = "fx.median"
EFFECT_NAME = "Median"
EFFECT_CATEGORY = "enhance"

PARAMS: dict = {
    "radius": {
        "type": "int",
        "min": 0,
        "max": 15,
        "default": 1,
        "label": "Radius",
        "curve": "linear",
        "unit": "px",
        "description": "Neighbourhood radius (kernel side = 2 * radius + 1)",
    },
}


def median_filter(frame: np.ndarray, radius: int) -> np.ndarray:
    """Return a new frame with each RGB channel replaced by its neighbourhood median.

    Samples outside the frame replicate the nearest edge pixel. Alpha is
    copied from the center pixel.

    Raises:
        ValueError: If ``radius`` is negative.
    """
    if radius < 0:
        raise ValueError(f"Median radius must be >= 0, got {radius}")
    if radius == 0:
        return frame.copy()

    ksize = 2 * radius + 1
    rgb = np.ascontiguousarray(frame[:, :, :3])
    # cv2.medianBlur replicates borders and is exact for uint8 at any odd size
    result_rgb = cv2.medianBlur(rgb, ksize)

    output = np.empty_like(frame)
    output[:, :, :3] = result_rgb
    output[:, :, 3] = frame[:, :, 3]
    return output


def apply(frame: np.ndarray, params: dict, *, pattern=None) -> np.ndarray:
    """Median smoothing. Allocates a new frame."""
    return median_filter(frame, int(params.get("radius", 1)))
