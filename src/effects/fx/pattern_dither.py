"""Pattern Dither — threshold luminance against a tiled pattern, black or white."""

import numpy as np

EFFECT_ID = "fx.pattern_dither"
EFFECT_NAME = "Pattern Dither"
EFFECT_CATEGORY = "dither"

PARAMS: dict = {}  # Threshold map comes from the pattern source

LUMA_WEIGHTS = (0.299, 0.587, 0.114)


def luminance(frame: np.ndarray) -> np.ndarray:
    """Per-pixel luminance in [0, 1]."""
    rgb = frame[:, :, :3].astype(np.float64)
    wr, wg, wb = LUMA_WEIGHTS
    return (wr * rgb[:, :, 0] + wg * rgb[:, :, 1] + wb * rgb[:, :, 2]) / 255.0


def sample_thresholds(pattern, width: int, height: int) -> np.ndarray:
    """Tile the pattern over a width x height grid, anchored top-left."""
    rows = np.arange(height) % pattern.height
    cols = np.arange(width) % pattern.width
    return pattern.thresholds[rows[:, np.newaxis], cols[np.newaxis, :]]


def dither(frame: np.ndarray, pattern) -> np.ndarray:
    """Return a new frame: white where luminance > threshold, black elsewhere.

    Output alpha is always 255. The input frame is not modified.
    """
    height, width = frame.shape[:2]
    threshold = sample_thresholds(pattern, width, height)
    white = luminance(frame) > threshold

    output = np.empty((height, width, 4), dtype=np.uint8)
    output[:, :, :3] = np.where(white, 255, 0).astype(np.uint8)[:, :, np.newaxis]
    output[:, :, 3] = 255
    return output


def apply(frame: np.ndarray, params: dict, *, pattern=None) -> np.ndarray:
    """Pattern dither against ``pattern``. Allocates a new frame."""
    if pattern is None:
        raise ValueError("Pattern dither requires a pattern source")
    return dither(frame, pattern)
