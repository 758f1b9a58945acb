"""Tone — exposure gain then contrast around mid-grey."""

import numpy as np

EFFECT_ID = "fx.tone"
EFFECT_NAME = "Tone"
EFFECT_CATEGORY = "color"

PARAMS: dict = {
    "contrast": {
        "type": "float",
        "min": 0.0,
        "max": 2.0,
        "default": 1.0,
        "label": "Contrast",
        "curve": "linear",
        "unit": "",
        "description": "Contrast around mid-grey (1 = unchanged)",
    },
    "exposure": {
        "type": "float",
        "min": -1.0,
        "max": 1.0,
        "default": 0.0,
        "label": "Exposure",
        "curve": "linear",
        "unit": "stops",
        "description": "Exposure in stops (gain = 2^exposure, 0 = unchanged)",
    },
}


def adjust_tone(frame: np.ndarray, contrast: float, exposure: float) -> np.ndarray:
    """Adjust RGB in place and return ``frame``. Alpha is untouched.

    Exposure is applied before contrast; the two do not commute.
    """
    v = frame[:, :, :3].astype(np.float64) / 255.0
    v *= 2.0**exposure
    v = (v - 0.5) * contrast + 0.5
    # Round half up, like Math.round on a canvas ImageData
    frame[:, :, :3] = np.floor(np.clip(v, 0.0, 1.0) * 255.0 + 0.5).astype(np.uint8)
    return frame


def apply(frame: np.ndarray, params: dict, *, pattern=None) -> np.ndarray:
    """Tone adjustment. Mutates and returns ``frame``."""
    contrast = float(params.get("contrast", 1.0))
    exposure = float(params.get("exposure", 0.0))
    return adjust_tone(frame, contrast, exposure)
