"""Invert effect — inverts RGB channels, preserves alpha."""

import numpy as np

EFFECT_ID = "fx.invert"
EFFECT_NAME = "Invert"
EFFECT_CATEGORY = "fx"

PARAMS: dict = {}


def invert_colors(frame: np.ndarray) -> np.ndarray:
    """255 - v on RGB, in place. Returns ``frame``."""
    np.subtract(255, frame[:, :, :3], out=frame[:, :, :3])
    return frame


def apply(frame: np.ndarray, params: dict, *, pattern=None) -> np.ndarray:
    """Invert RGB channels. Mutates and returns ``frame``."""
    return invert_colors(frame)
