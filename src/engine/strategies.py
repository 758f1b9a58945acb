"""Dither strategies — buffer and fragment dithering behind one interface.

The two strategies deliberately differ:

* ``BufferDither`` hard-replaces every pixel with black or white (alpha 255)
  by thresholding 8-bit luminance against a pattern tiled at native size.
* ``ShaderDither`` evaluates the fragment pass, blending the decision with
  the tone-adjusted color and keeping source alpha.
"""

from typing import Protocol, runtime_checkable

import numpy as np

from effects.fx.pattern_dither import dither
from engine.patterns import PatternSource
from shaders.passes import DitherPass, RenderTarget


@runtime_checkable
class DitherEffect(Protocol):
    def render(self, frame: np.ndarray) -> np.ndarray: ...


class BufferDither:
    def __init__(self, pattern: PatternSource):
        self.pattern = pattern

    def render(self, frame: np.ndarray) -> np.ndarray:
        return dither(frame, self.pattern)


class ShaderDither:
    """Renders through a DitherPass sized to each incoming frame."""

    def __init__(
        self,
        params: dict | None = None,
        pattern: PatternSource | None = None,
        *,
        pixel_ratio: float = 1.0,
    ):
        self.params = dict(params or {})
        self.pattern = pattern
        self.pixel_ratio = pixel_ratio
        self._pass: DitherPass | None = None

    def render(self, frame: np.ndarray) -> np.ndarray:
        height, width = frame.shape[:2]
        if self._pass is None:
            self._pass = DitherPass(
                width, height, self.params, pixel_ratio=self.pixel_ratio
            )
            if self.pattern is not None:
                self._pass.set_pattern_texture(self.pattern)
        elif self._pass.resolution != (width, height):
            self._pass.resize(width, height, self.pixel_ratio)
        return self._pass.render_into(RenderTarget(read=frame))

    def close(self):
        if self._pass is not None:
            self._pass.release()
            self._pass = None
