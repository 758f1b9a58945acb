"""Fragment passes — the capability interface consumed by a multi-pass compositor.

Each pass is an independent type implementing ``ShaderPass``. A compositor
calls ``configure`` with parameter changes, ``resize`` when the render target
changes size, and ``render_into`` once per frame.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from typing import Protocol, runtime_checkable

import numpy as np

from engine.patterns import PatternSource
from shaders.dither import dither_fragment
from shaders.glsl import from_texture, to_texture
from shaders.halftone import halftone_fragment
from shaders.uniforms import (
    DitherUniforms,
    HalftoneUniforms,
    merge_params,
    validate_uniforms,
)

logger = logging.getLogger(__name__)


@dataclass
class RenderTarget:
    """Read/write surface pair for one pass invocation.

    ``read`` is the incoming RGBA uint8 frame (sampled as a texture).
    ``write`` is allocated on first render if not supplied.
    """

    read: np.ndarray
    write: np.ndarray | None = None
    _bound: bool = field(default=False, repr=False)

    @contextmanager
    def bind(self, shape: tuple[int, int, int]):
        """Acquire the target for writing; released on every exit path."""
        if self._bound:
            raise RuntimeError("Render target is already bound")
        if self.write is None:
            self.write = np.zeros(shape, dtype=np.uint8)
        elif self.write.shape != shape or self.write.dtype != np.uint8:
            raise ValueError(
                f"Write buffer is {self.write.shape} {self.write.dtype}, expected {shape} uint8"
            )
        self._bound = True
        try:
            yield self.write
        finally:
            self._bound = False


@runtime_checkable
class ShaderPass(Protocol):
    def configure(self, params: dict) -> None: ...

    def resize(self, width: int, height: int, pixel_ratio: float = 1.0) -> None: ...

    def render_into(self, target: RenderTarget) -> np.ndarray: ...

    def release(self) -> None: ...


def _check_size(width: int, height: int, pixel_ratio: float):
    if int(width) != width or int(height) != height or width <= 0 or height <= 0:
        raise ValueError(f"Render size must be positive integers, got {width}x{height}")
    if not pixel_ratio > 0:
        raise ValueError(f"pixel_ratio must be > 0, got {pixel_ratio}")


def _checked(uniforms):
    errors = validate_uniforms(uniforms)
    if errors:
        raise ValueError("; ".join(errors))
    return uniforms


class DitherPass:
    """Pattern dither pass (blended, bypassable)."""

    def __init__(
        self,
        width: int,
        height: int,
        params: dict | None = None,
        *,
        pixel_ratio: float = 1.0,
    ):
        self.uniforms = DitherUniforms()
        self.pattern: PatternSource | None = None
        self.pattern_repeat = (1.0, 1.0)
        self._released = False
        self.resize(width, height, pixel_ratio)
        self.configure(params or {})

    def resize(self, width: int, height: int, pixel_ratio: float = 1.0):
        _check_size(width, height, pixel_ratio)
        self.resolution = (int(width), int(height))
        self.pixel_ratio = float(pixel_ratio)
        self._derive()

    def configure(self, params: dict):
        self.uniforms = _checked(merge_params(self.uniforms, params))
        self._derive()

    def set_pattern_texture(self, pattern: PatternSource | None):
        self.pattern = pattern
        self.uniforms = replace(self.uniforms, usePatternTexture=pattern is not None)

    def _derive(self):
        period = self.uniforms.patternSize * self.pixel_ratio
        width, height = self.resolution
        self.pattern_repeat = (width / period, height / period)
        logger.debug(
            "Dither pass %dx%d: pattern period %.2fpx, repeat %s",
            width,
            height,
            period,
            self.pattern_repeat,
        )

    def render_into(self, target: RenderTarget) -> np.ndarray:
        if self._released:
            raise RuntimeError("Dither pass has been released")
        width, height = self.resolution
        with target.bind((height, width, 4)) as out:
            thresholds = self.pattern.thresholds if self.pattern is not None else None
            color = dither_fragment(
                to_texture(target.read),
                self.uniforms,
                self.resolution,
                self.pattern_repeat,
                thresholds,
            )
            np.copyto(out, from_texture(color))
        return target.write

    def release(self):
        self.pattern = None
        self._released = True


class HalftonePass:
    """Rotated halftone grid pass (circle / square / diamond cells)."""

    def __init__(
        self,
        width: int,
        height: int,
        params: dict | None = None,
        *,
        pixel_ratio: float = 1.0,
    ):
        self.uniforms = HalftoneUniforms()
        self._released = False
        self.resize(width, height, pixel_ratio)
        self.configure(params or {})

    def resize(self, width: int, height: int, pixel_ratio: float = 1.0):
        _check_size(width, height, pixel_ratio)
        self.resolution = (int(width), int(height))
        self.pixel_ratio = float(pixel_ratio)

    def configure(self, params: dict):
        self.uniforms = _checked(merge_params(self.uniforms, params))

    @property
    def cell_size(self) -> float:
        return self.uniforms.pixelSize * self.pixel_ratio

    def render_into(self, target: RenderTarget) -> np.ndarray:
        if self._released:
            raise RuntimeError("Halftone pass has been released")
        width, height = self.resolution
        with target.bind((height, width, 4)) as out:
            color = halftone_fragment(
                to_texture(target.read),
                self.uniforms,
                self.resolution,
                self.cell_size,
            )
            np.copyto(out, from_texture(color))
        return target.write

    def release(self):
        self._released = True
