"""Dither pattern sources — tileable threshold maps and their loading.

Patterns are loaded once (asynchronously, off the event loop) and shared
read-only between pipeline invocations. Only the red channel of a pattern
bitmap is consulted.
"""

import asyncio
import functools
import logging
import os
from dataclasses import dataclass
from pathlib import Path

import numpy as np
from PIL import Image, UnidentifiedImageError

from shaders.dither import generate_dot_pattern

logger = logging.getLogger(__name__)

DEFAULT_DOT_CELL = 8


class PatternLoadError(RuntimeError):
    """A pattern bitmap could not be read or decoded."""


@dataclass(frozen=True, eq=False)
class PatternSource:
    """Tileable threshold map, float values in [0, 1], shape (h, w)."""

    thresholds: np.ndarray

    def __post_init__(self):
        t = self.thresholds
        if not isinstance(t, np.ndarray) or t.ndim != 2 or t.size == 0:
            raise ValueError("Pattern thresholds must be a non-empty 2D array")
        t = t.astype(np.float64, copy=True)
        if not np.isfinite(t).all():
            raise ValueError("Pattern thresholds must be finite")
        t.setflags(write=False)
        object.__setattr__(self, "thresholds", t)

    @property
    def width(self) -> int:
        return self.thresholds.shape[1]

    @property
    def height(self) -> int:
        return self.thresholds.shape[0]

    @classmethod
    def from_rgba(cls, pixels: np.ndarray) -> "PatternSource":
        """Red channel / 255 of an (h, w, 3|4) uint8 bitmap."""
        if pixels.ndim != 3 or pixels.shape[2] < 3:
            raise ValueError(f"Pattern bitmap must be (h, w, 3|4), got {pixels.shape}")
        return cls(pixels[:, :, 0].astype(np.float64) / 255.0)

    @classmethod
    def from_thresholds(cls, thresholds: np.ndarray) -> "PatternSource":
        return cls(np.clip(np.asarray(thresholds, dtype=np.float64), 0.0, 1.0))

    @classmethod
    def uniform(cls, value: float, size: int = 1) -> "PatternSource":
        return cls.from_thresholds(np.full((size, size), value, dtype=np.float64))

    def upscaled(self, factor: int) -> "PatternSource":
        """Nearest-neighbour integer upscale, crisp cell boundaries."""
        if isinstance(factor, bool) or not isinstance(factor, int) or factor < 1:
            raise ValueError(f"Upscale factor must be an int >= 1, got {factor!r}")
        if factor == 1:
            return self
        up = np.repeat(np.repeat(self.thresholds, factor, axis=0), factor, axis=1)
        return PatternSource(up)


def dot_pattern(cell_size: int = DEFAULT_DOT_CELL) -> PatternSource:
    """Round-dot threshold tile, brightest threshold at the cell center.

    Same falloff as the fragment pipeline's procedural dot pattern, so the
    buffer and fragment paths dither against an identical tile.
    """
    if cell_size < 1:
        raise ValueError(f"cell_size must be >= 1, got {cell_size}")
    centers = (np.arange(cell_size, dtype=np.float64) + 0.5) / cell_size
    xs, ys = np.meshgrid(centers, centers)
    return PatternSource.from_thresholds(generate_dot_pattern(xs, ys))


def _decode_pattern(path: Path, scale: int) -> PatternSource:
    try:
        with Image.open(path) as im:
            pixels = np.array(im.convert("RGBA"), dtype=np.uint8)
    except (OSError, UnidentifiedImageError) as e:
        raise PatternLoadError(f"Could not load pattern {path.name}: {e}") from e
    return PatternSource.from_rgba(pixels).upscaled(scale)


async def load_pattern(path: str | os.PathLike, scale: int = 1) -> PatternSource:
    """Load a pattern bitmap, optionally nearest-upscaled by ``scale``.

    Raises:
        PatternLoadError: If the file is missing or cannot be decoded.
    """
    p = Path(path)
    if not p.is_file():
        raise PatternLoadError(f"Pattern not found: {p.name}")
    pattern = await asyncio.to_thread(_decode_pattern, p, scale)
    logger.debug(
        "Loaded pattern %s at scale %d (%dx%d)", p.name, scale, pattern.width, pattern.height
    )
    return pattern


class PatternLoader:
    """Load-once cache of patterns keyed by (path, scale).

    Only resolved patterns are cached. Concurrent awaiters of the same key
    share one in-flight load; a load that fails or is cancelled is dropped
    so a later call retries.
    """

    def __init__(self, default_path: str | os.PathLike | None = None):
        if default_path is None:
            default_path = os.environ.get("HALFTONE_PATTERN_PATH") or None
        self.default_path = default_path
        self._patterns: dict[tuple[str, int], PatternSource] = {}
        self._inflight: dict[tuple[str, int], asyncio.Task] = {}

    async def get(self, path: str | os.PathLike | None = None, scale: int = 1) -> PatternSource:
        path = path if path is not None else self.default_path
        if path is None:
            return dot_pattern().upscaled(scale)

        key = (str(Path(path).resolve()), scale)
        cached = self._patterns.get(key)
        if cached is not None:
            return cached

        task = self._inflight.get(key)
        # A task from a finished event loop can never complete here
        if task is None or task.get_loop() is not asyncio.get_running_loop():
            task = asyncio.ensure_future(load_pattern(path, scale))
            task.add_done_callback(functools.partial(self._settle, key))
            self._inflight[key] = task
        return await asyncio.shield(task)

    def _settle(self, key: tuple[str, int], task: asyncio.Task):
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if task.cancelled() or task.exception() is not None:
            return
        self._patterns[key] = task.result()

    def clear(self):
        self._patterns.clear()
        self._inflight.clear()
