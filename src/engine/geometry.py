"""Cover-fit geometry — where to draw a source image so it fills a canvas."""

import math
from dataclasses import dataclass


class InvalidGeometryError(ValueError):
    """Raised for zero-area (or non-finite) source or destination sizes."""


@dataclass(frozen=True)
class FitRectangle:
    x: float
    y: float
    width: float
    height: float


def _check_dimension(name: str, value: float):
    if not math.isfinite(value) or value <= 0:
        raise InvalidGeometryError(f"{name} must be a positive finite number, got {value!r}")


def fit_cover(
    source_width: float,
    source_height: float,
    dest_width: float,
    dest_height: float,
) -> FitRectangle:
    """Scale the source to fully cover the destination, centered.

    The overflowing axis is left to the caller's drawing step to crop, so
    ``x`` or ``y`` may be negative.

    Raises:
        InvalidGeometryError: If any dimension is zero, negative or not finite.
    """
    _check_dimension("source_width", source_width)
    _check_dimension("source_height", source_height)
    _check_dimension("dest_width", dest_width)
    _check_dimension("dest_height", dest_height)

    source_aspect = source_width / source_height
    dest_aspect = dest_width / dest_height

    if source_aspect > dest_aspect:
        # Relatively wider: fill height, crop the sides
        height = float(dest_height)
        width = dest_height * source_aspect
        x = (dest_width - width) / 2
        y = 0.0
    else:
        # Relatively taller: fill width, crop top/bottom
        width = float(dest_width)
        height = dest_width / source_aspect
        x = 0.0
        y = (dest_height - height) / 2

    return FitRectangle(x=x, y=y, width=width, height=height)
