"""Halftone grid — rotated dot/square/diamond cells, per-fragment formulation."""

import numpy as np

from shaders.glsl import (
    clamp,
    fragment_coords,
    length,
    luma,
    mix,
    rotate,
    smoothstep,
    texture2D,
)
from shaders.uniforms import HalftoneUniforms


def circle(x, y, radius):
    return 1.0 - smoothstep(radius - 0.1, radius + 0.1, length(x, y))


def square(x, y, size):
    d = np.maximum(np.abs(x) - size, np.abs(y) - size)
    return 1.0 - smoothstep(-0.1, 0.1, d)


def diamond(x, y, size):
    d = np.abs(x) + np.abs(y) - size
    return 1.0 - smoothstep(-0.1, 0.1, d)


def shape_mask(shape: float, x, y, size):
    if shape < 0.5:
        return circle(x, y, size)
    if shape < 1.5:
        return square(x, y, size)
    return diamond(x, y, size)


def halftone_fragment(
    tex: np.ndarray,
    uniforms: HalftoneUniforms,
    resolution: tuple[int, int],
    pixel_size: float,
) -> np.ndarray:
    """Evaluate the halftone shader for every fragment of a ``resolution`` target.

    ``pixel_size`` is the effective cell period in target pixels (the
    ``pixelSize`` uniform already scaled by the device pixel ratio).
    Returns the output color (H, W, 4) float in [0, 1].
    """
    width, height = resolution
    coord_x, coord_y = fragment_coords(width, height)

    if uniforms.disable:
        return texture2D(tex, coord_x / width, coord_y / height)

    angle = uniforms.rotationAngle
    rot_x, rot_y = rotate(coord_x, coord_y, angle)

    grid_x = np.floor(rot_x / pixel_size) * pixel_size
    grid_y = np.floor(rot_y / pixel_size) * pixel_size
    center_x = grid_x + pixel_size * 0.5
    center_y = grid_y + pixel_size * 0.5
    cell_x = (rot_x - center_x) / (pixel_size * 0.5)
    cell_y = (rot_y - center_y) / (pixel_size * 0.5)

    sample_x, sample_y = rotate(center_x, center_y, -angle)
    sample_u = clamp(sample_x / width, 0.0, 1.0)
    sample_v = clamp(sample_y / height, 0.0, 1.0)

    color = texture2D(tex, sample_u, sample_v)
    if uniforms.greyscale:
        intensity = luma(color)
    else:
        intensity = color[..., :3].mean(axis=-1)

    dot_size = intensity * 0.8 + 0.1
    mask = shape_mask(uniforms.shape, cell_x, cell_y, dot_size)

    halftone = color[..., :3] * mask[..., np.newaxis]
    rgb = mix(color[..., :3], halftone, uniforms.blending)
    return np.concatenate([rgb, color[..., 3:4]], axis=-1)
