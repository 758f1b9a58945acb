"""Pattern dither, per-fragment formulation.

Unlike the buffer dither (hard black/white replace), the fragment form blends
the binary decision with the tone-adjusted color by ``blending``.
"""

import numpy as np

from shaders.glsl import (
    clamp,
    fract,
    fragment_coords,
    length,
    luma,
    mix,
    smoothstep,
    texel_fetch_repeat,
    texture2D,
)
from shaders.uniforms import DitherUniforms


def generate_dot_pattern(x, y):
    """``1 - smoothstep(0, 0.5, distance(fract(coord) - 0.5, 0))``."""
    return 1.0 - smoothstep(0.0, 0.5, length(fract(x) - 0.5, fract(y) - 0.5))


def adjust_tone(rgb: np.ndarray, contrast: float, exposure: float) -> np.ndarray:
    """Exposure gain then contrast around mid-grey, clamped to [0, 1]."""
    v = rgb * (2.0**exposure)
    return clamp((v - 0.5) * contrast + 0.5, 0.0, 1.0)


def dither_fragment(
    tex: np.ndarray,
    uniforms: DitherUniforms,
    resolution: tuple[int, int],
    pattern_repeat: tuple[float, float],
    pattern: np.ndarray | None = None,
) -> np.ndarray:
    """Evaluate the dither shader for every fragment of a ``resolution`` target.

    Args:
        tex:            Input texture (H, W, 4) float in [0, 1].
        uniforms:       Dither uniform set.
        resolution:     (width, height) of the render target.
        pattern_repeat: Pattern tiles across the target, per axis.
        pattern:        Threshold texture (h, w) float, used when
                        ``uniforms.usePatternTexture`` is set.

    Returns:
        Output color (H, W, 4) float in [0, 1].
    """
    width, height = resolution
    frag_x, frag_y = fragment_coords(width, height)
    u = frag_x / width
    v = frag_y / height

    color = texture2D(tex, u, v)
    if uniforms.disable:
        return color

    adjusted = adjust_tone(color[..., :3], uniforms.contrast, uniforms.exposure)
    if uniforms.greyscale:
        brightness = luma(adjusted)
    else:
        brightness = adjusted.mean(axis=-1)

    # Tiling is anchored at the top-left corner, like the buffer dither
    pattern_u = u * pattern_repeat[0]
    pattern_v = (1.0 - v) * pattern_repeat[1]
    if uniforms.usePatternTexture and pattern is not None:
        threshold = texel_fetch_repeat(pattern, pattern_u, pattern_v)
    else:
        threshold = generate_dot_pattern(pattern_u, pattern_v) * uniforms.threshold

    decision = np.where(brightness > threshold, 1.0, 0.0)
    if uniforms.invert:
        decision = 1.0 - decision

    rgb = mix(adjusted, decision[..., np.newaxis], uniforms.blending)
    return np.concatenate([rgb, color[..., 3:4]], axis=-1)
