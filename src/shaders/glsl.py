"""GLSL built-ins over numpy arrays.

Each function evaluates what a fragment shader would compute for one
fragment, for every fragment of the render target at once. Vectors are
passed as separate component arrays (``x``, ``y``) or as trailing-axis
arrays for colors. Textures are RGBA float arrays in [0, 1], row 0 at the top.
"""

import numpy as np

LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float64)


def fract(x):
    return x - np.floor(x)


def clamp(x, lo, hi):
    return np.minimum(np.maximum(x, lo), hi)


def mix(a, b, t):
    return a * (1.0 - t) + b * t


def step(edge, x):
    return np.where(x < edge, 0.0, 1.0)


def smoothstep(edge0, edge1, x):
    t = clamp((x - edge0) / (edge1 - edge0), 0.0, 1.0)
    return t * t * (3.0 - 2.0 * t)


def length(x, y):
    return np.sqrt(x * x + y * y)


def luma(rgb: np.ndarray) -> np.ndarray:
    """dot(rgb, vec3(0.299, 0.587, 0.114)) over the trailing axis."""
    return rgb[..., :3] @ LUMA_WEIGHTS


def rotate(x, y, angle: float):
    """``mat2(c, -s, s, c) * v`` (GLSL matrices are column-major)."""
    s = np.sin(angle)
    c = np.cos(angle)
    return c * x + s * y, -s * x + c * y


def fragment_coords(width: int, height: int):
    """gl_FragCoord.xy for every fragment, as (x, y) arrays of shape (H, W).

    Origin is bottom-left and coordinates sit at pixel centers. Row 0 of the
    returned arrays is the top row of the image.
    """
    xs = np.arange(width, dtype=np.float64) + 0.5
    ys = height - (np.arange(height, dtype=np.float64) + 0.5)
    return np.meshgrid(xs, ys)


def to_texture(frame: np.ndarray) -> np.ndarray:
    return frame.astype(np.float64) / 255.0


def from_texture(color: np.ndarray) -> np.ndarray:
    """Write a float color back to a uint8 target (round to nearest)."""
    return np.floor(clamp(color, 0.0, 1.0) * 255.0 + 0.5).astype(np.uint8)


def texture2D(tex: np.ndarray, u, v) -> np.ndarray:
    """Bilinear sample with clamp-to-edge wrapping; ``v`` points up."""
    h, w = tex.shape[:2]
    px = np.asarray(u, dtype=np.float64) * w - 0.5
    py = (1.0 - np.asarray(v, dtype=np.float64)) * h - 0.5

    x0 = np.floor(px)
    y0 = np.floor(py)
    fx = (px - x0)[..., np.newaxis]
    fy = (py - y0)[..., np.newaxis]

    x0i = np.clip(x0.astype(np.int64), 0, w - 1)
    x1i = np.clip(x0.astype(np.int64) + 1, 0, w - 1)
    y0i = np.clip(y0.astype(np.int64), 0, h - 1)
    y1i = np.clip(y0.astype(np.int64) + 1, 0, h - 1)

    top = mix(tex[y0i, x0i], tex[y0i, x1i], fx)
    bottom = mix(tex[y1i, x0i], tex[y1i, x1i], fx)
    return mix(top, bottom, fy)


def texel_fetch_repeat(tex: np.ndarray, u, v) -> np.ndarray:
    """Nearest sample with repeat wrapping; ``u``/``v`` in top-down image space."""
    h, w = tex.shape[:2]
    col = np.floor(fract(u) * w).astype(np.int64) % w
    row = np.floor(fract(v) * h).astype(np.int64) % h
    return tex[row, col]
