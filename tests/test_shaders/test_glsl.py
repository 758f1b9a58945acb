"""Tests for shaders.glsl — numpy GLSL built-ins."""

import math

import numpy as np
import pytest

from shaders.glsl import (
    fract,
    fragment_coords,
    from_texture,
    luma,
    mix,
    rotate,
    smoothstep,
    step,
    texel_fetch_repeat,
    texture2D,
    to_texture,
)

pytestmark = pytest.mark.smoke


def test_fract_negative():
    np.testing.assert_allclose(fract(np.array([-0.25, 1.75, 3.0])), [0.75, 0.75, 0.0])


def test_smoothstep():
    x = np.array([-1.0, 0.0, 0.25, 0.5, 1.0])
    np.testing.assert_allclose(smoothstep(0.0, 0.5, x), [0.0, 0.0, 0.5, 1.0, 1.0])


def test_step_and_mix():
    np.testing.assert_array_equal(step(0.5, np.array([0.4, 0.5, 0.6])), [0.0, 1.0, 1.0])
    assert mix(2.0, 4.0, 0.25) == 2.5


def test_rotate_quarter_turn_matches_glsl_matrix():
    # mat2(c, -s, s, c) * (1, 0) = (c, -s)
    x, y = rotate(1.0, 0.0, math.pi / 2)
    assert x == pytest.approx(0.0, abs=1e-12)
    assert y == pytest.approx(-1.0)
    back = rotate(*rotate(0.3, 0.7, 1.1), -1.1)
    assert back == pytest.approx((0.3, 0.7))


def test_fragment_coords_bottom_left_origin():
    xs, ys = fragment_coords(3, 2)
    np.testing.assert_array_equal(xs[0], [0.5, 1.5, 2.5])
    # Row 0 is the top of the image, which is the highest gl_FragCoord.y
    np.testing.assert_array_equal(ys[:, 0], [1.5, 0.5])


def test_luma():
    rgb = np.array([[1.0, 1.0, 1.0], [1.0, 0.0, 0.0]])
    np.testing.assert_allclose(luma(rgb), [1.0, 0.299])


def test_texture_roundtrip_at_texel_centers():
    rng = np.random.default_rng(9)
    frame = rng.integers(0, 256, (5, 7, 4), dtype=np.uint8)
    xs, ys = fragment_coords(7, 5)
    sampled = texture2D(to_texture(frame), xs / 7, ys / 5)
    np.testing.assert_array_equal(from_texture(sampled), frame)


def test_texture_bilinear_midpoint_and_clamp():
    tex = np.zeros((1, 2, 4))
    tex[0, 1] = 1.0
    # Halfway between the two texel centers
    assert texture2D(tex, np.array(0.5), np.array(0.5))[0] == pytest.approx(0.5)
    # Outside [0, 1] clamps to the edge texel
    assert texture2D(tex, np.array(-3.0), np.array(0.5))[0] == pytest.approx(0.0)
    assert texture2D(tex, np.array(4.0), np.array(0.5))[0] == pytest.approx(1.0)


def test_texel_fetch_repeat_wraps():
    tex = np.arange(6, dtype=np.float64).reshape(2, 3)
    u = np.array([0.1, 0.5, 0.9, 1.1, -0.1])
    v = np.array([0.1, 0.1, 0.6, 1.6, 0.1])
    np.testing.assert_array_equal(texel_fetch_repeat(tex, u, v), [0, 1, 5, 3, 2])
