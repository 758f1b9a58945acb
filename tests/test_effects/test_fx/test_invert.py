"""Tests for fx.invert — 255 - v on RGB, alpha untouched."""

import numpy as np

from effects.fx.invert import EFFECT_ID, PARAMS, apply, invert_colors


def _frame(h=100, w=100):
    rng = np.random.default_rng(42)
    return rng.integers(0, 256, (h, w, 4), dtype=np.uint8)


def test_basic():
    frame = np.zeros((10, 10, 4), dtype=np.uint8)
    frame[:, :, 0] = 200
    frame[:, :, 1] = 100
    frame[:, :, 2] = 50
    frame[:, :, 3] = 255
    result = apply(frame, {})
    assert result.dtype == np.uint8
    np.testing.assert_array_equal(result[:, :, 0], 55)
    np.testing.assert_array_equal(result[:, :, 1], 155)
    np.testing.assert_array_equal(result[:, :, 2], 205)
    np.testing.assert_array_equal(result[:, :, 3], 255)


def test_twice_restores_colors():
    frame = _frame()
    original = frame.copy()
    invert_colors(invert_colors(frame))
    np.testing.assert_array_equal(frame, original)


def test_alpha_never_changes():
    frame = _frame()
    alpha = frame[:, :, 3].copy()
    invert_colors(frame)
    np.testing.assert_array_equal(frame[:, :, 3], alpha)


def test_in_place():
    frame = _frame(4, 4)
    assert invert_colors(frame) is frame


def test_metadata():
    assert EFFECT_ID == "fx.invert"
    assert PARAMS == {}
