"""Tests for engine.patterns — threshold maps, upscaling, async loading."""

import asyncio
import time

import numpy as np
import pytest
from PIL import Image

from engine.patterns import (
    PatternLoader,
    PatternLoadError,
    PatternSource,
    dot_pattern,
    load_pattern,
)


def _write_pattern(path, red):
    pixels = np.zeros(red.shape + (4,), dtype=np.uint8)
    pixels[:, :, 0] = red
    pixels[:, :, 1] = 255 - red
    pixels[:, :, 3] = 255
    Image.fromarray(pixels).save(path)


def test_from_rgba_uses_red_channel():
    pixels = np.zeros((2, 2, 4), dtype=np.uint8)
    pixels[:, :, 0] = [[0, 51], [102, 255]]
    pixels[:, :, 1] = 200
    pattern = PatternSource.from_rgba(pixels)
    np.testing.assert_allclose(pattern.thresholds, [[0.0, 0.2], [0.4, 1.0]])
    assert (pattern.width, pattern.height) == (2, 2)


def test_thresholds_read_only():
    pattern = PatternSource.uniform(0.5, size=2)
    with pytest.raises(ValueError):
        pattern.thresholds[0, 0] = 0.1


def test_from_thresholds_clips():
    pattern = PatternSource.from_thresholds(np.array([[-1.0, 2.0]]))
    np.testing.assert_array_equal(pattern.thresholds, [[0.0, 1.0]])


def test_empty_pattern_rejected():
    with pytest.raises(ValueError):
        PatternSource(np.zeros((0, 3)))


@pytest.mark.parametrize("value", [np.nan, np.inf, -np.inf])
def test_non_finite_thresholds_rejected(value):
    with pytest.raises(ValueError):
        PatternSource(np.array([[0.2, value]]))
    with pytest.raises(ValueError):
        PatternSource.from_thresholds(np.array([[0.2, value]]))


def test_upscaled_nearest():
    pattern = PatternSource.from_thresholds(np.array([[0.1, 0.9], [0.4, 0.6]]))
    up = pattern.upscaled(2)
    assert (up.width, up.height) == (4, 4)
    np.testing.assert_array_equal(up.thresholds[:2, :2], 0.1)
    np.testing.assert_array_equal(up.thresholds[2:, 2:], 0.6)
    assert pattern.upscaled(1) is pattern


@pytest.mark.parametrize("factor", [0, -2, 1.5, True])
def test_upscaled_rejects_bad_factor(factor):
    with pytest.raises(ValueError):
        PatternSource.uniform(0.5).upscaled(factor)


def test_dot_pattern_peaks_at_center():
    pattern = dot_pattern(8)
    t = pattern.thresholds
    assert t.shape == (8, 8)
    assert t[3:5, 3:5].min() > t[0, 0]
    assert t.min() >= 0.0 and t.max() <= 1.0
    # Symmetric tile
    np.testing.assert_allclose(t, t[::-1, :])
    np.testing.assert_allclose(t, t.T)


def test_load_pattern(tmp_path):
    red = np.array([[0, 255], [128, 64]], dtype=np.uint8)
    path = tmp_path / "dots.png"
    _write_pattern(path, red)
    pattern = asyncio.run(load_pattern(path))
    np.testing.assert_allclose(pattern.thresholds, red / 255.0)


def test_load_pattern_scaled(tmp_path):
    red = np.array([[0, 255], [128, 64]], dtype=np.uint8)
    path = tmp_path / "dots.png"
    _write_pattern(path, red)
    pattern = asyncio.run(load_pattern(path, scale=2))
    assert (pattern.width, pattern.height) == (4, 4)
    assert pattern.thresholds[3, 3] == pytest.approx(64 / 255)


def test_load_missing_pattern_fails(tmp_path):
    with pytest.raises(PatternLoadError, match="not found"):
        asyncio.run(load_pattern(tmp_path / "missing.png"))


def test_load_corrupt_pattern_fails(tmp_path):
    path = tmp_path / "broken.png"
    path.write_bytes(b"not an image")
    with pytest.raises(PatternLoadError):
        asyncio.run(load_pattern(path))


def test_loader_loads_once(tmp_path, monkeypatch):
    path = tmp_path / "dots.png"
    _write_pattern(path, np.full((3, 3), 90, dtype=np.uint8))
    calls = []

    import engine.patterns as patterns

    original = patterns._decode_pattern

    def counting(p, scale):
        calls.append((p, scale))
        return original(p, scale)

    monkeypatch.setattr(patterns, "_decode_pattern", counting)
    loader = PatternLoader(path)

    async def run():
        results = await asyncio.gather(*(loader.get() for _ in range(5)))
        again = await loader.get()
        return results, again

    results, again = asyncio.run(run())
    assert len(calls) == 1
    assert all(r is results[0] for r in results)
    assert again is results[0]


def test_loader_keys_by_scale(tmp_path):
    path = tmp_path / "dots.png"
    _write_pattern(path, np.full((3, 3), 90, dtype=np.uint8))
    loader = PatternLoader(path)

    async def run():
        return await loader.get(scale=1), await loader.get(scale=2)

    native, doubled = asyncio.run(run())
    assert native.width == 3
    assert doubled.width == 6


def test_loader_retries_after_failure(tmp_path):
    path = tmp_path / "late.png"
    loader = PatternLoader(path)
    with pytest.raises(PatternLoadError):
        asyncio.run(loader.get())
    _write_pattern(path, np.full((2, 2), 10, dtype=np.uint8))
    pattern = asyncio.run(loader.get())
    assert pattern.width == 2


def test_loader_retries_after_timeout(tmp_path, monkeypatch):
    path = tmp_path / "slow.png"
    _write_pattern(path, np.full((2, 2), 10, dtype=np.uint8))

    import engine.patterns as patterns

    original = patterns._decode_pattern

    def slow(p, scale):
        time.sleep(0.2)
        return original(p, scale)

    monkeypatch.setattr(patterns, "_decode_pattern", slow)
    loader = PatternLoader(path)
    with pytest.raises(asyncio.TimeoutError):
        asyncio.run(asyncio.wait_for(loader.get(), 0.01))

    monkeypatch.setattr(patterns, "_decode_pattern", original)
    pattern = asyncio.run(loader.get())
    assert pattern.width == 2


def test_loader_does_not_cache_rejected_scale(tmp_path):
    path = tmp_path / "dots.png"
    _write_pattern(path, np.full((2, 2), 10, dtype=np.uint8))
    loader = PatternLoader(path)

    async def run():
        for _ in range(2):
            with pytest.raises(ValueError):
                await loader.get(scale=0)
        assert loader._inflight == {}
        assert loader._patterns == {}
        return await loader.get()

    assert asyncio.run(run()).width == 2


def test_loader_without_path_uses_dot_pattern(monkeypatch):
    monkeypatch.delenv("HALFTONE_PATTERN_PATH", raising=False)
    loader = PatternLoader()
    pattern = asyncio.run(loader.get(scale=2))
    np.testing.assert_array_equal(pattern.thresholds, dot_pattern().upscaled(2).thresholds)


def test_loader_reads_env(tmp_path, monkeypatch):
    path = tmp_path / "env.png"
    monkeypatch.setenv("HALFTONE_PATTERN_PATH", str(path))
    assert PatternLoader().default_path == str(path)
