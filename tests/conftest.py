import shutil
import uuid
from pathlib import Path

import numpy as np
import pytest

from engine.patterns import PatternSource


@pytest.fixture
def half_pattern():
    """Every cell threshold is exactly 0.5."""
    return PatternSource.uniform(0.5, size=3)


@pytest.fixture
def ramp_pattern():
    """4x4 pattern whose red channel steps by 16 per cell (row-major)."""
    pixels = np.zeros((4, 4, 4), dtype=np.uint8)
    pixels[:, :, 0] = (np.arange(16, dtype=np.uint8) * 16).reshape(4, 4)
    pixels[:, :, 3] = 255
    return PatternSource.from_rgba(pixels)


@pytest.fixture
def mid_grey_image():
    """4x4 uniform mid-grey source (R=G=B=128, A=255)."""
    frame = np.full((4, 4, 4), 128, dtype=np.uint8)
    frame[:, :, 3] = 255
    return frame


@pytest.fixture
def home_tmp_path():
    """tmp_path equivalent under ~/ for tests that go through path validation."""
    base = Path.home() / ".cache" / "halftone" / "test-tmp"
    base.mkdir(parents=True, exist_ok=True)
    d = base / f"test_{uuid.uuid4().hex[:8]}"
    d.mkdir()
    yield d
    shutil.rmtree(d, ignore_errors=True)
