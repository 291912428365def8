import numpy as np
import pytest

from frames import frame_from_array
from generate_synth_pair import translated_pair
from motion_config import MotionConfig


@pytest.fixture
def small_config():
    return MotionConfig(block_width=16, block_height=16, search_radius=4.0, search_step=1.0)


@pytest.fixture
def shifted_frames():
    """64x48 textured pair where current(x, y) == previous(x + 3, y - 2)."""
    previous, current = translated_pair(64, 48, (3, -2), seed=11)
    return frame_from_array(current), frame_from_array(previous)


@pytest.fixture
def random_frames():
    rng = np.random.default_rng(3)
    a = rng.integers(0, 256, size=(40, 56), dtype=np.uint8)
    b = rng.integers(0, 256, size=(40, 56), dtype=np.uint8)
    return frame_from_array(a), frame_from_array(b)
