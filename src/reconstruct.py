"""Motion-compensated prediction of the current frame from the previous one."""

from __future__ import annotations

import logging
from typing import Tuple

import numpy as np

from frames import Frame, sample_plane
from motion_field import MotionField

logger = logging.getLogger(__name__)


def _cell_index(field: MotionField, x: np.ndarray, y: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    cols, rows = field.dims
    bw, bh = field.block_size
    bx = np.clip(np.floor(np.asarray(x, dtype=np.float64) / bw), 0, cols - 1).astype(np.intp)
    by = np.clip(np.floor(np.asarray(y, dtype=np.float64) / bh), 0, rows - 1).astype(np.intp)
    return bx, by


def _check_sizes(previous: Frame, field: MotionField) -> None:
    if tuple(field.frame_size) != previous.size:
        raise ValueError(f"Motion field is for {field.frame_size}, frame is {previous.size}")


def reconstruct_pixel(previous: Frame, field: MotionField, x: float, y: float) -> np.ndarray:
    """Predicted RGBA value for output pixel (x, y)."""
    _check_sizes(previous, field)
    bx, by = _cell_index(field, x, y)
    vx, vy = field.vectors[by, bx]
    rgb = sample_plane(previous.rgb(), float(x) + float(vx), float(y) + float(vy))
    return np.append(rgb, previous.max_value).astype(np.float32)


def reconstruct_frame(previous: Frame, field: MotionField) -> np.ndarray:
    """Warp ``previous`` by the motion field into an H x W x 4 prediction.

    Each pixel takes the vector of the block containing it (no blending across
    blocks) and samples the previous frame bilinearly at pixel + vector.
    Normalizing both by the frame size, as a texture lookup would, lands on
    the same position, so the offset is applied in pixels directly. Alpha is
    always fully opaque.
    """
    _check_sizes(previous, field)
    height, width = previous.height, previous.width
    xs, ys = np.meshgrid(np.arange(width, dtype=np.float64), np.arange(height, dtype=np.float64))
    bx, by = _cell_index(field, xs, ys)
    vectors = field.vectors[by, bx].astype(np.float64)

    out = np.empty((height, width, 4), dtype=np.float32)
    out[..., :3] = sample_plane(previous.rgb(), xs + vectors[..., 0], ys + vectors[..., 1])
    out[..., 3] = previous.max_value
    logger.debug("Reconstructed %dx%d frame from %dx%d blocks", width, height, *field.dims)
    return out


def psnr(reference: np.ndarray, estimate: np.ndarray, max_value: float = 255.0) -> float:
    mse = float(np.mean((np.asarray(reference, dtype=np.float64) - np.asarray(estimate, dtype=np.float64)) ** 2))
    if mse == 0:
        return float("inf")
    return float(20 * np.log10(max_value / np.sqrt(mse)))
