"""Exhaustive SAD block matching and motion field construction."""

from __future__ import annotations

import logging
import math
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from frames import Frame, check_frame_pair, sample_plane
from motion_config import MotionConfig
from motion_field import MotionField, create_motion_field

logger = logging.getLogger(__name__)

BACKENDS = ("vectorized", "threads")


@dataclass(frozen=True)
class BlockMatch:
    vector: Tuple[float, float]
    residual: float
    # Displacements evaluated, baseline included.
    evaluated: int


def search_offsets(radius: float, step: float) -> np.ndarray:
    """Offsets -R, -R + S, ... up to +R on one axis, in ascending order."""
    count = int(math.floor(2.0 * radius / step + 1e-9)) + 1
    return -radius + step * np.arange(count, dtype=np.float64)


def _patch_grid(block_width: int, block_height: int) -> Tuple[np.ndarray, np.ndarray]:
    return np.meshgrid(
        np.arange(block_width, dtype=np.float64),
        np.arange(block_height, dtype=np.float64),
    )


def sad(
    current: Frame,
    previous: Frame,
    anchor: Tuple[float, float],
    candidate: Tuple[float, float],
    block_size: Tuple[int, int],
) -> float:
    """Sum of absolute luminance differences between two bilinear patches."""
    px, py = _patch_grid(*block_size)
    a = sample_plane(current.luma, anchor[0] + px, anchor[1] + py)
    b = sample_plane(previous.luma, candidate[0] + px, candidate[1] + py)
    return float(np.abs(a - b).sum())


def match_block(
    current: Frame,
    previous: Frame,
    anchor: Tuple[float, float],
    config: MotionConfig,
) -> BlockMatch:
    """Find the displacement into ``previous`` that best explains one block.

    The zero vector is tried first and kept outright if it matches exactly.
    Otherwise dx runs -R..R in the outer loop and dy -R..R in the inner loop;
    only a strictly smaller SAD replaces the best so far, so the first vector
    reaching the minimum wins, and a perfect match ends the scan.
    """
    ax, ay = float(anchor[0]), float(anchor[1])
    px, py = _patch_grid(config.block_width, config.block_height)
    block = sample_plane(current.luma, ax + px, ay + py)

    def cost(dx: float, dy: float) -> float:
        candidate = sample_plane(previous.luma, ax + dx + px, ay + dy + py)
        return float(np.abs(block - candidate).sum())

    best = cost(0.0, 0.0)
    evaluated = 1
    best_vector = (0.0, 0.0)
    if best == 0.0:
        return BlockMatch(best_vector, 0.0, evaluated)

    offsets = search_offsets(config.search_radius, config.search_step)
    for dx in offsets:
        for dy in offsets:
            value = cost(dx, dy)
            evaluated += 1
            if value < best:
                best = value
                best_vector = (float(dx), float(dy))
                if value == 0.0:
                    return BlockMatch(best_vector, 0.0, evaluated)
    return BlockMatch(best_vector, best, evaluated)


def _build_threaded(
    current: Frame,
    previous: Frame,
    config: MotionConfig,
    field: MotionField,
    max_workers: Optional[int],
) -> None:
    cols, rows = field.dims
    bw, bh = config.block_size
    cells = [(bx, by) for by in range(rows) for bx in range(cols)]

    def run(cell: Tuple[int, int]) -> BlockMatch:
        bx, by = cell
        return match_block(current, previous, (bx * bw, by * bh), config)

    # Leaving the executor joins every task before the field is handed out.
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        results = list(executor.map(run, cells))

    for (bx, by), result in zip(cells, results):
        field.vectors[by, bx] = result.vector
        field.residuals[by, bx] = result.residual


def _block_costs(block_pixels: np.ndarray, shifted: np.ndarray, rows: int, cols: int, bw: int, bh: int) -> np.ndarray:
    diff = np.abs(block_pixels - shifted).reshape(rows, bh, cols, bw)
    per_block = np.ascontiguousarray(diff.transpose(0, 2, 1, 3)).reshape(rows, cols, bh * bw)
    return per_block.sum(axis=-1)


def _build_vectorized(current: Frame, previous: Frame, config: MotionConfig, field: MotionField) -> None:
    """Evaluate each displacement for every block at once.

    Keeps a strict-less running minimum per block in the same dx/dy order as
    ``match_block``. No SAD can go below zero, so skipping the early exits
    cannot change which vector is kept.
    """
    cols, rows = field.dims
    bw, bh = config.block_size
    gx, gy = np.meshgrid(
        np.arange(cols * bw, dtype=np.float64),
        np.arange(rows * bh, dtype=np.float64),
    )
    block_pixels = sample_plane(current.luma, gx, gy)

    best = _block_costs(block_pixels, sample_plane(previous.luma, gx, gy), rows, cols, bw, bh)
    best_vectors = np.zeros((rows, cols, 2), dtype=np.float64)
    pending = best > 0.0

    offsets = search_offsets(config.search_radius, config.search_step)
    for dx in offsets:
        if not pending.any():
            break
        for dy in offsets:
            costs = _block_costs(block_pixels, sample_plane(previous.luma, gx + dx, gy + dy), rows, cols, bw, bh)
            better = pending & (costs < best)
            best = np.where(better, costs, best)
            best_vectors[better] = (dx, dy)
            pending &= best > 0.0

    field.vectors[...] = best_vectors
    field.residuals[...] = best


def build_motion_field(
    current: Frame,
    previous: Frame,
    config: MotionConfig,
    backend: str = "vectorized",
    max_workers: Optional[int] = None,
) -> MotionField:
    """Match every block of ``current`` against ``previous``.

    Returns only once all blocks are done; the field is never observed
    half-written.
    """
    config.validate()
    check_frame_pair(current, previous)
    config.check_frame(current)
    if backend not in BACKENDS:
        raise ValueError(f"Unknown backend: {backend}")

    field = create_motion_field(current.size, config.block_size)
    cols, rows = field.dims
    logger.debug(
        "Block matching %dx%d blocks (%dx%d px), radius=%s step=%s backend=%s",
        cols,
        rows,
        config.block_width,
        config.block_height,
        config.search_radius,
        config.search_step,
        backend,
    )

    start = time.perf_counter()
    if backend == "threads":
        _build_threaded(current, previous, config, field, max_workers)
    else:
        _build_vectorized(current, previous, config, field)
    logger.debug("Motion field done in %.3fs", time.perf_counter() - start)
    return field
