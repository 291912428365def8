"""Motion field container and IO."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np


@dataclass
class MotionField:
    """Per-block motion vectors (x, y) in pixels and their SAD residuals."""

    vectors: np.ndarray
    residuals: np.ndarray
    block_size: Tuple[int, int]
    frame_size: Tuple[int, int]

    @property
    def dims(self) -> Tuple[int, int]:
        """Block grid size as (columns, rows)."""
        return int(self.vectors.shape[1]), int(self.vectors.shape[0])

    @property
    def block_count(self) -> int:
        return int(self.vectors.shape[0] * self.vectors.shape[1])

    def cell(self, bx: int, by: int) -> Tuple[Tuple[float, float], float]:
        vx, vy = self.vectors[by, bx]
        return (float(vx), float(vy)), float(self.residuals[by, bx])

    def magnitudes(self) -> np.ndarray:
        return np.linalg.norm(self.vectors.astype(np.float64), axis=2)


def block_grid_dims(frame_size: Tuple[int, int], block_size: Tuple[int, int]) -> Tuple[int, int]:
    width, height = frame_size
    bw, bh = block_size
    return max(1, math.ceil(width / bw)), max(1, math.ceil(height / bh))


def create_motion_field(frame_size: Tuple[int, int], block_size: Tuple[int, int]) -> MotionField:
    cols, rows = block_grid_dims(frame_size, block_size)
    vectors = np.zeros((rows, cols, 2), dtype=np.float64)
    residuals = np.zeros((rows, cols), dtype=np.float64)
    return MotionField(
        vectors=vectors,
        residuals=residuals,
        block_size=(int(block_size[0]), int(block_size[1])),
        frame_size=(int(frame_size[0]), int(frame_size[1])),
    )


def save_motion_field(bin_path: Path, field: MotionField) -> None:
    bin_path.parent.mkdir(parents=True, exist_ok=True)
    with bin_path.open("wb") as handle:
        handle.write(field.vectors.astype(np.float64).tobytes(order="C"))
        handle.write(field.residuals.astype(np.float64).tobytes(order="C"))


def save_motion_meta(
    json_path: Path,
    field: MotionField,
    search_radius: Optional[float] = None,
    search_step: Optional[float] = None,
) -> None:
    meta = {
        "dims": list(field.dims),
        "block_size": list(field.block_size),
        "frame_size": list(field.frame_size),
        "layout": "vectors:float64[rows][cols][2] then residuals:float64[rows][cols]",
    }
    if search_radius is not None:
        meta["search_radius"] = float(search_radius)
    if search_step is not None:
        meta["search_step"] = float(search_step)
    json_path.parent.mkdir(parents=True, exist_ok=True)
    json_path.write_text(json.dumps(meta, indent=2), encoding="utf-8")


def load_motion_field(bin_path: Path, meta_path: Path) -> MotionField:
    meta = json.loads(meta_path.read_text(encoding="utf-8"))
    cols, rows = (int(v) for v in meta["dims"])

    raw = bin_path.read_bytes()
    vec_bytes = rows * cols * 2 * 8
    expected = vec_bytes + rows * cols * 8
    if len(raw) != expected:
        raise ValueError(f"Motion field file has {len(raw)} bytes, expected {expected}")

    vectors = np.frombuffer(raw[:vec_bytes], dtype=np.float64).reshape(rows, cols, 2).copy()
    residuals = np.frombuffer(raw[vec_bytes:], dtype=np.float64).reshape(rows, cols).copy()
    return MotionField(
        vectors=vectors,
        residuals=residuals,
        block_size=tuple(int(v) for v in meta["block_size"]),
        frame_size=tuple(int(v) for v in meta["frame_size"]),
    )


def top_blocks(field: MotionField, count: int) -> List[Tuple[Tuple[int, int], np.ndarray, float]]:
    """Blocks with the largest motion, as ((bx, by), vector, residual)."""
    flat = field.magnitudes().ravel()
    if count >= flat.size:
        indices = np.argsort(-flat, kind="stable")
    else:
        indices = np.argpartition(flat, -count)[-count:]
        indices = indices[np.argsort(-flat[indices], kind="stable")]

    results = []
    for idx in indices[:count]:
        by, bx = np.unravel_index(int(idx), field.residuals.shape)
        results.append(((int(bx), int(by)), field.vectors[by, bx].copy(), float(field.residuals[by, bx])))
    return results
