"""Motion field overlays: segment lists, image drawing and quiver plots."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

import cv2
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402

from motion_field import MotionField  # noqa: E402

START = 0
END = 1


@dataclass
class OverlaySegments:
    """Interleaved start/end points in block-grid units, two per block."""

    points: np.ndarray
    flags: np.ndarray

    @property
    def segment_count(self) -> int:
        return int(self.points.shape[0] // 2)


def overlay_segments(field: MotionField) -> OverlaySegments:
    """One segment per block (row-major): block center -> center - vector / block size."""
    cols, rows = field.dims
    bw, bh = field.block_size
    bx, by = np.meshgrid(np.arange(cols, dtype=np.float64), np.arange(rows, dtype=np.float64))
    starts = np.stack([bx + 0.5, by + 0.5], axis=-1).reshape(-1, 2)
    scale = np.array([bw, bh], dtype=np.float64)
    ends = starts - field.vectors.reshape(-1, 2) / scale

    points = np.empty((starts.shape[0] * 2, 2), dtype=np.float64)
    points[0::2] = starts
    points[1::2] = ends
    flags = np.tile(np.array([START, END], dtype=np.uint8), starts.shape[0])
    return OverlaySegments(points=points, flags=flags)


def segments_to_pixels(segments: OverlaySegments, block_size: Tuple[int, int]) -> np.ndarray:
    return segments.points * np.array(block_size, dtype=np.float64)


def draw_overlay(
    image: np.ndarray,
    segments: OverlaySegments,
    block_size: Tuple[int, int],
    color: Tuple[int, int, int] = (255, 64, 64),
    start_color: Tuple[int, int, int] = (64, 255, 64),
    thickness: int = 1,
) -> np.ndarray:
    """Draw segments onto a copy of an 8-bit RGB image."""
    canvas = np.ascontiguousarray(image[..., :3], dtype=np.uint8).copy()
    pixels = segments_to_pixels(segments, block_size)
    # Pixel centers sit at integer coordinates; grid points sit on pixel edges.
    pixels = np.rint(pixels - 0.5).astype(int)

    for i in range(0, pixels.shape[0], 2):
        start = tuple(int(v) for v in pixels[i])
        end = tuple(int(v) for v in pixels[i + 1])
        if segments.flags[i] != START or segments.flags[i + 1] != END:
            raise ValueError(f"Segment {i // 2} is not a start/end pair")
        if start != end:
            cv2.line(canvas, start, end, color, thickness, cv2.LINE_AA)
        cv2.circle(canvas, start, 1, start_color, -1)
    return canvas


def plot_motion_field(field: MotionField, out_path: Path, title: str | None = None) -> None:
    cols, rows = field.dims
    bw, bh = field.block_size
    bx, by = np.meshgrid(np.arange(cols), np.arange(rows))
    cx = (bx + 0.5) * bw
    cy = (by + 0.5) * bh
    u = -field.vectors[..., 0]
    v = -field.vectors[..., 1]

    fig = plt.figure(figsize=(8, 8 * field.frame_size[1] / max(field.frame_size[0], 1)))
    ax = fig.add_subplot(111)
    ax.quiver(cx, cy, u, v, field.residuals, angles="xy", scale_units="xy", scale=1.0, cmap="viridis")
    ax.set_xlim(0, field.frame_size[0])
    ax.set_ylim(field.frame_size[1], 0)
    ax.set_aspect("equal")
    ax.set_xlabel("x (px)")
    ax.set_ylabel("y (px)")
    if title:
        ax.set_title(title)

    out_path.parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(out_path, dpi=150, bbox_inches="tight")
    plt.close(fig)
