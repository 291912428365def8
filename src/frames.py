"""Immutable frame buffers with clamped point/bilinear sampling."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Tuple, Union

import cv2
import numpy as np

ArrayLike = Union[float, np.ndarray]

FILTERS = ("point", "bilinear")


class InvalidInputError(ValueError):
    """Raised for frames or settings the motion estimator cannot work with."""


@dataclass(frozen=True)
class Frame:
    """A read-only H x W x C sample grid plus its luminance plane.

    Coordinates are pixel centers: sampling at integer (x, y) returns pixel
    (x, y) exactly, and anything outside the frame is clamped to the border.
    """

    pixels: np.ndarray
    luma: np.ndarray
    max_value: float

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    @property
    def channels(self) -> int:
        return int(self.pixels.shape[2])

    def rgb(self) -> np.ndarray:
        if self.channels >= 3:
            return self.pixels[..., :3]
        return np.repeat(self.pixels[..., :1], 3, axis=2)

    def sample(self, x: ArrayLike, y: ArrayLike, filter: str = "bilinear", plane: str = "luma") -> np.ndarray:
        if plane == "luma":
            source = self.luma
        elif plane == "rgb":
            source = self.rgb()
        elif plane == "pixels":
            source = self.pixels
        else:
            raise ValueError(f"Unknown plane: {plane}")
        return sample_plane(source, x, y, filter)


LUMA_WEIGHTS = (0.299, 0.587, 0.114)


def _luminance(pixels: np.ndarray) -> np.ndarray:
    # Plain elementwise arithmetic so equal pixels always get equal luma.
    if pixels.shape[2] >= 3:
        wr, wg, wb = (np.float32(w) for w in LUMA_WEIGHTS)
        return pixels[..., 0] * wr + pixels[..., 1] * wg + pixels[..., 2] * wb
    return pixels[..., 0].copy()


def frame_from_array(array: np.ndarray, max_value: float | None = None) -> Frame:
    """Wrap an (H, W) or (H, W, C) array as an immutable Frame.

    ``max_value`` defaults to the integer dtype's maximum (255 for uint8) or 1.0
    for float input; it is the "fully opaque" alpha used on reconstruction.
    """
    arr = np.asarray(array)
    if arr.ndim == 2:
        arr = arr[:, :, None]
    if arr.ndim != 3:
        raise InvalidInputError(f"Expected a 2D or 3D pixel array, got shape {arr.shape}")
    if arr.shape[0] == 0 or arr.shape[1] == 0 or arr.shape[2] == 0:
        raise InvalidInputError(f"Frame has zero size: {arr.shape}")

    if max_value is None:
        max_value = float(np.iinfo(arr.dtype).max) if np.issubdtype(arr.dtype, np.integer) else 1.0

    pixels = arr.astype(np.float32, copy=True)
    luma = _luminance(pixels).astype(np.float32)
    pixels.setflags(write=False)
    luma.setflags(write=False)
    return Frame(pixels=pixels, luma=luma, max_value=float(max_value))


def read_frame(path: str) -> Frame:
    img = cv2.imread(path, cv2.IMREAD_UNCHANGED)
    if img is None:
        raise FileNotFoundError(f"Could not read image: {path}")
    if img.ndim == 3 and img.shape[2] == 4:
        img = cv2.cvtColor(img, cv2.COLOR_BGRA2RGBA)
    elif img.ndim == 3 and img.shape[2] == 3:
        img = cv2.cvtColor(img, cv2.COLOR_BGR2RGB)
    return frame_from_array(img)


def write_image(path: Path, pixels: np.ndarray, max_value: float = 255.0) -> None:
    """Write RGB/RGBA/gray float pixels in [0, max_value] as an 8-bit image."""
    img = np.clip(np.asarray(pixels, dtype=np.float64) * (255.0 / max_value), 0, 255)
    img = np.rint(img).astype(np.uint8)
    if img.ndim == 3 and img.shape[2] == 4:
        img = cv2.cvtColor(img, cv2.COLOR_RGBA2BGRA)
    elif img.ndim == 3 and img.shape[2] == 3:
        img = cv2.cvtColor(img, cv2.COLOR_RGB2BGR)
    path.parent.mkdir(parents=True, exist_ok=True)
    if not cv2.imwrite(str(path), img):
        raise RuntimeError(f"Could not write image: {path}")


def check_frame_pair(current: Frame, previous: Frame) -> None:
    if current.size != previous.size:
        raise InvalidInputError(
            f"Frame sizes do not match: {current.width}x{current.height} vs {previous.width}x{previous.height}"
        )
    if current.max_value != previous.max_value:
        raise InvalidInputError(
            f"Frame value ranges do not match: 0..{current.max_value:g} vs 0..{previous.max_value:g}"
        )


def sample_plane(plane: np.ndarray, x: ArrayLike, y: ArrayLike, filter: str = "bilinear") -> np.ndarray:
    """Sample a 2D (or H x W x C) plane at pixel-center coordinates.

    Coordinates are clamped to [0, W-1] x [0, H-1] before filtering, which is
    the same as clamp-to-edge addressing on the texels.
    """
    h, w = plane.shape[:2]
    xs = np.clip(np.asarray(x, dtype=np.float64), 0.0, w - 1)
    ys = np.clip(np.asarray(y, dtype=np.float64), 0.0, h - 1)

    if filter not in FILTERS:
        raise ValueError(f"Unknown filter: {filter}")
    if filter == "point":
        xi = np.floor(xs + 0.5).astype(np.intp)
        yi = np.floor(ys + 0.5).astype(np.intp)
        return plane[yi, xi].astype(np.float64)

    x0 = np.floor(xs).astype(np.intp)
    y0 = np.floor(ys).astype(np.intp)
    x1 = np.minimum(x0 + 1, w - 1)
    y1 = np.minimum(y0 + 1, h - 1)
    fx = xs - x0
    fy = ys - y0
    if plane.ndim == 3:
        fx = fx[..., None]
        fy = fy[..., None]

    top = plane[y0, x0] * (1.0 - fx) + plane[y0, x1] * fx
    bottom = plane[y1, x0] * (1.0 - fx) + plane[y1, x1] * fx
    return top * (1.0 - fy) + bottom * fy
