"""Generate a textured frame pair related by a known global translation."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Tuple

import cv2
import numpy as np

from motion_config import REFERENCE_FRAME_SIZE


def make_texture(
    rng: np.random.Generator, width: int, height: int, channels: int = 3, blur_ksize: int = 3
) -> np.ndarray:
    img = rng.uniform(0.0, 255.0, size=(height, width, channels)).astype(np.float32)
    if blur_ksize and blur_ksize > 1:
        img = cv2.GaussianBlur(img, (blur_ksize, blur_ksize), 0)
        if img.ndim == 2:
            img = img[:, :, None]
    return np.clip(np.rint(img), 0, 255).astype(np.uint8)


def translated_pair(
    width: int,
    height: int,
    shift: Tuple[int, int],
    seed: int = 7,
    channels: int = 3,
    blur_ksize: int = 3,
) -> Tuple[np.ndarray, np.ndarray]:
    """Return (previous, current) with current[y, x] == previous[y + dy, x + dx].

    The block matcher should then report the vector (dx, dy) away from the
    borders, where the shift wraps around.
    """
    dx, dy = shift
    rng = np.random.default_rng(seed)
    previous = make_texture(rng, width, height, channels, blur_ksize)
    current = np.roll(previous, shift=(-dy, -dx), axis=(0, 1))
    return previous, current


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate a synthetic frame pair")
    parser.add_argument("--out", required=True, help="Output folder")
    parser.add_argument("--width", type=int, default=REFERENCE_FRAME_SIZE[0])
    parser.add_argument("--height", type=int, default=REFERENCE_FRAME_SIZE[1])
    parser.add_argument("--shift", nargs=2, type=int, default=[3, -2], metavar=("DX", "DY"))
    parser.add_argument("--blur", type=int, default=3)
    parser.add_argument("--gray", action="store_true", help="Write single-channel frames")
    parser.add_argument("--seed", type=int, default=7)
    args = parser.parse_args()

    out_dir = Path(args.out)
    out_dir.mkdir(parents=True, exist_ok=True)

    previous, current = translated_pair(
        args.width,
        args.height,
        (args.shift[0], args.shift[1]),
        seed=args.seed,
        channels=1 if args.gray else 3,
        blur_ksize=args.blur,
    )
    if args.gray:
        previous, current = previous[..., 0], current[..., 0]
    cv2.imwrite(str(out_dir / "previous.png"), previous)
    cv2.imwrite(str(out_dir / "current.png"), current)

    meta = {
        "width": args.width,
        "height": args.height,
        "shift": list(args.shift),
        "seed": args.seed,
        "description": "current(x, y) = previous(x + dx, y + dy), wrapping at the borders",
    }
    (out_dir / "pair.json").write_text(json.dumps(meta, indent=2), encoding="utf-8")
    print(out_dir)


if __name__ == "__main__":
    main()
