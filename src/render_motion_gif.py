"""Render a GIF of block motion overlays for consecutive video frames."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import List, Optional

import cv2
import numpy as np
from PIL import Image

from block_matching import BACKENDS
from frames import frame_from_array
from motion_config import add_config_arguments, config_from_args
from pipeline import overlay_image, run_pipeline
from reconstruct import psnr


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Render block motion overlay GIF from a video")
    parser.add_argument("--video", required=True, help="Input video file")
    parser.add_argument("--output", default="output", help="Output directory")
    parser.add_argument("--duration", type=int, default=120, help="GIF frame duration in ms")
    parser.add_argument("--stride", type=int, default=1, help="Use every Nth video frame")
    parser.add_argument("--max-frames", type=int, default=0, help="Stop after N frame pairs")
    parser.add_argument("--width", type=int, default=0, help="Resize frames to this width (keeps aspect)")
    parser.add_argument("--backend", choices=BACKENDS, default="vectorized")
    parser.add_argument("--workers", type=int, default=None)
    parser.add_argument("--verbose", action="store_true")
    add_config_arguments(parser)
    return parser.parse_args(argv)


def _resize(frame: np.ndarray, width: int) -> np.ndarray:
    if not width or frame.shape[1] == width:
        return frame
    height = int(round(frame.shape[0] * width / float(frame.shape[1])))
    return cv2.resize(frame, (width, height), interpolation=cv2.INTER_AREA)


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    if not Path(args.video).exists():
        raise SystemExit(f"Missing video: {args.video}")
    config = config_from_args(args)
    out_dir = Path(args.output)
    out_dir.mkdir(parents=True, exist_ok=True)

    cap = cv2.VideoCapture(args.video)
    if not cap.isOpened():
        raise RuntimeError(f"Could not open video: {args.video}")

    images: List[Image.Image] = []
    stats = []
    prev_frame = None
    frame_idx = 0
    try:
        while True:
            ok, bgr = cap.read()
            if not ok:
                break
            frame_idx += 1
            if (frame_idx - 1) % max(1, args.stride) != 0:
                continue

            rgb = cv2.cvtColor(_resize(bgr, args.width), cv2.COLOR_BGR2RGB)
            curr_frame = frame_from_array(rgb)
            if prev_frame is None:
                prev_frame = curr_frame
                continue

            # Each pair is estimated from scratch; nothing carries over.
            result = run_pipeline(curr_frame, prev_frame, config, backend=args.backend, max_workers=args.workers)
            images.append(Image.fromarray(overlay_image(curr_frame, result)))
            score = psnr(curr_frame.rgb(), result.reconstruction[..., :3], prev_frame.max_value)
            stats.append(
                {
                    "frame_index": frame_idx - 1,
                    "mean_residual": float(result.field.residuals.mean()),
                    "psnr": None if np.isinf(score) else score,
                }
            )
            prev_frame = curr_frame

            if args.max_frames and len(images) >= args.max_frames:
                break
    finally:
        cap.release()

    (out_dir / "motion_stats.json").write_text(json.dumps(stats, indent=2), encoding="utf-8")

    if images:
        gif_path = out_dir / "motion_overlay.gif"
        images[0].save(
            gif_path,
            save_all=True,
            append_images=images[1:],
            duration=args.duration,
            loop=0,
        )
        print(gif_path)
    else:
        print("No frame pairs processed")


if __name__ == "__main__":
    main()
