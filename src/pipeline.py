"""End-to-end block motion estimation for one frame pair."""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import numpy as np

from block_matching import BACKENDS, build_motion_field
from frames import Frame, read_frame, write_image
from motion_config import MotionConfig, add_config_arguments, config_from_args
from motion_field import MotionField, save_motion_field, save_motion_meta, top_blocks
from overlay import OverlaySegments, draw_overlay, overlay_segments, plot_motion_field
from reconstruct import psnr, reconstruct_frame


@dataclass
class PipelineResult:
    field: MotionField
    segments: OverlaySegments
    reconstruction: np.ndarray


def run_pipeline(
    current: Frame,
    previous: Frame,
    config: MotionConfig,
    backend: str = "vectorized",
    max_workers: Optional[int] = None,
) -> PipelineResult:
    field = build_motion_field(current, previous, config, backend=backend, max_workers=max_workers)
    segments = overlay_segments(field)
    reconstruction = reconstruct_frame(previous, field)
    return PipelineResult(field=field, segments=segments, reconstruction=reconstruction)


def overlay_image(frame: Frame, result: PipelineResult) -> np.ndarray:
    base = np.clip(frame.rgb() * (255.0 / frame.max_value), 0, 255).astype(np.uint8)
    return draw_overlay(base, result.segments, result.field.block_size)


def write_outputs(
    out_dir: Path,
    current: Frame,
    previous: Frame,
    result: PipelineResult,
    config: MotionConfig,
    top_k: int,
) -> dict:
    out_dir.mkdir(parents=True, exist_ok=True)
    field = result.field
    save_motion_field(out_dir / "motion_field.bin", field)
    save_motion_meta(
        out_dir / "motion_field.json",
        field,
        search_radius=config.search_radius,
        search_step=config.search_step,
    )
    write_image(out_dir / "reconstructed.png", result.reconstruction, previous.max_value)
    write_image(out_dir / "overlay.png", overlay_image(current, result), 255.0)
    plot_motion_field(field, out_dir / "motion_quiver.png", title="Block motion (block center -> source)")

    score = psnr(current.rgb(), result.reconstruction[..., :3], previous.max_value)
    summary = {
        "config": config.to_dict(),
        "dims": list(field.dims),
        "mean_residual": float(field.residuals.mean()),
        "zero_residual_blocks": int(np.count_nonzero(field.residuals == 0.0)),
        "psnr": None if np.isinf(score) else score,
        "top_blocks": [
            {"block": list(block), "vector": [float(v) for v in vector], "residual": residual}
            for block, vector, residual in top_blocks(field, top_k)
        ],
    }
    (out_dir / "summary.json").write_text(json.dumps(summary, indent=2), encoding="utf-8")
    return summary


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Block-matching motion estimation for a frame pair")
    parser.add_argument("--current", required=True, help="Current frame image")
    parser.add_argument("--previous", required=True, help="Previous (reference) frame image")
    parser.add_argument("--output", default="output", help="Output directory")
    parser.add_argument("--backend", choices=BACKENDS, default="vectorized")
    parser.add_argument("--workers", type=int, default=None, help="Thread count for --backend threads")
    parser.add_argument("--top-k", type=int, default=5)
    parser.add_argument("--verbose", action="store_true")
    add_config_arguments(parser)
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    for path in (args.current, args.previous):
        if not Path(path).exists():
            raise SystemExit(f"Missing frame: {path}")

    config = config_from_args(args)
    current = read_frame(args.current)
    previous = read_frame(args.previous)

    result = run_pipeline(current, previous, config, backend=args.backend, max_workers=args.workers)
    summary = write_outputs(Path(args.output), current, previous, result, config, args.top_k)

    cols, rows = result.field.dims
    psnr_text = "inf" if summary["psnr"] is None else f"{summary['psnr']:.2f} dB"
    print(f"blocks={cols}x{rows} mean_residual={summary['mean_residual']:.1f} psnr={psnr_text}")
    for entry in summary["top_blocks"]:
        vec_str = ", ".join(f"{v: .2f}" for v in entry["vector"])
        print(f"  block {tuple(entry['block'])} -> [{vec_str}] residual={entry['residual']:.1f}")


if __name__ == "__main__":
    main()
