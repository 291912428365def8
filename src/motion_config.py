"""Runtime configuration for block-matching motion estimation."""

from __future__ import annotations

import argparse
import json
import math
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Optional, Tuple

from frames import Frame, InvalidInputError

REFERENCE_FRAME_SIZE = (1280, 720)


@dataclass(frozen=True)
class MotionConfig:
    block_width: int = 16
    block_height: int = 16
    search_radius: float = 32.0
    search_step: float = 1.0
    # None means "take the size from the frames".
    frame_width: Optional[int] = None
    frame_height: Optional[int] = None

    @property
    def block_size(self) -> Tuple[int, int]:
        return self.block_width, self.block_height

    def validate(self) -> None:
        if self.block_width <= 0 or self.block_height <= 0:
            raise InvalidInputError(f"Block size must be positive, got {self.block_width}x{self.block_height}")
        if not math.isfinite(self.search_radius) or self.search_radius < 0:
            raise InvalidInputError(f"search_radius must be finite and >= 0, got {self.search_radius}")
        if not math.isfinite(self.search_step) or self.search_step <= 0:
            raise InvalidInputError(f"search_step must be finite and > 0, got {self.search_step}")
        for name in ("frame_width", "frame_height"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise InvalidInputError(f"{name} must be positive, got {value}")

    def check_frame(self, frame: Frame) -> None:
        if self.frame_width is not None and frame.width != self.frame_width:
            raise InvalidInputError(f"Expected frame width {self.frame_width}, got {frame.width}")
        if self.frame_height is not None and frame.height != self.frame_height:
            raise InvalidInputError(f"Expected frame height {self.frame_height}, got {frame.height}")

    def to_dict(self) -> dict:
        return asdict(self)


def config_from_dict(data: dict) -> MotionConfig:
    known = {f.name for f in fields(MotionConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise InvalidInputError(f"Unknown config keys: {', '.join(unknown)}")

    values = {}
    for key, value in data.items():
        if value is None:
            values[key] = None
        elif key in ("search_radius", "search_step"):
            values[key] = float(value)
        else:
            values[key] = int(value)
    config = MotionConfig(**values)
    config.validate()
    return config


def load_config(path: Path) -> MotionConfig:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise InvalidInputError("Config file must contain a JSON object")
    return config_from_dict(data)


def add_config_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", default=None, help="JSON file with motion settings")
    parser.add_argument("--block-size", nargs=2, type=int, default=None, metavar=("W", "H"))
    parser.add_argument("--search-radius", type=float, default=None)
    parser.add_argument("--search-step", type=float, default=None)
    parser.add_argument("--frame-size", nargs=2, type=int, default=None, metavar=("W", "H"))


def config_from_args(args: argparse.Namespace) -> MotionConfig:
    """Start from --config (or defaults) and let explicit flags override it."""
    config = load_config(Path(args.config)) if args.config else MotionConfig()

    overrides = {}
    if args.block_size is not None:
        overrides["block_width"], overrides["block_height"] = args.block_size
    if args.search_radius is not None:
        overrides["search_radius"] = float(args.search_radius)
    if args.search_step is not None:
        overrides["search_step"] = float(args.search_step)
    if args.frame_size is not None:
        overrides["frame_width"], overrides["frame_height"] = args.frame_size

    config = replace(config, **overrides)
    config.validate()
    return config
