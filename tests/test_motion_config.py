import argparse
import json

import pytest

from frames import InvalidInputError
from motion_config import MotionConfig, add_config_arguments, config_from_args, config_from_dict, load_config


def _parse(argv):
    parser = argparse.ArgumentParser()
    add_config_arguments(parser)
    return parser.parse_args(argv)


def test_defaults_match_reference_settings():
    config = MotionConfig()
    config.validate()
    assert config.block_size == (16, 16)
    assert config.search_radius == 32.0
    assert config.search_step == 1.0
    assert config.frame_width is None and config.frame_height is None


@pytest.mark.parametrize(
    "values",
    [
        {"block_width": 0},
        {"block_height": -4},
        {"search_radius": -1.0},
        {"search_step": 0.0},
        {"search_radius": float("inf")},
        {"search_radius": float("nan")},
        {"search_step": float("inf")},
        {"search_step": float("nan")},
        {"frame_width": 0},
    ],
)
def test_invalid_values_are_rejected(values):
    with pytest.raises(InvalidInputError):
        MotionConfig(**values).validate()


def test_config_from_dict_coerces_types():
    config = config_from_dict({"block_width": "8", "search_radius": 4, "frame_height": None})
    assert config.block_width == 8
    assert config.search_radius == 4.0
    assert isinstance(config.search_radius, float)


def test_unknown_keys_are_rejected():
    with pytest.raises(InvalidInputError):
        config_from_dict({"block_sise": 8})


def test_load_config(tmp_path):
    path = tmp_path / "motion.json"
    path.write_text(json.dumps({"block_width": 8, "block_height": 4, "search_step": 0.5}), encoding="utf-8")
    config = load_config(path)
    assert config.block_size == (8, 4)
    assert config.search_step == 0.5

    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(InvalidInputError):
        load_config(path)


def test_flags_override_config_file(tmp_path):
    path = tmp_path / "motion.json"
    path.write_text(json.dumps({"block_width": 8, "search_radius": 16}), encoding="utf-8")
    config = config_from_args(_parse(["--config", str(path), "--search-radius", "4", "--frame-size", "1280", "720"]))
    assert config.block_width == 8
    assert config.search_radius == 4.0
    assert (config.frame_width, config.frame_height) == (1280, 720)


def test_flags_without_config_file():
    config = config_from_args(_parse(["--block-size", "32", "8"]))
    assert config.block_size == (32, 8)
    assert config.search_radius == 32.0
    with pytest.raises(InvalidInputError):
        config_from_args(_parse(["--search-step", "0"]))


def test_non_finite_radius_flag_is_rejected():
    with pytest.raises(InvalidInputError):
        config_from_args(_parse(["--search-radius", "inf"]))
