import json

import cv2
import numpy as np
import pytest

import pipeline
import render_motion_gif
from frames import InvalidInputError, frame_from_array
from generate_synth_pair import translated_pair
from motion_config import MotionConfig
from motion_field import load_motion_field


def test_identical_solid_frames_end_to_end():
    frame = frame_from_array(np.full((48, 64, 3), (30, 60, 90), dtype=np.uint8))
    result = pipeline.run_pipeline(frame, frame, MotionConfig(search_radius=4.0))
    assert not result.field.vectors.any()
    assert not result.field.residuals.any()
    np.testing.assert_array_equal(result.reconstruction[..., :3], frame.pixels)
    np.testing.assert_array_equal(result.reconstruction[..., 3], 255.0)
    assert result.segments.points.shape == (2 * 4 * 3, 2)


def test_translated_pair_end_to_end(shifted_frames, small_config):
    current, previous = shifted_frames
    result = pipeline.run_pipeline(current, previous, small_config, backend="threads", max_workers=2)
    assert tuple(result.field.vectors[1, 0]) == (3.0, -2.0)
    assert result.field.residuals[1, 0] == 0.0


def test_translated_pair_layout():
    previous, current = translated_pair(32, 16, (3, -2), seed=1)
    assert previous.shape == current.shape == (16, 32, 3)
    assert current.dtype == np.uint8
    np.testing.assert_array_equal(current[5, 7], previous[3, 10])


def _write_pair(tmp_path):
    previous, current = translated_pair(64, 48, (2, 1), seed=4)
    cv2.imwrite(str(tmp_path / "previous.png"), previous)
    cv2.imwrite(str(tmp_path / "current.png"), current)
    return tmp_path / "current.png", tmp_path / "previous.png"


def test_cli_writes_outputs(tmp_path, capsys):
    current_path, previous_path = _write_pair(tmp_path)
    out_dir = tmp_path / "out"
    pipeline.main(
        [
            "--current",
            str(current_path),
            "--previous",
            str(previous_path),
            "--output",
            str(out_dir),
            "--search-radius",
            "3",
            "--top-k",
            "3",
        ]
    )

    for name in ("motion_field.bin", "motion_field.json", "reconstructed.png", "overlay.png", "motion_quiver.png"):
        assert (out_dir / name).exists(), name

    summary = json.loads((out_dir / "summary.json").read_text(encoding="utf-8"))
    assert summary["dims"] == [4, 3]
    assert summary["config"]["search_radius"] == 3.0
    assert len(summary["top_blocks"]) == 3

    field = load_motion_field(out_dir / "motion_field.bin", out_dir / "motion_field.json")
    assert tuple(field.vectors[0, 0]) == (2.0, 1.0)
    assert field.residuals[0, 0] == 0.0

    assert "blocks=4x3" in capsys.readouterr().out


def test_cli_missing_frame(tmp_path):
    with pytest.raises(SystemExit):
        pipeline.main(["--current", str(tmp_path / "a.png"), "--previous", str(tmp_path / "b.png")])


def test_render_motion_gif(tmp_path):
    video_path = tmp_path / "clip.avi"
    writer = cv2.VideoWriter(str(video_path), cv2.VideoWriter_fourcc(*"MJPG"), 10.0, (64, 48))
    if not writer.isOpened():
        pytest.skip("No video writer backend available")
    rng = np.random.default_rng(9)
    base = rng.integers(0, 256, size=(48, 64, 3), dtype=np.uint8)
    for i in range(4):
        writer.write(np.roll(base, shift=i, axis=1))
    writer.release()

    out_dir = tmp_path / "gif"
    render_motion_gif.main(
        ["--video", str(video_path), "--output", str(out_dir), "--search-radius", "2", "--max-frames", "2"]
    )
    stats = json.loads((out_dir / "motion_stats.json").read_text(encoding="utf-8"))
    assert len(stats) == 2
    assert (out_dir / "motion_overlay.gif").exists()


def test_frames_on_different_scales_are_rejected():
    current = frame_from_array(np.zeros((16, 16, 3), dtype=np.uint8))
    previous = frame_from_array(np.zeros((16, 16, 3), dtype=np.float32))
    with pytest.raises(InvalidInputError):
        pipeline.run_pipeline(current, previous, MotionConfig(search_radius=1.0))


def test_float_frames_reconstruct_on_unit_scale():
    rng = np.random.default_rng(6)
    frame = frame_from_array(rng.uniform(0.0, 1.0, size=(16, 32, 3)).astype(np.float32))
    result = pipeline.run_pipeline(frame, frame, MotionConfig(search_radius=1.0))
    np.testing.assert_array_equal(result.reconstruction[..., 3], 1.0)
