import numpy as np

from motion_field import create_motion_field
from overlay import END, START, draw_overlay, overlay_segments, plot_motion_field, segments_to_pixels


def test_reference_resolution_point_count():
    field = create_motion_field((1280, 720), (16, 16))
    segments = overlay_segments(field)
    assert segments.points.shape == (7200, 2)
    assert segments.flags.shape == (7200,)
    assert segments.segment_count == 80 * 45


def test_points_alternate_start_and_end():
    field = create_motion_field((40, 20), (16, 16))
    segments = overlay_segments(field)
    np.testing.assert_array_equal(segments.flags[0::2], START)
    np.testing.assert_array_equal(segments.flags[1::2], END)


def test_segment_geometry_in_block_units():
    field = create_motion_field((48, 32), (16, 8))
    field.vectors[2, 1] = (8.0, -4.0)
    segments = overlay_segments(field)
    cols, _ = field.dims
    i = 2 * (2 * cols + 1)
    np.testing.assert_allclose(segments.points[i], [1.5, 2.5])
    np.testing.assert_allclose(segments.points[i + 1], [1.0, 3.0])
    # Zero vectors collapse onto the block center.
    np.testing.assert_allclose(segments.points[0], segments.points[1])
    np.testing.assert_allclose(segments.points[0], [0.5, 0.5])


def test_segments_to_pixels():
    field = create_motion_field((32, 32), (16, 8))
    pixels = segments_to_pixels(overlay_segments(field), field.block_size)
    np.testing.assert_allclose(pixels[0], [8.0, 4.0])


def test_draw_overlay_marks_image_without_touching_input():
    field = create_motion_field((64, 64), (16, 16))
    field.vectors[1, 1] = (8.0, 0.0)
    image = np.zeros((64, 64, 3), dtype=np.uint8)
    drawn = draw_overlay(image, overlay_segments(field), field.block_size)
    assert drawn.shape == (64, 64, 3)
    assert drawn.any()
    assert not image.any()
    # The moving block draws a line left of its center.
    assert drawn[24, 17:21].any()


def test_plot_motion_field_writes_png(tmp_path):
    field = create_motion_field((64, 32), (16, 16))
    field.vectors[0, 0] = (2.0, 1.0)
    out = tmp_path / "plots" / "quiver.png"
    plot_motion_field(field, out, title="test")
    assert out.exists()
    assert out.stat().st_size > 0
