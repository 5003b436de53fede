"""Tests for the affine transform state behind the crop window."""

import pytest
from PySide6.QtCore import QPointF, QRectF
from PySide6.QtGui import QTransform

from iCrop.core.transform import (
    AffineTransformState,
    compute_min_scale,
    corners_from_rect,
    cover_matrix,
    matrix_angle,
    matrix_scale,
    trap_to_rect,
)


def _approx_points(points):
    return [pytest.approx(p, abs=1e-6) for p in points]


@pytest.fixture
def calls():
    return {"scale": [], "angle": []}


@pytest.fixture
def state(calls):
    transform = AffineTransformState(
        on_scale_changed=calls["scale"].append,
        on_angle_changed=calls["angle"].append,
    )
    transform.set_image_bounds(100, 50)
    return transform


def test_unlaid_out_state_has_no_points():
    transform = AffineTransformState()
    assert not transform.is_laid_out()
    assert transform.corners() == ()
    assert transform.center() is None
    assert transform.current_image_rect().isNull()


def test_layout_records_initial_corners(state):
    assert state.is_laid_out()
    assert state.corners() == ((0.0, 0.0), (100.0, 0.0), (100.0, 50.0), (0.0, 50.0))
    assert state.center() == (50.0, 25.0)
    assert state.current_scale() == pytest.approx(1.0)
    assert state.current_angle() == pytest.approx(0.0)


def test_translate_moves_points_and_keeps_scale_and_angle(state, calls):
    state.translate(10, -5)

    assert list(state.corners()) == _approx_points(
        [(10, -5), (110, -5), (110, 45), (10, 45)]
    )
    assert state.center() == pytest.approx((60, 20))
    assert state.current_scale() == pytest.approx(1.0)
    assert state.current_angle() == pytest.approx(0.0)
    assert calls == {"scale": [], "angle": []}


def test_zero_translation_is_a_no_op(state):
    before = state.snapshot()
    state.translate(0, 0)
    assert state.snapshot() == before


def test_scale_about_keeps_pivot_fixed(state, calls):
    state.scale_about(2.0, 50, 25)

    assert state.current_scale() == pytest.approx(2.0)
    assert state.center() == pytest.approx((50, 25))
    assert state.map_point(50, 25) == pytest.approx((50, 25))
    assert calls["scale"] == [pytest.approx(2.0)]
    assert calls["angle"] == []


def test_scale_about_origin_stretches_corners(state):
    state.scale_about(3.0, 0, 0)
    assert list(state.corners()) == _approx_points(
        [(0, 0), (300, 0), (300, 150), (0, 150)]
    )


def test_unit_scale_leaves_state_unchanged(state):
    state.translate(7, 3)
    before = state.snapshot()

    state.scale_about(1.0, 40, 40)

    after = state.snapshot()
    assert after.values == pytest.approx(before.values)
    assert list(after.corners) == _approx_points(before.corners)


def test_zero_scale_factor_is_ignored(state, calls):
    state.scale_about(0.0, 10, 10)
    assert state.current_scale() == pytest.approx(1.0)
    assert calls["scale"] == []


def test_rotation_is_clockwise_on_screen(state, calls):
    state.rotate_about(90, 50, 25)

    assert state.current_angle() == pytest.approx(90.0)
    assert state.current_scale() == pytest.approx(1.0)
    assert state.center() == pytest.approx((50, 25))
    # The top-left corner swings up and to the right of the pivot.
    assert state.corners()[0] == pytest.approx((75, -25))
    assert calls["angle"] == [pytest.approx(90.0)]


def test_rotation_swaps_bounding_rect_sides(state):
    state.rotate_about(90, 50, 25)
    rect = state.current_image_rect()
    assert rect.width() == pytest.approx(50)
    assert rect.height() == pytest.approx(100)
    assert rect.center().x() == pytest.approx(50)
    assert rect.center().y() == pytest.approx(25)


def test_rotations_accumulate_and_wrap(state):
    state.rotate_about(30, 0, 0)
    state.rotate_about(-45, 0, 0)
    assert state.current_angle() == pytest.approx(-15.0)

    state.rotate_about(215, 0, 0)
    assert state.current_angle() == pytest.approx(-160.0)


def test_translation_after_rotation_keeps_derived_values(state):
    state.scale_about(1.5, 10, 10)
    state.rotate_about(20, 30, 30)
    scale, angle = state.current_scale(), state.current_angle()

    state.translate(-12.5, 40)

    assert state.current_scale() == pytest.approx(scale)
    assert state.current_angle() == pytest.approx(angle)


def test_corners_always_match_matrix_mapping(state):
    state.scale_about(2.5, 13, 7)
    state.rotate_about(33, 60, 10)
    state.translate(-4, 9)
    matrix = state.matrix()

    expected = []
    for x, y in corners_from_rect(QRectF(0, 0, 100, 50)):
        mapped = matrix.map(QPointF(x, y))
        expected.append((mapped.x(), mapped.y()))
    assert list(state.corners()) == _approx_points(expected)
    assert state.current_image_rect() == trap_to_rect(state.corners())


def test_set_matrix_does_not_notify(state, calls):
    state.set_matrix(QTransform.fromScale(4, 4))
    assert state.current_scale() == pytest.approx(4.0)
    assert state.corners()[2] == pytest.approx((400, 200))
    assert calls == {"scale": [], "angle": []}


def test_matrix_returns_a_copy(state):
    copy = state.matrix()
    copy.translate(100, 100)
    assert state.map_point(0, 0) == pytest.approx((0, 0))


def test_snapshot_round_trips_matrix(state):
    state.rotate_about(12, 5, 5)
    state.scale_about(1.7, 20, 20)
    snapshot = state.snapshot()

    assert snapshot.to_qtransform() == state.matrix()
    assert snapshot.scale == pytest.approx(matrix_scale(state.matrix()))
    assert snapshot.angle == pytest.approx(matrix_angle(state.matrix()))

    state.translate(50, 50)
    assert snapshot.center != state.center()


def test_compute_min_scale_covers_crop_window():
    assert compute_min_scale(QRectF(0, 0, 300, 200), 100, 100) == pytest.approx(3.0)
    assert compute_min_scale(QRectF(0, 0, 300, 200), 600, 100) == pytest.approx(2.0)
    assert compute_min_scale(QRectF(0, 0, 300, 200), 0, 100) == 1.0


def test_cover_matrix_centres_image_on_crop_window():
    crop_rect = QRectF(20, 40, 300, 300)
    transform = AffineTransformState()
    transform.set_image_bounds(200, 100)
    transform.set_matrix(cover_matrix(crop_rect, 200, 100))

    rect = transform.current_image_rect()
    assert transform.current_scale() == pytest.approx(3.0)
    assert rect.height() == pytest.approx(300)
    assert rect.width() == pytest.approx(600)
    assert rect.center().x() == pytest.approx(crop_rect.center().x())
    assert rect.center().y() == pytest.approx(crop_rect.center().y())
