import pytest

from face.policy import (
    BOUNDS_SCALE_TOLERANCE,
    CENTRE_OFFSET_TOLERANCE,
    PITCH_MAX,
    QUALITY_MIN,
    ROLL_MAX,
    ROLL_MIN,
    YAW_MAX,
    PhotoStandardThresholds,
    classify_bounds,
    classify_pose,
    classify_quality,
)
from schemas import BoundsState, Rect


class TestBounds:
    """Face box vs layout guide"""

    def test_same_box_is_appropriate(self, guide):
        assert classify_bounds(guide, guide) is BoundsState.APPROPRIATE

    @pytest.mark.parametrize("x,y", [(0, 0), (-500, 40), (900, -300), (37.5, 1000)])
    def test_too_wide_is_too_large_regardless_of_position(self, guide, x, y):
        box = Rect(x, y, guide.width * BOUNDS_SCALE_TOLERANCE + 0.01, 300)
        assert classify_bounds(box, guide) is BoundsState.TOO_LARGE

    def test_width_exactly_at_upper_limit_is_not_too_large(self, guide):
        width = guide.width * BOUNDS_SCALE_TOLERANCE
        box = Rect(guide.mid_x - width / 2, 0, width, 300)
        assert classify_bounds(box, guide) is BoundsState.APPROPRIATE

    def test_too_narrow_is_too_small(self, guide):
        box = Rect(50, 100, 100, 100)
        assert classify_bounds(box, guide) is BoundsState.TOO_SMALL

    def test_width_exactly_at_lower_limit_is_not_too_small(self):
        guide = Rect(0, 0, 240, 300)
        box = Rect(20, 0, 200, 300)  # 200 * 1.2 == 240
        assert classify_bounds(box, guide) is BoundsState.APPROPRIATE

    def test_size_checks_take_priority_over_centring(self, guide):
        far_and_small = Rect(1000, 1000, 50, 50)
        assert classify_bounds(far_and_small, guide) is BoundsState.TOO_SMALL

    def test_horizontal_offset_is_off_centre(self, guide):
        box = Rect(CENTRE_OFFSET_TOLERANCE + 1, 0, 200, 300)
        assert classify_bounds(box, guide) is BoundsState.OFF_CENTRE

    def test_vertical_offset_is_off_centre(self, guide):
        box = Rect(0, -(CENTRE_OFFSET_TOLERANCE + 1), 200, 300)
        assert classify_bounds(box, guide) is BoundsState.OFF_CENTRE

    def test_offset_exactly_at_tolerance_is_accepted(self, guide):
        box = Rect(CENTRE_OFFSET_TOLERANCE, CENTRE_OFFSET_TOLERANCE, 200, 300)
        assert classify_bounds(box, guide) is BoundsState.APPROPRIATE

    def test_custom_tolerances(self, guide):
        strict = PhotoStandardThresholds(centre_offset_tolerance=5.0)
        box = Rect(10, 0, 200, 300)
        assert classify_bounds(box, guide) is BoundsState.APPROPRIATE
        assert classify_bounds(box, guide, strict) is BoundsState.OFF_CENTRE


class TestPose:
    """Roll / pitch / yaw bands"""

    def test_frontal_pose_passes(self):
        verdict = classify_pose(1.4, 0.0, 0.0)
        assert verdict == (True, True, True)
        assert verdict.all_ok

    @pytest.mark.parametrize("roll", [ROLL_MIN, ROLL_MAX, 0.0, -1.4, 1.0, 2.0, 3.14])
    def test_roll_outside_open_interval_fails(self, roll):
        assert classify_pose(roll, 0.0, 0.0).roll_ok is False

    @pytest.mark.parametrize("roll", [ROLL_MIN + 1e-9, 1.4, ROLL_MAX - 1e-9])
    def test_roll_inside_interval_passes(self, roll):
        assert classify_pose(roll, 0.0, 0.0).roll_ok is True

    @pytest.mark.parametrize("pitch,ok", [(0.0, True), (0.19, True), (-0.19, True), (PITCH_MAX, False), (-PITCH_MAX, False), (0.5, False)])
    def test_pitch_band(self, pitch, ok):
        assert classify_pose(1.4, pitch, 0.0).pitch_ok is ok

    @pytest.mark.parametrize("yaw,ok", [(0.0, True), (0.149, True), (-0.149, True), (YAW_MAX, False), (-YAW_MAX, False)])
    def test_yaw_band(self, yaw, ok):
        assert classify_pose(1.4, 0.0, yaw).yaw_ok is ok

    def test_axes_are_independent(self):
        verdict = classify_pose(1.4, 0.5, 0.0)
        assert verdict.roll_ok and not verdict.pitch_ok and verdict.yaw_ok
        assert not verdict.all_ok


class TestQuality:
    @pytest.mark.parametrize("q,ok", [(0.0, False), (0.19999, False), (QUALITY_MIN, True), (0.5, True), (1.0, True)])
    def test_quality_threshold_is_inclusive(self, q, ok):
        assert classify_quality(q) is ok

    def test_custom_quality_threshold(self):
        assert classify_quality(0.3, PhotoStandardThresholds(quality_min=0.4)) is False
