"""
Property-based tests for FeatureExtractor.

These tests verify the landmark-to-feature measurements using synthetic
Face Mesh frames and Hypothesis for property-based testing.
"""

from types import SimpleNamespace

import numpy as np
import pytest
from hypothesis import given, settings
import hypothesis.strategies as st

from avatar_expression.errors import InvalidMeasurement, NoFaceDetected
from avatar_expression.extractor import ExtractorConfig, FeatureExtractor, linear_map
from avatar_expression.features import BROW_CHANNELS, FeatureVector
from avatar_expression.landmarks import LEFT_EYEBROW, MOUTH, LandmarkFrame

from conftest import build_landmarks


def expected_brow_y(gap):
    """Gap 20 -> +20, gap 50 -> -40, unclamped."""
    return 20.0 - 2.0 * (gap - 20.0)


class TestBrowOffset:
    """
    **Property 1: Brow offset remap**

    *For any* brow-to-eye gap, the brow offset SHALL be the linear remap of
    [20, 50] onto [20, -40], with no clamping, so a raised brow reads more
    negative.
    """

    @settings(max_examples=100)
    @given(
        left_gap=st.floats(min_value=0.0, max_value=120.0),
        right_gap=st.floats(min_value=0.0, max_value=120.0),
    )
    def test_brow_offset_follows_remap(self, left_gap, right_gap):
        features = FeatureExtractor().extract(
            build_landmarks(left_gap=left_gap, right_gap=right_gap)
        )

        assert features.left_brow_y == pytest.approx(expected_brow_y(left_gap), abs=1e-9)
        assert features.right_brow_y == pytest.approx(expected_brow_y(right_gap), abs=1e-9)

    def test_resting_brow_reads_zero(self):
        features = FeatureExtractor().extract(build_landmarks())

        assert features.left_brow_y == pytest.approx(0.0, abs=1e-9)
        assert features.right_brow_y == pytest.approx(0.0, abs=1e-9)

    def test_raised_brow_is_more_negative(self):
        extractor = FeatureExtractor()
        resting = extractor.extract(build_landmarks(left_gap=30.0))
        raised = extractor.extract(build_landmarks(left_gap=45.0))

        assert raised.left_brow_y < resting.left_brow_y
        assert raised.left_brow_y == pytest.approx(-30.0)

    def test_offset_is_not_clamped(self):
        features = FeatureExtractor().extract(
            build_landmarks(left_gap=80.0, right_gap=5.0)
        )

        assert features.left_brow_y == pytest.approx(-100.0)
        assert features.right_brow_y == pytest.approx(50.0)


class TestBrowAngle:
    """
    **Property 2: Mirrored brow angles**

    *For any* brow tilt, a positive angle on either side SHALL mean the
    inner corner is raised relative to the outer corner.
    """

    @settings(max_examples=100)
    @given(
        left_angle=st.floats(min_value=-60.0, max_value=60.0),
        right_angle=st.floats(min_value=-60.0, max_value=60.0),
    )
    def test_angles_recovered_with_consistent_sign(self, left_angle, right_angle):
        features = FeatureExtractor().extract(
            build_landmarks(left_angle=left_angle, right_angle=right_angle)
        )

        assert features.left_brow_angle == pytest.approx(left_angle, abs=1e-6)
        assert features.right_brow_angle == pytest.approx(right_angle, abs=1e-6)

    def test_inner_corners_raised_are_positive_on_both_sides(self):
        features = FeatureExtractor().extract(
            build_landmarks(left_angle=10.0, right_angle=10.0)
        )

        assert features.left_brow_angle > 0
        assert features.right_brow_angle > 0

    def test_inner_corners_lowered_are_negative_on_both_sides(self):
        features = FeatureExtractor().extract(
            build_landmarks(left_angle=-12.0, right_angle=-12.0)
        )

        assert features.left_brow_angle < 0
        assert features.right_brow_angle < 0

    def test_tilt_does_not_move_brow_offset(self):
        features = FeatureExtractor().extract(
            build_landmarks(left_angle=20.0, right_angle=-20.0)
        )

        assert features.left_brow_y == pytest.approx(0.0, abs=1e-9)
        assert features.right_brow_y == pytest.approx(0.0, abs=1e-9)


class TestOpenness:
    """
    **Property 3: Openness normalization**

    *For any* lip or eyelid distance, openness SHALL be in [0, 1].
    """

    @settings(max_examples=100)
    @given(
        mouth_distance=st.floats(min_value=0.0, max_value=200.0),
        eye_distance=st.floats(min_value=0.0, max_value=200.0),
    )
    def test_openness_always_in_unit_range(self, mouth_distance, eye_distance):
        features = FeatureExtractor().extract(
            build_landmarks(mouth_distance=mouth_distance, eye_distance=eye_distance)
        )

        for value in (
            features.mouth_openness,
            features.left_eye_openness,
            features.right_eye_openness,
        ):
            assert 0.0 <= value <= 1.0

    def test_openness_range_endpoints(self):
        extractor = FeatureExtractor()

        closed = extractor.extract(build_landmarks(mouth_distance=5.0, eye_distance=3.0))
        assert closed.mouth_openness == pytest.approx(0.0)
        assert closed.left_eye_openness == pytest.approx(0.0)

        half = extractor.extract(build_landmarks(mouth_distance=17.5, eye_distance=9.0))
        assert half.mouth_openness == pytest.approx(0.5)
        assert half.right_eye_openness == pytest.approx(0.5)

        wide = extractor.extract(build_landmarks(mouth_distance=30.0, eye_distance=15.0))
        assert wide.mouth_openness == pytest.approx(1.0)
        assert wide.left_eye_openness == pytest.approx(1.0)

    def test_inter_brow_distance(self):
        features = FeatureExtractor().extract(build_landmarks())

        # Inner corners at x=170 and x=230, same height
        assert features.inter_brow_distance == pytest.approx(60.0)


class TestMissingFace:
    """Frames without a usable face raise NoFaceDetected."""

    def test_none_frame(self):
        with pytest.raises(NoFaceDetected):
            FeatureExtractor().extract(None)

    def test_empty_frame(self):
        with pytest.raises(NoFaceDetected):
            FeatureExtractor().extract(LandmarkFrame.from_points([]))

    def test_frame_lacking_required_indices(self):
        truncated = LandmarkFrame(points=build_landmarks().points[:100])

        with pytest.raises(NoFaceDetected):
            FeatureExtractor().extract(truncated)


class TestInvalidMeasurement:
    """Degenerate landmarks must not produce NaN features."""

    def test_nan_brow_point(self):
        frame = build_landmarks()
        frame.points[LEFT_EYEBROW["middle"]] = (np.nan, np.nan)

        with pytest.raises(InvalidMeasurement):
            FeatureExtractor().extract(frame)

    def test_nan_mouth_point(self):
        frame = build_landmarks()
        frame.points[MOUTH["bottom"]] = (200.0, np.nan)

        with pytest.raises(InvalidMeasurement):
            FeatureExtractor().extract(frame)

    def test_infinite_point(self):
        frame = build_landmarks()
        frame.points[LEFT_EYEBROW["inner"]] = (np.inf, 100.0)

        with pytest.raises(InvalidMeasurement):
            FeatureExtractor().extract(frame)


class TestLandmarkFrameInputs:
    """Keypoints arrive as arrays, tuples, dicts, or landmark objects."""

    def test_dict_and_object_points_match_array(self):
        reference = build_landmarks(left_gap=40.0, right_angle=7.0)
        as_dicts = [{"x": x, "y": y, "z": 0.0} for x, y in reference.points]
        as_objects = [SimpleNamespace(x=x, y=y, z=0.0) for x, y in reference.points]

        extractor = FeatureExtractor()
        expected = extractor.extract(reference).to_array()

        np.testing.assert_allclose(
            extractor.extract(LandmarkFrame.from_points(as_dicts)).to_array(), expected
        )
        np.testing.assert_allclose(
            extractor.extract(LandmarkFrame.from_points(as_objects)).to_array(), expected
        )

    def test_xyz_array_drops_z(self):
        xyz = np.hstack([build_landmarks().points, np.ones((478, 1))])
        frame = LandmarkFrame(points=xyz)

        assert frame.points.shape == (478, 2)

    def test_bad_shape_rejected(self):
        with pytest.raises(ValueError):
            LandmarkFrame(points=np.zeros((10, 1)))


class TestConfig:
    def test_linear_map(self):
        assert linear_map(35.0, 20.0, 50.0, 20.0, -40.0) == pytest.approx(-10.0)
        assert linear_map(5.0, 5.0, 30.0, 0.0, 1.0) == pytest.approx(0.0)

    def test_invalid_range_rejected(self):
        with pytest.raises(ValueError):
            ExtractorConfig(mouth_distance_min=30.0, mouth_distance_max=5.0)

    def test_custom_eye_range(self):
        config = ExtractorConfig(eye_distance_min=0.0, eye_distance_max=30.0)
        features = FeatureExtractor(config).extract(build_landmarks(eye_distance=15.0))

        assert features.left_eye_openness == pytest.approx(0.5)


class TestFeatureVector:
    def test_array_round_trip_keeps_field_order(self):
        features = FeatureExtractor().extract(build_landmarks(left_gap=40.0, timestamp_ms=12.0))

        rebuilt = FeatureVector.from_array(features.to_array(), timestamp=features.timestamp)

        assert rebuilt == features
        assert features.timestamp == 12.0

    def test_from_array_wrong_length(self):
        with pytest.raises(ValueError):
            FeatureVector.from_array(np.zeros(5))

    def test_neutral_matches_resting_brows(self):
        neutral = FeatureVector.neutral()
        resting = FeatureExtractor().extract(build_landmarks())

        assert neutral.brow_channels() == pytest.approx(resting.brow_channels())
        assert list(neutral.brow_channels()) == list(BROW_CHANNELS)


class TestMalformedKeypoints:
    @pytest.mark.parametrize("points", [
        [[1.0]],
        [{"x": 1.0}],
        [SimpleNamespace(x="1", y=2.0)],
        [("a", "b")],
        [5],
    ])
    def test_malformed_keypoint_rejected(self, points):
        with pytest.raises(ValueError):
            LandmarkFrame.from_points(points)

    def test_numpy_scalars_accepted(self):
        frame = LandmarkFrame.from_points([(np.float32(1.5), np.int64(2))])

        assert frame.points.tolist() == [[1.5, 2.0]]
