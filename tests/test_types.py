"""
Tests for chessrig.types dataclasses.
"""

import cv2
import numpy as np
import pytest

from chessrig.exceptions import InvalidPattern
from chessrig.types import (
    CameraIntrinsics,
    ChessboardPattern,
    CorrespondencePair,
    RigConfig,
    RigidTransform,
    SessionResult,
)


class TestChessboardPattern:
    def test_sizes(self):
        pattern = ChessboardPattern(rows=6, cols=9, square_size=20.0)
        assert pattern.corner_count == 54
        assert pattern.pattern_size == (9, 6)

    def test_validate(self):
        ChessboardPattern(rows=2, cols=2, square_size=1.0).validate()
        with pytest.raises(InvalidPattern) as exc_info:
            ChessboardPattern(rows=3, cols=4, square_size=0.0).validate()
        assert exc_info.value.square_size == 0.0

    def test_frozen(self):
        pattern = ChessboardPattern(rows=6, cols=9)
        with pytest.raises(AttributeError):
            pattern.rows = 7


class TestCameraIntrinsics:
    def test_matrix(self, sample_intrinsics):
        np.testing.assert_array_equal(
            sample_intrinsics.matrix,
            [[800, 0, 640], [0, 800, 360], [0, 0, 1]],
        )

    def test_default_distortion(self, sample_intrinsics):
        assert sample_intrinsics.distortion.shape == (8,)
        assert np.all(sample_intrinsics.distortion == 0)

    def test_short_distortion_padded(self):
        intrinsics = CameraIntrinsics(1, 1, 0, 0, distortion=[0.1, -0.2, 0.0, 0.0, 0.05])
        np.testing.assert_allclose(intrinsics.distortion, [0.1, -0.2, 0, 0, 0.05, 0, 0, 0])

    def test_long_distortion_rejected(self):
        with pytest.raises(ValueError):
            CameraIntrinsics(1, 1, 0, 0, distortion=np.zeros(9))

    def test_from_matrix(self, sample_intrinsics):
        rebuilt = CameraIntrinsics.from_matrix(sample_intrinsics.matrix, np.array([0.1]))
        assert rebuilt.fx == 800.0
        assert rebuilt.cy == 360.0
        assert rebuilt.distortion[0] == pytest.approx(0.1)

    def test_frozen(self, sample_intrinsics):
        with pytest.raises(AttributeError):
            sample_intrinsics.fx = 1.0

    def test_equality_compares_distortion_values(self, sample_intrinsics):
        same = CameraIntrinsics(800.0, 800.0, 640.0, 360.0, distortion=[0.0])
        assert sample_intrinsics == same
        assert sample_intrinsics != CameraIntrinsics(800.0, 800.0, 640.0, 360.0, distortion=[0.01])
        assert sample_intrinsics != CameraIntrinsics(801.0, 800.0, 640.0, 360.0)
        assert sample_intrinsics != "intrinsics"


class TestRigidTransform:
    @pytest.fixture
    def transform(self):
        rotation = cv2.Rodrigues(np.array([0.1, -0.2, 0.3]))[0]
        return RigidTransform(rotation=rotation, translation=np.array([10.0, -5.0, 2.0]))

    def test_identity(self):
        identity = RigidTransform.identity()
        pts = np.array([[1.0, 2.0, 3.0]])
        np.testing.assert_array_equal(identity.apply(pts), pts)

    def test_homogeneous(self, transform):
        h = transform.to_homogeneous()
        assert h.shape == (4, 4)
        np.testing.assert_array_equal(h[3], [0, 0, 0, 1])
        np.testing.assert_array_equal(h[:3, 3], transform.translation)

        back = RigidTransform.from_homogeneous(h)
        np.testing.assert_array_equal(back.rotation, transform.rotation)

    def test_apply_matches_homogeneous(self, transform):
        p = np.array([1.0, 2.0, 3.0])
        expected = (transform.to_homogeneous() @ np.append(p, 1.0))[:3]
        np.testing.assert_allclose(transform.apply(p), expected)

    def test_inverse(self, transform):
        composed = transform.compose(transform.inverse())
        np.testing.assert_allclose(composed.rotation, np.eye(3), atol=1e-12)
        np.testing.assert_allclose(composed.translation, np.zeros(3), atol=1e-12)

    def test_compose_order(self, transform):
        shift = RigidTransform(rotation=np.eye(3), translation=np.array([1.0, 0.0, 0.0]))
        p = np.array([0.5, 0.5, 0.5])

        np.testing.assert_allclose(
            transform.compose(shift).apply(p), transform.apply(shift.apply(p))
        )

    def test_rotation_vector(self, transform):
        np.testing.assert_allclose(transform.rotation_vector, [0.1, -0.2, 0.3], atol=1e-9)

    def test_equality_compares_arrays(self, transform):
        copy = RigidTransform(rotation=transform.rotation.copy(), translation=transform.translation.copy())
        assert transform == copy
        assert transform != transform.compose(transform)
        assert transform != RigidTransform(
            rotation=transform.rotation, translation=transform.translation, reprojection_error=0.2
        )


class TestSessionResult:
    def test_ordered_transforms(self):
        a = RigidTransform.identity()
        b = RigidTransform(rotation=np.eye(3), translation=np.ones(3))
        result = SessionResult(
            all_found=True, completed=True, transforms={2: b, 1: a}, sample_counts={1: 3, 2: 3}
        )
        first, second = result.ordered_transforms()
        assert first is a
        assert second is b

    def test_incomplete_has_no_transforms(self):
        result = SessionResult(
            all_found=False, completed=False, transforms={1: None}, sample_counts={1: 0}
        )
        with pytest.raises(ValueError):
            result.ordered_transforms()


class TestRigConfig:
    def test_equality_with_array_fields(self, sample_pattern, sample_intrinsics):
        a = RigConfig(pattern=sample_pattern, cameras=(sample_intrinsics, sample_intrinsics))
        b = RigConfig(
            pattern=sample_pattern,
            cameras=(CameraIntrinsics(800.0, 800.0, 640.0, 360.0),) * 2,
        )
        assert a == b
        assert a != RigConfig(pattern=sample_pattern, cameras=(sample_intrinsics,))


class TestCorrespondencePair:
    def test_len(self):
        pair = CorrespondencePair(
            reference=np.zeros((54, 2), dtype=np.float32),
            secondary=np.zeros((54, 2), dtype=np.float32),
        )
        assert len(pair) == 54
