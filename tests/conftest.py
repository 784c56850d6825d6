"""
Pytest configuration and shared fixtures.
"""

import tempfile
from pathlib import Path

import cv2
import numpy as np
import pytest


@pytest.fixture
def temp_dir():
    """Provide a temporary directory that's cleaned up after test."""
    with tempfile.TemporaryDirectory() as td:
        yield Path(td)


@pytest.fixture
def sample_pattern():
    """6 x 9 inner corners, 25mm squares."""
    from chessrig.types import ChessboardPattern
    return ChessboardPattern(rows=6, cols=9, square_size=25.0)


@pytest.fixture
def sample_intrinsics():
    """Typical 1280x720 camera without distortion."""
    from chessrig.types import CameraIntrinsics
    return CameraIntrinsics(fx=800.0, fy=800.0, cx=640.0, cy=360.0)


@pytest.fixture
def known_transform():
    """Secondary camera pose in the reference frame (p_ref = R0 @ p_sec + t0)."""
    from chessrig.types import RigidTransform
    rotation, _ = cv2.Rodrigues(np.array([0.02, -0.17, -0.01]))
    return RigidTransform(rotation=rotation, translation=np.array([150.0, 5.0, 10.0]))


# Board poses in the reference camera frame (rvec, tvec in mm)
BOARD_POSES = [
    ([0.20, 0.10, 0.00], [-100.0, -60.0, 700.0]),
    ([-0.30, 0.20, 0.10], [-80.0, -70.0, 650.0]),
    ([0.10, -0.40, 0.05], [-120.0, -50.0, 750.0]),
    ([0.35, 0.30, -0.10], [-90.0, -40.0, 800.0]),
    ([-0.20, -0.30, 0.20], [-110.0, -80.0, 720.0]),
    ([0.00, 0.50, 0.00], [-60.0, -60.0, 680.0]),
]


def project_views(pattern, intrinsics, transform, poses=BOARD_POSES):
    """
    Project the board at each pose into the reference and secondary camera.

    Returns:
        (reference_views, secondary_views), lists of (n, 2) float32 arrays
    """
    from chessrig.calibration.pattern import pattern_world_points

    world = pattern_world_points(pattern).astype(np.float64)
    r_inv = transform.rotation.T

    reference_views, secondary_views = [], []
    for rvec, tvec in poses:
        r_board, _ = cv2.Rodrigues(np.array(rvec, dtype=np.float64))
        t_board = np.array(tvec, dtype=np.float64)

        ref, _ = cv2.projectPoints(
            world, np.array(rvec, dtype=np.float64), t_board,
            intrinsics.matrix, intrinsics.distortion,
        )

        # Board pose seen from the secondary camera
        r_sec, _ = cv2.Rodrigues(r_inv @ r_board)
        t_sec = r_inv @ (t_board - transform.translation)
        sec, _ = cv2.projectPoints(
            world, r_sec, t_sec, intrinsics.matrix, intrinsics.distortion
        )

        reference_views.append(ref.reshape(-1, 2).astype(np.float32))
        secondary_views.append(sec.reshape(-1, 2).astype(np.float32))

    return reference_views, secondary_views


@pytest.fixture
def synthetic_views(sample_pattern, sample_intrinsics, known_transform):
    return project_views(sample_pattern, sample_intrinsics, known_transform)


class PassThroughDetector:
    """Detector for tests: frames are already corner arrays, None means not found."""

    def __init__(self):
        self.calls = 0

    def __call__(self, frame, pattern):
        self.calls += 1
        return frame


class RecordingSolver:
    """Stereo solver for tests: returns a fixed result and records calls."""

    def __init__(self, rotation=None, translation=None, rms=0.1, fail_times=0):
        self.rotation = np.eye(3) if rotation is None else rotation
        self.translation = np.zeros(3) if translation is None else translation
        self.rms = rms
        self.fail_times = fail_times
        self.calls = []

    def __call__(self, object_points, image_points_1, image_points_2, *args):
        self.calls.append(len(object_points))
        if self.fail_times > 0:
            self.fail_times -= 1
            raise cv2.error("degenerate")
        return self.rotation, self.translation, self.rms


@pytest.fixture
def pass_through_detector():
    return PassThroughDetector()


@pytest.fixture
def recording_solver():
    return RecordingSolver()


# Board poses for rendered images: inner corners centred on the optical axis
RENDER_POSES = [
    ([0.15, 0.10, 0.00], [-100.0, -62.5, 500.0]),
    ([-0.20, 0.15, 0.05], [-90.0, -60.0, 520.0]),
    ([0.10, -0.25, 0.00], [-110.0, -55.0, 480.0]),
    ([0.25, 0.20, -0.05], [-100.0, -70.0, 540.0]),
    ([-0.10, -0.15, 0.10], [-95.0, -65.0, 510.0]),
]


def render_views(pattern, intrinsics, transform, poses=RENDER_POSES,
                 image_size=(1280, 720), square_px=40):
    """
    Warp a rendered chessboard into the reference and secondary camera.

    Intrinsics must be distortion free; each view is a plane homography.

    Returns:
        (reference_images, secondary_images), lists of BGR uint8 images
    """
    from chessrig.calibration.pattern import generate_chessboard_image

    board = generate_chessboard_image(pattern, square_px=square_px)

    # Board image pixel -> board plane (x, y, 1). Inner corner (0, 0) sits
    # on the pixel edge one margin plus one square in from the top left.
    scale = pattern.square_size / square_px
    offset = -(2 * square_px - 0.5) * scale
    pixel_to_plane = np.array([
        [scale, 0.0, offset],
        [0.0, scale, offset],
        [0.0, 0.0, 1.0],
    ])

    def warp(r_board, t_board):
        plane_to_image = intrinsics.matrix @ np.column_stack(
            [r_board[:, 0], r_board[:, 1], t_board]
        )
        return cv2.warpPerspective(
            board, plane_to_image @ pixel_to_plane, image_size,
            borderMode=cv2.BORDER_CONSTANT, borderValue=(255, 255, 255),
        )

    r_inv = transform.rotation.T
    reference_images, secondary_images = [], []
    for rvec, tvec in poses:
        r_board, _ = cv2.Rodrigues(np.array(rvec, dtype=np.float64))
        t_board = np.array(tvec, dtype=np.float64)

        reference_images.append(warp(r_board, t_board))
        secondary_images.append(
            warp(r_inv @ r_board, r_inv @ (t_board - transform.translation))
        )

    return reference_images, secondary_images
