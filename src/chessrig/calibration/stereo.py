"""
Stereo extrinsic calibration for one reference/secondary camera pair.

Pure functions - no classes, no state.
"""

from __future__ import annotations

import logging
from typing import Callable, Sequence

import cv2
import numpy as np
from scipy.spatial.transform import Rotation

from ..exceptions import CalibrationDidNotConverge, DetectionMismatch
from ..types import CameraIntrinsics, RigidTransform

logger = logging.getLogger(__name__)


ORTHONORMAL_TOLERANCE = 1e-6
STEREO_CRITERIA = (cv2.TERM_CRITERIA_EPS + cv2.TERM_CRITERIA_MAX_ITER, 100, 1e-6)

# (object_points, image_points_1, image_points_2, K1, D1, K2, D2, image_size)
#   -> (R, t, rms) mapping camera-1 coordinates into camera-2 coordinates
StereoSolver = Callable[..., tuple[np.ndarray, np.ndarray, float]]


# ============================================================================
# Rotation Helpers
# ============================================================================


def rotation_matrix_to_axis_angle(rotation: np.ndarray) -> np.ndarray:
    """Convert a 3x3 rotation matrix to a Rodrigues (axis * angle) vector."""
    rvec, _ = cv2.Rodrigues(np.asarray(rotation, dtype=np.float64))
    return rvec[:, 0]


def orthonormality_error(rotation: np.ndarray) -> float:
    """Largest absolute entry of R^T R - I."""
    return float(np.max(np.abs(rotation.T @ rotation - np.eye(3))))


def orthonormalize_rotation(
    rotation: np.ndarray,
    tolerance: float = ORTHONORMAL_TOLERANCE,
) -> np.ndarray:
    """
    Return the rotation unchanged if it is orthonormal within tolerance,
    otherwise the nearest proper rotation matrix.

    Raises:
        ValueError: If the matrix is a reflection or degenerate (det <= 0)
    """
    r = np.asarray(rotation, dtype=np.float64).reshape(3, 3)
    if not np.linalg.det(r) > 0:
        raise ValueError(f"Not a proper rotation (det={np.linalg.det(r):.6f})")
    if orthonormality_error(r) <= tolerance:
        return r
    return Rotation.from_matrix(r).as_matrix()


# ============================================================================
# Solver
# ============================================================================


def solve_stereo_extrinsics(
    object_points: Sequence[np.ndarray],
    image_points_1: Sequence[np.ndarray],
    image_points_2: Sequence[np.ndarray],
    matrix_1: np.ndarray,
    distortion_1: np.ndarray,
    matrix_2: np.ndarray,
    distortion_2: np.ndarray,
    image_size: tuple[int, int],
) -> tuple[np.ndarray, np.ndarray, float]:
    """
    Solve the relative pose between two cameras with fixed intrinsics.

    Returns:
        (rotation_3x3, translation_3, rmse) such that a point p1 in camera-1
        coordinates is R @ p1 + t in camera-2 coordinates

    Raises:
        cv2.error: If OpenCV rejects the input or the geometry is degenerate
    """
    obj = [np.asarray(p, dtype=np.float32).reshape(-1, 1, 3) for p in object_points]
    img_1 = [np.asarray(p, dtype=np.float32).reshape(-1, 1, 2) for p in image_points_1]
    img_2 = [np.asarray(p, dtype=np.float32).reshape(-1, 1, 2) for p in image_points_2]

    rms, _, _, _, _, R, T, _, _ = cv2.stereoCalibrate(
        obj,
        img_1,
        img_2,
        np.asarray(matrix_1, dtype=np.float64),
        np.asarray(distortion_1, dtype=np.float64),
        np.asarray(matrix_2, dtype=np.float64),
        np.asarray(distortion_2, dtype=np.float64),
        tuple(int(v) for v in image_size),
        criteria=STEREO_CRITERIA,
        flags=cv2.CALIB_FIX_INTRINSIC,
    )

    return R, T.reshape(3), float(rms)


# ============================================================================
# Pair Calibration
# ============================================================================


def calibrate_pair(
    world_points: np.ndarray,
    reference_observations: Sequence[np.ndarray],
    secondary_observations: Sequence[np.ndarray],
    reference_intrinsics: CameraIntrinsics,
    secondary_intrinsics: CameraIntrinsics,
    image_size: tuple[int, int],
    solver: StereoSolver | None = None,
    max_reprojection_error: float | None = None,
    camera_index: int | None = None,
) -> RigidTransform:
    """
    Stereo calibrate a secondary camera against the reference camera.

    Every sample is one chessboard placement seen by both cameras; all
    samples share the same world points. Intrinsics stay fixed and only the
    relative rotation/translation is estimated.

    Args:
        world_points: (n, 3) board corners from generate_world_points
        reference_observations: One (n, 2) array per sample, reference camera
        secondary_observations: One (n, 2) array per sample, secondary camera
        reference_intrinsics: Intrinsics for the reference camera
        secondary_intrinsics: Intrinsics for the secondary camera
        image_size: (width, height) of the frames
        solver: Stereo solver (default: solve_stereo_extrinsics)
        max_reprojection_error: Reject solves with a larger RMS (pixels)
        camera_index: Secondary camera index, for error reporting only

    Returns:
        RigidTransform mapping secondary-camera coordinates into the
        reference camera frame, in the units of the world points

    Raises:
        DetectionMismatch: If the observation lists don't line up
        CalibrationDidNotConverge: If the solve fails or is unusable
    """
    if solver is None:
        solver = solve_stereo_extrinsics

    world_points = np.asarray(world_points, dtype=np.float32).reshape(-1, 3)
    n_samples = len(reference_observations)

    if n_samples == 0 or n_samples != len(secondary_observations):
        raise DetectionMismatch(
            n_samples,
            len(secondary_observations),
            "Sample lists must be non-empty and equal length",
        )
    for ref, sec in zip(reference_observations, secondary_observations):
        if len(ref) != len(world_points) or len(sec) != len(world_points):
            raise DetectionMismatch(
                len(ref),
                len(sec),
                f"Each observation must have {len(world_points)} corners",
            )

    # Secondary goes first: the solver's output then maps secondary -> reference
    try:
        R, t, rms = solver(
            [world_points] * n_samples,
            list(secondary_observations),
            list(reference_observations),
            secondary_intrinsics.matrix,
            secondary_intrinsics.distortion,
            reference_intrinsics.matrix,
            reference_intrinsics.distortion,
            image_size,
        )
    except cv2.error as e:
        raise CalibrationDidNotConverge(
            f"solver error: {e}", camera_index, n_samples
        ) from e

    R = np.asarray(R, dtype=np.float64)
    t = np.asarray(t, dtype=np.float64).reshape(3)

    if not (np.all(np.isfinite(R)) and np.all(np.isfinite(t)) and np.isfinite(rms)):
        raise CalibrationDidNotConverge("non-finite solution", camera_index, n_samples)

    if max_reprojection_error is not None and rms > max_reprojection_error:
        raise CalibrationDidNotConverge(
            f"reprojection error {rms:.3f}px exceeds {max_reprojection_error:.3f}px",
            camera_index,
            n_samples,
        )

    drift = orthonormality_error(R)
    try:
        R = orthonormalize_rotation(R)
    except ValueError as e:
        raise CalibrationDidNotConverge(str(e), camera_index, n_samples) from e
    if drift > ORTHONORMAL_TOLERANCE:
        logger.debug("Re-orthonormalized rotation (drift %.2e)", drift)

    return RigidTransform(rotation=R, translation=t, reprojection_error=float(rms))
