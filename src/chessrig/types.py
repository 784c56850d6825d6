"""
Core data structures for chessrig.

Records are frozen dataclasses with slots. Solving and bookkeeping live in
separate modules - these are data containers plus small conversions.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import cv2
import numpy as np

from .exceptions import InvalidPattern


DISTORTION_COEFFICIENT_COUNT = 8  # k1, k2, p1, p2, k3, k4, k5, k6


# ============================================================================
# Chessboard Pattern
# ============================================================================


@dataclass(frozen=True, slots=True)
class ChessboardPattern:
    """
    Inner-corner layout of a flat chessboard target.

    rows and cols count inner corners, not squares. square_size is in the
    caller's length unit (millimetres by default) and sets the unit of every
    solved translation.
    """

    rows: int
    cols: int
    square_size: float = 25.0

    @property
    def corner_count(self) -> int:
        return self.rows * self.cols

    @property
    def pattern_size(self) -> tuple[int, int]:
        """OpenCV pattern size (points per row, points per column)."""
        return (self.cols, self.rows)

    def validate(self) -> None:
        if self.rows <= 0 or self.cols <= 0 or self.square_size <= 0:
            raise InvalidPattern(self.rows, self.cols, self.square_size)


# ============================================================================
# Camera Intrinsics
# ============================================================================


@dataclass(frozen=True, slots=True, eq=False)
class CameraIntrinsics:
    """
    Pinhole intrinsics (zero skew) plus an 8-coefficient distortion vector.

    Supplied once per session and never re-estimated here.
    """

    fx: float
    fy: float
    cx: float
    cy: float
    distortion: np.ndarray = field(
        default_factory=lambda: np.zeros(DISTORTION_COEFFICIENT_COUNT, dtype=np.float64)
    )

    def __post_init__(self) -> None:
        dist = np.asarray(self.distortion, dtype=np.float64).ravel()
        if dist.size > DISTORTION_COEFFICIENT_COUNT:
            raise ValueError(
                f"Expected at most {DISTORTION_COEFFICIENT_COUNT} distortion "
                f"coefficients, got {dist.size}"
            )
        padded = np.zeros(DISTORTION_COEFFICIENT_COUNT, dtype=np.float64)
        padded[: dist.size] = dist
        object.__setattr__(self, "distortion", padded)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CameraIntrinsics):
            return NotImplemented
        return (
            (self.fx, self.fy, self.cx, self.cy) == (other.fx, other.fy, other.cx, other.cy)
            and np.array_equal(self.distortion, other.distortion)
        )

    @property
    def matrix(self) -> np.ndarray:
        """3x3 camera matrix."""
        return np.array([
            [self.fx, 0.0, self.cx],
            [0.0, self.fy, self.cy],
            [0.0, 0.0, 1.0],
        ], dtype=np.float64)

    @classmethod
    def from_matrix(
        cls,
        matrix: np.ndarray,
        distortion: np.ndarray | None = None,
    ) -> CameraIntrinsics:
        m = np.asarray(matrix, dtype=np.float64)
        if m.shape != (3, 3):
            raise ValueError(f"Camera matrix must be 3x3, got {m.shape}")
        return cls(
            fx=float(m[0, 0]),
            fy=float(m[1, 1]),
            cx=float(m[0, 2]),
            cy=float(m[1, 2]),
            distortion=np.zeros(0) if distortion is None else distortion,
        )


# ============================================================================
# Observations
# ============================================================================


@dataclass(frozen=True, slots=True)
class CorrespondencePair:
    """
    One chessboard placement seen by the reference and one secondary camera.

    Both arrays are (n, 2); index i refers to the same physical corner.
    """

    reference: np.ndarray
    secondary: np.ndarray

    def __len__(self) -> int:
        return len(self.reference)


# ============================================================================
# Transforms
# ============================================================================


@dataclass(frozen=True, slots=True, eq=False)
class RigidTransform:
    """
    Pose of a secondary camera expressed in the reference camera frame.

    apply() maps points in secondary-camera coordinates to reference-camera
    coordinates: p_ref = R @ p_sec + t.
    """

    rotation: np.ndarray  # 3x3 rotation matrix
    translation: np.ndarray  # (3,) translation vector
    reprojection_error: float | None = None  # solver RMS in pixels

    def __post_init__(self) -> None:
        rotation = np.asarray(self.rotation, dtype=np.float64).reshape(3, 3)
        translation = np.asarray(self.translation, dtype=np.float64).reshape(3)
        object.__setattr__(self, "rotation", rotation)
        object.__setattr__(self, "translation", translation)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RigidTransform):
            return NotImplemented
        return (
            np.array_equal(self.rotation, other.rotation)
            and np.array_equal(self.translation, other.translation)
            and self.reprojection_error == other.reprojection_error
        )

    @classmethod
    def identity(cls) -> RigidTransform:
        return cls(rotation=np.eye(3), translation=np.zeros(3))

    @classmethod
    def from_homogeneous(cls, matrix: np.ndarray) -> RigidTransform:
        h = np.asarray(matrix, dtype=np.float64)
        if h.shape != (4, 4):
            raise ValueError(f"Homogeneous matrix must be 4x4, got {h.shape}")
        return cls(rotation=h[0:3, 0:3], translation=h[0:3, 3])

    def to_homogeneous(self) -> np.ndarray:
        """4x4 homogeneous matrix [R | t; 0 0 0 1]."""
        h = np.eye(4, dtype=np.float64)
        h[0:3, 0:3] = self.rotation
        h[0:3, 3] = self.translation
        return h

    @property
    def rotation_vector(self) -> np.ndarray:
        """Axis-angle (Rodrigues) form of the rotation."""
        rvec, _ = cv2.Rodrigues(self.rotation)
        return rvec[:, 0]

    def apply(self, points: np.ndarray) -> np.ndarray:
        """Transform (n, 3) or (3,) points."""
        pts = np.asarray(points, dtype=np.float64)
        return pts @ self.rotation.T + self.translation

    def inverse(self) -> RigidTransform:
        r_inv = self.rotation.T
        return RigidTransform(rotation=r_inv, translation=-r_inv @ self.translation)

    def compose(self, other: RigidTransform) -> RigidTransform:
        """Transform equivalent to applying other first, then self."""
        return RigidTransform(
            rotation=self.rotation @ other.rotation,
            translation=self.rotation @ other.translation + self.translation,
        )


# ============================================================================
# Session Output
# ============================================================================


@dataclass(frozen=True, slots=True)
class SessionResult:
    """
    Outcome of one submitted frame batch.

    transforms maps every secondary camera index to its RigidTransform, or to
    None when that camera has insufficient data. Transforms are only handed
    out on a completed pass; otherwise every entry is None.
    """

    all_found: bool
    completed: bool
    transforms: dict[int, RigidTransform | None]
    sample_counts: dict[int, int]

    def ordered_transforms(self) -> list[RigidTransform]:
        """Transforms in camera-index order. Only valid on a completed pass."""
        if not self.completed:
            raise ValueError("Session has not completed - no transforms available")
        return [self.transforms[idx] for idx in sorted(self.transforms)]


# ============================================================================
# Rig Configuration
# ============================================================================


@dataclass(frozen=True, slots=True)
class RigConfig:
    """
    Everything needed to start a session.
    Loaded from a TOML rig file; cameras[0] is the reference camera.
    """

    pattern: ChessboardPattern
    cameras: tuple[CameraIntrinsics, ...]
    required_sample_count: int = 10
    image_size: tuple[int, int] | None = None  # (width, height)

    @property
    def camera_count(self) -> int:
        return len(self.cameras)
