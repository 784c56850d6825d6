"""
Incremental multi-camera extrinsic calibration.

An AccumulationSession collects paired chessboard detections between the
reference camera (index 0) and every secondary camera (1..N-1), one frame
batch per submit() call. Once a pair holds enough samples it is stereo
calibrated. When every secondary camera solves in the same pass, the
transforms are returned and the session starts over.

Not thread-safe: one writer per session.
"""

from __future__ import annotations

import logging
from typing import Callable, Sequence

import cv2
import numpy as np

from .calibration.detection import detect_chessboard_corners
from .calibration.pattern import pattern_world_points
from .calibration.correspondence import resolve_corner_order
from .calibration.stereo import StereoSolver, calibrate_pair
from .exceptions import CalibrationDidNotConverge, DetectionMismatch, DetectionNotFound
from .types import (
    CameraIntrinsics,
    ChessboardPattern,
    CorrespondencePair,
    RigidTransform,
    SessionResult,
)

logger = logging.getLogger(__name__)

REFERENCE_INDEX = 0

Detector = Callable[[np.ndarray, ChessboardPattern], "np.ndarray | None"]


class AccumulationSession:
    """
    Accumulates chessboard correspondences and solves each camera pair.

    Camera 0 is always the reference camera; transforms map each secondary
    camera's coordinates into the reference frame.
    """

    def __init__(
        self,
        camera_count: int,
        pattern: ChessboardPattern,
        intrinsics: Sequence[CameraIntrinsics],
        required_sample_count: int,
        image_size: tuple[int, int] | None = None,
        detector: Detector | None = None,
        solver: StereoSolver | None = None,
        max_reprojection_error: float | None = None,
    ):
        """
        Args:
            camera_count: Total cameras including the reference
            pattern: Chessboard inner-corner layout and square size
            intrinsics: One CameraIntrinsics per camera, reference first
            required_sample_count: A pair is solved once it holds strictly
                more samples than this
            image_size: (width, height); taken from the reference frame if None
            detector: Corner detector (default: detect_chessboard_corners)
            solver: Stereo solver (default: OpenCV stereoCalibrate)
            max_reprojection_error: Treat solves above this RMS as unconverged

        Raises:
            InvalidPattern: If the pattern has non-positive dimensions
            ValueError: If the camera setup is inconsistent
        """
        pattern.validate()
        if camera_count < 2:
            raise ValueError(f"Need a reference and at least one secondary camera, got {camera_count}")
        if len(intrinsics) != camera_count:
            raise ValueError(
                f"Expected intrinsics for {camera_count} cameras, got {len(intrinsics)}"
            )
        if required_sample_count < 0:
            raise ValueError(f"required_sample_count must be >= 0, got {required_sample_count}")

        self._camera_count = camera_count
        self._pattern = pattern
        self._intrinsics = tuple(intrinsics)
        self._world_points = pattern_world_points(pattern)
        self.required_sample_count = required_sample_count
        self.image_size = image_size
        self.max_reprojection_error = max_reprojection_error

        self._detector = detector or detect_chessboard_corners
        self._solver = solver

        self._accumulators: dict[int, list[CorrespondencePair]] = {
            idx: [] for idx in self.secondary_indices
        }

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def camera_count(self) -> int:
        return self._camera_count

    @property
    def secondary_indices(self) -> range:
        return range(REFERENCE_INDEX + 1, self._camera_count)

    @property
    def pattern(self) -> ChessboardPattern:
        return self._pattern

    @property
    def world_points(self) -> np.ndarray:
        return self._world_points.copy()

    @property
    def intrinsics(self) -> tuple[CameraIntrinsics, ...]:
        return self._intrinsics

    def sample_count(self, camera_index: int) -> int:
        return len(self._accumulator(camera_index))

    def pairs(self, camera_index: int) -> list[CorrespondencePair]:
        return list(self._accumulator(camera_index))

    def sample_counts(self) -> dict[int, int]:
        return {idx: len(pairs) for idx, pairs in self._accumulators.items()}

    def _accumulator(self, camera_index: int) -> list[CorrespondencePair]:
        if camera_index not in self._accumulators:
            raise IndexError(
                f"Camera {camera_index} is not a secondary camera "
                f"(valid: 1..{self._camera_count - 1})"
            )
        return self._accumulators[camera_index]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Discard every accumulated sample."""
        for pairs in self._accumulators.values():
            pairs.clear()

    def submit(
        self,
        reference_frame: np.ndarray,
        secondary_frames: Sequence[np.ndarray],
    ) -> SessionResult:
        """
        Process one synchronized frame batch.

        Args:
            reference_frame: Image from camera 0
            secondary_frames: Images from cameras 1..N-1, in order

        Returns:
            SessionResult. all_found is True only if the board was detected
            and paired in every frame. completed is True only if every
            secondary camera solved in this call, in which case the
            accumulators have been cleared.

        Raises:
            ValueError: If the number of secondary frames is wrong
        """
        if len(secondary_frames) != self._camera_count - 1:
            raise ValueError(
                f"Expected {self._camera_count - 1} secondary frames, "
                f"got {len(secondary_frames)}"
            )

        image_size = self.image_size or _frame_size(reference_frame)

        # Detection
        reference_corners = self._detect(reference_frame, REFERENCE_INDEX)
        all_found = reference_corners is not None

        for idx, frame in zip(self.secondary_indices, secondary_frames):
            secondary_corners = self._detect(frame, idx)
            if secondary_corners is None:
                all_found = False
                continue
            if reference_corners is None:
                continue

            try:
                pair = self._make_pair(reference_corners, secondary_corners)
            except DetectionMismatch as e:
                logger.warning("Camera %d: discarding pair: %s", idx, e)
                all_found = False
                continue

            self._accumulators[idx].append(pair)
            logger.debug("Camera %d: %d samples", idx, len(self._accumulators[idx]))

        # Solve every pair that has enough samples
        transforms: dict[int, RigidTransform | None] = {}
        for idx in self.secondary_indices:
            transforms[idx] = self._try_calibrate(idx, image_size)

        sample_counts = self.sample_counts()
        completed = all(t is not None for t in transforms.values())

        if completed:
            logger.info("All %d secondary cameras calibrated - resetting session", len(transforms))
            self.reset()
        else:
            transforms = {idx: None for idx in transforms}

        return SessionResult(
            all_found=all_found,
            completed=completed,
            transforms=transforms,
            sample_counts=sample_counts,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _detect(self, frame: np.ndarray, camera_index: int) -> np.ndarray | None:
        try:
            corners = self._detector(frame, self._pattern)
        except DetectionNotFound:
            corners = None
        except cv2.error as e:
            logger.warning("Camera %d: detector failed: %s", camera_index, e)
            corners = None

        if corners is None:
            logger.debug("Camera %d: chessboard not found", camera_index)
            return None
        return np.asarray(corners, dtype=np.float32).reshape(-1, 2).copy()

    def _make_pair(
        self,
        reference_corners: np.ndarray,
        secondary_corners: np.ndarray,
    ) -> CorrespondencePair:
        expected = self._pattern.corner_count
        if len(reference_corners) != expected or len(secondary_corners) != expected:
            raise DetectionMismatch(
                len(reference_corners),
                len(secondary_corners),
                f"Expected {expected} corners per detection",
            )
        secondary = resolve_corner_order(reference_corners, secondary_corners)
        return CorrespondencePair(reference=reference_corners, secondary=secondary)

    def _try_calibrate(
        self,
        camera_index: int,
        image_size: tuple[int, int],
    ) -> RigidTransform | None:
        pairs = self._accumulators[camera_index]
        if len(pairs) <= self.required_sample_count:
            return None

        logger.info("Camera %d: stereo calibrating with %d samples", camera_index, len(pairs))
        try:
            transform = calibrate_pair(
                self._world_points,
                [p.reference for p in pairs],
                [p.secondary for p in pairs],
                self._intrinsics[REFERENCE_INDEX],
                self._intrinsics[camera_index],
                image_size,
                solver=self._solver,
                max_reprojection_error=self.max_reprojection_error,
                camera_index=camera_index,
            )
        except CalibrationDidNotConverge as e:
            logger.warning("%s - collecting more samples", e)
            return None

        logger.info(
            "Camera %d: solved (rms %.4f px)", camera_index, transform.reprojection_error
        )
        return transform


def _frame_size(frame: np.ndarray) -> tuple[int, int]:
    """(width, height) of an image array."""
    height, width = frame.shape[:2]
    return (int(width), int(height))
