"""
Flat-buffer entry point for hosts that hand over raw interleaved frames.

Conversions between flat float/byte arrays and chessrig types, plus a
stateful FlatCalibrationBridge that owns a session across calls. Flat
layouts only exist here; everything else works with named records.

Transform block layout (16 float32 per secondary camera): the row-major
4x4 homogeneous matrix [R | t; 0 0 0 1], mapping secondary-camera
coordinates into the reference camera frame.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .calibration.detection import to_bgr
from .calibration.stereo import StereoSolver
from .session import AccumulationSession, Detector
from .types import (
    DISTORTION_COEFFICIENT_COUNT,
    CameraIntrinsics,
    ChessboardPattern,
    RigidTransform,
)

logger = logging.getLogger(__name__)

INTRINSICS_STRIDE = 4  # fx, fy, cx, cy
TRANSFORM_BLOCK_SIZE = 16


# ============================================================================
# Flat Conversions
# ============================================================================


def frames_from_buffer(
    buffer: bytes | bytearray | memoryview | np.ndarray,
    camera_count: int,
    width: int,
    height: int,
    pixel_size: int,
) -> list[np.ndarray]:
    """
    Split an interleaved frame buffer into per-camera BGR images.

    Frames are packed back to back, reference camera first, each
    width * height * pixel_size bytes. pixel_size 4 is BGRA, 3 is BGR,
    1 is greyscale; every frame comes back as BGR.

    Returns:
        List of camera_count images, none of which share memory with buffer

    Raises:
        ValueError: If the buffer size doesn't match the frame geometry
    """
    if pixel_size not in (1, 3, 4):
        raise ValueError(f"Unsupported pixel size: {pixel_size}")
    if camera_count < 1 or width <= 0 or height <= 0:
        raise ValueError(
            f"Invalid frame geometry: {camera_count} cameras, {width}x{height}"
        )

    if isinstance(buffer, np.ndarray):
        data = np.ascontiguousarray(buffer).reshape(-1).view(np.uint8)
    else:
        data = np.frombuffer(buffer, dtype=np.uint8)
    frame_bytes = width * height * pixel_size
    if data.size != frame_bytes * camera_count:
        raise ValueError(
            f"Buffer holds {data.size} bytes, expected {camera_count} x {frame_bytes}"
        )

    frames = []
    for i in range(camera_count):
        raw = data[i * frame_bytes:(i + 1) * frame_bytes]
        shape = (height, width) if pixel_size == 1 else (height, width, pixel_size)
        frames.append(to_bgr(raw.reshape(shape)))
    return frames


def intrinsics_from_flat(
    camera_properties: Sequence[float] | np.ndarray,
    distortion_properties: Sequence[float] | np.ndarray,
    camera_count: int,
) -> list[CameraIntrinsics]:
    """
    Build per-camera intrinsics from flat arrays.

    Args:
        camera_properties: 4 floats per camera (fx, fy, cx, cy)
        distortion_properties: 8 floats per camera (k1, k2, p1, p2, k3..k6)
        camera_count: Number of cameras, reference first

    Raises:
        ValueError: If either array has the wrong length
    """
    props = np.asarray(camera_properties, dtype=np.float64).ravel()
    dists = np.asarray(distortion_properties, dtype=np.float64).ravel()

    if props.size != camera_count * INTRINSICS_STRIDE:
        raise ValueError(
            f"Expected {camera_count * INTRINSICS_STRIDE} camera properties, got {props.size}"
        )
    if dists.size != camera_count * DISTORTION_COEFFICIENT_COUNT:
        raise ValueError(
            f"Expected {camera_count * DISTORTION_COEFFICIENT_COUNT} distortion "
            f"coefficients, got {dists.size}"
        )

    props = props.reshape(camera_count, INTRINSICS_STRIDE)
    dists = dists.reshape(camera_count, DISTORTION_COEFFICIENT_COUNT)
    return [
        CameraIntrinsics(fx=p[0], fy=p[1], cx=p[2], cy=p[3], distortion=d)
        for p, d in zip(props, dists)
    ]


def transforms_to_flat(transforms: Sequence[RigidTransform]) -> np.ndarray:
    """Pack transforms as consecutive row-major 4x4 homogeneous blocks."""
    out = np.zeros(len(transforms) * TRANSFORM_BLOCK_SIZE, dtype=np.float32)
    for i, transform in enumerate(transforms):
        block = slice(i * TRANSFORM_BLOCK_SIZE, (i + 1) * TRANSFORM_BLOCK_SIZE)
        out[block] = transform.to_homogeneous().ravel()
    return out


def transforms_from_flat(flat: Sequence[float] | np.ndarray) -> list[RigidTransform]:
    data = np.asarray(flat, dtype=np.float64).ravel()
    if data.size % TRANSFORM_BLOCK_SIZE:
        raise ValueError(f"Flat transform length {data.size} is not a multiple of 16")
    return [
        RigidTransform.from_homogeneous(block.reshape(4, 4))
        for block in data.reshape(-1, TRANSFORM_BLOCK_SIZE)
    ]


# ============================================================================
# Bridge
# ============================================================================


@dataclass(frozen=True, slots=True)
class _SessionKey:
    camera_count: int
    required_samples: int
    image_size: tuple[int, int]
    pattern: ChessboardPattern
    intrinsics: bytes
    distortion: bytes


class FlatCalibrationBridge:
    """
    Keeps an AccumulationSession alive across flat-buffer calls.

    A new session is started whenever the call configuration changes
    (camera count, pattern, intrinsics, sample threshold or frame size).
    """

    def __init__(
        self,
        detector: Detector | None = None,
        solver: StereoSolver | None = None,
    ):
        self._detector = detector
        self._solver = solver
        self._session: AccumulationSession | None = None
        self._key: _SessionKey | None = None

    @property
    def session(self) -> AccumulationSession | None:
        return self._session

    def initialize(self) -> None:
        """Drop all accumulated samples."""
        if self._session is not None:
            self._session.reset()

    def try_calibrate(
        self,
        camera_count: int,
        required_samples: int,
        buffer: bytes | bytearray | memoryview | np.ndarray,
        width: int,
        height: int,
        pixel_size: int,
        pattern_width: int,
        pattern_height: int,
        square_length: float,
        camera_properties: Sequence[float] | np.ndarray,
        distortion_properties: Sequence[float] | np.ndarray,
    ) -> tuple[bool, bool, np.ndarray | None]:
        """
        Feed one interleaved frame batch.

        Returns:
            (all_found, completed, flat_transforms); flat_transforms holds
            16 floats per secondary camera and is None unless completed

        Raises:
            InvalidPattern: For non-positive pattern dimensions
            ValueError: For mismatched array lengths; no state is changed
        """
        pattern = ChessboardPattern(
            rows=pattern_height, cols=pattern_width, square_size=square_length
        )
        pattern.validate()

        # Validate everything before touching the session
        intrinsics = intrinsics_from_flat(camera_properties, distortion_properties, camera_count)
        frames = frames_from_buffer(buffer, camera_count, width, height, pixel_size)

        session = self._session_for(
            _SessionKey(
                camera_count=camera_count,
                required_samples=required_samples,
                image_size=(width, height),
                pattern=pattern,
                intrinsics=np.asarray(camera_properties, dtype=np.float64).tobytes(),
                distortion=np.asarray(distortion_properties, dtype=np.float64).tobytes(),
            ),
            intrinsics,
        )

        result = session.submit(frames[0], frames[1:])
        if not result.completed:
            return result.all_found, False, None
        return result.all_found, True, transforms_to_flat(result.ordered_transforms())

    def _session_for(
        self,
        key: _SessionKey,
        intrinsics: list[CameraIntrinsics],
    ) -> AccumulationSession:
        if self._session is None or key != self._key:
            if self._session is not None:
                logger.info("Calibration setup changed - starting a new session")
            self._session = AccumulationSession(
                camera_count=key.camera_count,
                pattern=key.pattern,
                intrinsics=intrinsics,
                required_sample_count=key.required_samples,
                image_size=key.image_size,
                detector=self._detector,
                solver=self._solver,
            )
            self._key = key
        return self._session
