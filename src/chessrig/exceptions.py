"""
Exception types for chessrig.

Detection and solve failures are per-camera and recoverable; the session
catches them and keeps accumulating. InvalidPattern and DetectionMismatch
also subclass ValueError since they signal bad input.
"""

from __future__ import annotations


class CalibrationError(Exception):
    """Base class for all chessrig errors."""


class DetectionNotFound(CalibrationError):
    """
    No chessboard was visible in a camera's frame for this batch.

    Detectors may raise this instead of returning None; the session treats
    both the same way.
    """

    def __init__(self, camera_index: int | None = None):
        self.camera_index = camera_index
        where = "" if camera_index is None else f" in camera {camera_index}"
        super().__init__(f"Chessboard not found{where}")


class DetectionMismatch(CalibrationError, ValueError):
    """
    Paired corner observations are empty or of different lengths.

    Indicates the detector broke its contract; the pair is discarded.
    """

    def __init__(self, reference_length: int, secondary_length: int, message: str = ""):
        self.reference_length = reference_length
        self.secondary_length = secondary_length
        detail = message or "Corner observations must be non-empty and equal length"
        super().__init__(
            f"{detail} (reference={reference_length}, secondary={secondary_length})"
        )


class InvalidPattern(CalibrationError, ValueError):
    """Non-positive chessboard dimensions or square size."""

    def __init__(self, rows: int, cols: int, square_size: float):
        self.rows = rows
        self.cols = cols
        self.square_size = square_size
        super().__init__(
            f"Invalid chessboard pattern: rows={rows}, cols={cols}, "
            f"square_size={square_size} (all must be positive)"
        )


class CalibrationDidNotConverge(CalibrationError):
    """
    The stereo solve could not produce a stable extrinsic estimate.

    Usually means the samples lack pose diversity; collecting more frames
    is the remedy.
    """

    def __init__(
        self,
        reason: str,
        camera_index: int | None = None,
        sample_count: int = 0,
    ):
        self.reason = reason
        self.camera_index = camera_index
        self.sample_count = sample_count
        where = "" if camera_index is None else f" for camera {camera_index}"
        super().__init__(
            f"Stereo calibration did not converge{where} "
            f"({sample_count} samples): {reason}"
        )
