"""
Chessboard corner detection.

Pure functions - no threading, no state. Any callable with the signature of
detect_chessboard_corners can stand in for it in a session.
"""

from __future__ import annotations

import cv2
import numpy as np

from ..types import ChessboardPattern


FIND_FLAGS = cv2.CALIB_CB_ADAPTIVE_THRESH | cv2.CALIB_CB_NORMALIZE_IMAGE
SUBPIX_WINDOW = (11, 11)
SUBPIX_CRITERIA = (cv2.TERM_CRITERIA_EPS + cv2.TERM_CRITERIA_MAX_ITER, 30, 0.001)


def to_bgr(image: np.ndarray) -> np.ndarray:
    """
    Convert a grey (h, w), BGR or BGRA uint8 image to BGR.

    Always returns a new array, so the result never aliases a caller's
    frame buffer.
    """
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    channels = image.shape[2]
    if channels == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    if channels == 3:
        return image.copy()
    raise ValueError(f"Unsupported channel count: {channels}")


def to_gray(image: np.ndarray) -> np.ndarray:
    if image.ndim == 2:
        return image
    channels = image.shape[2]
    if channels == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    if channels == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    if channels == 1:
        return image[:, :, 0]
    raise ValueError(f"Unsupported channel count: {channels}")


def detect_chessboard_corners(
    image: np.ndarray,
    pattern: ChessboardPattern,
) -> np.ndarray | None:
    """
    Detect the inner corners of a chessboard in a single frame.

    Args:
        image: Grey, BGR or BGRA image (h, w[, c])
        pattern: ChessboardPattern describing the inner-corner layout

    Returns:
        (rows * cols, 2) float32 corners in detector raster order,
        or None if the board wasn't found
    """
    gray = to_gray(image)

    found, corners = cv2.findChessboardCorners(gray, pattern.pattern_size, flags=FIND_FLAGS)
    if not found or corners is None:
        return None

    # Sub-pixel refinement
    try:
        corners = cv2.cornerSubPix(gray, corners, SUBPIX_WINDOW, (-1, -1), SUBPIX_CRITERIA)
    except cv2.error:
        pass  # Refinement failed, keep raw corners

    return corners.reshape(-1, 2).astype(np.float32)
