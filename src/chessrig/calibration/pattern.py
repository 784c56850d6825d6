"""
Chessboard pattern geometry and board rendering.

Pure functions - no classes, no state.
"""

from __future__ import annotations

import numpy as np

from ..exceptions import InvalidPattern
from ..types import ChessboardPattern


# ============================================================================
# World Points
# ============================================================================


def generate_world_points(rows: int, cols: int, square_size: float) -> np.ndarray:
    """
    Get the 3D positions of all inner corners in the board frame.

    The board lies in z = 0 with the first detected corner at the origin.
    Points are row-major (columns fastest), matching the detector's raster
    order, so index i lines up with index i of every detection.

    Args:
        rows: Inner corners per column
        cols: Inner corners per row
        square_size: Square edge length; sets the unit of solved translations

    Returns:
        (rows * cols, 3) float32 array

    Raises:
        InvalidPattern: If any argument is not positive
    """
    if rows <= 0 or cols <= 0 or square_size <= 0:
        raise InvalidPattern(rows, cols, square_size)

    ys, xs = np.mgrid[0:rows, 0:cols]
    points = np.zeros((rows * cols, 3), dtype=np.float32)
    points[:, 0] = xs.ravel() * square_size
    points[:, 1] = ys.ravel() * square_size
    return points


def pattern_world_points(pattern: ChessboardPattern) -> np.ndarray:
    return generate_world_points(pattern.rows, pattern.cols, pattern.square_size)


# ============================================================================
# Board Rendering
# ============================================================================


def generate_chessboard_image(
    pattern: ChessboardPattern,
    square_px: int = 60,
    margin_px: int | None = None,
) -> np.ndarray:
    """
    Render a chessboard with the given inner-corner layout.

    The board has (rows + 1) x (cols + 1) squares surrounded by a white
    margin (one square wide by default), which the detector needs to find
    the outer corners.

    Args:
        pattern: ChessboardPattern to draw
        square_px: Square edge length in pixels
        margin_px: White border width in pixels

    Returns:
        BGR image as numpy array
    """
    pattern.validate()
    if margin_px is None:
        margin_px = square_px

    squares_y = pattern.rows + 1
    squares_x = pattern.cols + 1

    ys, xs = np.indices((squares_y, squares_x))
    cells = np.where((xs + ys) % 2 == 0, 0, 255).astype(np.uint8)
    board = np.kron(cells, np.ones((square_px, square_px), dtype=np.uint8))

    gray = np.pad(board, margin_px, mode="constant", constant_values=255)
    return np.repeat(gray[:, :, None], 3, axis=2)
