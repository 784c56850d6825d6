"""
Corner ordering between paired chessboard detections.

A rectangular chessboard looks the same after a 180 degree rotation, so the
detector may legitimately return the corners of one view in reverse order
relative to another view of the same placement:

        reference                  secondary
    .....................    .....................
    .........xxxxxL......    .....xxxxxF..........
    .........xxxxxx......    .....xxxxxx..........
    .........Fxxxxx......    .....Lxxxxx..........
    .....................    .....................

F and L are the first and last detected corners. Here the secondary's first
corner is physically the reference's last one.
"""

from __future__ import annotations

import numpy as np

from ..exceptions import DetectionMismatch


def corner_span(corners: np.ndarray) -> np.ndarray:
    """Pixel displacement from the first detected corner to the last."""
    return corners[-1] - corners[0]


def is_reversed(reference: np.ndarray, secondary: np.ndarray) -> bool:
    """
    True if the secondary winding opposes the reference winding.

    The first and last corners sit at opposite ends of the board, so their
    displacement vectors point the same way only when both detections share
    an ordering. Assumes neither camera is rolled ~180 degrees relative to
    the other.
    """
    return float(np.dot(corner_span(reference), corner_span(secondary))) <= 0.0


def resolve_corner_order(reference: np.ndarray, secondary: np.ndarray) -> np.ndarray:
    """
    Return the secondary corners ordered to match the reference corners.

    Args:
        reference: (n, 2) corners from the reference camera (not modified)
        secondary: (n, 2) corners from a secondary camera

    Returns:
        (n, 2) array: secondary reversed if its winding opposes the
        reference, otherwise an unchanged copy

    Raises:
        DetectionMismatch: If either is empty or their lengths differ
    """
    reference = np.asarray(reference, dtype=np.float32).reshape(-1, 2)
    secondary = np.asarray(secondary, dtype=np.float32).reshape(-1, 2)

    if len(reference) == 0 or len(secondary) == 0 or len(reference) != len(secondary):
        raise DetectionMismatch(len(reference), len(secondary))

    if is_reversed(reference, secondary):
        return secondary[::-1].copy()
    return secondary.copy()
