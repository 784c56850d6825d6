"""
Calibration module for chessrig.

All functions are pure - arrays and dataclasses in, arrays and dataclasses
out. Sample accumulation lives in chessrig.session.
"""

from .correspondence import (
    is_reversed,
    resolve_corner_order,
)

from .pattern import (
    generate_chessboard_image,
    generate_world_points,
    pattern_world_points,
)

from .detection import (
    detect_chessboard_corners,
    to_bgr,
)

from .stereo import (
    calibrate_pair,
    orthonormalize_rotation,
    rotation_matrix_to_axis_angle,
    solve_stereo_extrinsics,
)

__all__ = [
    # Correspondence
    "is_reversed",
    "resolve_corner_order",
    # Pattern
    "generate_chessboard_image",
    "generate_world_points",
    "pattern_world_points",
    # Detection
    "detect_chessboard_corners",
    "to_bgr",
    # Stereo
    "calibrate_pair",
    "orthonormalize_rotation",
    "rotation_matrix_to_axis_angle",
    "solve_stereo_extrinsics",
]
