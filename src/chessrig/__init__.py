# chessrig - Multi-camera chessboard extrinsic calibration

__version__ = "0.1.0"

# Core types
from chessrig.types import (
    CameraIntrinsics,
    ChessboardPattern,
    CorrespondencePair,
    RigidTransform,
    SessionResult,
    RigConfig,
)

# Errors
from chessrig.exceptions import (
    CalibrationError,
    DetectionNotFound,
    DetectionMismatch,
    InvalidPattern,
    CalibrationDidNotConverge,
)

# Calibration
from chessrig.calibration import (
    resolve_corner_order,
    generate_world_points,
    detect_chessboard_corners,
    calibrate_pair,
)

# Session
from chessrig.session import AccumulationSession

# Flat-buffer bridge
from chessrig.bridge import (
    FlatCalibrationBridge,
    frames_from_buffer,
    intrinsics_from_flat,
    transforms_to_flat,
)

# Configuration
from chessrig.config import (
    load_rig_config,
    save_rig_config,
    create_default_rig_config,
)

__all__ = [
    # Core types
    "CameraIntrinsics",
    "ChessboardPattern",
    "CorrespondencePair",
    "RigidTransform",
    "SessionResult",
    "RigConfig",
    # Errors
    "CalibrationError",
    "DetectionNotFound",
    "DetectionMismatch",
    "InvalidPattern",
    "CalibrationDidNotConverge",
    # Calibration
    "resolve_corner_order",
    "generate_world_points",
    "detect_chessboard_corners",
    "calibrate_pair",
    # Session
    "AccumulationSession",
    # Bridge
    "FlatCalibrationBridge",
    "frames_from_buffer",
    "intrinsics_from_flat",
    "transforms_to_flat",
    # Configuration
    "load_rig_config",
    "save_rig_config",
    "create_default_rig_config",
]
