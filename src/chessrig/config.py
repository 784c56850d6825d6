"""
Rig configuration loading/saving.

Pure functions operating on dataclasses. TOML layout:

    required_samples = 10
    image_size = [1280, 720]        # optional

    [pattern]
    rows = 6
    cols = 9
    square_size = 25.0              # mm; sets the unit of solved translations

    [cameras.0]                     # reference camera
    fx = 800.0
    fy = 800.0
    cx = 640.0
    cy = 360.0
    distortion = [0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0]

    [cameras.1]
    ...
"""

from __future__ import annotations

from pathlib import Path

import rtoml

from .types import CameraIntrinsics, ChessboardPattern, RigConfig


DEFAULT_PATTERN = ChessboardPattern(rows=6, cols=9, square_size=25.0)
DEFAULT_REQUIRED_SAMPLES = 10


# ============================================================================
# TOML Rig Configuration
# ============================================================================


def load_rig_config(path: Path) -> RigConfig:
    """
    Load rig configuration from TOML file.

    Args:
        path: Path to rig.toml file

    Returns:
        RigConfig dataclass

    Raises:
        InvalidPattern: If the pattern section has non-positive values
        ValueError: If camera indices are not contiguous from 0
    """
    data = rtoml.load(Path(path))

    pattern_data = data.get("pattern", {})
    pattern = ChessboardPattern(
        rows=int(pattern_data.get("rows", DEFAULT_PATTERN.rows)),
        cols=int(pattern_data.get("cols", DEFAULT_PATTERN.cols)),
        square_size=float(pattern_data.get("square_size", DEFAULT_PATTERN.square_size)),
    )
    pattern.validate()

    cameras_data = data.get("cameras", {})
    try:
        indices = sorted(int(key) for key in cameras_data)
    except ValueError as e:
        raise ValueError(f"Camera keys must be integer indices: {list(cameras_data)}") from e
    if indices != list(range(len(indices))):
        raise ValueError(f"Camera indices must run 0..N-1, got {indices}")

    cameras = []
    for idx in indices:
        cam_data = cameras_data[str(idx)]
        cameras.append(
            CameraIntrinsics(
                fx=float(cam_data["fx"]),
                fy=float(cam_data["fy"]),
                cx=float(cam_data["cx"]),
                cy=float(cam_data["cy"]),
                distortion=cam_data.get("distortion", []),
            )
        )

    image_size = data.get("image_size")

    return RigConfig(
        pattern=pattern,
        cameras=tuple(cameras),
        required_sample_count=int(data.get("required_samples", DEFAULT_REQUIRED_SAMPLES)),
        image_size=tuple(image_size) if image_size else None,
    )


def save_rig_config(config: RigConfig, path: Path) -> None:
    """
    Save rig configuration to TOML file.

    Args:
        config: RigConfig dataclass
        path: Path to save rig.toml
    """
    data = {
        "required_samples": config.required_sample_count,
        "pattern": {
            "rows": config.pattern.rows,
            "cols": config.pattern.cols,
            "square_size": config.pattern.square_size,
        },
        "cameras": {},
    }
    if config.image_size is not None:
        data["image_size"] = list(config.image_size)

    for idx, cam in enumerate(config.cameras):
        data["cameras"][str(idx)] = {
            "fx": cam.fx,
            "fy": cam.fy,
            "cx": cam.cx,
            "cy": cam.cy,
            "distortion": cam.distortion.tolist(),
        }

    # Ensure parent directory exists
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w") as f:
        rtoml.dump(data, f)


def create_default_rig_config(
    camera_count: int = 2,
    image_size: tuple[int, int] = (1280, 720),
) -> RigConfig:
    """
    Create a default rig configuration.

    Intrinsics are placeholders (centred principal point, no distortion) and
    must be replaced with real values before calibrating.
    """
    width, height = image_size
    placeholder = CameraIntrinsics(
        fx=float(width),
        fy=float(width),
        cx=width / 2.0,
        cy=height / 2.0,
    )
    return RigConfig(
        pattern=DEFAULT_PATTERN,
        cameras=tuple(placeholder for _ in range(camera_count)),
        required_sample_count=DEFAULT_REQUIRED_SAMPLES,
        image_size=image_size,
    )
