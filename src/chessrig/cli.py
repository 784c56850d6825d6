#!/usr/bin/env python3
"""
chessrig CLI - multi-camera chessboard extrinsic calibration.

Usage:
    chessrig calibrate CONFIG FRAME_DIR [FRAME_DIR ...] [-v]
                                   - Calibrate from one image folder per camera
                                     (reference camera first)
    chessrig board CONFIG OUTPUT [SQUARE_PX]
                                   - Write a printable chessboard image
    chessrig --help                - Show this help
"""

import logging
import sys
from pathlib import Path

import cv2
import numpy as np

IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".bmp", ".tif", ".tiff"}


def _list_images(directory: Path) -> list[Path]:
    return sorted(p for p in directory.iterdir() if p.suffix.lower() in IMAGE_SUFFIXES)


def calibrate_main(args: list[str]) -> int:
    from chessrig.config import load_rig_config
    from chessrig.session import AccumulationSession

    verbose = "-v" in args
    args = [a for a in args if a != "-v"]
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if len(args) < 3:
        print("Usage: chessrig calibrate CONFIG FRAME_DIR [FRAME_DIR ...] [-v]")
        return 1

    config = load_rig_config(Path(args[0]))
    frame_dirs = [Path(a) for a in args[1:]]

    if len(frame_dirs) != config.camera_count:
        print(f"Config describes {config.camera_count} cameras, got {len(frame_dirs)} folders")
        return 1

    image_lists = [_list_images(d) for d in frame_dirs]
    batch_count = min(len(images) for images in image_lists)
    if batch_count == 0:
        print("No images found")
        return 1

    session = AccumulationSession(
        camera_count=config.camera_count,
        pattern=config.pattern,
        intrinsics=config.cameras,
        required_sample_count=config.required_sample_count,
        image_size=config.image_size,
    )

    for batch_index, paths in enumerate(zip(*image_lists)):
        frames = [cv2.imread(str(p)) for p in paths]
        missing = [str(p) for p, f in zip(paths, frames) if f is None]
        if missing:
            print(f"Skipping batch {batch_index}: unreadable {missing}")
            continue

        result = session.submit(frames[0], frames[1:])
        print(
            f"Batch {batch_index + 1}/{batch_count}: "
            f"all found={result.all_found}, samples={result.sample_counts}"
        )

        if result.completed:
            np.set_printoptions(precision=6, suppress=True)
            for idx, transform in sorted(result.transforms.items()):
                print(f"\nCamera {idx} -> camera 0 (rms {transform.reprojection_error:.4f} px)")
                print(transform.to_homogeneous())
                print(f"axis-angle: {transform.rotation_vector}")
            return 0

    print(f"Calibration did not complete after {batch_count} batches")
    return 1


def board_main(args: list[str]) -> int:
    from chessrig.calibration.pattern import generate_chessboard_image
    from chessrig.config import load_rig_config

    if len(args) < 2:
        print("Usage: chessrig board CONFIG OUTPUT [SQUARE_PX]")
        return 1

    config = load_rig_config(Path(args[0]))
    square_px = int(args[2]) if len(args) > 2 else 100

    img = generate_chessboard_image(config.pattern, square_px=square_px)
    if not cv2.imwrite(args[1], img):
        print(f"Could not write {args[1]}")
        return 1

    print(f"Wrote {config.pattern.rows}x{config.pattern.cols} board to {args[1]}")
    return 0


def main(argv: list[str] | None = None) -> int:
    argv = sys.argv[1:] if argv is None else argv

    if not argv or argv[0] in ("-h", "--help"):
        print(__doc__)
        return 0

    command, rest = argv[0], argv[1:]

    if command == "calibrate":
        return calibrate_main(rest)

    elif command == "board":
        return board_main(rest)

    else:
        print(f"Unknown command: {command}")
        print("Run 'chessrig --help' for usage")
        return 1


if __name__ == "__main__":
    sys.exit(main())
