"""
Tests for chessrig.cli.
"""

import cv2
import numpy as np

from chessrig.cli import main
from chessrig.config import create_default_rig_config, save_rig_config
from chessrig.types import RigConfig

from conftest import render_views


class TestCli:
    def test_help(self, capsys):
        assert main(["--help"]) == 0
        assert "calibrate" in capsys.readouterr().out

    def test_unknown_command(self, capsys):
        assert main(["frobnicate"]) == 1
        assert "Unknown command" in capsys.readouterr().out

    def test_board(self, temp_dir):
        config_path = temp_dir / "rig.toml"
        save_rig_config(create_default_rig_config(), config_path)
        out = temp_dir / "board.png"

        assert main(["board", str(config_path), str(out), "20"]) == 0

        img = cv2.imread(str(out))
        assert img is not None
        # 6 x 9 inner corners -> 7 x 10 squares plus a one-square margin
        assert img.shape[:2] == (9 * 20, 12 * 20)

    def test_calibrate_folder_count_mismatch(self, temp_dir, capsys):
        config_path = temp_dir / "rig.toml"
        save_rig_config(create_default_rig_config(camera_count=2), config_path)
        (temp_dir / "cam0").mkdir()

        cam0 = str(temp_dir / "cam0")
        assert main(["calibrate", str(config_path), cam0, cam0, cam0]) == 1
        assert "2 cameras" in capsys.readouterr().out

    def test_calibrate_no_images(self, temp_dir, capsys):
        config_path = temp_dir / "rig.toml"
        save_rig_config(create_default_rig_config(camera_count=2), config_path)
        for name in ("cam0", "cam1"):
            (temp_dir / name).mkdir()

        assert main(["calibrate", str(config_path), str(temp_dir / "cam0"), str(temp_dir / "cam1")]) == 1
        assert "No images" in capsys.readouterr().out

    def test_calibrate_incomplete(self, temp_dir, capsys):
        """Blank frames never complete; the command reports failure."""
        config_path = temp_dir / "rig.toml"
        save_rig_config(create_default_rig_config(camera_count=2), config_path)
        for name in ("cam0", "cam1"):
            folder = temp_dir / name
            folder.mkdir()
            cv2.imwrite(str(folder / "0001.png"), np.full((120, 160, 3), 255, dtype=np.uint8))

        assert main(["calibrate", str(config_path), str(temp_dir / "cam0"), str(temp_dir / "cam1")]) == 1
        out = capsys.readouterr().out
        assert "all found=False" in out
        assert "did not complete" in out

    def test_calibrate_rendered_rig(
        self, temp_dir, capsys, sample_pattern, sample_intrinsics, known_transform
    ):
        """Boards warped into two cameras calibrate and print the solved pose."""
        config = RigConfig(
            pattern=sample_pattern,
            cameras=(sample_intrinsics, sample_intrinsics),
            required_sample_count=2,
            image_size=(1280, 720),
        )
        config_path = temp_dir / "rig.toml"
        save_rig_config(config, config_path)

        reference_images, secondary_images = render_views(
            sample_pattern, sample_intrinsics, known_transform
        )
        folders = []
        for name, images in (("cam0", reference_images), ("cam1", secondary_images)):
            folder = temp_dir / name
            folder.mkdir()
            for i, image in enumerate(images):
                assert cv2.imwrite(str(folder / f"{i:04d}.png"), image)
            folders.append(str(folder))

        assert main(["calibrate", str(config_path), *folders]) == 0
        out = capsys.readouterr().out
        assert "all found=True" in out
        assert "Camera 1 -> camera 0" in out
        assert "did not complete" not in out
