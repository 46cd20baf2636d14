import numpy as np
import imageio.v3 as iio
import pyvista as pv
import pytest
from terrafit.__main__ import build_parser, main
from terrafit.mesh import HeightFieldMesh

# Camera looking straight down: a 90 degree rotation about x maps the optical
# axis onto -y, and the camera sits 2 m above the origin.
LOOK_DOWN = "0.70710678 0.0 0.0 0.70710678"


@pytest.fixture
def floor_recording(tmp_path):
    """A camera hovering over a flat floor at height 1 for three frames."""
    folder = tmp_path / "recording"
    depth_dir = folder / "depth"
    depth_dir.mkdir(parents=True)
    depth = np.full((12, 16), 5000, dtype=np.uint16)
    for t in ("1.0", "1.5", "2.0"):
        iio.imwrite(str(depth_dir / "{}.png".format(t)), depth)
    lines = ["{} 0.0 2.0 0.0 {}".format(t, LOOK_DOWN) for t in ("0.0", "3.0")]
    (folder / "groundtruth.txt").write_text("\n".join(lines) + "\n")
    return folder


def test_parser_defaults():
    args = build_parser().parse_args(["recording"])
    assert args.resolution == 30
    assert args.scaling_factor == 1.4
    assert args.iterations == 1
    assert args.stride == 4
    assert args.output is None


def test_fit_recording_to_surface(floor_recording, tmp_path, capsys):
    output = str(tmp_path / "floor.vtp")
    code = main([str(floor_recording), "--resolution", "4", "--iterations", "20",
                 "--stride", "1", "--workers", "1", "--no-progress", "--output", output])
    assert code == 0
    out = capsys.readouterr().out
    assert "Fitted 3 frames" in out
    assert "60 sweeps" in out
    surface = pv.read(output)
    assert surface.n_points == 16
    assert np.allclose(surface.point_data["height"], 1.0, atol=1e-6)


def test_fit_recording_to_state(floor_recording, tmp_path):
    output = str(tmp_path / "floor.hfm")
    code = main([str(floor_recording), "--resolution", "3", "--frames", "2",
                 "--stride", "2", "--workers", "1", "--no-progress", "--output", output])
    assert code == 0
    mesh = HeightFieldMesh.load(output)
    assert mesh.resolution == 3
    assert np.allclose(mesh.vertices()[:, 1], 1.0, atol=1e-6)


def test_missing_recording(tmp_path, capsys):
    code = main([str(tmp_path / "nowhere"), "--no-progress"])
    assert code == 2
    assert "Error" in capsys.readouterr().out


def test_recording_without_usable_frames(tmp_path, capsys):
    (tmp_path / "depth").mkdir()
    (tmp_path / "groundtruth.txt").write_text("0.0 0.0 0.0 0.0 0.0 0.0 0.0 1.0\n")
    code = main([str(tmp_path), "--no-progress"])
    assert code == 1
    assert "No usable frames" in capsys.readouterr().out
