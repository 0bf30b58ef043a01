"""Tests for camera acquisition when no camera can be opened."""

import pytest

from miletrack.cli import main
from miletrack.utils import camera as camera_module
from miletrack.utils.camera import CameraCapture, snap_frame
from miletrack.utils.errors import CameraUnavailableError


class ClosedVideoCapture:
    """Stands in for cv2.VideoCapture on a machine without a camera."""

    instances = []

    def __init__(self, index):
        self.index = index
        self.released = False
        ClosedVideoCapture.instances.append(self)

    def isOpened(self):
        return False

    def release(self):
        self.released = True


@pytest.fixture(autouse=True)
def no_camera(monkeypatch, tmp_path):
    ClosedVideoCapture.instances = []
    monkeypatch.setattr(camera_module.cv2, "VideoCapture", ClosedVideoCapture)
    monkeypatch.setenv("MILETRACK_DATA_DIR", str(tmp_path / "data"))


def test_unavailable_camera_is_not_ready():
    camera = CameraCapture(3)

    assert camera.start() is False
    assert camera.is_ready is False
    assert "Camera 3" in camera.last_error
    assert camera.read_frame() is None
    assert ClosedVideoCapture.instances[0].released


def test_stop_without_start_is_harmless():
    camera = CameraCapture()
    camera.stop()
    assert camera.is_ready is False


def test_snap_frame_raises_when_camera_missing():
    with pytest.raises(CameraUnavailableError):
        snap_frame(0)


def test_cli_snap_without_camera_fails(capsys):
    assert main(["--snap", "--no-upload"]) == 1
    assert "camera unavailable" in capsys.readouterr().out
