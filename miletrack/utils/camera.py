"""
Frame acquisition for MileTrack.

This module handles getting a still frame to crop:
- Live camera capture through OpenCV
- Loading a frame from an image file (CLI and tests)

A missing camera is reported through the is_ready flag and never raised
from start() or read_frame().
"""

import logging
from typing import Optional

import cv2
from PIL import Image

from .errors import CameraUnavailableError

logger = logging.getLogger(__name__)


class CameraCapture:
    """Live camera source backed by cv2.VideoCapture."""

    def __init__(self, device_index: int = 0):
        self.device_index = device_index
        self._capture: Optional[cv2.VideoCapture] = None
        self.is_ready: bool = False
        self.last_error: Optional[str] = None

    def start(self) -> bool:
        """
        Open the camera.

        Returns:
            True if the camera is streaming, False otherwise
        """
        if self.is_ready:
            return True

        try:
            capture = cv2.VideoCapture(self.device_index)
            if not capture.isOpened():
                capture.release()
                self.last_error = f"Camera {self.device_index} could not be opened"
                logger.error(self.last_error)
                return False
        except cv2.error as e:
            # OpenCV raises when the backend is missing or permission is denied
            self.last_error = f"Camera {self.device_index} unavailable: {e}"
            logger.error(self.last_error)
            return False

        self._capture = capture
        self.is_ready = True
        self.last_error = None
        width = int(capture.get(cv2.CAP_PROP_FRAME_WIDTH))
        height = int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT))
        logger.info(f"Camera {self.device_index} ready: {width}x{height}")
        return True

    def read_frame(self) -> Optional[Image.Image]:
        """Grab the current frame as an RGBA image, or None if unavailable."""
        if not self.is_ready or self._capture is None:
            return None

        try:
            ok, bgr = self._capture.read()
        except cv2.error as e:
            logger.warning(f"Camera read failed: {e}")
            return None

        if not ok or bgr is None:
            logger.warning("Camera returned no frame")
            return None

        rgba = cv2.cvtColor(bgr, cv2.COLOR_BGR2RGBA)
        return Image.fromarray(rgba, "RGBA")

    def stop(self):
        """Release the camera stream."""
        if self._capture is not None:
            self._capture.release()
            logger.debug(f"Camera {self.device_index} released")
        self._capture = None
        self.is_ready = False


def load_frame(path: str) -> Image.Image:
    """Load an image file as an RGBA frame."""
    with Image.open(path) as image:
        frame = image.convert("RGBA")
    logger.info(f"Frame loaded from {path}: {frame.width}x{frame.height}")
    return frame


def snap_frame(device_index: int = 0) -> Image.Image:
    """Open the camera, grab one frame and release it again."""
    camera = CameraCapture(device_index)
    try:
        if not camera.start():
            raise CameraUnavailableError(camera.last_error or "Camera unavailable")
        frame = camera.read_frame()
        if frame is None:
            raise CameraUnavailableError("Camera returned no frame")
        return frame
    finally:
        camera.stop()
