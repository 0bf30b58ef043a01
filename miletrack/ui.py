#!/usr/bin/env python3
"""
MileTrack Capture UI - camera snapshot and odometer crop window.

This module contains the PyQt6 desktop client. It provides:
- Live camera preview with a Snap button
- Frozen snapshot with drag-to-select crop (dimmed overlay, clear window)
- Fixed center-crop shortcut as an alternative to dragging
- Upload of the cropped region and display of the recognized mileage
- List of the most recent readings

The selection rules live in miletrack.utils.selection; this module only maps
Qt mouse events into frame space and forwards them.

Main entry point: miletrack/__main__.py (python -m miletrack --ui).
"""

import sys
import logging
import threading
from typing import List, Optional, Tuple

import requests
from PyQt6.QtWidgets import (
    QApplication,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QPushButton,
    QStackedWidget,
    QVBoxLayout,
    QWidget,
)
from PyQt6.QtCore import Qt, QRectF, QTimer, pyqtSignal
from PyQt6.QtGui import (
    QColor,
    QImage,
    QKeyEvent,
    QMouseEvent,
    QPainter,
    QPaintEvent,
)
from PIL import Image

from miletrack.utils.camera import CameraCapture
from miletrack.utils.compositor import compose_frame
from miletrack.utils.config import MileTrackConfig
from miletrack.utils.errors import SelectionTooSmallError
from miletrack.utils.extract import encode_region, extract_region, save_region
from miletrack.utils.notifications import notify_error, notify_mileage_recorded
from miletrack.utils.selection import (
    CaptureSession,
    CenterCropStrategy,
    DisplayBox,
    map_client_to_frame,
)
from miletrack.utils.theme import MileTrackColors
from miletrack.utils.upload import MileageClient, MileageReading, UploadResult

# Set up logging
logging.basicConfig(level=logging.DEBUG)
logger = logging.getLogger(__name__)


class UIConstants:
    """Configuration constants for the capture window."""

    # Camera preview refresh (milliseconds, ~30 fps)
    PREVIEW_INTERVAL_MS = 33

    # Window layout (pixels)
    WINDOW_WIDTH = 960
    WINDOW_HEIGHT = 820
    CANVAS_MIN_WIDTH = 640
    CANVAS_MIN_HEIGHT = 360


def pil_to_qimage(image: Image.Image) -> QImage:
    """Convert a PIL image to a QImage that owns its pixel data."""
    if image.mode != "RGBA":
        image = image.convert("RGBA")
    data = image.tobytes("raw", "RGBA")
    qimage = QImage(data, image.width, image.height, image.width * 4, QImage.Format.Format_RGBA8888)
    # QImage does not copy the buffer; detach before `data` goes away
    return qimage.copy()


class FrameView(QWidget):
    """Displays a frame scaled to fit the widget, keeping its aspect ratio."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self.image: Optional[QImage] = None
        self.setMinimumSize(UIConstants.CANVAS_MIN_WIDTH, UIConstants.CANVAS_MIN_HEIGHT)

    def set_image(self, image: Optional[Image.Image]):
        self.image = pil_to_qimage(image) if image is not None else None
        self.update()

    def display_box(self) -> Optional[DisplayBox]:
        """Where the frame is drawn inside this widget, in widget coordinates."""
        if self.image is None or self.image.width() == 0 or self.image.height() == 0:
            return None

        scale = min(self.width() / self.image.width(), self.height() / self.image.height())
        width = self.image.width() * scale
        height = self.image.height() * scale
        return DisplayBox(
            left=(self.width() - width) / 2,
            top=(self.height() - height) / 2,
            width=width,
            height=height,
        )

    def paintEvent(self, event: QPaintEvent):
        painter = QPainter(self)
        painter.fillRect(self.rect(), QColor(MileTrackColors.CANVAS_BACKGROUND_HEX))

        box = self.display_box()
        if box is not None:
            painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
            painter.drawImage(QRectF(box.left, box.top, box.width, box.height), self.image)
        painter.end()


class CropCanvas(FrameView):
    """Snapshot view that turns mouse drags into a crop selection."""

    # Emitted with True when the selection becomes submittable
    selection_changed = pyqtSignal(bool)

    def __init__(self, session: CaptureSession, parent=None):
        super().__init__(parent)
        self.session = session
        self._composed_key: Optional[tuple] = None
        self.setCursor(Qt.CursorShape.CrossCursor)

    def refresh(self):
        """Recompose the snapshot with the current selection."""
        if not self.session.has_frame:
            self._composed_key = None
            self.set_image(None)
            return

        rect = self.session.selection.rect
        key = (id(self.session.frame), rect.x, rect.y, rect.w, rect.h)
        if key == self._composed_key:
            return
        self._composed_key = key
        self.set_image(compose_frame(self.session.frame, rect))

    def _event_to_frame(self, event: QMouseEvent) -> Optional[Tuple[float, float]]:
        box = self.display_box()
        if box is None or not self.session.has_frame:
            return None
        position = event.position()
        width, height = self.session.frame_size
        return map_client_to_frame(position.x(), position.y(), box, width, height)

    def mousePressEvent(self, event: QMouseEvent):
        if event.button() == Qt.MouseButton.LeftButton:
            point = self._event_to_frame(event)
            if point is not None:
                self.session.selection.on_drag_start(*point)
                self.selection_changed.emit(False)
                self.refresh()
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event: QMouseEvent):
        if self.session.selection.is_dragging:
            point = self._event_to_frame(event)
            if point is not None and self.session.selection.on_drag_move(*point):
                # update() inside refresh coalesces repaints to Qt's paint cycle
                self.refresh()
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event: QMouseEvent):
        if event.button() == Qt.MouseButton.LeftButton and self.session.selection.is_dragging:
            point = self._event_to_frame(event)
            if point is not None:
                ready = self.session.selection.on_drag_end(*point)
            else:
                ready = self.session.selection.on_drag_end()
            self.refresh()
            self.selection_changed.emit(ready)
        super().mouseReleaseEvent(event)


class MileageCaptureWindow(QWidget):
    """Main window: camera view, crop view, status line and recent readings."""

    # Background threads report back through these
    upload_finished = pyqtSignal(object)
    records_loaded = pyqtSignal(object)

    CAMERA_PAGE = 0
    CROP_PAGE = 1

    def __init__(self, client: MileageClient, camera: CameraCapture, save_crops: bool = False):
        super().__init__()
        self.client = client
        self.camera = camera
        self.save_crops = save_crops
        self.session = CaptureSession()
        self.center_crop = CenterCropStrategy()
        self.jpeg_quality = MileTrackConfig.jpeg_quality()

        self._last_preview: Optional[Image.Image] = None
        self._camera_started = False
        self.preview_timer = QTimer(self)
        self.preview_timer.setInterval(UIConstants.PREVIEW_INTERVAL_MS)
        self.preview_timer.timeout.connect(self._on_preview_tick)

        self.setup_window()
        self.setup_widgets()

        self.upload_finished.connect(self._on_upload_finished)
        self.records_loaded.connect(self._on_records_loaded)

    def setup_window(self):
        """Configure the window properties."""
        self.setWindowTitle("MileTrack")
        self.resize(UIConstants.WINDOW_WIDTH, UIConstants.WINDOW_HEIGHT)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)

    def setup_widgets(self):
        """Build the two views and the shared status/records area."""
        self.status_label = QLabel("Starting camera...")
        self.status_label.setWordWrap(True)
        self.mileage_label = QLabel("")
        self.mileage_label.setStyleSheet(
            f"color: {MileTrackColors.MILEAGE_TEXT_HEX}; font-size: 20px; font-weight: bold;"
        )

        # Camera view
        self.preview = FrameView()
        self.snap_button = QPushButton("Snap")
        self.snap_button.setEnabled(False)
        self.snap_button.clicked.connect(self.snap)

        camera_page = QWidget()
        camera_layout = QVBoxLayout(camera_page)
        camera_layout.addWidget(self.preview, 1)
        camera_layout.addWidget(self.snap_button)

        # Crop view
        self.canvas = CropCanvas(self.session)
        self.canvas.selection_changed.connect(self._on_selection_changed)
        self.center_button = QPushButton("Center crop")
        self.center_button.clicked.connect(self.apply_center_crop)
        self.submit_button = QPushButton("Submit crop")
        self.submit_button.setEnabled(False)
        self.submit_button.clicked.connect(self.submit)
        self.retake_button = QPushButton("Retake")
        self.retake_button.clicked.connect(self.retake)

        crop_buttons = QHBoxLayout()
        crop_buttons.addWidget(self.center_button)
        crop_buttons.addWidget(self.retake_button)
        crop_buttons.addWidget(self.submit_button)

        crop_page = QWidget()
        crop_layout = QVBoxLayout(crop_page)
        crop_layout.addWidget(self.canvas, 1)
        crop_layout.addLayout(crop_buttons)

        self.pages = QStackedWidget()
        self.pages.addWidget(camera_page)
        self.pages.addWidget(crop_page)

        self.records_list = QListWidget()
        self.records_list.setMaximumHeight(160)

        layout = QVBoxLayout(self)
        layout.addWidget(self.pages, 1)
        layout.addWidget(self.status_label)
        layout.addWidget(self.mileage_label)
        layout.addWidget(QLabel("Recent readings"))
        layout.addWidget(self.records_list)

    def set_status(self, text: str, error: bool = False, ok: bool = False):
        color = MileTrackColors.STATUS_TEXT_HEX
        if error:
            color = MileTrackColors.STATUS_ERROR_HEX
        elif ok:
            color = MileTrackColors.STATUS_OK_HEX
        self.status_label.setStyleSheet(f"color: {color};")
        self.status_label.setText(text)

    def setup_camera(self, ready_message: str = "Camera ready, press Snap to take a picture."):
        """Start the camera and switch to the camera view."""
        self.pages.setCurrentIndex(self.CAMERA_PAGE)
        self._last_preview = None

        if self.camera.start():
            self.snap_button.setEnabled(True)
            self.preview_timer.start()
            self.set_status(ready_message)
        else:
            # No retry loop; the user can reopen the window once the camera is free
            self.snap_button.setEnabled(False)
            self.set_status("Error: cannot access the camera.", error=True)

    def stop_camera(self):
        self.preview_timer.stop()
        self.camera.stop()

    def _on_preview_tick(self):
        frame = self.camera.read_frame()
        if frame is not None:
            self._last_preview = frame
            self.preview.set_image(frame)

    def snap(self):
        """Freeze the current camera frame and enter the crop view."""
        frame = self.camera.read_frame()
        if frame is None:
            frame = self._last_preview
        if frame is None:
            self.set_status("Error: the camera returned no picture.", error=True)
            return

        self.stop_camera()
        self.session.capture(frame)
        self.canvas.refresh()
        self.submit_button.setEnabled(False)
        self.pages.setCurrentIndex(self.CROP_PAGE)
        self.set_status("Drag over the odometer digits to select them.")

    def apply_center_crop(self):
        """Select the fixed center region instead of dragging."""
        if not self.session.has_frame:
            return
        rect = self.center_crop.rect_for(*self.session.frame_size)
        ready = self.session.selection.apply_rect(rect)
        self.canvas.refresh()
        self._on_selection_changed(ready)

    def _on_selection_changed(self, ready: bool):
        self.submit_button.setEnabled(ready)

    def submit(self):
        """Extract the selected region, upload it and go back to the camera."""
        if not self.session.selection.can_submit:
            return

        self.set_status("Cropping and processing the image...")
        try:
            region = extract_region(self.session.frame, self.session.selection.rect)
            data_url = encode_region(region, self.jpeg_quality)
        except (SelectionTooSmallError, ValueError) as e:
            logger.error(f"Could not extract selection: {e}")
            self.set_status(f"Error: {e}", error=True)
            return

        if self.save_crops:
            try:
                save_region(region, quality=self.jpeg_quality)
            except OSError as e:
                logger.warning(f"Crop archive failed: {e}")

        upload_thread = threading.Thread(
            target=self._upload_worker,
            args=(data_url,),
            daemon=True,
            name="MileageUpload",
        )
        upload_thread.start()

        # Ready for the next picture regardless of how the upload ends
        self.session.discard()
        self.canvas.refresh()
        self.submit_button.setEnabled(False)
        # A camera failure replaces this message
        self.setup_camera(ready_message="Uploading, recognizing the mileage...")

    def retake(self):
        """Drop the snapshot and any selection, then restart the camera."""
        self.session.discard()
        self.canvas.refresh()
        self.submit_button.setEnabled(False)
        self.setup_camera()

    def _upload_worker(self, data_url: str):
        result = self.client.upload(data_url)
        self.upload_finished.emit(result)

    def _on_upload_finished(self, result: UploadResult):
        if result.ok:
            self.set_status(result.message, ok=True)
            self.mileage_label.setText(f"Mileage: {result.mileage}")
            try:
                notify_mileage_recorded(result.mileage, result.timestamp)
            except OSError as e:
                logger.warning(f"Failed to show notification: {e}")
            self.refresh_records()
        else:
            self.set_status(result.message, error=True)
            self.mileage_label.setText("")
            if result.status_code is None:
                # Network failure, the server never answered
                notify_error("Upload Failed", result.message)

    def refresh_records(self):
        """Load recent readings in the background."""
        threading.Thread(target=self._records_worker, daemon=True, name="MileageRecords").start()

    def _records_worker(self):
        try:
            records = self.client.fetch_records()
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Failed to load records: {e}")
            records = None
        self.records_loaded.emit(records)

    def _on_records_loaded(self, records: Optional[List[MileageReading]]):
        self.records_list.clear()
        if records is None:
            self.records_list.addItem("Could not load readings.")
            return
        if not records:
            self.records_list.addItem("No readings yet.")
            return
        for record in records:
            self.records_list.addItem(f"{record.mileage:g}  -  {record.timestamp}")

    def keyPressEvent(self, event: QKeyEvent):
        """Handle key press events."""
        if event.key() == Qt.Key.Key_Escape:
            if self.pages.currentIndex() == self.CROP_PAGE:
                self.retake()
            else:
                logger.info("Escape key pressed - closing window")
                self.close()
        else:
            super().keyPressEvent(event)

    def showEvent(self, event):
        super().showEvent(event)
        # Restoring a minimized window must not throw away a snapshot
        if event.spontaneous() or self._camera_started:
            return
        self._camera_started = True
        self.setup_camera()
        self.refresh_records()

    def bring_to_front(self):
        """Show the window again when another launch asks for it."""
        self.showNormal()
        self.raise_()
        self.activateWindow()

    def closeEvent(self, event):
        """Release the camera when the window closes."""
        logger.info("Closing capture window")
        self.stop_camera()
        self.session.discard()
        self._camera_started = False
        super().closeEvent(event)


class MileTrackUI:
    """Main capture UI controller."""

    def __init__(self, server_url: Optional[str] = None, camera_index: Optional[int] = None,
                 save_crops: bool = False, instance_manager=None):
        self.instance_manager = instance_manager
        self.app: Optional[QApplication] = None
        self.window: Optional[MileageCaptureWindow] = None
        self.server_url = server_url or MileTrackConfig.server_url()
        self.camera_index = MileTrackConfig.camera_index() if camera_index is None else camera_index
        self.save_crops = save_crops

    def run(self) -> int:
        """Launch the capture UI."""
        try:
            self.app = QApplication.instance()
            if not self.app:
                self.app = QApplication(sys.argv)

            logger.info(f"Starting capture UI (server {self.server_url}, camera {self.camera_index})")

            client = MileageClient(self.server_url, timeout=MileTrackConfig.upload_timeout())
            camera = CameraCapture(self.camera_index)
            self.window = MileageCaptureWindow(client, camera, save_crops=self.save_crops)
            if self.instance_manager is not None:
                self.instance_manager.set_activate_handler(self.window.bring_to_front)
            self.window.show()

            return self.app.exec()

        except Exception as e:
            logger.error(f"Error running capture UI: {e}")
            return 1
        finally:
            self.cleanup()

    def cleanup(self):
        """Clean up resources."""
        if self.window:
            self.window.close()
            self.window = None

        if self.instance_manager is not None:
            self.instance_manager.release()

        logger.info("Capture UI cleanup completed")


def main(server_url: Optional[str] = None, camera_index: Optional[int] = None, save_crops: bool = False) -> int:
    """Main entry point for the capture UI."""
    from miletrack.utils.single_instance import SingleInstanceManager

    instance_manager = SingleInstanceManager()
    if not instance_manager.acquire():
        if instance_manager.activate_running():
            logger.info("Capture window already running, brought it to the front")
        else:
            logger.info("Another capture window is already running, exiting")
        return 0

    ui = MileTrackUI(server_url, camera_index, save_crops, instance_manager=instance_manager)
    return ui.run()


if __name__ == "__main__":
    sys.exit(main())
