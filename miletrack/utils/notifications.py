"""
Desktop notification system for MileTrack.

This module handles desktop notifications for recorded readings, including:
- Desktop notifications via notify-send
- Sound playback when a reading is recorded
"""

import subprocess
import logging
from typing import Optional

logger = logging.getLogger(__name__)


class NotificationTimeouts:
    """Timeout constants for notifications (milliseconds)."""

    NOTIFICATION_DISPLAY_MS = 5000  # How long to show notifications (5 seconds)
    ERROR_NOTIFICATION_MS = 3000  # Shorter timeout for errors (3 seconds)


class NotificationSystem:
    """Handles desktop notifications for MileTrack."""

    APP_NAME = "MileTrack"

    def __init__(self):
        """Initialize the notification system."""
        self.notification_available = self._check_command("notify-send")
        self.sound_available = self._check_command("paplay")

    def _check_command(self, name: str) -> bool:
        try:
            result = subprocess.run(
                ["which", name],
                capture_output=True,
                timeout=2,
            )
            return result.returncode == 0
        except (OSError, subprocess.SubprocessError) as e:
            logger.warning(f"Failed to check for {name}: {e}")
            return False

    def _play_sound(self, sound_name: str = "complete") -> None:
        """
        Play a system sound (freedesktop sound theme).

        Args:
            sound_name: The name of the sound to play
        """
        if not self.sound_available:
            return

        try:
            subprocess.Popen(
                ["paplay", f"/usr/share/sounds/freedesktop/stereo/{sound_name}.oga"],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError:
            logger.debug("Could not play notification sound")

    def _send(self, summary: str, body: str, icon: str, urgency: str, timeout_ms: int) -> None:
        subprocess.Popen(
            [
                "notify-send",
                "-i", icon,
                "-u", urgency,
                "-t", str(timeout_ms),
                "-a", self.APP_NAME,
                f"{self.APP_NAME} - {summary}",
                body,
            ],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )

    def notify_mileage_recorded(self, mileage: str, timestamp: Optional[str], play_sound: bool = True) -> None:
        """
        Show a notification that a reading was stored.

        Args:
            mileage: Recognized mileage as returned by the server
            timestamp: Server timestamp of the record
            play_sound: Whether to play a sound with the notification
        """
        if not self.notification_available:
            logger.warning("Notification system not available")
            return

        if play_sound:
            self._play_sound("complete")

        body = f"{mileage}\n{timestamp}" if timestamp else mileage
        try:
            self._send(
                "Mileage Recorded",
                body,
                "emblem-ok",
                "normal",
                NotificationTimeouts.NOTIFICATION_DISPLAY_MS,
            )
        except OSError as e:
            logger.error(f"Failed to show notification: {e}")

    def notify_error(self, title: str, message: str) -> None:
        """
        Show an error notification.

        Args:
            title: Error title
            message: Error message
        """
        if not self.notification_available:
            return

        try:
            self._send(
                title,
                message,
                "dialog-error",
                "critical",
                NotificationTimeouts.ERROR_NOTIFICATION_MS,
            )
        except OSError as e:
            logger.error(f"Failed to show error notification: {e}")


# Global notification system instance
_notification_system: Optional[NotificationSystem] = None


def get_notification_system() -> NotificationSystem:
    """Get the global notification system instance."""
    global _notification_system
    if _notification_system is None:
        _notification_system = NotificationSystem()
    return _notification_system


def notify_mileage_recorded(mileage: str, timestamp: Optional[str] = None, play_sound: bool = True) -> None:
    """Show notification for a stored reading."""
    get_notification_system().notify_mileage_recorded(mileage, timestamp, play_sound)


def notify_error(title: str, message: str) -> None:
    """Show error notification."""
    get_notification_system().notify_error(title, message)
