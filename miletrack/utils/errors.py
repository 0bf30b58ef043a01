"""Exception types shared across MileTrack."""


class MileTrackError(Exception):
    """Base class for MileTrack errors."""


class SelectionTooSmallError(MileTrackError, ValueError):
    """Raised when a selection is too small (or falls outside the frame) to extract."""


class InvalidImageDataError(MileTrackError, ValueError):
    """Raised when an uploaded image data URL cannot be decoded."""


class CameraUnavailableError(MileTrackError):
    """Raised when a frame is demanded but no camera could be opened."""
