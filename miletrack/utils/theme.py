"""Shared color palette for MileTrack.

Colors are plain RGBA tuples so the Pillow compositor can use them directly;
the Qt widgets use the hex variants in their style sheets.
"""


class MileTrackColors:
    """Centralized color palette for MileTrack UI components."""

    # Crop overlay - drawn by the compositor
    DIM_OVERLAY = (0, 0, 0, 128)  # Black at 50% opacity
    CUTOUT_CLEAR = (0, 0, 0, 0)  # Fully transparent window over the selection
    SELECTION_BORDER = (255, 193, 7, 255)  # Amber (#FFC107)

    # Status line (Qt style sheets)
    STATUS_TEXT_HEX = "#E0E0E0"
    STATUS_OK_HEX = "#4CAF50"
    STATUS_ERROR_HEX = "#F44336"
    MILEAGE_TEXT_HEX = "#FFC107"

    # Backgrounds
    CANVAS_BACKGROUND_HEX = "#202020"
