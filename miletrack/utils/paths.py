"""Centralized path management for MileTrack.

This module provides utilities for managing the files and directories used
by MileTrack: the readings database and the archive of extracted crops.
"""

import os
from datetime import datetime
from pathlib import Path


class MileTrackPaths:
    """Centralized path management for MileTrack.

    Provides consistent access to default directories and file naming
    conventions across the application.
    """

    # Default directories (will be expanded with os.path.expanduser)
    DEFAULT_DATA_DIR = "~/.local/share/miletrack"
    CROPS_SUBDIR = "crops"
    DATABASE_FILENAME = "mileage.db"

    # File naming configuration
    CROP_PREFIX = "odo"
    CROP_EXTENSION = ".jpg"
    TIMESTAMP_FORMAT = "%Y-%m-%d_%H%M%S"

    @staticmethod
    def get_data_dir() -> str:
        """Get the data directory (expanded).

        Returns:
            str: Absolute path to the data directory with ~ expanded.
        """
        return os.path.expanduser(
            os.environ.get("MILETRACK_DATA_DIR", MileTrackPaths.DEFAULT_DATA_DIR)
        )

    @staticmethod
    def get_database_path() -> str:
        """Get the SQLite database path, honoring MILETRACK_DB_PATH."""
        override = os.environ.get("MILETRACK_DB_PATH")
        if override:
            return os.path.expanduser(override)
        return os.path.join(MileTrackPaths.get_data_dir(), MileTrackPaths.DATABASE_FILENAME)

    @staticmethod
    def get_crops_dir() -> str:
        """Get the directory where extracted crops are archived."""
        return os.path.join(MileTrackPaths.get_data_dir(), MileTrackPaths.CROPS_SUBDIR)

    @staticmethod
    def ensure_directories() -> str:
        """Create the data directory if needed and return its path."""
        data_dir = MileTrackPaths.get_data_dir()
        Path(data_dir).mkdir(parents=True, exist_ok=True)
        return data_dir

    @staticmethod
    def generate_crop_filename() -> str:
        """Generate a timestamped crop filename.

        Returns:
            str: Filename in format: odo_YYYY-MM-DD_HHMMSS.jpg

        Example:
            >>> MileTrackPaths.generate_crop_filename()
            'odo_2025-01-15_143022.jpg'
        """
        timestamp = datetime.now().strftime(MileTrackPaths.TIMESTAMP_FORMAT)
        return f"{MileTrackPaths.CROP_PREFIX}_{timestamp}{MileTrackPaths.CROP_EXTENSION}"

    @staticmethod
    def get_crop_path(custom_dir: str = None) -> str:
        """Get full path for a new crop file.

        Args:
            custom_dir: Optional custom directory path. If None, uses default.

        Returns:
            str: Full absolute path to the crop file.
        """
        directory = custom_dir if custom_dir else MileTrackPaths.get_crops_dir()
        return os.path.join(directory, MileTrackPaths.generate_crop_filename())
