#!/usr/bin/env python3
"""
Entry point for python -m miletrack execution.

This module enables running MileTrack as a Python module:
    python3 -m miletrack --ui
    python3 -m miletrack --serve
    python3 -m miletrack --image odo.jpg --area 120,80,320,90

The actual CLI logic is in miletrack.cli module.
"""

from miletrack.cli import main
import sys

if __name__ == "__main__":
    sys.exit(main())
