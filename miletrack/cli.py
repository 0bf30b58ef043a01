#!/usr/bin/env python3
"""
MileTrack CLI interface and command routing.

This module handles command-line argument parsing and routes commands
to appropriate handlers (capture UI, server, one-shot crop upload, records).

Main entry point: miletrack/__main__.py or the miletrack console script.
"""

import argparse
import sys

from miletrack.utils.config import MileTrackConfig
from miletrack.utils.paths import MileTrackPaths


def setup_directories():
    return MileTrackPaths.ensure_directories()


def parse_area(value: str):
    """Parse 'x,y,width,height' into a SelectionRect."""
    from miletrack.utils.selection import SelectionRect

    x, y, width, height = map(float, value.split(","))
    if width < 0 or height < 0:
        raise ValueError("width and height must not be negative")
    return SelectionRect(x, y, width, height)


def cmd_upload(args) -> int:
    """Crop a frame (file or camera snapshot) and upload it."""
    from miletrack.utils.camera import load_frame, snap_frame
    from miletrack.utils.errors import CameraUnavailableError, SelectionTooSmallError
    from miletrack.utils.extract import encode_region, extract_region, save_region
    from miletrack.utils.selection import CenterCropStrategy, CropSelection
    from miletrack.utils.upload import MileageClient

    try:
        frame = load_frame(args.image) if args.image else snap_frame(MileTrackConfig.camera_index())
    except CameraUnavailableError as e:
        print(f"Error: camera unavailable: {e}")
        return 1
    except OSError as e:
        print(f"Error reading image: {e}")
        return 1

    selection = CropSelection(frame.width, frame.height)
    if args.area:
        try:
            rect = parse_area(args.area)
        except ValueError:
            print("Error: Area format should be 'x,y,width,height' (e.g., '100,80,320,90')")
            return 1
    else:
        try:
            strategy = CenterCropStrategy(args.center_width, args.center_height)
        except ValueError as e:
            print(f"Error: {e}")
            return 1
        rect = strategy.rect_for(frame.width, frame.height)

    if not selection.apply_rect(rect):
        print(f"Error: selection {selection.rect.w:.0f}x{selection.rect.h:.0f} is too small "
              f"(both sides must be larger than 10 pixels)")
        return 1

    try:
        region = extract_region(frame, selection.rect)
    except SelectionTooSmallError as e:
        print(f"Error: {e}")
        return 1

    print(f"Cropped {region.width}x{region.height} region from {frame.width}x{frame.height} frame")

    if args.output:
        try:
            path = save_region(region, directory=args.output)
            print(f"Crop saved: {path}")
        except OSError as e:
            print(f"Error saving crop: {e}")
            return 1

    if args.no_upload:
        return 0

    client = MileageClient(args.server or MileTrackConfig.server_url(),
                           timeout=MileTrackConfig.upload_timeout())
    result = client.upload(encode_region(region, MileTrackConfig.jpeg_quality()))
    print(result.message)
    if not result.ok:
        return 1

    print(f"Mileage: {result.mileage}")
    print(f"Timestamp: {result.timestamp}")
    return 0


def cmd_records(args) -> int:
    """Print the most recent readings."""
    import requests
    from miletrack.utils.upload import MileageClient

    client = MileageClient(args.server or MileTrackConfig.server_url(),
                           timeout=MileTrackConfig.upload_timeout())
    try:
        records = client.fetch_records()
    except (requests.RequestException, ValueError) as e:
        print(f"Error fetching records: {e}")
        return 1

    if not records:
        print("No readings recorded yet.")
        return 0

    for record in records:
        print(f"{record.mileage:>12g}  {record.timestamp}")
    return 0


def cmd_serve(args) -> int:
    """Run the upload/records HTTP server."""
    from miletrack.server import run_server

    return run_server(host=args.host, port=args.port, db_path=args.db)


def cmd_info(args) -> int:
    """Display configuration information."""
    print("MileTrack configuration:")
    print(f"  Server URL:   {args.server or MileTrackConfig.server_url()}")
    print(f"  Database:     {MileTrackConfig.database_path()}")
    print(f"  Crops dir:    {MileTrackPaths.get_crops_dir()}")
    print(f"  Camera index: {MileTrackConfig.camera_index()}")
    print(f"  JPEG quality: {MileTrackConfig.jpeg_quality()}")
    return 0


def cmd_test_camera(args) -> int:
    """Test camera availability."""
    from miletrack.utils.camera import CameraCapture

    camera = CameraCapture(MileTrackConfig.camera_index())
    print(f"Testing camera {camera.device_index}...")
    try:
        if not camera.start():
            print(f"❌ Camera is not available: {camera.last_error}")
            return 1
        frame = camera.read_frame()
        if frame is None:
            print("❌ Camera opened but returned no frame")
            return 1
        print(f"✅ Camera is working ({frame.width}x{frame.height})")
        return 0
    finally:
        camera.stop()


def cmd_capture_ui(args) -> int:
    """Launch the interactive capture UI."""
    try:
        from miletrack.ui import main as capture_ui_main
    except ImportError as e:
        print(f"❌ Failed to import capture UI: {e}")
        print("Make sure PyQt6 is installed: pip install PyQt6")
        return 1

    print("Launching capture UI...")
    return capture_ui_main(server_url=args.server, save_crops=args.save_crops)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="MileTrack - odometer photo, crop and OCR mileage log",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --ui                                   # Launch the camera/crop window
  %(prog)s --serve                                # Run the OCR + records server
  %(prog)s --image odo.jpg --area 120,80,320,90   # Crop a file and upload it
  %(prog)s --image odo.jpg --center-crop          # Upload the center of a file
  %(prog)s --snap --center-crop --no-upload -o .  # Snapshot, crop and save only
  %(prog)s --records                              # Show recent readings
  %(prog)s --info                                 # Show configuration
        """,
    )

    # Commands
    parser.add_argument("--ui", action="store_true", help="Launch interactive capture UI")
    parser.add_argument("--serve", action="store_true", help="Run the mileage server")
    parser.add_argument("--image", metavar="PATH", help="Crop and upload an image file")
    parser.add_argument("--snap", action="store_true", help="Crop and upload a camera snapshot")
    parser.add_argument("--records", action="store_true", help="Show recent readings")
    parser.add_argument("--info", action="store_true", help="Show configuration")
    parser.add_argument("--test-camera", action="store_true", help="Test camera availability")

    # Crop options
    strategy = parser.add_mutually_exclusive_group()
    strategy.add_argument("--area", metavar="x,y,w,h",
                          help="Crop area in frame pixels (format: x,y,width,height)")
    strategy.add_argument("--center-crop", action="store_true",
                          help="Use the fixed center crop (default when --area is not given)")
    parser.add_argument("--center-width", type=float, default=0.6, metavar="FRACTION",
                        help="Center crop width as a fraction of the frame (default: 0.6)")
    parser.add_argument("--center-height", type=float, default=0.3, metavar="FRACTION",
                        help="Center crop height as a fraction of the frame (default: 0.3)")
    parser.add_argument("--output", "-o", metavar="DIR", help="Also save the crop to this directory")
    parser.add_argument("--no-upload", action="store_true", help="Crop only, do not upload")
    parser.add_argument("--save-crops", action="store_true", help="Archive every submitted crop (UI)")

    # Connection options
    parser.add_argument("--server", metavar="URL", help="Server base URL (default: MILETRACK_SERVER_URL)")
    parser.add_argument("--host", help="Server bind address (default: MILETRACK_HOST)")
    parser.add_argument("--port", type=int, help="Server port (default: MILETRACK_PORT or 3000)")
    parser.add_argument("--db", metavar="PATH", help="SQLite database path (default: MILETRACK_DB_PATH)")
    return parser


def main(argv=None) -> int:
    """Main entry point for CLI interface."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Ensure directories exist
    setup_directories()

    # Execute commands
    if args.ui:
        return cmd_capture_ui(args)
    elif args.serve:
        return cmd_serve(args)
    elif args.image or args.snap:
        return cmd_upload(args)
    elif args.records:
        return cmd_records(args)
    elif args.info:
        return cmd_info(args)
    elif args.test_camera:
        return cmd_test_camera(args)
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
