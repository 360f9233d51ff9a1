#!/usr/bin/env python3
"""Main CLI entry point for all commands."""

import argparse
import sys

from ..core.config import settings
from ..core.logging_config import configure_logging
from ..reader.models import TranslationMode


def main(argv=None):
    """Main CLI dispatcher."""
    parser = argparse.ArgumentParser(
        description="TapRead CLI - tap text in an image and hear it read aloud",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        "--gateway-url",
        help=f"Gateway URL (default: {settings.gateway_url})"
    )
    parser.add_argument(
        "--log-level",
        default=settings.tapread_log_level,
        help="Logging level (default: %(default)s)"
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Available commands",
        required=True
    )

    # Serve command
    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the gateway service"
    )
    serve_parser.add_argument("--host", help="Bind address (default: from settings)")
    serve_parser.add_argument("--port", type=int, help="Port (default: from settings)")

    # Detect command
    detect_parser = subparsers.add_parser(
        "detect",
        help="Print the text regions detected in an image"
    )
    detect_parser.add_argument("image_path", help="Path to the image")

    # Read command
    read_parser = subparsers.add_parser(
        "read",
        help="Read aloud the text under a tap position"
    )
    read_parser.add_argument("image_path", help="Path to the image")
    read_parser.add_argument("--x", type=float, required=True, help="Tap x in rendered pixels")
    read_parser.add_argument("--y", type=float, required=True, help="Tap y in rendered pixels")
    read_parser.add_argument("--width", type=float, help="Rendered width (default: image width)")
    read_parser.add_argument("--height", type=float, help="Rendered height (default: image height)")
    read_parser.add_argument(
        "--mode",
        choices=[mode.value for mode in TranslationMode],
        help="Translation mode (default: from settings)"
    )

    # Annotate command
    annotate_parser = subparsers.add_parser(
        "annotate",
        help="Write a copy of the image with detected regions outlined"
    )
    annotate_parser.add_argument("image_path", help="Path to the image")
    annotate_parser.add_argument("--output", "-o", help="Output path (default: <image>_regions.png)")
    annotate_parser.add_argument("--x", type=float, help="Highlight the region under this x (image pixels)")
    annotate_parser.add_argument("--y", type=float, help="Highlight the region under this y (image pixels)")

    # Clear snapshots command
    clean_parser = subparsers.add_parser(
        "clear-snapshots",
        help="Remove the gateway's detection snapshots (requires confirmation)"
    )
    clean_parser.add_argument("--yes", action="store_true", help="Skip confirmation")

    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    # Route to appropriate command
    if args.command == "serve":
        from ..gateway.app.main import run
        run(host=args.host, port=args.port)
        return 0
    elif args.command == "detect":
        from .detect import main as detect_main
        return detect_main(args.image_path, gateway_url=args.gateway_url)
    elif args.command == "read":
        from .read import main as read_main
        return read_main(
            args.image_path,
            args.x,
            args.y,
            width=args.width,
            height=args.height,
            mode=args.mode,
            gateway_url=args.gateway_url,
        )
    elif args.command == "annotate":
        from .annotate import main as annotate_main
        return annotate_main(
            args.image_path,
            output=args.output,
            x=args.x,
            y=args.y,
            gateway_url=args.gateway_url,
        )
    elif args.command == "clear-snapshots":
        from .clean import main as clean_main
        return clean_main(assume_yes=args.yes)
    else:
        parser.print_help()
        return 1


# When run as python -m src.cli, this file is executed directly
if __name__ == "__main__":
    sys.exit(main())
