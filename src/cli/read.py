#!/usr/bin/env python3
"""CLI command that reads the text under a tap aloud."""

import asyncio
import sys
from pathlib import Path

from .common import build_session, load_image, print_status, report_error


async def _read(
    image_path: Path,
    x: float,
    y: float,
    width=None,
    height=None,
    mode=None,
    gateway_url=None,
) -> int:
    data, mime_type, (pixel_width, pixel_height) = load_image(image_path)
    session = build_session(gateway_url, mode)
    session.add_listener(print_status)

    try:
        snapshot = await session.load_image(data, mime_type)
        if snapshot.last_error:
            return report_error(snapshot)

        region = await session.tap_at(x, y, width or pixel_width, height or pixel_height)
        if region is None:
            print(f"No text at ({x}, {y}).", file=sys.stderr)
            return 1

        handle = session.playback.current
        if handle is not None:
            await handle.wait()

        snapshot = session.snapshot()
        if snapshot.spoken_text and snapshot.spoken_text != region.text:
            print(f"{region.text} -> {snapshot.spoken_text}")
        return report_error(snapshot)
    finally:
        session.close()


def main(image_path, x, y, width=None, height=None, mode=None, gateway_url=None) -> int:
    """Main entry point.

    Args:
        image_path: Image to read from
        x, y: Tap position in rendered-image pixels
        width, height: Rendered size of the image (default: its pixel size)
        mode: Translation mode (default: configured mode)
        gateway_url: Gateway override (default: configured gateway)
    """
    return asyncio.run(_read(Path(image_path), x, y, width, height, mode, gateway_url))
