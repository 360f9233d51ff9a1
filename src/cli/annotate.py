#!/usr/bin/env python3
"""CLI command that draws detected regions over an image."""

import asyncio
from pathlib import Path

from PIL import Image

from ..reader.geometry import hit_test, normalize_point
from ..reader.renderer import render_overlay
from .common import build_session, load_image, report_error


async def _annotate(image_path: Path, output=None, x=None, y=None, gateway_url=None) -> int:
    data, mime_type, (width, height) = load_image(image_path)
    session = build_session(gateway_url)

    snapshot = await session.load_image(data, mime_type)
    if snapshot.last_error:
        return report_error(snapshot)

    active = None
    if x is not None and y is not None:
        active = hit_test(normalize_point(x, y, width, height), snapshot.regions)

    output_path = Path(output) if output else image_path.with_name(f"{image_path.stem}_regions.png")
    with Image.open(image_path) as img:
        render_overlay(img, snapshot.regions, active).save(output_path)

    print(f"Wrote {len(snapshot.regions)} region(s) to {output_path}")
    if active is not None:
        print(f"Active region: {active.text!r}")
    return 0


def main(image_path, output=None, x=None, y=None, gateway_url=None) -> int:
    """Main entry point."""
    return asyncio.run(_annotate(Path(image_path), output, x, y, gateway_url))
