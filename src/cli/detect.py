#!/usr/bin/env python3
"""CLI command that prints the text regions detected in an image."""

import asyncio
import logging
from pathlib import Path

from .common import build_session, load_image, regions_json, report_error

logger = logging.getLogger(__name__)


async def _detect(image_path: Path, gateway_url=None) -> int:
    data, mime_type, _ = load_image(image_path)
    session = build_session(gateway_url)

    snapshot = await session.load_image(data, mime_type)
    if snapshot.last_error:
        return report_error(snapshot)

    print(regions_json(snapshot))
    logger.info("%d region(s) detected in %s", len(snapshot.regions), image_path)
    return 0


def main(image_path, gateway_url=None) -> int:
    """Main entry point.

    Args:
        image_path: Image to analyse
        gateway_url: Gateway override (default: configured gateway)
    """
    return asyncio.run(_detect(Path(image_path), gateway_url))
