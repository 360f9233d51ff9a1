"""Helpers shared by the reader commands."""

import json
import sys
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from ..reader import GatewayClient, ReaderSession, SessionSnapshot
from ..reader.models import TranslationMode


def load_image(image_path: Path) -> tuple[bytes, str, tuple[int, int]]:
    """Read an image file; return its bytes, MIME type and pixel size."""
    if not image_path.exists():
        print(f"Error: image not found: {image_path}", file=sys.stderr)
        sys.exit(1)

    data = image_path.read_bytes()
    try:
        with Image.open(image_path) as img:
            mime_type = Image.MIME.get(img.format or "", "image/png")
            size = img.size
    except UnidentifiedImageError:
        print(f"Error: not a readable image: {image_path}", file=sys.stderr)
        sys.exit(1)
    return data, mime_type, size


def build_session(gateway_url=None, mode=None, playback=None) -> ReaderSession:
    """One gateway client serves as detector, translator and synthesizer."""
    client = GatewayClient(gateway_url)
    return ReaderSession(
        client,
        client,
        client,
        playback,
        mode=TranslationMode(mode) if mode else None,
    )


def print_status(snapshot: SessionSnapshot) -> None:
    line = f"[{snapshot.status.value}]"
    if snapshot.active_region is not None:
        line += f" {snapshot.active_region.text!r}"
    print(line)


def report_error(snapshot: SessionSnapshot) -> int:
    """Print the session's error (if any) and return the exit code."""
    if snapshot.last_error:
        print(f"Error ({snapshot.error_kind}): {snapshot.last_error}", file=sys.stderr)
        return 1
    return 0


def regions_json(snapshot: SessionSnapshot) -> str:
    return json.dumps(
        [region.to_block() for region in snapshot.regions],
        ensure_ascii=False,
        indent=2,
    )
