"""Overlay rendering of detected regions on the source image."""

from typing import Optional, Sequence, Tuple

from PIL import Image, ImageDraw

from .models import NORMALIZED_MAX, Region

# Overlay colours (RGBA)
IDLE_OUTLINE = (52, 152, 219, 200)     # Blue
IDLE_FILL = (52, 152, 219, 20)
ACTIVE_OUTLINE = (234, 179, 8, 255)    # Yellow
ACTIVE_FILL = (250, 204, 21, 77)


def region_to_pixels(region: Region, width: int, height: int) -> Tuple[int, int, int, int]:
    """Map a region's normalized box to ``(left, top, right, bottom)`` pixels."""
    left = round(min(region.xmin, region.xmax) / NORMALIZED_MAX * width)
    right = round(max(region.xmin, region.xmax) / NORMALIZED_MAX * width)
    top = round(min(region.ymin, region.ymax) / NORMALIZED_MAX * height)
    bottom = round(max(region.ymin, region.ymax) / NORMALIZED_MAX * height)
    return left, top, right, bottom


def render_overlay(
    image: Image.Image,
    regions: Sequence[Region],
    active_region: Optional[Region] = None,
) -> Image.Image:
    """Return a copy of ``image`` with every region outlined.

    The active region is drawn last, filled and with a thicker border.
    """
    base = image.convert("RGBA")
    overlay = Image.new("RGBA", base.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(overlay)
    width, height = base.size

    for region in regions:
        if active_region is not None and region == active_region:
            continue
        draw.rectangle(
            region_to_pixels(region, width, height),
            outline=IDLE_OUTLINE,
            fill=IDLE_FILL,
            width=2,
        )

    if active_region is not None:
        draw.rectangle(
            region_to_pixels(active_region, width, height),
            outline=ACTIVE_OUTLINE,
            fill=ACTIVE_FILL,
            width=4,
        )

    return Image.alpha_composite(base, overlay)
