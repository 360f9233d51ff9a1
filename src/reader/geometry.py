"""Point-to-region resolution.

Two pure steps turn a tap on the displayed image into a region:

1. :func:`normalize_point` maps a pixel position on the rendered image into
   the 0-1000 space detected boxes are expressed in.
2. :func:`hit_test` picks the most specific region containing that point.
   Nested boxes are common (a word inside its line inside a paragraph), so
   the smallest-area candidate wins; equal areas fall back to detection order.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from .models import NORMALIZED_MAX, NormalizedPoint, Region


def normalize_point(
    click_x: float,
    click_y: float,
    rendered_width: Optional[float],
    rendered_height: Optional[float],
    *,
    left: float = 0.0,
    top: float = 0.0,
) -> Optional[NormalizedPoint]:
    """Convert a click on the rendered image into normalized coordinates.

    ``left``/``top`` are the on-screen origin of the image so raw pointer
    coordinates can be passed directly.  Returns ``None`` when the image has
    no usable rendered size yet (not laid out, zero-sized).
    """
    if not rendered_width or not rendered_height:
        return None
    if rendered_width <= 0 or rendered_height <= 0:
        return None

    x = ((click_x - left) / rendered_width) * NORMALIZED_MAX
    y = ((click_y - top) / rendered_height) * NORMALIZED_MAX
    return NormalizedPoint(x=x, y=y)


def region_area(region: Region) -> int:
    """Box area; inverted or flat boxes count as zero."""
    height = region.ymax - region.ymin
    width = region.xmax - region.xmin
    if height <= 0 or width <= 0:
        return 0
    return height * width


def region_contains(region: Region, point: NormalizedPoint) -> bool:
    """Inclusive containment test.

    Inverted boxes are compared against their normalized extent so they stay
    matchable even though they never win on area.
    """
    y_lo, y_hi = sorted((region.ymin, region.ymax))
    x_lo, x_hi = sorted((region.xmin, region.xmax))
    return y_lo <= point.y <= y_hi and x_lo <= point.x <= x_hi


def candidates_at(point: NormalizedPoint, regions: Iterable[Region]) -> list[Region]:
    """All regions containing ``point``, most specific first."""
    indexed = [
        (index, region)
        for index, region in enumerate(regions)
        if region_contains(region, point)
    ]
    # Zero-area boxes sort after every real box; ties keep detection order.
    indexed.sort(key=lambda item: (region_area(item[1]) == 0, region_area(item[1]), item[0]))
    return [region for _, region in indexed]


def hit_test(point: Optional[NormalizedPoint], regions: Sequence[Region]) -> Optional[Region]:
    """Return the smallest-area region containing ``point``, or ``None``."""
    if point is None or not regions:
        return None
    candidates = candidates_at(point, regions)
    return candidates[0] if candidates else None
