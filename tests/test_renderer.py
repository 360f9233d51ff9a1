"""Tests for the region overlay renderer."""
from PIL import Image

from src.reader.models import Region
from src.reader.renderer import ACTIVE_OUTLINE, region_to_pixels, render_overlay

WHITE = (255, 255, 255, 255)
BOX = Region(text="box", box=(100, 100, 500, 500))
OTHER = Region(text="other", box=(700, 700, 900, 900))


def blank(size=(100, 100)):
    return Image.new("RGB", size, "white")


def test_region_to_pixels():
    assert region_to_pixels(BOX, 100, 200) == (10, 20, 50, 100)


def test_inverted_box_is_normalized():
    inverted = Region(text="inv", box=(500, 500, 100, 100))
    assert region_to_pixels(inverted, 100, 100) == (10, 10, 50, 50)


def test_overlay_outlines_regions():
    result = render_overlay(blank(), [BOX, OTHER])

    assert result.mode == "RGBA"
    assert result.size == (100, 100)
    assert result.getpixel((10, 30)) != WHITE
    assert result.getpixel((95, 5)) == WHITE


def test_active_region_is_highlighted():
    result = render_overlay(blank(), [BOX, OTHER], active_region=BOX)

    assert result.getpixel((10, 30)) == ACTIVE_OUTLINE
    assert result.getpixel((70, 80)) != ACTIVE_OUTLINE


def test_source_image_untouched():
    image = blank()
    render_overlay(image, [BOX], active_region=BOX)
    assert image.getpixel((10, 30)) == (255, 255, 255)
