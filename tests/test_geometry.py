"""Tests for tap normalization and region hit testing."""
import pytest

from src.reader.geometry import (
    candidates_at,
    hit_test,
    normalize_point,
    region_area,
    region_contains,
)
from src.reader.models import NormalizedPoint, Region

LINE = Region(text="Hello world", box=(100, 100, 200, 900))
WORD = Region(text="world", box=(110, 500, 190, 880))


class TestNormalizePoint:
    """Pixel to 0-1000 conversion."""

    def test_center_maps_to_500(self):
        point = normalize_point(320, 240, 640, 480)
        assert point.x == pytest.approx(500)
        assert point.y == pytest.approx(500)

    def test_center_of_odd_size(self):
        point = normalize_point(333 / 2, 77 / 2, 333, 77)
        assert point.x == pytest.approx(500, abs=0.5)
        assert point.y == pytest.approx(500, abs=0.5)

    def test_origin_offset(self):
        point = normalize_point(150, 70, 200, 100, left=50, top=20)
        assert point == NormalizedPoint(x=500, y=500)

    def test_corners(self):
        assert normalize_point(0, 0, 800, 600) == NormalizedPoint(x=0, y=0)
        assert normalize_point(800, 600, 800, 600) == NormalizedPoint(x=1000, y=1000)

    @pytest.mark.parametrize("width,height", [(0, 100), (100, 0), (None, 100), (100, None), (-5, 10)])
    def test_unusable_size_returns_none(self, width, height):
        assert normalize_point(10, 10, width, height) is None


class TestHitTest:
    """Smallest containing region wins."""

    def test_smaller_region_wins(self):
        big = Region(text="A", box=(0, 0, 10, 10))      # area 100
        small = Region(text="B", box=(4, 4, 6, 9))      # area 10
        point = NormalizedPoint(x=5, y=5)
        assert hit_test(point, [big, small]) == small
        assert hit_test(point, [small, big]) == small

    def test_point_outside_all_regions(self):
        assert hit_test(NormalizedPoint(x=950, y=950), [LINE, WORD]) is None

    def test_no_regions(self):
        assert hit_test(NormalizedPoint(x=1, y=1), []) is None

    def test_no_point(self):
        assert hit_test(None, [LINE]) is None

    def test_bounds_are_inclusive(self):
        assert hit_test(NormalizedPoint(x=100, y=100), [LINE]) == LINE
        assert hit_test(NormalizedPoint(x=900, y=200), [LINE]) == LINE
        assert hit_test(NormalizedPoint(x=900.5, y=200), [LINE]) is None

    def test_word_inside_line(self):
        assert hit_test(NormalizedPoint(x=600, y=150), [LINE, WORD]) == WORD
        # Outside the word but still on the line
        assert hit_test(NormalizedPoint(x=200, y=150), [LINE, WORD]) == LINE

    def test_equal_area_prefers_detection_order(self):
        first = Region(text="first", box=(0, 0, 10, 10))
        second = Region(text="second", box=(5, 5, 15, 15))
        point = NormalizedPoint(x=7, y=7)
        assert hit_test(point, [first, second]).text == "first"
        assert hit_test(point, [second, first]).text == "second"

    def test_repeated_calls_are_identical(self):
        regions = [LINE, WORD, Region(text="dup", box=(110, 500, 190, 880))]
        point = NormalizedPoint(x=600, y=150)
        results = {id(hit_test(point, regions)) for _ in range(20)}
        assert len(results) == 1
        assert hit_test(point, regions) is regions[1]

    def test_end_to_end_example(self):
        hello = Region(text="Hello", box=(100, 100, 200, 300))
        lo = Region(text="lo", box=(150, 250, 180, 290))
        point = normalize_point(270, 160, 1000, 1000)
        assert hit_test(point, [hello, lo]) == lo


class TestDegenerateBoxes:
    """Zero-area and inverted boxes stay matchable but never win."""

    def test_flat_box_has_zero_area(self):
        assert region_area(Region(text="flat", box=(50, 0, 50, 100))) == 0

    def test_inverted_box_has_zero_area(self):
        assert region_area(Region(text="inv", box=(200, 200, 100, 100))) == 0

    def test_area(self):
        assert region_area(LINE) == 100 * 800

    def test_zero_area_loses_to_real_box(self):
        flat = Region(text="flat", box=(150, 100, 150, 900))
        point = NormalizedPoint(x=500, y=150)
        assert hit_test(point, [flat, LINE]) == LINE

    def test_zero_area_still_matchable_alone(self):
        flat = Region(text="flat", box=(150, 100, 150, 900))
        assert hit_test(NormalizedPoint(x=500, y=150), [flat]) == flat

    def test_inverted_box_matches_its_extent(self):
        inverted = Region(text="inv", box=(200, 300, 100, 100))
        assert region_contains(inverted, NormalizedPoint(x=200, y=150))
        assert hit_test(NormalizedPoint(x=200, y=150), [inverted]) == inverted

    def test_candidates_ordering(self):
        flat = Region(text="flat", box=(150, 0, 150, 1000))
        ordered = candidates_at(NormalizedPoint(x=600, y=150), [flat, LINE, WORD])
        assert [r.text for r in ordered] == ["world", "Hello world", "flat"]


class TestRegionModel:
    """Region coercion from detector output."""

    def test_from_block_rounds_and_clamps(self):
        region = Region.from_block({"text": "x", "box_2d": [10.4, -3, 1200, 99.6]})
        assert region.box == (10, 0, 1000, 100)

    def test_wrong_box_length(self):
        with pytest.raises(ValueError):
            Region(text="x", box=(1, 2, 3))

    @pytest.mark.parametrize("bad", [float("inf"), float("-inf"), float("nan")])
    def test_non_finite_coordinate_is_rejected(self, bad):
        with pytest.raises(ValueError):
            Region(text="x", box=(0, 0, bad, 10))

    def test_regions_are_immutable(self):
        with pytest.raises(Exception):
            LINE.text = "changed"

    def test_to_block_round_trip_format(self):
        assert LINE.to_block() == {"text": "Hello world", "box_2d": [100, 100, 200, 900]}
