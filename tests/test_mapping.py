import pytest

from tracking.layout import DocumentLayout, PageLayout, Rect, Region
from tracking.mapping import CoordinateMapper
from tracking.regions import SpatialIndex


def _scaled_layout():
    # 200x100 page drawn at twice its size, 100 px from the left
    page = PageLayout(page=1, width=200, height=100, screen_rect=Rect(100, 0, 400, 200))
    return DocumentLayout([page])


def test_map_scales_to_intrinsic_space():
    point = CoordinateMapper(_scaled_layout()).map(300, 100)
    assert point.page == 1
    assert (point.x, point.y) == (100, 50)


def test_map_outside_pages_is_unmapped():
    point = CoordinateMapper(_scaled_layout()).map(50, 50)
    assert point.page is None
    assert (point.x, point.y) == (50, 50)
    assert CoordinateMapper(_scaled_layout()).map(500, 50).page is None


def test_map_clamps_edges_inside_page():
    mapper = CoordinateMapper(_scaled_layout())
    left = mapper.map(100, 0)
    assert (left.x, left.y) == (0, 0)
    edge = mapper.map(499.9, 199.9)
    assert edge.page == 1
    assert 0 <= edge.x < 200 and 0 <= edge.y < 100
    assert edge.x == pytest.approx(399 / 2)


def test_map_follows_scrolling():
    layout = DocumentLayout.stacked([(100, 100), (100, 100)], gap=10)
    mapper = CoordinateMapper(layout)
    assert mapper.map(50, 40).page == 1
    assert mapper.map(50, 105).page is None
    point = mapper.map(50, 150)
    assert (point.page, point.x, point.y) == (2, 50, 40)

    layout.scroll_by(110)
    point = mapper.map(50, 40)
    assert (point.page, point.x, point.y) == (2, 50, 40)


def test_set_screen_rect_used_immediately():
    layout = _scaled_layout()
    mapper = CoordinateMapper(layout)
    layout.set_screen_rect(1, Rect(0, 0, 200, 100))
    point = mapper.map(10, 10)
    assert (point.page, point.x, point.y) == (1, 10, 10)


def test_layout_validation():
    page = PageLayout(page=1, width=10, height=10, screen_rect=Rect(0, 0, 10, 10))
    with pytest.raises(ValueError):
        DocumentLayout([page, page])
    with pytest.raises(ValueError):
        DocumentLayout([PageLayout(page=2, width=0, height=10, screen_rect=Rect(0, 0, 10, 10))])


def test_find_region_first_registered_wins():
    index = SpatialIndex()
    index.register_page(1, [
        Region(1, "a", Rect(0, 0, 100, 20), "first"),
        Region(1, "b", Rect(50, 0, 100, 20), "overlapping"),
    ])
    assert index.find_region(1, 60, 10) == "a"
    assert index.find_region(1, 120, 10) == "b"
    assert index.find_region(1, 60, 25) is None
    assert index.find_region(2, 60, 10) is None
    assert index.find_region(None, 60, 10) is None


def test_rect_is_half_open():
    rect = Rect(0, 0, 100, 20)
    assert rect.contains(0, 0)
    assert not rect.contains(100, 10)
    assert not rect.contains(50, 20)


def test_register_page_validation():
    index = SpatialIndex()
    with pytest.raises(ValueError):
        index.register_page(1, [Region(1, "a", Rect(0, 0, 1, 1)), Region(1, "a", Rect(2, 2, 1, 1))])
    with pytest.raises(ValueError):
        index.register_page(1, [Region(2, "a", Rect(0, 0, 1, 1))])


def test_rebuild_replaces_regions():
    index = SpatialIndex()
    index.register_page(1, [Region(1, "old", Rect(0, 0, 10, 10))])
    index.register_page(2, [Region(2, "x", Rect(0, 0, 10, 10))])
    index.register_page(1, [Region(1, "new", Rect(0, 0, 10, 10))])
    assert [r.id for r in index.regions(1)] == ["new"]
    assert index.find_region(1, 5, 5) == "new"
    assert index.pages() == [1, 2]
    assert len(index) == 2
