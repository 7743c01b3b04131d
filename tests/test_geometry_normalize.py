import pytest

from area_search.core.errors import DegenerateShape, GeometryError, InvalidVertex, SelfIntersecting
from area_search.geo.geometry import ShapeKind, Vertex, normalize, ring_from_bounds, segments_intersect


def test_rectangle_from_two_corners_is_closed_nw_ne_se_sw():
    ring = normalize("rectangle", [(46.70, 23.60), (46.80, 23.50)])
    assert ring.vertices == (
        Vertex(46.80, 23.50),
        Vertex(46.80, 23.60),
        Vertex(46.70, 23.60),
        Vertex(46.70, 23.50),
        Vertex(46.80, 23.50),
    )


def test_rectangle_corners_match_input_bbox_for_any_corner_pair():
    pairs = [
        [(1, 2), (5, 9)],
        [(5, 9), (1, 2)],
        [(1, 9), (5, 2)],
        [(5, 2), (1, 9)],
    ]
    for corners in pairs:
        ring = normalize(ShapeKind.RECTANGLE, corners)
        assert len(ring) == 5
        assert ring.vertices[0] == ring.vertices[-1]
        assert len(set(ring.vertices)) == 4
        assert ring.bbox() == (1, 2, 5, 9)


def test_rectangle_from_four_unordered_corners():
    ring = normalize("rectangle", [(0, 0), (10, 10), (0, 10), (10, 0)])
    assert [(v.lat, v.lng) for v in ring] == [(10, 0), (10, 10), (0, 10), (0, 0), (10, 0)]


def test_rectangle_accepts_closed_five_point_input():
    ring = normalize("rectangle", [(0, 0), (0, 4), (3, 4), (3, 0), (0, 0)])
    assert ring.bbox() == (0, 0, 3, 4)


def test_flat_rectangle_is_degenerate():
    with pytest.raises(DegenerateShape):
        normalize("rectangle", [(1, 1), (1, 5)])


def test_rectangle_with_three_points_is_rejected():
    with pytest.raises(DegenerateShape):
        normalize("rectangle", [(0, 0), (1, 1), (2, 0)])


def test_polygon_keeps_drawing_order_and_closes():
    pts = [(0, 0), (2, 5), (1, 9), (-3, 4)]
    ring = normalize("polygon", pts)
    assert [(v.lat, v.lng) for v in ring] == pts + [pts[0]]


def test_polygon_already_closed_is_not_closed_twice():
    pts = [(0, 0), (0, 10), (10, 10), (10, 0), (0, 0)]
    ring = normalize("polygon", pts)
    assert len(ring) == 5
    assert [(v.lat, v.lng) for v in ring] == pts


def test_polygon_double_clicks_are_collapsed():
    ring = normalize("polygon", [(0, 0), (0, 0), (0, 10), (10, 10), (10, 10)])
    assert [(v.lat, v.lng) for v in ring] == [(0, 0), (0, 10), (10, 10), (0, 0)]


def test_concave_simple_polygon_is_accepted():
    # U shape
    pts = [(0, 0), (0, 6), (6, 6), (6, 4), (2, 4), (2, 2), (6, 2), (6, 0)]
    ring = normalize("polygon", pts)
    assert len(ring) == len(pts) + 1


def test_bow_tie_is_self_intersecting():
    with pytest.raises(SelfIntersecting):
        normalize("polygon", [(0, 0), (10, 10), (0, 10), (10, 0)])


def test_polygon_touching_itself_at_a_vertex_is_rejected():
    # Figure-eight touching at (5, 5)
    with pytest.raises(SelfIntersecting):
        normalize("polygon", [(0, 0), (0, 10), (5, 5), (10, 10), (10, 0), (5, 5)])


def test_spike_folding_back_is_rejected():
    with pytest.raises(SelfIntersecting):
        normalize("polygon", [(0, 0), (0, 10), (0, 5), (5, 5)])


def test_too_few_distinct_vertices_is_degenerate():
    with pytest.raises(DegenerateShape):
        normalize("polygon", [(1, 1), (2, 2), (1, 1)])


def test_collinear_vertices_are_degenerate():
    with pytest.raises(DegenerateShape):
        normalize("polygon", [(0, 0), (1, 1), (2, 2), (3, 3)])


def test_out_of_range_vertex_is_rejected():
    with pytest.raises(InvalidVertex):
        normalize("polygon", [(0, 0), (95, 10), (10, 10)])


def test_geometry_errors_carry_kind_for_the_ui():
    try:
        normalize("polygon", [(0, 0), (10, 10), (0, 10), (10, 0)])
    except GeometryError as exc:
        assert exc.kind == "self_intersecting"
    else:
        raise AssertionError("expected a geometry error")


def test_unknown_shape_kind_raises_value_error():
    with pytest.raises(ValueError):
        normalize("circle", [(0, 0), (1, 1)])


def test_ring_from_bounds():
    ring = ring_from_bounds(north=46.8, south=46.7, east=23.7, west=23.5)
    assert ring.vertices[0] == Vertex(46.8, 23.5)
    assert ring.vertices[2] == Vertex(46.7, 23.7)


def test_ring_centroid_and_area(square_ring):
    c = square_ring.centroid()
    assert c.lat == pytest.approx(5)
    assert c.lng == pytest.approx(5)
    assert square_ring.area() == pytest.approx(100)


def test_segments_intersect_touching_endpoints():
    assert segments_intersect(Vertex(0, 0), Vertex(1, 1), Vertex(1, 1), Vertex(2, 0))
    assert not segments_intersect(Vertex(0, 0), Vertex(1, 0), Vertex(0, 1), Vertex(1, 1))


def test_polygon_about_a_metre_across_is_accepted():
    # sides of 1e-5 degrees near Cluj-Napoca
    pts = [(46.77, 23.59), (46.77, 23.59001), (46.77001, 23.59001), (46.77001, 23.59)]
    ring = normalize("polygon", pts)
    assert len(ring) == 5
    assert ring.area() == pytest.approx(1e-10, rel=1e-3)
    assert ring.contains(46.770005, 23.590005)
    c = ring.centroid()
    assert c.lat == pytest.approx(46.770005, abs=1e-9)
    assert c.lng == pytest.approx(23.590005, abs=1e-9)


def test_small_sliver_is_still_collinear():
    with pytest.raises(DegenerateShape):
        normalize("polygon", [(46.77, 23.59), (46.77, 23.59001), (46.77, 23.59002)])
