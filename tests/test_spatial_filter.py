from area_search.data.base import RawListing
from area_search.geo.geometry import normalize
from area_search.geo.spatial import filter_listings, point_in_ring, valid_point


def _listing(id, lat, lng):
    return RawListing.from_record({"id": id, "lat": lat, "lng": lng})


def test_point_inside_square(square_ring):
    assert point_in_ring(5, 5, square_ring)


def test_point_outside_square(square_ring):
    assert not point_in_ring(15, 15, square_ring)
    assert not point_in_ring(5, -1, square_ring)


def test_boundary_points_are_inside(square_ring):
    assert point_in_ring(0, 5, square_ring)
    assert point_in_ring(10, 10, square_ring)  # vertex
    assert point_in_ring(7.5, 10, square_ring)


def test_ray_through_vertex_counts_once():
    diamond = normalize("polygon", [(0, 5), (5, 10), (10, 5), (5, 0)])
    # Ray from (5, 2) passes exactly through vertex (5, 10)
    assert point_in_ring(5, 2, diamond)
    assert not point_in_ring(5, -2, diamond)
    assert not point_in_ring(5, 12, diamond)


def test_concave_notch_is_outside():
    u_shape = normalize("polygon", [(0, 0), (0, 6), (6, 6), (6, 4), (2, 4), (2, 2), (6, 2), (6, 0)])
    assert point_in_ring(1, 3, u_shape)
    assert not point_in_ring(4, 3, u_shape)  # inside the notch
    assert point_in_ring(4, 5, u_shape)


def test_ring_contains_delegates_to_point_in_ring(square_ring):
    assert square_ring.contains(3, 3)
    assert not square_ring.contains(-3, 3)


def test_valid_point_rules():
    assert valid_point(46.7, 23.5)
    assert not valid_point(None, 23.5)
    assert not valid_point(0, 0)
    assert not valid_point(46.7, 0)
    assert not valid_point(91, 10)
    assert not valid_point(10, 181)


def test_filter_preserves_source_order(square_ring):
    listings = [_listing("c", 9, 9), _listing("x", 20, 20), _listing("a", 1, 1), _listing("b", 5, 5)]
    out = filter_listings(square_ring, listings)
    assert [l.id for l in out] == ["c", "a", "b"]


def test_zero_and_missing_coordinates_are_excluded():
    # A ring around the origin still never returns (0, 0) listings
    ring = normalize("rectangle", [(-5, -5), (5, 5)])
    listings = [
        _listing("origin", 0, 0),
        _listing("null", None, None),
        _listing("dirty", "abc", "1.5"),
        _listing("ok", 1, 1),
    ]
    assert [l.id for l in filter_listings(ring, listings)] == ["ok"]


def test_filter_does_not_mutate_input(square_ring):
    listings = [_listing("a", 5, 5), _listing("b", 50, 50)]
    before = list(listings)
    out = filter_listings(square_ring, listings)
    assert listings == before
    assert out is not listings
    assert [l.id for l in out] == ["a"]


def test_filter_accepts_generators(square_ring):
    out = filter_listings(square_ring, (_listing(str(i), i, i) for i in range(1, 15)))
    assert [l.id for l in out] == [str(i) for i in range(1, 11)]
