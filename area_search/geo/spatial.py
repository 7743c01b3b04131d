from __future__ import annotations

from typing import Iterable, List, Optional

from ..data.base import RawListing
from .geometry import EPS, BBox, Ring, Vertex, on_segment


def valid_point(lat: Optional[float], lng: Optional[float]) -> bool:
    """Usable listing coordinate: present, non-zero and in range."""
    if lat is None or lng is None:
        return False
    if lat == 0 or lng == 0:
        return False
    return -90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0


def in_bbox(lat: float, lng: float, bbox: BBox) -> bool:
    min_lat, min_lng, max_lat, max_lng = bbox
    return (
        min_lat - EPS <= lat <= max_lat + EPS
        and min_lng - EPS <= lng <= max_lng + EPS
    )


def point_in_ring(lat: float, lng: float, ring: Ring) -> bool:
    """Crossing-number test with an inclusive boundary.

    A point on an edge or vertex counts as inside. Otherwise a ray is cast
    from the point toward +inf longitude and the ring edges it crosses are
    counted; an odd count means inside.
    """
    p = Vertex(lat, lng)
    inside = False
    for a, b in ring.edges():
        if on_segment(p, a, b):
            return True
        # Half-open rule so a ray through a vertex is counted once.
        if (a.lat > lat) != (b.lat > lat):
            x = a.lng + (lat - a.lat) * (b.lng - a.lng) / (b.lat - a.lat)
            if lng < x:
                inside = not inside
    return inside


def filter_listings(ring: Ring, listings: Iterable[RawListing]) -> List[RawListing]:
    """Listings located inside `ring`, in source order.

    Listings without a usable coordinate are skipped silently.
    """
    bbox = ring.bbox()
    out: List[RawListing] = []
    for listing in listings:
        lat, lng = listing.lat, listing.lng
        if not valid_point(lat, lng):
            continue
        if not in_bbox(lat, lng, bbox):
            continue
        if point_in_ring(lat, lng, ring):
            out.append(listing)
    return out
