"""Drawn-shape validation and normalization.

Coordinates are (lat, lng) degrees. For the planar tests below longitude is
the x axis and latitude the y axis; drawn search areas are small enough that
the flat approximation is fine.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Iterator, List, Sequence, Tuple

from ..core.errors import DegenerateShape, InvalidVertex, SelfIntersecting

# Distance from a line, in degrees, that still counts as on it (about 0.1 mm).
EPS = 1e-9
# Enclosed area, in squared degrees, below which a shape is flat.
AREA_EPS = 1e-16

BBox = Tuple[float, float, float, float]  # min_lat, min_lng, max_lat, max_lng


class ShapeKind(str, Enum):
    POLYGON = "polygon"
    RECTANGLE = "rectangle"


@dataclass(frozen=True)
class Vertex:
    lat: float
    lng: float

    def in_range(self) -> bool:
        return (
            math.isfinite(self.lat)
            and math.isfinite(self.lng)
            and -90.0 <= self.lat <= 90.0
            and -180.0 <= self.lng <= 180.0
        )


@dataclass(frozen=True)
class Ring:
    """Closed ring: the last vertex repeats the first."""

    vertices: Tuple[Vertex, ...]

    def __len__(self) -> int:
        return len(self.vertices)

    def __iter__(self) -> Iterator[Vertex]:
        return iter(self.vertices)

    def edges(self) -> Iterator[Tuple[Vertex, Vertex]]:
        return zip(self.vertices[:-1], self.vertices[1:])

    def bbox(self) -> BBox:
        lats = [v.lat for v in self.vertices]
        lngs = [v.lng for v in self.vertices]
        return (min(lats), min(lngs), max(lats), max(lngs))

    def signed_area(self) -> float:
        return _signed_area(self.vertices[:-1])

    def area(self) -> float:
        return abs(self.signed_area())

    def centroid(self) -> Vertex:
        """Area centroid of the enclosed region."""
        pts = self.vertices[:-1]
        a = _signed_area(pts)
        if abs(a) <= AREA_EPS:
            return Vertex(
                lat=sum(p.lat for p in pts) / len(pts),
                lng=sum(p.lng for p in pts) / len(pts),
            )
        o = pts[0]
        cx = cy = 0.0
        for p, q in zip(pts, pts[1:] + pts[:1]):
            px, py, qx, qy = p.lng - o.lng, p.lat - o.lat, q.lng - o.lng, q.lat - o.lat
            cross = px * qy - qx * py
            cx += (px + qx) * cross
            cy += (py + qy) * cross
        return Vertex(lat=o.lat + cy / (6.0 * a), lng=o.lng + cx / (6.0 * a))

    def contains(self, lat: float, lng: float) -> bool:
        from .spatial import point_in_ring

        return point_in_ring(lat, lng, self)


def as_vertex(obj: Any) -> Vertex:
    """Accept a Vertex, a {"lat", "lng"} mapping or a (lat, lng) pair."""
    if isinstance(obj, Vertex):
        v = obj
    elif isinstance(obj, dict):
        v = Vertex(lat=float(obj["lat"]), lng=float(obj["lng"]))
    else:
        lat, lng = obj
        v = Vertex(lat=float(lat), lng=float(lng))
    if not v.in_range():
        raise InvalidVertex(f"vertex out of range: ({v.lat}, {v.lng})")
    return v


# ----- planar primitives -----

def _signed_area(pts: Sequence[Vertex]) -> float:
    # Relative to the first vertex so small shapes far from (0, 0) keep precision.
    o = pts[0]
    total = 0.0
    for p, q in zip(pts, list(pts[1:]) + list(pts[:1])):
        total += (p.lng - o.lng) * (q.lat - o.lat) - (q.lng - o.lng) * (p.lat - o.lat)
    return total / 2.0


def orient(a: Vertex, b: Vertex, c: Vertex) -> float:
    """Cross product of ab x ac; >0 left turn, <0 right turn, 0 collinear."""
    return (b.lng - a.lng) * (c.lat - a.lat) - (b.lat - a.lat) * (c.lng - a.lng)


def side(a: Vertex, b: Vertex, c: Vertex) -> int:
    """Which side of line ab c is on: 1 left, -1 right, 0 within EPS degrees of it."""
    cross = orient(a, b, c)
    if abs(cross) <= EPS * math.hypot(b.lng - a.lng, b.lat - a.lat):
        return 0
    return 1 if cross > 0 else -1


def on_segment(p: Vertex, a: Vertex, b: Vertex) -> bool:
    if side(a, b, p) != 0:
        return False
    return (
        min(a.lng, b.lng) - EPS <= p.lng <= max(a.lng, b.lng) + EPS
        and min(a.lat, b.lat) - EPS <= p.lat <= max(a.lat, b.lat) + EPS
    )


def segments_intersect(p1: Vertex, p2: Vertex, q1: Vertex, q2: Vertex) -> bool:
    """True when the closed segments p1p2 and q1q2 share at least one point."""
    d1 = side(q1, q2, p1)
    d2 = side(q1, q2, p2)
    d3 = side(p1, p2, q1)
    d4 = side(p1, p2, q2)
    if d1 * d2 < 0 and d3 * d4 < 0:
        return True
    return (
        on_segment(p1, q1, q2)
        or on_segment(p2, q1, q2)
        or on_segment(q1, p1, p2)
        or on_segment(q2, p1, p2)
    )


def _folds_back(a: Vertex, b: Vertex, c: Vertex) -> bool:
    """Adjacent edges ab, bc are collinear and overlap (a spike at b)."""
    if side(a, b, c) != 0:
        return False
    dot = (a.lng - b.lng) * (c.lng - b.lng) + (a.lat - b.lat) * (c.lat - b.lat)
    return dot > 0


def is_simple(pts: Sequence[Vertex]) -> bool:
    """Open vertex list (no closing repeat) describes a simple polygon."""
    n = len(pts)
    edges = [(pts[i], pts[(i + 1) % n]) for i in range(n)]
    for i in range(n):
        a, b = edges[i]
        if _folds_back(a, b, edges[(i + 1) % n][1]):
            return False
        for j in range(i + 2, n):
            if i == 0 and j == n - 1:
                continue  # share vertex 0
            if segments_intersect(a, b, edges[j][0], edges[j][1]):
                return False
    return True


# ----- normalization -----

def _open_vertices(vertices: Iterable[Any]) -> List[Vertex]:
    pts: List[Vertex] = []
    for raw in vertices:
        v = as_vertex(raw)
        if pts and pts[-1] == v:
            continue  # double click
        pts.append(v)
    while len(pts) > 1 and pts[0] == pts[-1]:
        pts.pop()
    return pts


def _normalize_rectangle(vertices: Sequence[Any]) -> Ring:
    pts = [as_vertex(v) for v in vertices]
    if len(pts) == 5 and pts[0] == pts[-1]:
        pts = pts[:4]
    if len(pts) not in (2, 4):
        raise DegenerateShape(
            f"a rectangle needs two opposite corners or four corners, got {len(pts)}"
        )
    north = max(p.lat for p in pts)
    south = min(p.lat for p in pts)
    east = max(p.lng for p in pts)
    west = min(p.lng for p in pts)
    if north - south <= EPS or east - west <= EPS:
        raise DegenerateShape("the rectangle has no area")
    nw = Vertex(north, west)
    return Ring((nw, Vertex(north, east), Vertex(south, east), Vertex(south, west), nw))


def _normalize_polygon(vertices: Sequence[Any]) -> Ring:
    pts = _open_vertices(vertices)
    if len(set(pts)) < 3:
        raise DegenerateShape("a polygon needs at least 3 distinct vertices")
    if all(side(pts[0], pts[1], p) == 0 for p in pts[2:]):
        raise DegenerateShape("all polygon vertices lie on one line")
    if not is_simple(pts):
        raise SelfIntersecting("polygon edges cross each other")
    if abs(_signed_area(pts)) <= AREA_EPS:
        raise DegenerateShape("the polygon encloses no area")
    return Ring(tuple(pts) + (pts[0],))


def normalize(shape_kind: ShapeKind | str, vertices: Sequence[Any]) -> Ring:
    """Validate a drawn shape and return its closed ring.

    Rectangles come back as NW, NE, SE, SW, NW. Polygons keep the drawing
    order and get vertex 0 appended. Raises a GeometryError subclass when the
    user has to redraw.
    """
    kind = ShapeKind(shape_kind)
    if kind is ShapeKind.RECTANGLE:
        return _normalize_rectangle(vertices)
    return _normalize_polygon(vertices)


def ring_from_bounds(north: float, south: float, east: float, west: float) -> Ring:
    """Rectangle ring for a map viewport given by its edges."""
    return normalize(ShapeKind.RECTANGLE, [(north, west), (south, east)])
