import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from ..core.cancel import CancelToken
from ..core.errors import GeometryError
from ..core.metrics import GEOMETRY_REJECTED, RECORDS_DROPPED, SEARCH_RESULTS
from ..core.utils import haversine_km, parse_datetime
from ..data.base import ListingStore
from ..data.listing_store import listing_store
from ..geo.geometry import Ring, ShapeKind, Vertex, normalize, ring_from_bounds
from ..geo.spatial import filter_listings
from ..schemas import CanonicalProperty
from .canonicalizer import PropertyCanonicalizer

log = logging.getLogger(__name__)

SORT_KEYS = ("none", "distance", "price", "recency")

@dataclass
class SearchRequest:
    shape_kind: ShapeKind | str
    vertices: Sequence[Any]
    attribute_filters: Dict[str, Any] = field(default_factory=dict)
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    sort: str = "none"
    descending: bool = False
    limit: Optional[int] = None

@dataclass
class SearchResult:
    items: List[CanonicalProperty]
    ring: Ring
    dropped: int = 0

    def __len__(self) -> int:
        return len(self.items)

def dedupe(items: List[CanonicalProperty]) -> List[CanonicalProperty]:
    """Keep the first occurrence of every id."""
    seen = set()
    out = []
    for p in items:
        if p.id in seen:
            continue
        seen.add(p.id)
        out.append(p)
    return out

def sort_properties(
    items: List[CanonicalProperty], key: str, centroid: Vertex, descending: bool = False
) -> List[CanonicalProperty]:
    """
    Stable sort. distance: nearest to the ring centroid first; price: cheapest
    first; recency: newest first. `descending` flips the order; entries
    missing the sort value always go last.
    """
    if key == "none":
        return list(items)
    if key not in SORT_KEYS:
        raise ValueError(f"unknown sort key: {key}")

    def value(p: CanonicalProperty):
        if key == "distance":
            if p.lat is None or p.lng is None:
                return None
            return haversine_km(centroid.lat, centroid.lng, p.lat, p.lng)
        if key == "price":
            return p.price
        listed = parse_datetime(p.listed_date)
        return -listed.timestamp() if listed else None

    known = [p for p in items if value(p) is not None]
    unknown = [p for p in items if value(p) is None]
    known.sort(key=value, reverse=descending)
    return known + unknown

class SearchService:
    """
    Orchestrates:
      shape → ring → store fetch → point-in-polygon → canonical properties → dedupe/sort
    Geometry errors fail fast; store errors propagate untouched; no retries.
    """
    def __init__(self, store: ListingStore | None = None, canonicalizer: PropertyCanonicalizer | None = None):
        self.store = store or listing_store()
        self.canonicalizer = canonicalizer or PropertyCanonicalizer()

    async def search(
        self,
        request: SearchRequest,
        cancel: CancelToken | None = None,
        now: datetime | None = None,
    ) -> SearchResult:
        cancel = cancel or CancelToken()

        # 1) Geometry (pure; raises for shapes the user must redraw)
        try:
            ring = normalize(request.shape_kind, request.vertices)
        except GeometryError as exc:
            GEOMETRY_REJECTED.labels(kind=exc.kind).inc()
            log.info("rejected drawn shape: %s", exc.message, extra={"kind": exc.kind, "shape": str(request.shape_kind)})
            raise
        return await self._search_ring(ring, request, cancel, now)

    async def search_area(
        self,
        north: float, south: float, east: float, west: float,
        request: SearchRequest | None = None,
        cancel: CancelToken | None = None,
        now: datetime | None = None,
    ) -> SearchResult:
        """Search a map viewport given by its edges."""
        request = request or SearchRequest(shape_kind=ShapeKind.RECTANGLE, vertices=())
        try:
            ring = ring_from_bounds(north, south, east, west)
        except GeometryError as exc:
            GEOMETRY_REJECTED.labels(kind=exc.kind).inc()
            raise
        return await self._search_ring(ring, request, cancel or CancelToken(), now)

    async def _search_ring(
        self, ring: Ring, request: SearchRequest, cancel: CancelToken, now: datetime | None
    ) -> SearchResult:
        cancel.raise_if_cancelled()

        # 2) Candidates (attribute filters are the store's job)
        candidates = await self.store.fetch(
            request.attribute_filters,
            min_price=request.min_price,
            max_price=request.max_price,
        )
        cancel.raise_if_cancelled()

        # 3) Spatial membership
        matched = filter_listings(ring, candidates)

        # 4) Canonical view models under one logical "now"
        now = now or datetime.now(timezone.utc)
        items, dropped = self.canonicalizer.canonicalize_many(matched, now)
        if dropped:
            RECORDS_DROPPED.inc(dropped)
        cancel.raise_if_cancelled()

        # 5) Dedupe + rank
        items = sort_properties(dedupe(items), request.sort, ring.centroid(), request.descending)
        if request.limit:
            items = items[: request.limit]

        SEARCH_RESULTS.observe(len(items))
        log.info(
            "area search done",
            extra={"candidates": len(candidates), "matched": len(matched), "dropped": dropped, "returned": len(items)},
        )
        return SearchResult(items=items, ring=ring, dropped=dropped)
