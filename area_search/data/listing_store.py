import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

import httpx

from .base import ListingStore, RawListing
from ..core.config import settings
from ..core.errors import StoreUnavailable, UnsupportedFilter
from ..services.canonicalizer import property_type

log = logging.getLogger(__name__)

# Attribute filters accepted from callers → RawListing attribute.
# Canonical (camelCase) and raw store names are both accepted.
FILTER_FIELDS: Dict[str, str] = {
    "listingType": "listing_type",
    "listing_type": "listing_type",
    "type": "type",
    "property_category": "property_category",
    "city": "city",
    "county": "county",
}

# Filters matched against a canonical value derived from the listing,
# not against a stored column. The source never sees these.
DERIVED_FILTERS: Dict[str, Callable[[RawListing], Any]] = {
    "type": lambda listing: property_type(listing.property_category).value,
}

def resolve_filters(filters: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Map caller filter names to listing attributes; drop empty values."""
    out: Dict[str, Any] = {}
    for key, value in (filters or {}).items():
        attr = FILTER_FIELDS.get(key)
        if attr is None:
            raise UnsupportedFilter(f"unsupported filter: {key}")
        if value is None or value == "":
            continue
        out[attr] = value
    return out

def split_filters(wanted: Mapping[str, Any]):
    """(stored, derived) halves of resolved filters."""
    stored = {k: v for k, v in wanted.items() if k not in DERIVED_FILTERS}
    derived = {k: v for k, v in wanted.items() if k in DERIVED_FILTERS}
    return stored, derived

def _same(a: Any, b: Any) -> bool:
    if isinstance(a, str) and isinstance(b, str):
        return a.strip().lower() == b.strip().lower()
    return a == b

def matches(listing: RawListing, wanted: Mapping[str, Any]) -> bool:
    for attr, value in wanted.items():
        derive = DERIVED_FILTERS.get(attr)
        actual = derive(listing) if derive else getattr(listing, attr)
        if not _same(actual, value):
            return False
    return True

def _as_listings(records: Iterable[Any]) -> List[RawListing]:
    out: List[RawListing] = []
    for r in records:
        if isinstance(r, RawListing):
            out.append(r)
        elif isinstance(r, Mapping):
            out.append(RawListing.from_record(r))
        else:
            log.warning("skipping non-object listing record", extra={"record_type": type(r).__name__})
    return out

class InMemoryListingStore(ListingStore):
    """
    Listings held in process, loaded from a list of dicts or a JSON file.
    Applies equality filters, the price range and the record cap the way
    the database-backed store does.
    """
    def __init__(
        self,
        records: Iterable[Any] = (),
        *,
        active_only: bool = settings.STORE_ACTIVE_ONLY,
        max_records: int = settings.STORE_MAX_RECORDS,
    ):
        self.listings: List[RawListing] = _as_listings(records)
        self.active_only = active_only
        self.max_records = max_records

    @classmethod
    def from_json(cls, path: str | Path, **kwargs) -> "InMemoryListingStore":
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if isinstance(data, dict):
            data = data.get("data", [])
        return cls(data, **kwargs)

    async def fetch(
        self,
        filters: Mapping[str, Any],
        *,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        limit: Optional[int] = None,
    ) -> List[RawListing]:
        wanted = resolve_filters(filters)
        cap = min(limit or self.max_records, self.max_records)
        out: List[RawListing] = []
        for listing in self.listings:
            if self.active_only and listing.is_active_on_source is False:
                continue
            if not matches(listing, wanted):
                continue
            if min_price is not None and (listing.price or 0) < min_price:
                continue
            if max_price is not None and (listing.price or 0) > max_price:
                continue
            out.append(listing)
            if len(out) >= cap:
                break
        return out

class HttpListingStore(ListingStore):
    """
    Client for a listing service exposing GET /listings.
    Transport errors surface as StoreUnavailable; retries are the service's job.
    """
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = settings.STORE_TIMEOUT_SECONDS,
        max_records: int = settings.STORE_MAX_RECORDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_records = max_records
        self.transport = transport

    async def fetch(
        self,
        filters: Mapping[str, Any],
        *,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        limit: Optional[int] = None,
    ) -> List[RawListing]:
        stored, derived = split_filters(resolve_filters(filters))
        params: Dict[str, Any] = dict(stored)
        if min_price is not None:
            params["min_price"] = min_price
        if max_price is not None:
            params["max_price"] = max_price
        params["limit"] = min(limit or self.max_records, self.max_records)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                r = await client.get(f"{self.base_url}/listings", params=params)
                r.raise_for_status()
                body = r.json()
        except (httpx.HTTPError, ValueError) as exc:
            log.warning("listing store request failed: %s", exc, extra={"store": self.base_url})
            raise StoreUnavailable(f"listing store unavailable: {exc}") from exc

        items = body.get("data", []) if isinstance(body, dict) else body
        if not isinstance(items, list):
            raise StoreUnavailable("listing store returned an unexpected payload")
        listings = _as_listings(items[: params["limit"]])
        # The source cannot filter on canonical values; apply those here.
        return [l for l in listings if matches(l, derived)]

def listing_store() -> ListingStore:
    """
    Factory picks the memory or http store based on env flags.
    """
    if settings.STORE_PROVIDER == "http" and settings.STORE_BASE_URL:
        return HttpListingStore(settings.STORE_BASE_URL)
    if settings.LISTINGS_PATH:
        return InMemoryListingStore.from_json(settings.LISTINGS_PATH)
    return InMemoryListingStore()
