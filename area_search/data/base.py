from typing import Any, Dict, List, Mapping, Optional, Protocol
from dataclasses import dataclass, field

from ..core.utils import parse_float, parse_int

# ----- Data shapes (thin & explicit) -----

@dataclass(frozen=True)
class ImageRecord:
    url: Optional[str]
    is_primary: bool = False
    sort_order: Optional[int] = None

@dataclass(frozen=True)
class PredictionRecord:
    predicted_price: Optional[float]
    prediction_date: Any = None        # ISO string or datetime, parsed by the canonicalizer
    confidence_score: Optional[float] = None
    model_version: Optional[str] = None

@dataclass(frozen=True)
class ApartmentDetails:
    apartment_type: Optional[str] = None
    floor_number: Optional[int] = None
    total_floors: Optional[int] = None
    has_balcony: Optional[bool] = None
    has_elevator: Optional[bool] = None

@dataclass(frozen=True)
class HouseDetails:
    house_type: Optional[str] = None
    land_surface_area: Optional[float] = None
    has_garden: Optional[bool] = None
    has_pool: Optional[bool] = None
    has_garage: Optional[bool] = None

@dataclass(frozen=True)
class RawListing:
    """
    One listing as the store returns it. Every source field the pipeline reads
    is named here; anything else in the source record is ignored.
    """
    id: Optional[str]
    lat: Optional[float] = None
    lng: Optional[float] = None
    title: Optional[str] = None
    price: Optional[float] = None
    currency: Optional[str] = None
    price_per_sqm: Optional[float] = None
    surface: Optional[float] = None
    number_of_rooms: Optional[int] = None
    address: Optional[str] = None
    city: Optional[str] = None
    county: Optional[str] = None
    property_category: Optional[str] = None
    listing_type: str = "SALE"
    construction_year: Optional[int] = None
    is_active_on_source: Optional[bool] = None
    image_count: Optional[int] = None
    accessibility_score: Optional[float] = None
    date_created: Any = None
    last_modified_at: Any = None
    images: tuple = ()                  # tuple[ImageRecord, ...]
    predictions: tuple = ()             # tuple[PredictionRecord, ...]
    features: tuple = ()                # tuple[str, ...]
    apartment_details: Optional[ApartmentDetails] = None
    house_details: Optional[HouseDetails] = None
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @classmethod
    def from_record(cls, rec: Mapping[str, Any]) -> "RawListing":
        """Parse a store dict. Dirty values degrade to None, never raise."""
        return cls(
            id=_text(_first(rec, "internal_property_id", "id")),
            lat=parse_float(_first(rec, "latitude", "lat")),
            lng=parse_float(_first(rec, "longitude", "lng", "lon")),
            title=_text(rec.get("title")),
            price=parse_float(rec.get("price")),
            currency=_text(rec.get("currency")),
            price_per_sqm=parse_float(rec.get("price_per_sqm")),
            surface=parse_float(_first(rec, "total_surface_area", "area", "surface")),
            number_of_rooms=parse_int(rec.get("number_of_rooms")),
            address=_text(_first(rec, "address_text", "address")),
            city=_text(rec.get("city")),
            county=_text(rec.get("county")),
            property_category=_text(_first(rec, "property_category", "propertyType")),
            listing_type=_text(_first(rec, "listing_type", "listingType")) or "SALE",
            construction_year=parse_int(_first(rec, "construction_year", "yearBuilt")),
            is_active_on_source=_flag(rec.get("is_active_on_source")),
            image_count=parse_int(rec.get("image_count")),
            accessibility_score=parse_float(rec.get("accessibility_score")),
            date_created=_first(rec, "date_created", "createdAt"),
            last_modified_at=_first(rec, "last_modified_at", "updatedAt"),
            images=tuple(_images(rec.get("property_images"))),
            predictions=tuple(_predictions(rec.get("ml_price_predictions"))),
            features=tuple(_features(rec.get("property_to_feature_link"))),
            apartment_details=_apartment(rec.get("apartment_details")),
            house_details=_house(rec.get("house_details")),
            extra={k: v for k, v in rec.items() if k not in _KNOWN_KEYS},
        )

_KNOWN_KEYS = frozenset({
    "internal_property_id", "id", "latitude", "lat", "longitude", "lng", "lon",
    "title", "price", "currency", "price_per_sqm", "total_surface_area", "area",
    "surface", "number_of_rooms", "address_text", "address", "city", "county",
    "property_category", "propertyType", "listing_type", "listingType",
    "construction_year", "yearBuilt", "is_active_on_source", "image_count",
    "accessibility_score", "date_created", "createdAt", "last_modified_at",
    "updatedAt", "property_images", "ml_price_predictions",
    "property_to_feature_link", "apartment_details", "house_details",
})

def _first(rec: Mapping[str, Any], *keys: str) -> Any:
    # First alias holding a non-empty value.
    for k in keys:
        v = rec.get(k)
        if v is not None and v != "":
            return v
    return None

def _text(v: Any) -> Optional[str]:
    if v is None:
        return None
    s = str(v).strip()
    return s or None

def _flag(v: Any) -> Optional[bool]:
    if v is None or isinstance(v, bool):
        return v
    if isinstance(v, str):
        low = v.strip().lower()
        if low in ("true", "1", "yes"):
            return True
        if low in ("false", "0", "no"):
            return False
        return None
    if isinstance(v, (int, float)):
        return bool(v)
    return None

def _records(v: Any) -> List[Mapping[str, Any]]:
    if not isinstance(v, (list, tuple)):
        return []
    return [r for r in v if isinstance(r, Mapping)]

def _images(v: Any):
    for r in _records(v):
        yield ImageRecord(
            url=_text(_first(r, "image_url", "url")),
            is_primary=bool(_flag(r.get("is_primary"))),
            sort_order=parse_int(r.get("sort_order")),
        )

def _predictions(v: Any):
    for r in _records(v):
        yield PredictionRecord(
            predicted_price=parse_float(r.get("predicted_price")),
            prediction_date=r.get("prediction_date"),
            confidence_score=parse_float(r.get("confidence_score")),
            model_version=_text(r.get("model_version")),
        )

def _features(v: Any):
    for r in _records(v):
        nested = r.get("features_and_amenities")
        name = nested.get("feature_name") if isinstance(nested, Mapping) else r.get("feature_name")
        name = _text(name)
        if name:
            yield name

def _apartment(v: Any) -> Optional[ApartmentDetails]:
    if not isinstance(v, Mapping):
        return None
    return ApartmentDetails(
        apartment_type=_text(v.get("apartment_type_scraped")),
        floor_number=parse_int(v.get("floor_number_parsed")),
        total_floors=parse_int(v.get("total_floors_in_building")),
        has_balcony=_flag(v.get("has_balcony")),
        has_elevator=_flag(v.get("has_elevator")),
    )

def _house(v: Any) -> Optional[HouseDetails]:
    if not isinstance(v, Mapping):
        return None
    return HouseDetails(
        house_type=_text(v.get("house_type_scraped")),
        land_surface_area=parse_float(v.get("land_surface_area")),
        has_garden=_flag(v.get("has_garden_bool")),
        has_pool=_flag(v.get("has_pool_bool")),
        has_garage=_flag(v.get("has_garage_bool")),
    )

# ----- Protocols (interfaces) -----

class ListingStore(Protocol):
    async def fetch(
        self,
        filters: Mapping[str, Any],
        *,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        limit: Optional[int] = None,
    ) -> List[RawListing]: ...
