from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

class PropertyType(str, Enum):
    APARTMENT = "APARTMENT"
    HOUSE = "HOUSE"
    LAND = "LAND"
    OTHER_PROPERTY = "OTHER_PROPERTY"

class PropertyStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    UNAVAILABLE = "UNAVAILABLE"

class CanonicalProperty(BaseModel):
    """
    UI-ready listing. Serialized with camelCase names (predictedPrice,
    listingType, newListing, ...) which downstream clients rely on.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    title: str
    price: float = Field(ge=0)
    predicted_price: float | None = None
    price_per_sqm: float | None = None
    currency: str | None = None
    surface: float = Field(ge=0)
    bedrooms: int
    bathrooms: int
    address: str
    city: str | None = None
    county: str | None = None
    lat: float | None = None
    lng: float | None = None
    type: PropertyType
    status: PropertyStatus
    listing_type: str
    year_built: int | None = None
    description: str
    images: list[str] = Field(min_length=1)
    tags: list[str] = []
    featured: bool = False
    new_listing: bool = False
    listed_date: str | None = None
    last_updated: str | None = None
    owner_id: str
    owner_name: str
    owner_email: str
    owner_phone: str

# ----- Search API -----

class LatLng(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)

class Bounds(BaseModel):
    north: float = Field(ge=-90, le=90)
    south: float = Field(ge=-90, le=90)
    east: float = Field(ge=-180, le=180)
    west: float = Field(ge=-180, le=180)

SortKey = Literal["none", "distance", "price", "recency"]

class SearchOptions(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    filters: dict[str, str | int | float | bool] = {}
    min_price: float | None = Field(default=None, ge=0)
    max_price: float | None = Field(default=None, ge=0)
    sort: SortKey = "none"
    descending: bool = False
    limit: int | None = Field(default=None, ge=1, le=2000)

class PolygonSearchRequest(SearchOptions):
    shape: Literal["polygon", "rectangle"] = "polygon"
    coordinates: list[LatLng] = Field(min_length=2)

class AreaSearchRequest(SearchOptions):
    bounds: Bounds

class SearchResponse(BaseModel):
    items: list[CanonicalProperty]
    count: int
    dropped: int = 0
    bounds: Bounds
    etag: str | None = None
