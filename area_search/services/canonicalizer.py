"""Raw listing → CanonicalProperty.

All derivations are pure functions of the RawListing plus an explicit
``now``, so repeated calls within one search agree with each other.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Sequence, Tuple

from ..core.config import settings
from ..core.errors import MissingIdentifier
from ..core.utils import parse_datetime
from ..data.base import ImageRecord, PredictionRecord, RawListing
from ..schemas import CanonicalProperty, PropertyStatus, PropertyType

log = logging.getLogger(__name__)

_UNDATED = datetime.min.replace(tzinfo=timezone.utc)
_MISSING_SORT_ORDER = 999
_MAX_TEXT = 1000

_TYPE_KEYWORDS: Sequence[Tuple[Tuple[str, ...], PropertyType]] = (
    (("apartament", "apartment"), PropertyType.APARTMENT),
    (("casa", "house"), PropertyType.HOUSE),
    (("teren", "land"), PropertyType.LAND),
)


@dataclass(frozen=True)
class CanonicalDefaults:
    """Fallback values injected into the canonicalizer."""

    image_url: str = settings.DEFAULT_IMAGE_URL
    title: str = "Property Title Not Available"
    address: str = "Address Not Available"
    description: str = "Property details will be updated soon."
    listing_type: str = "SALE"
    owner_id: str = settings.OWNER_ID
    owner_name: str = settings.OWNER_NAME
    owner_email: str = settings.OWNER_EMAIL
    owner_phone: str = settings.OWNER_PHONE
    new_listing_days: int = settings.NEW_LISTING_DAYS
    featured_recent_days: int = settings.FEATURED_RECENT_DAYS
    max_tags: int = settings.MAX_TAGS


# ----- derivation rules -----

def latest_prediction(predictions: Sequence[PredictionRecord]) -> Optional[PredictionRecord]:
    """Most recent prediction by date; undated ones count as oldest, ties keep the first."""
    latest: Optional[PredictionRecord] = None
    latest_at = _UNDATED
    for p in predictions:
        at = parse_datetime(p.prediction_date) or _UNDATED
        if latest is None or at > latest_at:
            latest, latest_at = p, at
    return latest


def rank_images(images: Sequence[ImageRecord], default_url: str) -> List[str]:
    """Primary images first, then ascending sort_order; never empty."""
    ordered = sorted(
        images,
        key=lambda img: (
            not img.is_primary,
            img.sort_order if img.sort_order is not None else _MISSING_SORT_ORDER,
        ),
    )
    urls = [img.url for img in ordered if img.url]
    return urls or [default_url]


def room_counts(raw: RawListing) -> Tuple[int, int]:
    rooms = raw.number_of_rooms or 0
    bedrooms = rooms or 1
    bathrooms = 1
    if raw.apartment_details is not None:
        # one of the rooms is the living room
        bedrooms = max(1, (rooms or 2) - 1)
    if raw.house_details is not None:
        bedrooms = rooms or 2
        bathrooms = max(1, bedrooms // 2)
    return bedrooms, bathrooms


def property_type(category: Optional[str]) -> PropertyType:
    low = (category or "").lower()
    for keywords, kind in _TYPE_KEYWORDS:
        if any(k in low for k in keywords):
            return kind
    return PropertyType.OTHER_PROPERTY


def property_status(is_active: Optional[bool]) -> PropertyStatus:
    return PropertyStatus.UNAVAILABLE if is_active is False else PropertyStatus.AVAILABLE


def listed_within(date_created, days: int, now: datetime) -> bool:
    listed = parse_datetime(date_created)
    if listed is None:
        return False
    return listed > now - timedelta(days=days)


def _number(value: float) -> str:
    return f"{value:g}"


def describe(raw: RawListing, fallback: str) -> str:
    parts: List[str] = []
    if raw.property_category:
        parts.append(raw.property_category)
    if raw.surface:
        parts.append(f"{_number(raw.surface)}m²")
    if raw.number_of_rooms:
        parts.append(f"{raw.number_of_rooms} rooms")
    if raw.construction_year:
        parts.append(f"built in {raw.construction_year}")
    if raw.city and raw.county:
        parts.append(f"located in {raw.city}, {raw.county}")
    if not parts:
        return fallback
    return f"Property with {', '.join(parts)}."


def _iso(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _non_negative(value: Optional[float]) -> float:
    return max(0.0, value or 0.0)


# ----- canonicalizer -----

class PropertyCanonicalizer:
    """
    Maps RawListing records onto CanonicalProperty.
    Only a missing identifier is fatal (MissingIdentifier); every other gap
    falls back to the configured defaults.
    """

    def __init__(self, defaults: CanonicalDefaults | None = None):
        self.defaults = defaults or CanonicalDefaults()

    def canonicalize(self, raw: RawListing, now: datetime | None = None) -> CanonicalProperty:
        if not raw.id:
            raise MissingIdentifier("listing has no identifier")
        now = now or datetime.now(timezone.utc)
        d = self.defaults

        prediction = latest_prediction(raw.predictions)
        predicted = prediction.predicted_price if prediction else None
        images = rank_images(raw.images, d.image_url)
        has_images = (raw.image_count or 0) > 0 or any(img.url for img in raw.images)

        featured_score = sum((
            has_images,
            len(raw.predictions) > 0,
            (raw.accessibility_score or 0) > 3,
            listed_within(raw.date_created, d.featured_recent_days, now),
        ))
        bedrooms, bathrooms = room_counts(raw)

        return CanonicalProperty(
            id=raw.id,
            title=raw.title or d.title,
            price=_non_negative(raw.price),
            predicted_price=predicted if predicted else None,
            price_per_sqm=raw.price_per_sqm or None,
            currency=raw.currency,
            surface=_non_negative(raw.surface),
            bedrooms=bedrooms,
            bathrooms=bathrooms,
            address=raw.address or d.address,
            city=raw.city,
            county=raw.county,
            lat=raw.lat,
            lng=raw.lng,
            type=property_type(raw.property_category),
            status=property_status(raw.is_active_on_source),
            listing_type=raw.listing_type or d.listing_type,
            year_built=raw.construction_year,
            description=describe(raw, d.description),
            images=images,
            tags=list(raw.features[: d.max_tags]),
            featured=featured_score >= 2,
            new_listing=listed_within(raw.date_created, d.new_listing_days, now),
            listed_date=_iso(raw.date_created),
            last_updated=_iso(raw.last_modified_at),
            owner_id=d.owner_id,
            owner_name=d.owner_name,
            owner_email=d.owner_email,
            owner_phone=d.owner_phone,
        )

    def canonicalize_many(
        self, raws: Iterable[RawListing], now: datetime | None = None
    ) -> Tuple[List[CanonicalProperty], int]:
        """Canonicalize a batch under one `now`; records without an id are skipped and counted."""
        now = now or datetime.now(timezone.utc)
        out: List[CanonicalProperty] = []
        dropped = 0
        for raw in raws:
            try:
                out.append(self.canonicalize(raw, now))
            except MissingIdentifier:
                dropped += 1
        if dropped:
            log.warning("skipped %d listing(s) without an identifier", dropped, extra={"dropped": dropped})
        return out, dropped


# ----- validation helpers -----

def validate_property(prop: CanonicalProperty) -> List[str]:
    """Problems that make a property unfit for display; empty when valid."""
    errors: List[str] = []
    if not prop.id:
        errors.append("Property ID is required")
    if not prop.title:
        errors.append("Property title is required")
    if prop.price <= 0:
        errors.append("Valid price is required")
    if prop.surface <= 0:
        errors.append("Valid surface area is required")
    if not prop.address:
        errors.append("Property address is required")
    if not prop.images:
        errors.append("At least one image is required")
    return errors


def _clean(text: str) -> str:
    return text.strip()[:_MAX_TEXT]


def sanitize_property(prop: CanonicalProperty) -> CanonicalProperty:
    """Copy with trimmed, length-capped text and non-negative numbers."""
    return prop.model_copy(update={
        "title": _clean(prop.title),
        "address": _clean(prop.address),
        "description": _clean(prop.description),
        "tags": [_clean(t) for t in prop.tags],
        "price": max(0.0, prop.price),
        "surface": max(0.0, prop.surface),
        "bedrooms": max(0, prop.bedrooms),
        "bathrooms": max(0, prop.bathrooms),
    })
