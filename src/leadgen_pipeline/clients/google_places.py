"""Google Places API (New) text search.

Only Essentials-tier fields are requested; the field mask controls pricing.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from .base import ProviderClient
from ..enrichment import EnrichmentResult
from ..normalization import name_overlap_ratio

logger = logging.getLogger(__name__)

PLACES_TEXT_SEARCH_URL = "https://places.googleapis.com/v1/places:searchText"

SEARCH_FIELD_MASK = ",".join([
    "places.id",
    "places.displayName",
    "places.formattedAddress",
    "places.nationalPhoneNumber",
    "places.internationalPhoneNumber",
    "places.websiteUri",
    "places.rating",
    "places.userRatingCount",
    "places.googleMapsUri",
])

MATCH_THRESHOLD = 0.5


def is_good_match(business_name: Optional[str], place_name: Optional[str]) -> bool:
    """At least half of the business name's words must appear in the place name."""
    return name_overlap_ratio(business_name, place_name) >= MATCH_THRESHOLD


def place_fields(place: dict[str, Any]) -> dict[str, Any]:
    phone = place.get("nationalPhoneNumber") or place.get("internationalPhoneNumber")
    rating = place.get("rating")
    review_count = place.get("userRatingCount")
    return {
        "place_name": (place.get("displayName") or {}).get("text"),
        "google_place_id": place.get("id"),
        "google_maps_url": place.get("googleMapsUri"),
        "google_rating": float(rating) if rating is not None else None,
        "google_review_count": int(review_count) if review_count is not None else None,
        "phone": phone.strip() if phone else None,
        "website": (place.get("websiteUri") or "").strip() or None,
        "address": place.get("formattedAddress"),
    }


class PlacesClient(ProviderClient):
    service = "google_places"

    def text_search(self, query: str) -> EnrichmentResult:
        """Top Text Search hit for ``query``, mapped onto business columns."""
        payload, error = self.request_json(
            "POST",
            PLACES_TEXT_SEARCH_URL,
            json={"textQuery": query, "maxResultCount": 1},
            headers={"X-Goog-Api-Key": self.api_key, "X-Goog-FieldMask": SEARCH_FIELD_MASK},
        )
        if error:
            return self.failed(error)

        places = payload.get("places") if isinstance(payload, dict) else None
        if not places:
            return self.failed("No place found")
        return self.succeeded(place_fields(places[0]))
