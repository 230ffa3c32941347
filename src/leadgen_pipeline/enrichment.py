from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

logger = logging.getLogger(__name__)

# Columns a provider may fill. Anything else in a payload is ignored.
ENRICHABLE_FIELDS = frozenset({
    "business_type",
    "address",
    "city",
    "state",
    "zip_code",
    "country",
    "phone",
    "email",
    "website",
    "industry",
    "contact_name",
    "contact_position",
    "contact_seniority",
    "contact_department",
    "contact_linkedin",
    "contact_twitter",
    "contact_phone_number",
    "contact_location",
    "contact_timezone",
    "company_size",
    "company_revenue",
    "founded_year",
    "company_description",
    "linkedin_url",
    "twitter_handle",
    "facebook_url",
    "google_place_id",
    "google_maps_url",
    "google_rating",
    "google_review_count",
    "hunter_email_pattern",
    "email_confidence",
    "email_deliverability",
    "email_risk_level",
})


@dataclass
class EnrichmentResult:
    success: bool
    service: str
    data: dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    @classmethod
    def failed(cls, service: str, error: str) -> "EnrichmentResult":
        return cls(success=False, service=service, error=error)


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    if isinstance(value, (list, dict, tuple, set)) and not value:
        return True
    return False


def merge_enrichment(business: Any, data: Optional[dict[str, Any]]) -> list[str]:
    """Fill empty columns of ``business`` from ``data``; never overwrite known values.

    Returns the names of the fields that were set.
    """
    if not data:
        return []

    changed: list[str] = []
    for key, value in data.items():
        if key not in ENRICHABLE_FIELDS or _is_empty(value):
            continue
        if not _is_empty(getattr(business, key, None)):
            continue
        if isinstance(value, str):
            value = value.strip()
        setattr(business, key, value)
        changed.append(key)

    if changed:
        logger.debug("Merged enrichment fields %s", ", ".join(changed))
    return changed
