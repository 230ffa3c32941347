from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# Contact methods (max 30)
SCORE_VALID_EMAIL = 15
SCORE_PHONE = 10
SCORE_VALID_WEBSITE = 5
# Data quality (max 20)
SCORE_NON_DISPOSABLE_EMAIL = 10
SCORE_DIRECT_EMAIL = 10
# Industry relevance (max 50)
SCORE_RELEVANT_INDUSTRY = 30
SCORE_HIGH_VALUE_INDUSTRY = 20

MAX_SCORE = 100
HIGH_PRIORITY_THRESHOLD = 80
MEDIUM_PRIORITY_THRESHOLD = 60

PRIORITY_HIGH = "high"
PRIORITY_MEDIUM = "medium"
PRIORITY_LOW = "low"
STATUS_NEW = "new"
STATUS_DUPLICATE = "duplicate"


@dataclass(frozen=True)
class IndustryTable:
    """Industry keyword tiers and service-segment keywords.

    Keywords are matched as lowercase substrings of the industry (or, for
    segments, of business type + industry).
    """

    relevant: tuple[str, ...] = (
        "medical",
        "healthcare",
        "corporate",
        "legal",
        "law",
        "real estate",
        "education",
        "entertainment",
        "events",
        "hospitality",
        "restaurant",
        "retail",
        "fashion",
        "beauty",
        "fitness",
        "sports",
        "non-profit",
        "agency",
        "marketing",
        "technology",
    )
    irrelevant: tuple[str, ...] = (
        "construction",
        "manufacturing",
        "automotive",
        "plumbing",
        "hvac",
        "roofing",
        "landscaping",
    )
    high_value: tuple[str, ...] = ("medical", "legal", "corporate", "real estate")
    # Extra keywords the enhanced scorer treats as high value.
    high_value_related: tuple[str, ...] = ("healthcare", "law")
    segments: tuple[tuple[str, tuple[str, ...]], ...] = field(
        default=(
            ("headshots", ("corporate", "professional", "real estate", "legal", "law", "lawyer", "attorney")),
            ("events", ("medical", "healthcare", "hospital", "clinic", "conference", "event")),
            ("branding", ("entrepreneur", "agency", "marketing", "startup", "small business")),
        )
    )

    def matches(self, value: Optional[str], keywords: tuple[str, ...]) -> bool:
        if not value:
            return False
        lowered = value.lower()
        return any(keyword in lowered for keyword in keywords)


DEFAULT_INDUSTRY_TABLE = IndustryTable()


def load_industry_table(path: Optional[str]) -> IndustryTable:
    """Load an ``IndustryTable`` from JSON, falling back to the defaults.

    Missing keys keep their default values. ``segments`` is an object mapping
    segment name to a keyword list; order is preserved.
    """
    if not path:
        return DEFAULT_INDUSTRY_TABLE

    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    overrides: dict = {}
    for key in ("relevant", "irrelevant", "high_value", "high_value_related"):
        if key in payload:
            overrides[key] = tuple(str(item).lower() for item in payload[key])
    if "segments" in payload:
        overrides["segments"] = tuple(
            (name, tuple(str(item).lower() for item in keywords))
            for name, keywords in payload["segments"].items()
        )
    logger.info("Loaded industry table from %s", path)
    return IndustryTable(**{**DEFAULT_INDUSTRY_TABLE.__dict__, **overrides})


def is_relevant_industry(industry: Optional[str], table: IndustryTable = DEFAULT_INDUSTRY_TABLE) -> bool:
    # Unknown industries get the benefit of the doubt.
    if not industry:
        return True
    return not table.matches(industry, table.irrelevant)


def determine_service_segment(
    business_type: Optional[str],
    industry: Optional[str],
    table: IndustryTable = DEFAULT_INDUSTRY_TABLE,
) -> Optional[str]:
    combined = f"{business_type or ''} {industry or ''}".strip()
    for segment, keywords in table.segments:
        if table.matches(combined, keywords):
            return segment
    return None


def calculate_relevance_score(
    *,
    email: Optional[str] = None,
    phone: Optional[str] = None,
    website: Optional[str] = None,
    industry: Optional[str] = None,
    email_valid: Optional[bool] = None,
    domain_valid: Optional[bool] = None,
    is_disposable_email: bool = False,
    is_generic_email: bool = False,
    table: IndustryTable = DEFAULT_INDUSTRY_TABLE,
) -> int:
    score = 0

    if email and email_valid:
        score += SCORE_VALID_EMAIL
    if phone:
        score += SCORE_PHONE
    if website and domain_valid:
        score += SCORE_VALID_WEBSITE

    if email and not is_disposable_email:
        score += SCORE_NON_DISPOSABLE_EMAIL
    if email and not is_generic_email:
        score += SCORE_DIRECT_EMAIL

    if is_relevant_industry(industry, table):
        score += SCORE_RELEVANT_INDUSTRY
        if table.matches(industry, table.high_value):
            score += SCORE_HIGH_VALUE_INDUSTRY

    return min(score, MAX_SCORE)


def derive_lead_priority(relevance_score: int, is_duplicate: bool) -> str:
    if is_duplicate:
        return PRIORITY_LOW
    if relevance_score >= HIGH_PRIORITY_THRESHOLD:
        return PRIORITY_HIGH
    if relevance_score >= MEDIUM_PRIORITY_THRESHOLD:
        return PRIORITY_MEDIUM
    return PRIORITY_LOW


def derive_lead_status(is_duplicate: bool) -> str:
    return STATUS_DUPLICATE if is_duplicate else STATUS_NEW
