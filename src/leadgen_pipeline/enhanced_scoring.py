"""Post-enrichment lead scoring.

Five capped categories add up to at most 100 points. Each category collects
human-readable ``factors`` explaining its points, and the breakdown carries a
list of advisory recommendations for the points that were not earned.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from .scoring import DEFAULT_INDUSTRY_TABLE, IndustryTable

CONTACT_QUALITY = "contact_quality"
EMAIL_QUALITY = "email_quality"
COMPANY_DATA = "company_data"
ENRICHMENT_DEPTH = "enrichment_depth"
INDUSTRY_RELEVANCE = "industry_relevance"

CATEGORY_MAX_SCORES = {
    CONTACT_QUALITY: 25,
    EMAIL_QUALITY: 25,
    COMPANY_DATA: 20,
    ENRICHMENT_DEPTH: 15,
    INDUSTRY_RELEVANCE: 15,
}

HIGH_SCORE_THRESHOLD = 75
MEDIUM_SCORE_THRESHOLD = 50
FRESH_ENRICHMENT_DAYS = 7
STALE_ENRICHMENT_DAYS = 90
MAX_SOCIAL_POINTS = 7
SENIOR_KEYWORDS = ("executive", "director", "senior")
CONTACT_ATTRIBUTES = (
    "contact_position",
    "contact_seniority",
    "contact_department",
    "contact_linkedin",
    "contact_location",
)


@dataclass
class CategoryScore:
    max_score: int
    score: int = 0
    factors: list[str] = field(default_factory=list)

    def add(self, points: int, factor: str) -> None:
        self.score += points
        self.factors.append(factor)


@dataclass
class LeadScoreBreakdown:
    total_score: int
    categories: dict[str, CategoryScore]
    priority: str
    recommendations: list[str]
    max_score: int = 100

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_score": self.total_score,
            "max_score": self.max_score,
            "priority": self.priority,
            "categories": {
                name: {"score": cat.score, "max_score": cat.max_score, "factors": list(cat.factors)}
                for name, cat in self.categories.items()
            },
            "recommendations": list(self.recommendations),
        }


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _latest_enrichment(business: Any) -> Optional[datetime]:
    stamps = [
        _as_utc(stamp)
        for stamp in (getattr(business, "hunter_enriched_at", None), getattr(business, "enriched_at", None))
        if stamp is not None
    ]
    return max(stamps) if stamps else None


def _score_contact_quality(business: Any, category: CategoryScore, recommendations: list[str]) -> None:
    if business.email:
        category.add(5, "Has email address (+5)")
        status = getattr(business, "hunter_verification_status", None)
        if status == "valid":
            category.add(5, "Email verified as valid (+5)")
        elif status:
            category.add(2, f"Email verification: {status} (+2)")
    else:
        recommendations.append("Find email address using Hunter domain search")

    if business.phone or getattr(business, "contact_phone_number", None):
        category.add(5, "Has phone number (+5)")

    if getattr(business, "contact_name", None):
        category.add(3, "Contact person identified (+3)")
        if getattr(business, "contact_position", None):
            category.add(2, f"Has job title: {business.contact_position} (+2)")
    elif business.email and (getattr(business, "hunter_email_count", None) or 0) > 0:
        recommendations.append("Use Hunter email finder to identify a decision maker by name")

    seniority = getattr(business, "contact_seniority", None)
    if seniority:
        lowered = seniority.lower()
        bonus = 3 if any(keyword in lowered for keyword in SENIOR_KEYWORDS) else 1
        category.add(bonus, f"Seniority: {seniority} (+{bonus})")


def _score_email_quality(business: Any, category: CategoryScore, recommendations: list[str]) -> None:
    if not business.email:
        recommendations.append("No email found, run a Hunter domain search")
        return

    confidence = getattr(business, "email_confidence", None)
    if confidence:
        points = _round_half_up(confidence / 100 * 10)
        category.add(points, f"Email confidence: {confidence}% (+{points})")

    deliverability = getattr(business, "email_deliverability", None)
    if deliverability == "deliverable":
        category.add(10, "Email is deliverable (+10)")
    elif deliverability == "risky":
        category.add(3, "Email is risky (+3)")
        recommendations.append("Consider finding an alternative contact email")
    elif deliverability == "undeliverable":
        category.add(0, "Email is undeliverable (0)")
        recommendations.append("Find a new email address, the current one is undeliverable")

    if not business.is_generic_email:
        category.add(5, "Direct contact email (+5)")
    else:
        category.add(0, "Generic email address (0)")
        recommendations.append("Find a direct contact email for better response rates")

    if business.is_disposable_email:
        recommendations.append("Disposable email, likely not a real lead")


def _score_company_data(business: Any, category: CategoryScore, recommendations: list[str]) -> None:
    if business.website:
        category.add(5, "Has website (+5)")
        if business.domain_valid:
            category.add(3, "Domain is valid (+3)")
    else:
        recommendations.append("Add a company website for better enrichment")

    if getattr(business, "company_size", None):
        category.add(5, f"Company size: {business.company_size} (+5)")

    social = 0
    if getattr(business, "linkedin_url", None):
        social += 4
        category.factors.append("Has LinkedIn (+4)")
    if getattr(business, "twitter_handle", None):
        social += 2
        category.factors.append("Has Twitter (+2)")
    if getattr(business, "facebook_url", None):
        social += 1
        category.factors.append("Has Facebook (+1)")
    category.score += min(social, MAX_SOCIAL_POINTS)

    if not getattr(business, "linkedin_url", None) and business.website:
        recommendations.append("Enrich with the LinkedIn company profile")


def _score_enrichment_depth(
    business: Any,
    category: CategoryScore,
    recommendations: list[str],
    now: datetime,
) -> None:
    email_count = getattr(business, "hunter_email_count", None) or 0
    if email_count > 0:
        category.add(3, f"{email_count} emails available in Hunter (+3)")
        if email_count >= 10:
            category.add(2, "Large team, more contacts available (+2)")

    latest = _latest_enrichment(business)
    if latest is not None:
        category.add(5, "Enriched with external data (+5)")
    elif business.website:
        recommendations.append("Run auto-enrichment to get more lead data")

    depth = sum(1 for attr in CONTACT_ATTRIBUTES if getattr(business, attr, None))
    if depth:
        category.add(depth, f"{depth} contact attributes known (+{depth})")

    if latest is not None:
        age_days = (now - latest).total_seconds() / 86400
        if age_days < FRESH_ENRICHMENT_DAYS:
            category.add(2, "Recently enriched, data is fresh (+2)")
        elif age_days > STALE_ENRICHMENT_DAYS:
            recommendations.append("Data is stale, consider re-enriching")


def _score_industry_relevance(
    business: Any,
    category: CategoryScore,
    recommendations: list[str],
    table: IndustryTable,
) -> None:
    industry = business.industry
    if industry:
        if table.matches(industry, table.high_value + table.high_value_related):
            category.add(15, f"High-value industry: {industry} (+15)")
        elif table.matches(industry, table.relevant):
            category.add(10, f"Relevant industry: {industry} (+10)")
        else:
            category.add(5, f"Industry: {industry} (+5)")
    else:
        category.add(0, "Industry unknown (0)")
        recommendations.append("Classify the business industry for better targeting")

    if business.city or business.state:
        location = ", ".join(part for part in (business.city, business.state) if part)
        category.add(5, f"Location: {location} (+5)")


def derive_score_priority(total_score: int) -> str:
    if total_score >= HIGH_SCORE_THRESHOLD:
        return "high"
    if total_score >= MEDIUM_SCORE_THRESHOLD:
        return "medium"
    return "low"


def calculate_enhanced_lead_score(
    business: Any,
    table: IndustryTable = DEFAULT_INDUSTRY_TABLE,
    now: Optional[datetime] = None,
) -> LeadScoreBreakdown:
    """Score a business (ORM row or any object with the same attributes)."""
    now = _as_utc(now or datetime.now(timezone.utc))
    categories = {name: CategoryScore(max_score=max_score) for name, max_score in CATEGORY_MAX_SCORES.items()}
    recommendations: list[str] = []

    _score_contact_quality(business, categories[CONTACT_QUALITY], recommendations)
    _score_email_quality(business, categories[EMAIL_QUALITY], recommendations)
    _score_company_data(business, categories[COMPANY_DATA], recommendations)
    _score_enrichment_depth(business, categories[ENRICHMENT_DEPTH], recommendations, now)
    _score_industry_relevance(business, categories[INDUSTRY_RELEVANCE], recommendations, table)

    for category in categories.values():
        category.score = max(0, min(category.score, category.max_score))

    total = sum(category.score for category in categories.values())
    return LeadScoreBreakdown(
        total_score=total,
        categories=categories,
        priority=derive_score_priority(total),
        recommendations=recommendations,
    )


def lead_quality_label(score: int) -> tuple[str, str]:
    """Label and one-line description for an enhanced score."""
    if score >= 85:
        return "Excellent", "Hot lead with verified contact details"
    if score >= 70:
        return "Good", "Qualified lead worth pursuing"
    if score >= 50:
        return "Fair", "Potential lead, needs more enrichment"
    if score >= 30:
        return "Poor", "Weak lead, missing key information"
    return "Very Poor", "Low quality, needs significant enrichment"


def apply_lead_score(business: Any, table: IndustryTable = DEFAULT_INDUSTRY_TABLE, now: Optional[datetime] = None) -> int:
    """Store the enhanced score and its breakdown on ``business``."""
    now = now or datetime.now(timezone.utc)
    breakdown = calculate_enhanced_lead_score(business, table=table, now=now)
    business.lead_score = breakdown.total_score
    business.score_reasons = breakdown.to_dict()
    business.scored_at = now
    return breakdown.total_score
