"""Create/update orchestration for business records.

Every write goes through ``process_business_data``: normalize, hash,
validate, de-duplicate, classify and score. The derived columns are always
recomputed from the current raw fields, never patched individually.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from sqlalchemy import select
from sqlalchemy.orm import Session

from .config import Config
from .dedup import DuplicateCandidate, check_duplicate, repoint_duplicates
from .domain_utils import extract_domain, hash_value
from .models import Business, LeadAlert
from .normalization import normalize_address, normalize_business_name, normalize_email, normalize_phone
from .scoring import (
    DEFAULT_INDUSTRY_TABLE,
    PRIORITY_HIGH,
    IndustryTable,
    calculate_relevance_score,
    derive_lead_priority,
    derive_lead_status,
    determine_service_segment,
)
from .validation import DomainProbe, is_valid_domain_format, validate_email

logger = logging.getLogger(__name__)

RAW_FIELDS = (
    "business_name",
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
    "data_source",
    "source_url",
)

ALERT_HIGH_PRIORITY_LEAD = "high_priority_lead"
ALERT_DUPLICATE_DETECTED = "duplicate_detected"

ALERT_TEMPLATES = {
    ALERT_HIGH_PRIORITY_LEAD: ("high", "High-priority lead: {name}"),
    ALERT_DUPLICATE_DETECTED: ("low", "Duplicate detected: {name}"),
}

REVIEW_STATUSES = ("pending", "approved", "archived")


class BusinessNotFoundError(LookupError):
    pass


class _BusinessFields(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    business_type: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    industry: Optional[str] = None
    data_source: Optional[str] = None
    source_url: Optional[str] = None


class BusinessInput(_BusinessFields):
    business_name: str

    @field_validator("business_name")
    @classmethod
    def _require_name(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("business name is required")
        return value

    @classmethod
    def from_business(cls, business: Business) -> "BusinessInput":
        return cls.model_validate({name: getattr(business, name) for name in RAW_FIELDS})


class BusinessUpdate(_BusinessFields):
    business_name: Optional[str] = None


@dataclass
class ProcessedBusiness:
    """Raw fields plus everything derived from them for one record."""

    raw: dict[str, Any]
    normalized_business_name: Optional[str]
    normalized_address: Optional[str]
    normalized_email: Optional[str]
    normalized_phone: Optional[str]
    email_hash: Optional[str]
    phone_hash: Optional[str]
    domain_hash: Optional[str]
    email_valid: Optional[bool]
    is_disposable_email: bool
    is_generic_email: bool
    email_validated_at: datetime
    domain_valid: Optional[bool]
    domain_active: Optional[bool]
    domain_validated_at: Optional[datetime]
    is_duplicate: bool
    duplicate_of_id: Optional[uuid.UUID]
    match_reason: Optional[str]
    service_segment: Optional[str]
    relevance_score: int
    lead_priority: str
    lead_status: str

    def apply_to(self, business: Business) -> None:
        for name, value in self.raw.items():
            setattr(business, name, value)
        for name, value in asdict(self).items():
            if name in ("raw", "match_reason"):
                continue
            setattr(business, name, value)


def build_probe(config: Config) -> Optional[DomainProbe]:
    if not config.domain_probe_enabled:
        return None
    return DomainProbe(timeout=config.domain_probe_timeout, user_agent=config.http_user_agent)


def _probe_domain(
    domain: str,
    domain_hash: Optional[str],
    existing: Optional[Business],
    probe: Optional[DomainProbe],
) -> Optional[bool]:
    if existing is not None and existing.domain_hash == domain_hash and existing.domain_active is not None:
        return existing.domain_active
    if probe is None:
        return None
    try:
        return probe.is_active(domain)
    except Exception as exc:
        logger.warning("Domain probe for %s raised: %s", domain, exc)
        return None


def process_business_data(
    session: Session,
    data: BusinessInput,
    existing: Optional[Business] = None,
    probe: Optional[DomainProbe] = None,
    table: IndustryTable = DEFAULT_INDUSTRY_TABLE,
) -> ProcessedBusiness:
    now = datetime.now(timezone.utc)
    raw = {name: getattr(data, name) for name in RAW_FIELDS}

    normalized_name = normalize_business_name(data.business_name)
    normalized_addr = normalize_address(data.address)
    normalized_mail = normalize_email(data.email)
    normalized_tel = normalize_phone(data.phone)

    domain = extract_domain(data.website or data.email)
    domain_hash = hash_value(domain)
    email_hash = hash_value(normalized_mail)
    phone_hash = hash_value(normalized_tel)

    email_check = validate_email(normalized_mail)

    domain_valid: Optional[bool] = None
    domain_active: Optional[bool] = None
    domain_validated_at: Optional[datetime] = None
    if domain:
        domain_valid = is_valid_domain_format(domain)
        if domain_valid:
            domain_active = _probe_domain(domain, domain_hash, existing, probe)
        else:
            domain_active = False
        domain_validated_at = now

    match = check_duplicate(
        session,
        DuplicateCandidate(
            email_hash=email_hash,
            phone_hash=phone_hash,
            domain_hash=domain_hash,
            domain=domain,
            normalized_business_name=normalized_name,
            normalized_address=normalized_addr,
        ),
        exclude_id=existing.id if existing is not None else None,
    )

    is_disposable = email_check.is_disposable if email_check else False
    is_generic = email_check.is_generic if email_check else False
    email_valid = email_check.valid if email_check else None

    score = calculate_relevance_score(
        email=normalized_mail,
        phone=normalized_tel,
        website=data.website,
        industry=data.industry,
        email_valid=email_valid,
        domain_valid=domain_valid,
        is_disposable_email=is_disposable,
        is_generic_email=is_generic,
        table=table,
    )

    return ProcessedBusiness(
        raw=raw,
        normalized_business_name=normalized_name,
        normalized_address=normalized_addr,
        normalized_email=normalized_mail,
        normalized_phone=normalized_tel,
        email_hash=email_hash,
        phone_hash=phone_hash,
        domain_hash=domain_hash,
        email_valid=email_valid,
        is_disposable_email=is_disposable,
        is_generic_email=is_generic,
        email_validated_at=now,
        domain_valid=domain_valid,
        domain_active=domain_active,
        domain_validated_at=domain_validated_at,
        is_duplicate=match.is_duplicate,
        duplicate_of_id=match.duplicate_of_id,
        match_reason=match.match_reason,
        service_segment=determine_service_segment(data.business_type, data.industry, table),
        relevance_score=score,
        lead_priority=derive_lead_priority(score, match.is_duplicate),
        lead_status=derive_lead_status(match.is_duplicate),
    )


def create_lead_alert(session: Session, business: Business, alert_type: str) -> LeadAlert:
    priority, template = ALERT_TEMPLATES[alert_type]
    alert = LeadAlert(
        business_id=business.id,
        alert_type=alert_type,
        priority=priority,
        message=template.format(name=business.normalized_business_name or business.business_name),
    )
    session.add(alert)
    session.flush()
    logger.info("Created %s alert for business %s", alert_type, business.id)
    return alert


def ensure_lead_alert(session: Session, business: Business, alert_type: str) -> Optional[LeadAlert]:
    """Create the alert unless the business already has one of this type."""
    exists = session.execute(
        select(LeadAlert.id)
        .where(LeadAlert.business_id == business.id)
        .where(LeadAlert.alert_type == alert_type)
        .limit(1)
    ).scalar()
    if exists is not None:
        return None
    return create_lead_alert(session, business, alert_type)


def _is_alert_worthy(processed: ProcessedBusiness) -> bool:
    return processed.lead_priority == PRIORITY_HIGH and not processed.is_duplicate


def create_processed_business(
    session: Session,
    data: BusinessInput,
    probe: Optional[DomainProbe] = None,
    table: IndustryTable = DEFAULT_INDUSTRY_TABLE,
) -> Business:
    processed = process_business_data(session, data, probe=probe, table=table)
    business = Business(id=uuid.uuid4())
    processed.apply_to(business)
    session.add(business)
    session.flush()

    if processed.is_duplicate:
        logger.info("Business %s is a duplicate of %s (%s)", business.id, processed.duplicate_of_id, processed.match_reason)
    if _is_alert_worthy(processed):
        create_lead_alert(session, business, ALERT_HIGH_PRIORITY_LEAD)
    return business


def reprocess_business(
    session: Session,
    business: Business,
    probe: Optional[DomainProbe] = None,
    table: IndustryTable = DEFAULT_INDUSTRY_TABLE,
) -> ProcessedBusiness:
    """Recompute every derived column of a stored record from its raw fields."""
    data = BusinessInput.from_business(business)
    processed = process_business_data(session, data, existing=business, probe=probe, table=table)
    processed.apply_to(business)
    session.flush()

    if processed.is_duplicate and processed.duplicate_of_id is not None:
        repoint_duplicates(session, business.id, processed.duplicate_of_id)
    if _is_alert_worthy(processed):
        ensure_lead_alert(session, business, ALERT_HIGH_PRIORITY_LEAD)
    return processed


def get_business(session: Session, business_id: uuid.UUID) -> Business:
    business = session.get(Business, business_id)
    if business is None:
        raise BusinessNotFoundError(str(business_id))
    return business


def update_processed_business(
    session: Session,
    business_id: uuid.UUID,
    changes: BusinessUpdate,
    probe: Optional[DomainProbe] = None,
    table: IndustryTable = DEFAULT_INDUSTRY_TABLE,
) -> Business:
    business = get_business(session, business_id)

    merged = {name: getattr(business, name) for name in RAW_FIELDS}
    merged.update(changes.model_dump(exclude_unset=True))
    data = BusinessInput.model_validate(merged)
    for name in RAW_FIELDS:
        setattr(business, name, getattr(data, name))

    reprocess_business(session, business, probe=probe, table=table)
    return business


def set_review_status(business: Business, status: str) -> Business:
    if status not in REVIEW_STATUSES:
        raise ValueError(f"unknown review status: {status}")

    now = datetime.now(timezone.utc)
    if status == "approved" and business.review_status != "approved":
        business.approved_at = now
    if status == "archived" and business.review_status != "archived":
        business.archived_at = now
    business.review_status = status
    return business
