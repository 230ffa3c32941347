from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import and_, or_, select, update
from sqlalchemy.orm import Session

from .domain_utils import extract_domain, is_public_email_domain
from .models import Business
from .normalization import name_overlap_ratio

logger = logging.getLogger(__name__)

EMAIL_MATCH_CONFIDENCE = 95
PHONE_MATCH_CONFIDENCE = 90
DOMAIN_MATCH_CONFIDENCE = 75
NAME_ADDRESS_MATCH_CONFIDENCE = 70
DOMAIN_NAME_OVERLAP_THRESHOLD = 0.5


@dataclass(frozen=True)
class DuplicateCandidate:
    email_hash: Optional[str] = None
    phone_hash: Optional[str] = None
    domain_hash: Optional[str] = None
    domain: Optional[str] = None
    normalized_business_name: Optional[str] = None
    normalized_address: Optional[str] = None


@dataclass(frozen=True)
class DuplicateMatch:
    is_duplicate: bool
    duplicate_of_id: Optional[uuid.UUID] = None
    match_reason: Optional[str] = None
    confidence: int = 0


NO_MATCH = DuplicateMatch(is_duplicate=False)


def candidate_from_business(business: Business) -> DuplicateCandidate:
    return DuplicateCandidate(
        email_hash=business.email_hash,
        phone_hash=business.phone_hash,
        domain_hash=business.domain_hash,
        domain=extract_domain(business.website or business.email),
        normalized_business_name=business.normalized_business_name,
        normalized_address=business.normalized_address,
    )


def _base_query(session: Session, exclude_id: Optional[uuid.UUID], earlier_only: bool = False):
    stmt = select(Business).where(Business.is_duplicate.is_(False))
    if exclude_id is None:
        return stmt

    stmt = stmt.where(Business.id != exclude_id)
    if not earlier_only:
        return stmt
    anchor = session.execute(select(Business.created_at).where(Business.id == exclude_id)).scalar()
    if anchor is not None:
        stmt = stmt.where(
            or_(
                Business.created_at < anchor,
                and_(Business.created_at == anchor, Business.id < exclude_id),
            )
        )
    return stmt


def _matches(session: Session, stmt, *criteria) -> list[Business]:
    return list(
        session.execute(stmt.where(*criteria).order_by(Business.created_at, Business.id)).scalars()
    )


def check_duplicate(
    session: Session,
    candidate: DuplicateCandidate,
    exclude_id: Optional[uuid.UUID] = None,
    earlier_only: bool = False,
) -> DuplicateMatch:
    """Find the canonical record ``candidate`` duplicates, if any.

    Rules are tried in order of confidence and the first rule with a hit
    wins. Within a rule the earliest-created record is chosen, so the answer
    is stable across re-runs.

    ``exclude_id`` is the record being re-checked. With ``earlier_only`` only
    records created before it are considered (the oldest-first sweep); on
    create and update every other non-duplicate record is a candidate.
    """
    stmt = _base_query(session, exclude_id, earlier_only)

    if candidate.email_hash:
        hits = _matches(session, stmt, Business.email_hash == candidate.email_hash)
        if hits:
            return DuplicateMatch(True, hits[0].id, "Email match", EMAIL_MATCH_CONFIDENCE)

    if candidate.phone_hash:
        hits = _matches(session, stmt, Business.phone_hash == candidate.phone_hash)
        if hits:
            return DuplicateMatch(True, hits[0].id, "Phone match", PHONE_MATCH_CONFIDENCE)

    if candidate.domain_hash and candidate.domain and not is_public_email_domain(candidate.domain):
        for hit in _matches(session, stmt, Business.domain_hash == candidate.domain_hash):
            overlap = name_overlap_ratio(candidate.normalized_business_name, hit.normalized_business_name)
            if overlap >= DOMAIN_NAME_OVERLAP_THRESHOLD:
                return DuplicateMatch(True, hit.id, "Domain match", DOMAIN_MATCH_CONFIDENCE)

    if candidate.normalized_business_name and candidate.normalized_address:
        hits = _matches(
            session,
            stmt,
            Business.normalized_business_name == candidate.normalized_business_name,
            Business.normalized_address == candidate.normalized_address,
        )
        if hits:
            return DuplicateMatch(True, hits[0].id, "Name and address match", NAME_ADDRESS_MATCH_CONFIDENCE)

    return NO_MATCH


def repoint_duplicates(session: Session, old_id: uuid.UUID, new_id: uuid.UUID) -> int:
    """Move duplicates of ``old_id`` onto ``new_id`` so chains stay one hop long."""
    if old_id == new_id:
        return 0
    result = session.execute(
        update(Business)
        .where(Business.duplicate_of_id == old_id)
        .values(duplicate_of_id=new_id)
        .execution_options(synchronize_session="fetch")
    )
    if result.rowcount:
        logger.info("Re-pointed %d duplicates from %s to %s", result.rowcount, old_id, new_id)
    return result.rowcount or 0
