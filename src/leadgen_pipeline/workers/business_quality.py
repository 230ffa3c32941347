"""Data-quality re-processing and duplicate sweep.

``run_batch`` picks up records whose quality fields were never computed (or
were cleared) and runs them through the processor. Each record commits on its
own, so an interrupted run simply resumes on the next call.
"""
from __future__ import annotations

import logging
import uuid
from typing import Optional

from sqlalchemy import or_, select, update

from ..config import load_config
from ..db import session_scope
from ..dedup import candidate_from_business, check_duplicate, repoint_duplicates
from ..jobs import record_job_failure, record_job_start, record_job_success, resolve_batch_size
from ..models import Business
from ..processor import (
    ALERT_DUPLICATE_DETECTED,
    ProcessedBusiness,
    build_probe,
    ensure_lead_alert,
    reprocess_business,
)
from ..scoring import (
    PRIORITY_HIGH,
    IndustryTable,
    derive_lead_priority,
    derive_lead_status,
    load_industry_table,
)
from ..validation import DomainProbe

logger = logging.getLogger(__name__)

JOB_NAME = "business_quality"
DUPLICATE_SWEEP_JOB_NAME = "duplicate_sweep"

# Records that failed this many quality passes are left for manual review
MAX_PROCESSING_ERRORS = 3


def _pending_ids(batch_size: Optional[int]) -> list[uuid.UUID]:
    with session_scope() as session:
        stmt = (
            select(Business.id)
            .where(or_(Business.relevance_score.is_(None), Business.email_validated_at.is_(None)))
            .where(Business.processing_errors < MAX_PROCESSING_ERRORS)
            .order_by(Business.created_at, Business.id)
        )
        if batch_size is not None:
            stmt = stmt.limit(batch_size)
        return list(session.execute(stmt).scalars())


def _record_processing_error(business_id: uuid.UUID) -> None:
    with session_scope() as session:
        session.execute(
            update(Business)
            .where(Business.id == business_id)
            .values(processing_errors=Business.processing_errors + 1)
        )


def process_business(
    business_id: uuid.UUID,
    probe: Optional[DomainProbe] = None,
    table: Optional[IndustryTable] = None,
) -> Optional[ProcessedBusiness]:
    if table is None:
        table = load_industry_table(load_config().industry_table_file)
    with session_scope() as session:
        business = session.get(Business, business_id)
        if business is None:
            return None
        return reprocess_business(session, business, probe=probe, table=table)


def run_batch(
    limit: Optional[int] = None,
    scope: Optional[str] = None,
    probe: Optional[DomainProbe] = None,
    table: Optional[IndustryTable] = None,
) -> dict:
    """Re-process records that are missing quality fields.

    Args:
        limit: Max records (None = BATCH_SIZE, 0 or less = no limit).
        scope: Job scope tag.
        probe: Domain liveness probe; built from config when omitted.
        table: Industry table; loaded from config when omitted.

    Returns:
        Dict with processed/errors/high_priority_found/duplicates_found.
    """
    config = load_config()
    batch_size = resolve_batch_size(limit, config.batch_size)
    if probe is None:
        probe = build_probe(config)
    if table is None:
        table = load_industry_table(config.industry_table_file)

    run_id = record_job_start(JOB_NAME, scope=scope, details={"limit": batch_size})
    stats = {"processed": 0, "errors": 0, "high_priority_found": 0, "duplicates_found": 0}

    try:
        business_ids = _pending_ids(batch_size)
    except Exception as exc:
        record_job_failure(run_id, str(exc), details=stats)
        raise

    for business_id in business_ids:
        try:
            processed = process_business(business_id, probe=probe, table=table)
        except Exception:
            logger.exception("Failed to process business %s", business_id)
            stats["errors"] += 1
            _record_processing_error(business_id)
            continue

        if processed is None:
            continue
        stats["processed"] += 1
        if processed.lead_priority == PRIORITY_HIGH and not processed.is_duplicate:
            stats["high_priority_found"] += 1
        if processed.is_duplicate:
            stats["duplicates_found"] += 1

    logger.info(
        "Business quality batch: %d processed, %d errors, %d high priority, %d duplicates",
        stats["processed"], stats["errors"], stats["high_priority_found"], stats["duplicates_found"],
    )
    record_job_success(run_id, processed_count=stats["processed"], details=stats)
    return stats


def _sweep_one(business_id: uuid.UUID) -> Optional[str]:
    """Re-check one record. Returns "marked", "cleared" or None."""
    with session_scope() as session:
        business = session.get(Business, business_id)
        if business is None:
            return None

        match = check_duplicate(session, candidate_from_business(business), exclude_id=business.id, earlier_only=True)
        if match.is_duplicate:
            if business.is_duplicate and business.duplicate_of_id == match.duplicate_of_id:
                return None
            business.is_duplicate = True
            business.duplicate_of_id = match.duplicate_of_id
            business.lead_priority = derive_lead_priority(business.relevance_score or 0, True)
            business.lead_status = derive_lead_status(True)
            session.flush()
            repoint_duplicates(session, business.id, match.duplicate_of_id)
            ensure_lead_alert(session, business, ALERT_DUPLICATE_DETECTED)
            logger.info("Marked %s as duplicate of %s (%s)", business.id, match.duplicate_of_id, match.match_reason)
            return "marked"

        if business.is_duplicate:
            business.is_duplicate = False
            business.duplicate_of_id = None
            business.lead_priority = derive_lead_priority(business.relevance_score or 0, False)
            business.lead_status = derive_lead_status(False)
            return "cleared"
        return None


def find_and_mark_duplicates(limit: Optional[int] = None, scope: Optional[str] = None) -> dict:
    """Re-check records oldest first and fix their duplicate flags.

    Older records are visited first so every record is compared against
    canonical records that have already been settled. ``limit=None`` sweeps
    the whole table.
    """
    run_id = record_job_start(DUPLICATE_SWEEP_JOB_NAME, scope=scope)
    stats = {"checked": 0, "duplicates_found": 0, "cleared": 0, "errors": 0}

    try:
        with session_scope() as session:
            stmt = select(Business.id).order_by(Business.created_at, Business.id)
            if limit is not None and limit > 0:
                stmt = stmt.limit(limit)
            business_ids = list(session.execute(stmt).scalars())
    except Exception as exc:
        record_job_failure(run_id, str(exc), details=stats)
        raise

    for business_id in business_ids:
        try:
            outcome = _sweep_one(business_id)
        except Exception:
            logger.exception("Duplicate check failed for business %s", business_id)
            stats["errors"] += 1
            continue
        stats["checked"] += 1
        if outcome == "marked":
            stats["duplicates_found"] += 1
        elif outcome == "cleared":
            stats["cleared"] += 1

    record_job_success(run_id, processed_count=stats["checked"], details=stats)
    return stats
