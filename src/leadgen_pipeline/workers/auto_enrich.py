"""Hunter.io auto-enrichment worker.

Per business: email count (free), company profile, domain search when the
record has no email yet (then the email finder if a contact name is known),
email verification and contact enrichment. The
record is then re-processed and given an enhanced lead score.
"""
from __future__ import annotations

import logging
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy import or_, select

from ..clients.hunter import HunterClient, contact_fields
from ..config import load_config
from ..db import session_scope
from ..domain_utils import extract_domain, is_public_email_domain
from ..enhanced_scoring import apply_lead_score
from ..enrichment import merge_enrichment
from ..jobs import record_job_failure, record_job_start, record_job_success, resolve_batch_size
from ..models import Business
from ..processor import build_probe, reprocess_business
from ..scoring import IndustryTable, load_industry_table
from ..validation import DomainProbe, is_valid_domain_format

logger = logging.getLogger(__name__)

JOB_NAME = "hunter_auto_enrich"

RISK_LEVELS = {"deliverable": "low", "risky": "high"}


def build_client(config=None) -> Optional[HunterClient]:
    config = config or load_config()
    if not config.hunter_api_key:
        return None
    return HunterClient(config.hunter_api_key, timeout=config.http_timeout, user_agent=config.http_user_agent)


def _best_email(emails: list[dict[str, Any]]) -> Optional[dict[str, Any]]:
    candidates = [entry for entry in emails if entry.get("value")]
    if not candidates:
        return None
    return max(candidates, key=lambda entry: entry.get("confidence") or 0)


def enrich_business(
    session,
    business: Business,
    client: HunterClient,
    probe: Optional[DomainProbe] = None,
    table: Optional[IndustryTable] = None,
) -> dict:
    """Run every Hunter step for one business. Provider failures are collected, not raised."""
    table = table or load_industry_table(load_config().industry_table_file)
    result: dict[str, Any] = {"business_id": str(business.id), "enrichments": {}, "errors": []}

    now = datetime.now(timezone.utc)
    business.hunter_attempted_at = now

    domain = extract_domain(business.website or business.email)
    if not domain or is_public_email_domain(domain) or not is_valid_domain_format(domain):
        result["errors"].append("No domain available for enrichment")
        result["success"] = False
        return result

    count = client.email_count(domain)
    if count.success:
        business.hunter_email_count = count.data.get("total")
        business.hunter_enriched_at = now
        result["enrichments"]["email_count"] = True
    else:
        result["errors"].append(f"Email count failed: {count.error}")

    company = client.enrich_company(domain)
    if company.success:
        merge_enrichment(business, company.data)
        business.enriched_by_service = business.enriched_by_service or "hunter"
        business.enriched_at = now
        result["enrichments"]["company"] = True
    else:
        result["errors"].append(f"Company enrichment failed: {company.error}")

    if not business.email:
        search = client.domain_search(domain, limit=10)
        if search.success:
            best = _best_email(search.data.get("emails") or [])
            if best:
                found = contact_fields(best)
                found["email"] = best["value"]
                found["email_confidence"] = best.get("confidence")
                found["hunter_email_pattern"] = search.data.get("pattern")
                merge_enrichment(business, found)
                business.hunter_enriched_at = now
                result["enrichments"]["domain_search"] = True
        else:
            result["errors"].append(f"Domain search failed: {search.error}")

    if not business.email and business.contact_name:
        first, _, last = business.contact_name.strip().partition(" ")
        if first and last.strip():
            guess = client.find_email(domain, first, last.strip(), company=business.business_name)
            if guess.success:
                merge_enrichment(business, guess.data)
                business.hunter_enriched_at = now
                result["enrichments"]["email_finder"] = True
            else:
                result["errors"].append(f"Email finder failed: {guess.error}")

    if business.email:
        verification = client.verify_email(business.email)
        if verification.success:
            outcome = verification.data.get("result")
            business.hunter_verification_status = verification.data.get("status")
            business.hunter_verification_score = verification.data.get("score")
            business.hunter_verified_at = now
            business.email_deliverability = outcome
            business.email_risk_level = RISK_LEVELS.get(outcome, "medium")
            result["enrichments"]["email_verification"] = True
        else:
            result["errors"].append(f"Email verification failed: {verification.error}")

        profile = client.enrich_email(business.email)
        if profile.success:
            merge_enrichment(business, profile.data)
            result["enrichments"]["email_enrichment"] = True
        else:
            result["errors"].append(f"Email enrichment failed: {profile.error}")

    reprocess_business(session, business, probe=probe, table=table)
    result["lead_score"] = apply_lead_score(business, table)
    result["success"] = any(result["enrichments"].values())
    return result


def _pending_ids(batch_size: Optional[int], stale_days: int, retry_hours: int) -> list[uuid.UUID]:
    now = datetime.now(timezone.utc)
    cutoff = now - timedelta(days=stale_days)
    retry_cutoff = now - timedelta(hours=retry_hours)
    with session_scope() as session:
        stmt = (
            select(Business.id)
            .where(Business.website.isnot(None))
            .where(Business.website != "")
            .where(or_(Business.hunter_enriched_at.is_(None), Business.hunter_enriched_at < cutoff))
            .where(or_(Business.hunter_attempted_at.is_(None), Business.hunter_attempted_at < retry_cutoff))
            .order_by(Business.hunter_enriched_at.isnot(None), Business.created_at)
        )
        if batch_size is not None:
            stmt = stmt.limit(batch_size)
        return list(session.execute(stmt).scalars())


def enrich_business_by_id(
    business_id: uuid.UUID,
    client: HunterClient,
    probe: Optional[DomainProbe] = None,
    table: Optional[IndustryTable] = None,
) -> Optional[dict]:
    with session_scope() as session:
        business = session.get(Business, business_id)
        if business is None:
            return None
        return enrich_business(session, business, client, probe=probe, table=table)


def run_batch(
    limit: Optional[int] = None,
    scope: Optional[str] = None,
    client: Optional[HunterClient] = None,
) -> dict:
    """Enrich websites never enriched by Hunter, or enriched more than ENRICH_STALE_DAYS ago.

    Records attempted within the last ENRICH_RETRY_HOURS are skipped whether
    or not that attempt succeeded.
    """
    config = load_config()
    client = client or build_client(config)
    if client is None:
        return {"error": "HUNTER_API_KEY not configured", "processed": 0, "successful": 0, "failed": 0}

    batch_size = resolve_batch_size(limit, config.batch_size)
    probe = build_probe(config)
    table = load_industry_table(config.industry_table_file)

    run_id = record_job_start(JOB_NAME, scope=scope, details={"limit": batch_size})
    stats = {"processed": 0, "successful": 0, "failed": 0, "errors": 0}

    try:
        business_ids = _pending_ids(batch_size, config.enrich_stale_days, config.enrich_retry_hours)
    except Exception as exc:
        record_job_failure(run_id, str(exc), details=stats)
        raise

    for index, business_id in enumerate(business_ids):
        if index and config.enrichment_delay_seconds:
            time.sleep(config.enrichment_delay_seconds)
        try:
            result = enrich_business_by_id(business_id, client, probe=probe, table=table)
        except Exception:
            logger.exception("Hunter enrichment failed for business %s", business_id)
            stats["errors"] += 1
            continue

        if result is None:
            continue
        stats["processed"] += 1
        if result["success"]:
            stats["successful"] += 1
        else:
            stats["failed"] += 1

    stats["api_calls"] = client.calls_made
    logger.info(
        "Hunter auto-enrich: %d processed, %d successful, %d failed, %d API calls",
        stats["processed"], stats["successful"], stats["failed"], client.calls_made,
    )
    record_job_success(run_id, processed_count=stats["processed"], details=stats)
    return stats
