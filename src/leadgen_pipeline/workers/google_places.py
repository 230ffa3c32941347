"""Google Places enrichment worker.

Looks each business up by name plus address (or city) and, when the top
result is a good name match, fills phone, website, address and the Google
listing fields. Records are re-processed afterwards so the new phone and
website feed the quality flags and scores.
"""
from __future__ import annotations

import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select

from ..clients.google_places import PlacesClient, is_good_match
from ..config import Config, load_config
from ..db import session_scope
from ..enrichment import merge_enrichment
from ..jobs import record_job_failure, record_job_start, record_job_success, resolve_batch_size
from ..models import Business
from ..processor import build_probe, reprocess_business
from ..scoring import IndustryTable, load_industry_table
from ..validation import DomainProbe

logger = logging.getLogger(__name__)

JOB_NAME = "google_places_enrich"


def build_client(config: Optional[Config] = None) -> Optional[PlacesClient]:
    config = config or load_config()
    if not config.google_places_api_key:
        return None
    return PlacesClient(config.google_places_api_key, timeout=config.http_timeout)


def build_search_query(business: Business) -> str:
    parts = [business.business_name]
    if business.address:
        parts.append(business.address)
    elif business.city:
        parts.append(business.city)
    return " ".join(part.strip() for part in parts if part and part.strip())


def enrich_business(
    session,
    business: Business,
    client: PlacesClient,
    probe: Optional[DomainProbe] = None,
    table: Optional[IndustryTable] = None,
) -> dict:
    table = table or load_industry_table(load_config().industry_table_file)
    result = {"business_id": str(business.id), "success": False, "fields": [], "error": None}

    query = build_search_query(business)
    if not query:
        result["error"] = "Business name is required"
        return result

    found = client.text_search(query)
    business.google_enriched_at = datetime.now(timezone.utc)
    if not found.success:
        result["error"] = found.error
        return result

    if not is_good_match(business.business_name, found.data.get("place_name")):
        logger.debug("Skipping poor match for '%s': got '%s'", business.business_name, found.data.get("place_name"))
        result["error"] = "Poor name match"
        return result

    result["fields"] = merge_enrichment(business, found.data)
    result["success"] = True
    reprocess_business(session, business, probe=probe, table=table)
    return result


def enrich_business_by_id(
    business_id: uuid.UUID,
    client: PlacesClient,
    probe: Optional[DomainProbe] = None,
    table: Optional[IndustryTable] = None,
) -> Optional[dict]:
    with session_scope() as session:
        business = session.get(Business, business_id)
        if business is None:
            return None
        return enrich_business(session, business, client, probe=probe, table=table)


def _pending_ids(batch_size: Optional[int], missing: str) -> list[uuid.UUID]:
    with session_scope() as session:
        stmt = (
            select(Business.id)
            .where(Business.google_enriched_at.is_(None))
            .where(Business.is_duplicate.is_(False))
        )
        if missing == "phone":
            stmt = stmt.where(Business.phone.is_(None))
        elif missing == "website":
            stmt = stmt.where(Business.website.is_(None))
        stmt = stmt.order_by(Business.created_at)
        if batch_size is not None:
            stmt = stmt.limit(batch_size)
        return list(session.execute(stmt).scalars())


def run_batch(
    limit: Optional[int] = None,
    scope: Optional[str] = None,
    missing: str = "any",
    client: Optional[PlacesClient] = None,
) -> dict:
    """Enrich records never looked up on Google Places.

    Args:
        limit: Max records (None = BATCH_SIZE, 0 or less = no limit).
        scope: Job scope tag.
        missing: "phone" or "website" restricts to records lacking that
            field; "any" takes every record not yet looked up.
        client: Places client; built from config when omitted.
    """
    config = load_config()
    client = client or build_client(config)
    if client is None:
        return {"error": "GOOGLE_PLACES_API_KEY not configured", "processed": 0, "enriched": 0}

    batch_size = resolve_batch_size(limit, config.batch_size)
    probe = build_probe(config)
    table = load_industry_table(config.industry_table_file)

    run_id = record_job_start(JOB_NAME, scope=scope or missing, details={"limit": batch_size})
    stats = {"processed": 0, "enriched": 0, "phones_added": 0, "errors": 0}

    try:
        business_ids = _pending_ids(batch_size, missing)
    except Exception as exc:
        record_job_failure(run_id, str(exc), details=stats)
        raise

    for index, business_id in enumerate(business_ids):
        if index and config.enrichment_delay_seconds:
            time.sleep(config.enrichment_delay_seconds)
        try:
            result = enrich_business_by_id(business_id, client, probe=probe, table=table)
        except Exception:
            logger.exception("Google Places enrichment failed for business %s", business_id)
            stats["errors"] += 1
            continue

        if result is None:
            continue
        stats["processed"] += 1
        if result["success"]:
            stats["enriched"] += 1
            if "phone" in result["fields"]:
                stats["phones_added"] += 1

    stats["api_calls"] = client.calls_made
    logger.info(
        "Google Places enrichment: %d processed, %d enriched, %d phones added, %d API calls",
        stats["processed"], stats["enriched"], stats["phones_added"], client.calls_made,
    )
    record_job_success(run_id, processed_count=stats["processed"], details=stats)
    return stats
