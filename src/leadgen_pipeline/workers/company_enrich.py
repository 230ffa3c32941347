"""Company enrichment worker (Clearbit, Apollo, LinkedIn via RapidAPI).

Clearbit is tried first and Apollo is the fallback, unless a preferred
service is given. LinkedIn is only queried when the record has no LinkedIn
URL yet. Every provider call is logged to ``api_usage_logs``.
"""
from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy import or_, select

from ..clients.apollo import ApolloClient
from ..clients.clearbit import ClearbitClient
from ..clients.linkedin import LinkedInClient
from ..config import Config, load_config
from ..db import session_scope
from ..domain_utils import extract_domain
from ..enhanced_scoring import apply_lead_score
from ..enrichment import EnrichmentResult, merge_enrichment
from ..jobs import record_job_failure, record_job_start, record_job_success, resolve_batch_size
from ..models import ApiUsageLog, Business
from ..processor import build_probe, reprocess_business
from ..scoring import IndustryTable, load_industry_table
from ..validation import DomainProbe, is_valid_domain_format

logger = logging.getLogger(__name__)

JOB_NAME = "company_enrich"
REQUEST_TYPE = "company_enrichment"

# Approximate cost per successful call, in USD
ESTIMATED_COSTS = {
    "clearbit": 0.01,
    "apollo": 0.005,
    "linkedin": 0.01,
}


@dataclass
class CompanyClients:
    clearbit: Optional[ClearbitClient] = None
    apollo: Optional[ApolloClient] = None
    linkedin: Optional[LinkedInClient] = None

    @property
    def any_configured(self) -> bool:
        return any(client is not None and client.configured for client in (self.clearbit, self.apollo, self.linkedin))


def build_clients(config: Optional[Config] = None) -> CompanyClients:
    config = config or load_config()
    kwargs = {"timeout": config.http_timeout, "user_agent": config.http_user_agent}
    return CompanyClients(
        clearbit=ClearbitClient(config.clearbit_api_key, **kwargs) if config.clearbit_api_key else None,
        apollo=ApolloClient(config.apollo_api_key, **kwargs) if config.apollo_api_key else None,
        linkedin=LinkedInClient(config.rapidapi_key, **kwargs) if config.rapidapi_key else None,
    )


def log_usage(session, business_id: Optional[uuid.UUID], result: EnrichmentResult, request_type: str) -> ApiUsageLog:
    entry = ApiUsageLog(
        service=result.service,
        business_id=business_id,
        request_type=request_type,
        success=result.success,
        estimated_cost=ESTIMATED_COSTS.get(result.service, 0.0) if result.success else 0.0,
        response_data=result.data if result.success else None,
        error_message=result.error,
    )
    session.add(entry)
    return entry


def _company_order(clients: CompanyClients, preferred: Optional[str]) -> list:
    ordered = [clients.clearbit, clients.apollo]
    if preferred == "apollo":
        ordered.reverse()
    return [client for client in ordered if client is not None]


def enrich_business(
    session,
    business: Business,
    clients: CompanyClients,
    preferred: Optional[str] = None,
    probe: Optional[DomainProbe] = None,
    table: Optional[IndustryTable] = None,
) -> dict:
    table = table or load_industry_table(load_config().industry_table_file)
    result: dict[str, Any] = {"business_id": str(business.id), "services": [], "errors": [], "fields": []}

    now = datetime.now(timezone.utc)
    business.company_enrich_attempted_at = now

    domain = extract_domain(business.website or business.email)
    if not domain or not is_valid_domain_format(domain):
        result["errors"].append("No domain found for enrichment")
        result["success"] = False
        return result

    for client in _company_order(clients, preferred):
        outcome = client.enrich_company(domain)
        log_usage(session, business.id, outcome, REQUEST_TYPE)
        if outcome.success:
            result["fields"].extend(merge_enrichment(business, outcome.data))
            result["services"].append(outcome.service)
            business.enriched_by_service = outcome.service
            business.enriched_at = now
            break
        result["errors"].append(f"{outcome.service}: {outcome.error}")

    if clients.linkedin is not None and not business.linkedin_url:
        outcome = clients.linkedin.company_by_domain(domain)
        log_usage(session, business.id, outcome, "company_search_by_domain")
        if outcome.success:
            result["fields"].extend(merge_enrichment(business, outcome.data))
            result["services"].append(outcome.service)
            business.enriched_by_service = business.enriched_by_service or outcome.service
            business.enriched_at = now
        else:
            result["errors"].append(f"{outcome.service}: {outcome.error}")

    result["success"] = bool(result["services"])
    if result["success"]:
        reprocess_business(session, business, probe=probe, table=table)
        result["lead_score"] = apply_lead_score(business, table)
    return result


def enrich_business_by_id(
    business_id: uuid.UUID,
    clients: CompanyClients,
    preferred: Optional[str] = None,
    probe: Optional[DomainProbe] = None,
    table: Optional[IndustryTable] = None,
) -> Optional[dict]:
    with session_scope() as session:
        business = session.get(Business, business_id)
        if business is None:
            return None
        return enrich_business(session, business, clients, preferred=preferred, probe=probe, table=table)


def _pending_ids(batch_size: Optional[int], retry_hours: int) -> list[uuid.UUID]:
    retry_cutoff = datetime.now(timezone.utc) - timedelta(hours=retry_hours)
    with session_scope() as session:
        stmt = (
            select(Business.id)
            .where(Business.enriched_at.is_(None))
            .where(
                or_(
                    Business.company_enrich_attempted_at.is_(None),
                    Business.company_enrich_attempted_at < retry_cutoff,
                )
            )
            .where(Business.website.isnot(None))
            .where(Business.is_duplicate.is_(False))
            .order_by(Business.created_at)
        )
        if batch_size is not None:
            stmt = stmt.limit(batch_size)
        return list(session.execute(stmt).scalars())


def run_batch(
    limit: Optional[int] = None,
    scope: Optional[str] = None,
    preferred: Optional[str] = None,
    clients: Optional[CompanyClients] = None,
) -> dict:
    """Enrich non-duplicate records with a website that were never enriched.

    Records attempted within the last ENRICH_RETRY_HOURS are skipped.
    """
    config = load_config()
    clients = clients or build_clients(config)
    if not clients.any_configured:
        return {"error": "No company enrichment API keys configured", "processed": 0, "successful": 0, "failed": 0}

    batch_size = resolve_batch_size(limit, config.batch_size)
    probe = build_probe(config)
    table = load_industry_table(config.industry_table_file)

    run_id = record_job_start(JOB_NAME, scope=scope or preferred, details={"limit": batch_size})
    stats = {"processed": 0, "successful": 0, "failed": 0, "errors": 0}

    try:
        business_ids = _pending_ids(batch_size, config.enrich_retry_hours)
    except Exception as exc:
        record_job_failure(run_id, str(exc), details=stats)
        raise

    for index, business_id in enumerate(business_ids):
        if index and config.enrichment_delay_seconds:
            time.sleep(config.enrichment_delay_seconds)
        try:
            result = enrich_business_by_id(business_id, clients, preferred=preferred, probe=probe, table=table)
        except Exception:
            logger.exception("Company enrichment failed for business %s", business_id)
            stats["errors"] += 1
            continue

        if result is None:
            continue
        stats["processed"] += 1
        if result["success"]:
            stats["successful"] += 1
        else:
            stats["failed"] += 1

    logger.info(
        "Company enrichment: %d processed, %d successful, %d failed",
        stats["processed"], stats["successful"], stats["failed"],
    )
    record_job_success(run_id, processed_count=stats["processed"], details=stats)
    return stats
