from __future__ import annotations

import logging
from typing import Optional

from .workers.auto_enrich import run_batch as run_hunter_enrich
from .workers.business_quality import find_and_mark_duplicates, run_batch as run_business_quality
from .workers.company_enrich import run_batch as run_company_enrich
from .workers.google_places import run_batch as run_google_places_enrich
from .workers.lead_alerts import run_batch as run_lead_alerts

logger = logging.getLogger(__name__)


def run_once(
    scope: Optional[str] = None,
    quality_limit: Optional[int] = None,
    places_limit: Optional[int] = None,
    hunter_limit: Optional[int] = None,
    company_limit: Optional[int] = None,
    sweep_duplicates: bool = False,
    send_alerts: bool = True,
    daily_summary: bool = False,
) -> dict:
    """Run the whole pipeline once.

    Quality re-processing runs first so enrichment works on scored records.
    Enrichment workers without an API key skip themselves and report an
    ``error`` entry instead of failing the run.
    """
    quality = run_business_quality(limit=quality_limit, scope=scope)
    sweep = find_and_mark_duplicates(scope=scope) if sweep_duplicates else None
    places = run_google_places_enrich(limit=places_limit, scope=scope)
    hunter = run_hunter_enrich(limit=hunter_limit, scope=scope)
    company = run_company_enrich(limit=company_limit, scope=scope)
    alerts = run_lead_alerts(scope=scope, daily_summary=daily_summary) if send_alerts else None

    result = {
        "processed": quality.get("processed", 0),
        "errors": quality.get("errors", 0),
        "high_priority_found": quality.get("high_priority_found", 0),
        "duplicates_found": quality.get("duplicates_found", 0) + (sweep or {}).get("duplicates_found", 0),
        "places_enriched": places.get("enriched", 0),
        "hunter_enriched": hunter.get("successful", 0),
        "company_enriched": company.get("successful", 0),
        "alerts_sent": (alerts or {}).get("sent", 0),
        "skipped": [
            name
            for name, outcome in (("google_places", places), ("hunter", hunter), ("company", company), ("alerts", alerts))
            if outcome and outcome.get("error")
        ],
    }
    logger.info("Pipeline run complete: %s", result)
    return result
