from __future__ import annotations

from typing import Any, Optional

from .base import ProviderClient
from ..enrichment import EnrichmentResult

CLEARBIT_COMPANY_URL = "https://company.clearbit.com/v2/companies/find"


def _as_text(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


class ClearbitClient(ProviderClient):
    service = "clearbit"

    def enrich_company(self, domain: str) -> EnrichmentResult:
        payload, error = self.request_json(
            "GET",
            CLEARBIT_COMPANY_URL,
            params={"domain": domain},
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        if error:
            return self.failed(error)
        if not isinstance(payload, dict):
            return self.failed("clearbit response missing company")

        metrics = payload.get("metrics") or {}
        linkedin = (payload.get("linkedin") or {}).get("handle")
        twitter = (payload.get("twitter") or {}).get("handle")
        facebook = (payload.get("facebook") or {}).get("handle")
        return self.succeeded({
            "company_size": _as_text(metrics.get("employeesRange") or metrics.get("employees")),
            "company_revenue": _as_text(metrics.get("estimatedAnnualRevenue")),
            "founded_year": payload.get("foundedYear"),
            "industry": (payload.get("category") or {}).get("industry"),
            "company_description": payload.get("description"),
            "linkedin_url": f"https://www.linkedin.com/{linkedin}" if linkedin else None,
            "twitter_handle": twitter,
            "facebook_url": f"https://www.facebook.com/{facebook}" if facebook else None,
            "website": payload.get("domain"),
        })
