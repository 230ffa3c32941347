from __future__ import annotations

from .base import ProviderClient
from .clearbit import _as_text
from ..enrichment import EnrichmentResult

APOLLO_ENRICH_URL = "https://api.apollo.io/v1/organizations/enrich"


class ApolloClient(ProviderClient):
    service = "apollo"

    def enrich_company(self, domain: str) -> EnrichmentResult:
        payload, error = self.request_json(
            "POST",
            APOLLO_ENRICH_URL,
            json={"domain": domain},
            headers={"Cache-Control": "no-cache", "X-Api-Key": self.api_key},
        )
        if error:
            return self.failed(error)
        org = payload.get("organization") if isinstance(payload, dict) else None
        if not org:
            return self.failed("No Apollo organization found")

        twitter_url = org.get("twitter_url") or ""
        return self.succeeded({
            "company_size": _as_text(org.get("estimated_num_employees")),
            "company_revenue": _as_text(org.get("annual_revenue_printed") or org.get("annual_revenue")),
            "founded_year": org.get("founded_year"),
            "industry": org.get("industry"),
            "company_description": org.get("short_description"),
            "linkedin_url": org.get("linkedin_url"),
            "twitter_handle": twitter_url.rstrip("/").split("/")[-1] or None,
            "facebook_url": org.get("facebook_url"),
            "website": org.get("website_url"),
            "phone": (org.get("primary_phone") or {}).get("number") or org.get("phone"),
        })
