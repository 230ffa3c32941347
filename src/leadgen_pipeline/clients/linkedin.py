from __future__ import annotations

from .base import ProviderClient
from .clearbit import _as_text
from ..enrichment import EnrichmentResult

RAPIDAPI_HOST = "linkedin-data-api.p.rapidapi.com"
COMPANY_BY_DOMAIN_URL = f"https://{RAPIDAPI_HOST}/get-company-by-domain"


class LinkedInClient(ProviderClient):
    """LinkedIn company lookup through RapidAPI."""

    service = "linkedin"

    def company_by_domain(self, domain: str) -> EnrichmentResult:
        payload, error = self.request_json(
            "GET",
            COMPANY_BY_DOMAIN_URL,
            params={"domain": domain},
            headers={"X-RapidAPI-Key": self.api_key, "X-RapidAPI-Host": RAPIDAPI_HOST},
        )
        if error:
            return self.failed(error)
        if not isinstance(payload, dict):
            return self.failed("No LinkedIn company found for this domain")

        company = payload.get("data") or payload
        if not isinstance(company, dict) or not company.get("name"):
            return self.failed("No LinkedIn company found for this domain")

        url = company.get("url") or company.get("linkedin_url")
        if not url and company.get("universalName"):
            url = f"https://www.linkedin.com/company/{company['universalName']}"
        return self.succeeded({
            "linkedin_url": url,
            "company_description": company.get("description") or company.get("tagline"),
            "industry": company.get("industry"),
            "company_size": _as_text(company.get("staffCount") or company.get("companySize")),
            "founded_year": company.get("foundedYear"),
            "website": company.get("website") or company.get("websiteUrl"),
        })
