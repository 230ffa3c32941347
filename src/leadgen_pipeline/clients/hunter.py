"""Hunter.io API client.

Covers the endpoints the enrichment workers use: email count (free), domain
search, email verification, email finder and account info. Company and
contact enrichment are derived from domain search results.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from .base import ProviderClient
from ..enrichment import EnrichmentResult

logger = logging.getLogger(__name__)

HUNTER_BASE_URL = "https://api.hunter.io/v2"


def _full_name(first: Optional[str], last: Optional[str]) -> Optional[str]:
    name = " ".join(part for part in (first, last) if part)
    return name or None


def contact_fields(entry: dict[str, Any]) -> dict[str, Any]:
    """Map a Hunter person entry onto business contact columns."""
    return {
        "contact_name": _full_name(entry.get("first_name"), entry.get("last_name")),
        "contact_position": entry.get("position"),
        "contact_seniority": entry.get("seniority"),
        "contact_department": entry.get("department"),
        "contact_linkedin": entry.get("linkedin"),
        "contact_twitter": entry.get("twitter"),
        "contact_phone_number": entry.get("phone_number"),
    }


class HunterClient(ProviderClient):
    service = "hunter"

    def _get(self, path: str, **params: Any) -> tuple[Optional[dict[str, Any]], Optional[str]]:
        query = {key: value for key, value in params.items() if value is not None}
        query["api_key"] = self.api_key
        payload, error = self.request_json("GET", f"{HUNTER_BASE_URL}/{path}", params=query)
        if error:
            return None, error
        if not isinstance(payload, dict) or not isinstance(payload.get("data"), dict):
            return None, "hunter response missing data"
        return payload, None

    def email_count(self, domain: str) -> EnrichmentResult:
        payload, error = self._get("email-count", domain=domain)
        if error:
            return self.failed(error)
        return self.succeeded(payload["data"])

    def domain_search(
        self,
        domain: str,
        limit: int = 10,
        offset: int = 0,
        email_type: Optional[str] = None,
        seniority: Optional[str] = None,
        department: Optional[str] = None,
    ) -> EnrichmentResult:
        payload, error = self._get(
            "domain-search",
            domain=domain,
            limit=limit,
            offset=offset,
            type=email_type,
            seniority=seniority,
            department=department,
        )
        if error:
            return self.failed(error)
        return self.succeeded(payload["data"])

    def verify_email(self, email: str) -> EnrichmentResult:
        payload, error = self._get("email-verifier", email=email)
        if error:
            return self.failed(error)
        return self.succeeded(payload["data"])

    def enrich_company(self, domain: str) -> EnrichmentResult:
        """Company social profiles and organization name from a one-row domain search."""
        payload, error = self._get("domain-search", domain=domain, limit=1)
        if error:
            return self.failed(error)
        data = payload["data"]
        return self.succeeded({
            "organization": data.get("organization"),
            "industry": data.get("industry"),
            "company_size": data.get("headcount"),
            "linkedin_url": data.get("linkedin"),
            "twitter_handle": data.get("twitter"),
            "facebook_url": data.get("facebook"),
            "hunter_email_pattern": data.get("pattern"),
        })

    def enrich_email(self, email: str) -> EnrichmentResult:
        """Contact profile for ``email``, looked up in its domain's search results."""
        if "@" not in email:
            return self.failed("invalid email")
        domain = email.split("@", 1)[1].lower()
        payload, error = self._get("domain-search", domain=domain, limit=100)
        if error:
            return self.failed(error)

        target = email.strip().lower()
        for entry in payload["data"].get("emails") or []:
            if (entry.get("value") or "").lower() == target:
                data = contact_fields(entry)
                data["email_confidence"] = entry.get("confidence")
                return self.succeeded(data)
        return self.failed("Email not found in Hunter database")

    def find_email(
        self,
        domain: str,
        first_name: str,
        last_name: str,
        company: Optional[str] = None,
    ) -> EnrichmentResult:
        payload, error = self._get(
            "email-finder",
            domain=domain,
            first_name=first_name,
            last_name=last_name,
            company=company,
        )
        if error:
            return self.failed(error)
        entry = payload["data"]
        if not entry.get("email"):
            return self.failed("No email found")
        data = contact_fields(entry)
        data["email"] = entry["email"]
        data["email_confidence"] = entry.get("score", entry.get("confidence"))
        return self.succeeded(data)

    def account_info(self) -> EnrichmentResult:
        payload, error = self._get("account")
        if error:
            return self.failed(error)
        data = payload["data"]
        return self.succeeded({
            "requests": data.get("requests"),
            "reset_date": data.get("reset_date"),
            "plan_name": data.get("plan_name"),
        })
