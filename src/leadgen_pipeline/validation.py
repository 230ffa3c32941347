"""E-mail and domain validation.

The format and list checks are pure and synchronous. Domain liveness needs the
network, so it lives on ``DomainProbe`` where callers can swap or skip it.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

import httpx

from .domain_utils import extract_domain

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
DOMAIN_RE = re.compile(
    r"^(?=.{1,253}$)(?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z]{2,63}$",
    re.IGNORECASE,
)

DISPOSABLE_EMAIL_DOMAINS = frozenset({
    "tempmail.com",
    "10minutemail.com",
    "guerrillamail.com",
    "mailinator.com",
    "throwaway.email",
    "temp-mail.org",
    "getnada.com",
    "fakeinbox.com",
    "trashmail.com",
    "yopmail.com",
    "sharklasers.com",
    "dispostable.com",
    "maildrop.cc",
})

GENERIC_EMAIL_PREFIXES = frozenset({
    "info",
    "contact",
    "admin",
    "support",
    "sales",
    "hello",
    "noreply",
    "no-reply",
    "help",
    "office",
    "team",
    "inquiries",
    "general",
})

DEFAULT_PROBE_TIMEOUT = 5.0


@dataclass(frozen=True)
class EmailValidation:
    valid: bool
    is_disposable: bool
    is_generic: bool


def is_valid_email_format(email: Optional[str]) -> bool:
    if not email:
        return False
    return bool(EMAIL_RE.match(email.strip()))


def is_disposable_email(email: Optional[str]) -> bool:
    if not email or "@" not in email:
        return False
    domain = extract_domain(email)
    if not domain:
        return False
    return any(domain == blocked or domain.endswith(f".{blocked}") for blocked in DISPOSABLE_EMAIL_DOMAINS)


def is_generic_email(email: Optional[str]) -> bool:
    if not email or "@" not in email:
        return False
    prefix = email.split("@", 1)[0].strip().lower()
    return prefix in GENERIC_EMAIL_PREFIXES


def validate_email(email: Optional[str]) -> Optional[EmailValidation]:
    if not email or not email.strip():
        return None
    return EmailValidation(
        valid=is_valid_email_format(email),
        is_disposable=is_disposable_email(email),
        is_generic=is_generic_email(email),
    )


def is_valid_domain_format(domain: Optional[str]) -> bool:
    if not domain:
        return False
    return bool(DOMAIN_RE.match(domain))


class DomainProbe:
    """HEAD-request liveness check with a per-instance result cache."""

    def __init__(self, timeout: float = DEFAULT_PROBE_TIMEOUT, user_agent: Optional[str] = None) -> None:
        self.timeout = timeout
        self.headers = {"User-Agent": user_agent} if user_agent else {}
        self._cache: dict[str, bool] = {}

    def is_active(self, domain: Optional[str]) -> bool:
        if not domain:
            return False

        key = domain.strip().lower()
        if key in self._cache:
            return self._cache[key]

        active = self._head(key)
        self._cache[key] = active
        return active

    def _head(self, domain: str) -> bool:
        try:
            with httpx.Client(timeout=self.timeout, follow_redirects=False, headers=self.headers) as client:
                resp = client.head(f"https://{domain}")
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.debug("Domain probe failed for %s: %s", domain, exc)
            return False
        return 200 <= resp.status_code < 400


def is_domain_active(domain: Optional[str], timeout: float = DEFAULT_PROBE_TIMEOUT) -> bool:
    return DomainProbe(timeout=timeout).is_active(domain)
