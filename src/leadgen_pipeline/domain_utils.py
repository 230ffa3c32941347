from __future__ import annotations

import hashlib
from typing import Optional
from urllib.parse import urlparse

PUBLIC_EMAIL_DOMAINS = {
    "gmail.com",
    "googlemail.com",
    "yahoo.com",
    "yahoo.co.uk",
    "hotmail.com",
    "outlook.com",
    "live.com",
    "msn.com",
    "icloud.com",
    "me.com",
    "aol.com",
    "protonmail.com",
    "pm.me",
    "mail.com",
    "gmx.com",
    "zoho.com",
    "yandex.com",
}
PUBLIC_EMAIL_DOMAIN_PREFIXES = (
    "gmail.",
    "googlemail.",
    "yahoo.",
    "hotmail.",
    "outlook.",
    "live.",
    "icloud.",
    "aol.",
    "protonmail.",
    "yandex.",
    "gmx.",
    "zoho.",
)


def hash_value(value: Optional[str]) -> Optional[str]:
    """SHA-256 hex digest of the lowercased value, used as a dedup lookup key."""
    if not value:
        return None
    return hashlib.sha256(value.lower().encode("utf-8")).hexdigest()


def extract_domain(email_or_url: Optional[str]) -> Optional[str]:
    if not email_or_url:
        return None

    value = email_or_url.strip()
    if not value:
        return None

    if "@" in value:
        domain = value.split("@", 1)[1].strip().lower()
        return domain or None

    if not value.startswith(("http://", "https://")):
        value = f"https://{value}"

    try:
        host = urlparse(value).hostname
    except ValueError:
        return None

    if not host:
        return None
    if host.startswith("www."):
        host = host[4:]
    return host or None


def is_public_email_domain(domain: Optional[str]) -> bool:
    if not domain:
        return False
    candidate = domain.strip().lower()
    if candidate in PUBLIC_EMAIL_DOMAINS:
        return True
    return any(candidate.startswith(prefix) for prefix in PUBLIC_EMAIL_DOMAIN_PREFIXES)
