"""Canonical forms for raw intake strings.

Every function here is total: blank or missing input gives ``None`` and
malformed input gives a best-effort value, never an exception. Applying a
normalizer to its own output returns the same value.
"""
from __future__ import annotations

import re
from typing import Optional

_WHITESPACE_RE = re.compile(r"\s+")
_PHONE_STRIP_RE = re.compile(r"[^\d+]")
_WORD_START_RE = re.compile(r"\b\w")

STREET_ABBREVIATIONS: tuple[tuple[re.Pattern, str], ...] = tuple(
    (re.compile(rf"\b{word}\b", re.IGNORECASE), abbreviation)
    for word, abbreviation in (
        ("Street", "St"),
        ("Avenue", "Ave"),
        ("Road", "Rd"),
        ("Boulevard", "Blvd"),
        ("Drive", "Dr"),
        ("Lane", "Ln"),
        ("Court", "Ct"),
        ("Suite", "Ste"),
    )
)


def _collapse_whitespace(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    collapsed = _WHITESPACE_RE.sub(" ", value).strip()
    return collapsed or None


def normalize_email(email: Optional[str]) -> Optional[str]:
    if not email:
        return None
    return email.strip().lower() or None


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    if not phone:
        return None

    stripped = _PHONE_STRIP_RE.sub("", phone.strip())
    digits = stripped.replace("+", "")
    if not digits:
        return None
    if stripped.startswith("+"):
        return f"+{digits}"
    return digits


def normalize_business_name(name: Optional[str]) -> Optional[str]:
    collapsed = _collapse_whitespace(name)
    if collapsed is None:
        return None
    # Naive title case: acronyms are not preserved ("IBM" -> "Ibm").
    return _WORD_START_RE.sub(lambda match: match.group(0).upper(), collapsed.lower())


def normalize_address(address: Optional[str]) -> Optional[str]:
    normalized = _collapse_whitespace(address)
    if normalized is None:
        return None
    for pattern, abbreviation in STREET_ABBREVIATIONS:
        normalized = pattern.sub(abbreviation, normalized)
    return normalized


NAME_STOP_WORDS = frozenset({"the", "a", "an", "and", "&", "of", "in", "at", "to", "for", "-"})


def name_overlap_ratio(name: Optional[str], other: Optional[str]) -> float:
    """Share of the significant words of ``name`` that also appear in ``other``."""
    if not name or not other:
        return 0.0
    words = set(name.lower().split()) - NAME_STOP_WORDS
    other_words = set(other.lower().split()) - NAME_STOP_WORDS
    if not words:
        return 0.0
    return len(words & other_words) / len(words)
