from __future__ import annotations

import pytest

from leadgen_pipeline.domain_utils import extract_domain, hash_value, is_public_email_domain
from leadgen_pipeline.normalization import (
    name_overlap_ratio,
    normalize_address,
    normalize_business_name,
    normalize_email,
    normalize_phone,
)


@pytest.mark.parametrize(
    "func",
    [normalize_email, normalize_phone, normalize_business_name, normalize_address],
)
@pytest.mark.parametrize("value", [None, "", "   "])
def test_blank_input_normalizes_to_none(func, value):
    assert func(value) is None


def test_scenario_fields_normalize():
    assert normalize_business_name("  acme corp  ") == "Acme Corp"
    assert normalize_email("INFO@ACME.COM") == "info@acme.com"
    assert normalize_phone("(555) 123-4567") == "5551234567"


def test_phone_keeps_only_leading_plus():
    assert normalize_phone("+1 (555) 123-4567") == "+15551234567"
    assert normalize_phone("555+123") == "555123"
    assert normalize_phone("call us") is None


def test_business_name_collapses_whitespace_and_title_cases():
    assert normalize_business_name("the   BEST\tbakery") == "The Best Bakery"


def test_address_abbreviates_street_suffixes():
    assert normalize_address("12  Main street,  Suite 4") == "12 Main St, Ste 4"
    assert normalize_address("1 Park AVENUE") == "1 Park Ave"
    # word boundary: "Drivers" is not "Drive"
    assert normalize_address("5 Drivers Lane") == "5 Drivers Ln"


@pytest.mark.parametrize(
    "func, value",
    [
        (normalize_email, " Mixed@Case.COM "),
        (normalize_phone, "+44 (0)20 7946-0958"),
        (normalize_business_name, "  o'reilly   media  "),
        (normalize_address, "100 Ocean Boulevard Suite 9"),
    ],
)
def test_normalizers_are_idempotent(func, value):
    once = func(value)
    assert func(once) == once


def test_name_overlap_ignores_stop_words():
    assert name_overlap_ratio("The Acme Studio", "Acme Studio LLC") == 1.0
    assert name_overlap_ratio("Acme Studio", "Acme Bakery") == 0.5
    assert name_overlap_ratio("Acme", None) == 0.0
    assert name_overlap_ratio("the and", "the and") == 0.0


def test_hash_value_is_case_insensitive_and_null_safe():
    assert hash_value(None) is None
    assert hash_value("") is None
    assert hash_value("info@acme.com") == hash_value("INFO@ACME.COM")
    assert len(hash_value("acme.com")) == 64
    assert hash_value("a.com") != hash_value("b.com")


@pytest.mark.parametrize(
    "value, expected",
    [
        ("info@Acme.com", "acme.com"),
        ("https://www.acme.com/about", "acme.com"),
        ("acme.com", "acme.com"),
        ("http://shop.acme.co.uk:8080", "shop.acme.co.uk"),
        ("", None),
        (None, None),
    ],
)
def test_extract_domain(value, expected):
    assert extract_domain(value) == expected


def test_public_email_domains():
    assert is_public_email_domain("gmail.com")
    assert is_public_email_domain("yahoo.fr")
    assert not is_public_email_domain("acme.com")
    assert not is_public_email_domain(None)
