from __future__ import annotations

from unittest import mock

import httpx
import pytest

from leadgen_pipeline.validation import (
    DomainProbe,
    is_disposable_email,
    is_domain_active,
    is_generic_email,
    is_valid_domain_format,
    is_valid_email_format,
    validate_email,
)


@pytest.mark.parametrize(
    "email, valid",
    [
        ("owner@acme.com", True),
        ("first.last+tag@sub.acme.co", True),
        ("no-at-sign.com", False),
        ("two@@acme.com", False),
        ("spaces in@acme.com", False),
        ("owner@localhost", False),
        ("", False),
        (None, False),
    ],
)
def test_email_format(email, valid):
    assert is_valid_email_format(email) is valid


def test_disposable_email_includes_subdomains():
    assert is_disposable_email("test@tempmail.com")
    assert is_disposable_email("x@inbox.mailinator.com")
    assert not is_disposable_email("owner@acme.com")
    assert not is_disposable_email("not-an-email")


def test_generic_email_prefix():
    assert is_generic_email("INFO@acme.com")
    assert is_generic_email("no-reply@acme.com")
    assert not is_generic_email("jane@acme.com")


def test_validate_email_returns_none_for_blank():
    assert validate_email(None) is None
    assert validate_email("  ") is None

    result = validate_email("test@tempmail.com")
    assert result.valid is True
    assert result.is_disposable is True
    assert result.is_generic is False


@pytest.mark.parametrize(
    "domain, valid",
    [
        ("acme.com", True),
        ("shop.acme.co.uk", True),
        ("xn--bcher-kva.example", True),
        ("-acme.com", False),
        ("acme", False),
        ("acme..com", False),
        ("acme.c", False),
        (None, False),
    ],
)
def test_domain_format(domain, valid):
    assert is_valid_domain_format(domain) is valid


def _fake_client(response=None, error=None):
    client = mock.MagicMock()
    client.__enter__.return_value = client
    if error is not None:
        client.head.side_effect = error
    else:
        client.head.return_value = response
    return client


@pytest.mark.parametrize("status, active", [(200, True), (301, True), (404, False), (500, False)])
def test_liveness_status_codes(status, active):
    fake = _fake_client(response=mock.Mock(status_code=status))
    with mock.patch("leadgen_pipeline.validation.httpx.Client", return_value=fake):
        assert DomainProbe(timeout=1).is_active("acme.com") is active
    fake.head.assert_called_once_with("https://acme.com")


def test_liveness_network_error_is_inactive_and_cached():
    fake = _fake_client(error=httpx.ConnectTimeout("timed out"))
    probe = DomainProbe(timeout=1)
    with mock.patch("leadgen_pipeline.validation.httpx.Client", return_value=fake):
        assert probe.is_active("Acme.com") is False
        assert probe.is_active("acme.com") is False
    assert fake.head.call_count == 1


def test_liveness_empty_domain_skips_network():
    with mock.patch("leadgen_pipeline.validation.httpx.Client") as client_cls:
        assert DomainProbe().is_active("") is False
    client_cls.assert_not_called()


def test_is_domain_active_heads_normalized_domain():
    fake = _fake_client(response=mock.Mock(status_code=200))
    with mock.patch("leadgen_pipeline.validation.httpx.Client", return_value=fake) as client_cls:
        assert is_domain_active(" Acme.com ", timeout=2) is True
        assert is_domain_active(None) is False
    fake.head.assert_called_once_with("https://acme.com")
    assert client_cls.call_args.kwargs["timeout"] == 2
