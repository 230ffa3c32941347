from __future__ import annotations

from datetime import datetime, timedelta, timezone

from sqlalchemy import select

from leadgen_pipeline.enrichment import EnrichmentResult
from leadgen_pipeline.models import ApiUsageLog, Business, JobRun, LeadAlert
from leadgen_pipeline.pipeline import run_once
from leadgen_pipeline.workers import auto_enrich, business_quality, company_enrich, google_places
from leadgen_pipeline.workers.company_enrich import CompanyClients

BASE_TIME = datetime(2026, 10, 1, 9, 0, tzinfo=timezone.utc)


def _raw_business(db_session, offset: int, **fields) -> Business:
    business = Business(created_at=BASE_TIME + timedelta(minutes=offset), **fields)
    db_session.add(business)
    db_session.commit()
    return business


class FakeProvider:
    def __init__(self, service, results=None):
        self.service = service
        self.results = results or {}
        self.calls = []
        self.configured = True

    @property
    def calls_made(self):
        return len(self.calls)

    def _result(self, name, *args):
        self.calls.append((name, args))
        data = self.results.get(name)
        if data is None:
            return EnrichmentResult.failed(self.service, f"{name} unavailable")
        return EnrichmentResult(success=True, service=self.service, data=dict(data))

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        return lambda *args, **kwargs: self._result(name, *args)


def test_quality_batch_processes_pending_records(db_session):
    _raw_business(db_session, 0, business_name="Acme", email="info@acme.com")
    _raw_business(db_session, 1, business_name="Acme Copy", email="INFO@acme.com")
    _raw_business(
        db_session,
        2,
        business_name="Smith Law",
        email="jane@smithlaw.com",
        phone="5550001111",
        website="smithlaw.com",
        industry="Legal",
    )

    stats = business_quality.run_batch(limit=0, scope="test")

    assert stats == {"processed": 3, "errors": 0, "high_priority_found": 1, "duplicates_found": 1}
    db_session.expire_all()
    rows = {b.business_name: b for b in db_session.execute(select(Business)).scalars()}
    assert rows["Acme Copy"].duplicate_of_id == rows["Acme"].id
    assert rows["Smith Law"].lead_priority == "high"

    run = db_session.execute(select(JobRun).where(JobRun.job_name == "business_quality")).scalar_one()
    assert run.status == "success"
    assert run.processed_count == 3
    assert run.scope == "test"

    assert business_quality.run_batch(limit=0)["processed"] == 0


def test_quality_batch_continues_after_record_failure(db_session, monkeypatch):
    _raw_business(db_session, 0, business_name="Fine One")
    _raw_business(db_session, 1, business_name="Broken")
    _raw_business(db_session, 2, business_name="Fine Two")

    real = business_quality.reprocess_business

    def flaky(session, business, **kwargs):
        if business.business_name == "Broken":
            raise RuntimeError("bad record")
        return real(session, business, **kwargs)

    monkeypatch.setattr(business_quality, "reprocess_business", flaky)
    stats = business_quality.run_batch(limit=0)

    assert stats["processed"] == 2
    assert stats["errors"] == 1
    db_session.expire_all()
    broken = db_session.execute(select(Business).where(Business.business_name == "Broken")).scalar_one()
    assert broken.relevance_score is None
    assert broken.processing_errors == 1

    for _ in range(business_quality.MAX_PROCESSING_ERRORS - 1):
        assert business_quality.run_batch(limit=0) == {
            "processed": 0, "errors": 1, "high_priority_found": 0, "duplicates_found": 0,
        }
    # given up on after repeated failures
    assert business_quality.run_batch(limit=0)["errors"] == 0
    db_session.expire_all()
    assert db_session.get(Business, broken.id).processing_errors == business_quality.MAX_PROCESSING_ERRORS


def test_quality_batch_honours_limit(db_session):
    for offset in range(3):
        _raw_business(db_session, offset, business_name=f"Shop {offset}")

    assert business_quality.run_batch(limit=2)["processed"] == 2
    assert business_quality.run_batch(limit=2)["processed"] == 1


def test_duplicate_sweep_marks_and_clears(db_session, make_business):
    first = make_business(business_name="Acme", email="info@acme.com")
    second = make_business(business_name="Other Co", email="owner@other.com")
    stale = make_business(business_name="Lonely Co", email="me@lonely.com")

    second.email_hash = first.email_hash
    stale.is_duplicate = True
    stale.duplicate_of_id = first.id
    stale.lead_priority = "low"
    db_session.commit()

    stats = business_quality.find_and_mark_duplicates()

    assert stats == {"checked": 3, "duplicates_found": 1, "cleared": 1, "errors": 0}
    db_session.expire_all()
    assert db_session.get(Business, second.id).duplicate_of_id == first.id
    assert db_session.get(Business, stale.id).is_duplicate is False
    assert db_session.get(Business, stale.id).lead_status == "new"

    alert = db_session.execute(select(LeadAlert).where(LeadAlert.business_id == second.id)).scalar_one()
    assert alert.alert_type == "duplicate_detected"
    assert alert.priority == "low"


def _hunter(**overrides):
    results = {
        "email_count": {"total": 12},
        "enrich_company": {"industry": "Legal", "company_size": "11-50", "linkedin_url": "https://linkedin.com/company/smith"},
        "domain_search": {
            "pattern": "{first}",
            "emails": [
                {"value": "low@smithlaw.com", "confidence": 40},
                {"value": "jane@smithlaw.com", "confidence": 90, "first_name": "Jane", "last_name": "Doe", "position": "Partner"},
            ],
        },
        "verify_email": {"result": "deliverable", "status": "valid", "score": 95},
        "enrich_email": {"contact_seniority": "executive"},
    }
    results.update(overrides)
    return FakeProvider("hunter", results)


def test_hunter_enrichment_fills_and_scores(db_session, make_business):
    business = make_business(business_name="Smith Law", website="smithlaw.com")
    client = _hunter()

    stats = auto_enrich.run_batch(limit=0, client=client)

    assert stats["processed"] == 1
    assert stats["successful"] == 1
    assert stats["api_calls"] == 5

    db_session.expire_all()
    stored = db_session.get(Business, business.id)
    assert stored.email == "jane@smithlaw.com"
    assert stored.email_confidence == 90
    assert stored.contact_name == "Jane Doe"
    assert stored.hunter_email_count == 12
    assert stored.hunter_email_pattern == "{first}"
    assert stored.email_deliverability == "deliverable"
    assert stored.email_risk_level == "low"
    assert stored.industry == "Legal"
    assert stored.normalized_email == "jane@smithlaw.com"
    assert stored.relevance_score == 90
    assert stored.lead_priority == "high"
    assert stored.lead_score is not None
    assert stored.score_reasons["total_score"] == stored.lead_score

    alerts = db_session.execute(select(LeadAlert).where(LeadAlert.business_id == business.id)).scalars().all()
    assert [alert.alert_type for alert in alerts] == ["high_priority_lead"]

    # enriched records are not picked again until they go stale
    assert auto_enrich.run_batch(limit=0, client=_hunter())["processed"] == 0


def test_hunter_provider_failures_are_collected(db_session, make_business):
    business = make_business(business_name="Acme", website="acme.com", email="owner@acme.com")
    client = _hunter(email_count=None, enrich_company=None, verify_email=None, enrich_email=None)

    result = auto_enrich.enrich_business_by_id(business.id, client)

    assert result["success"] is False
    assert len(result["errors"]) == 4
    assert "domain_search" not in [name for name, _ in client.calls]


def test_hunter_skips_public_email_domains(make_business):
    business = make_business(business_name="Joe", email="joe@gmail.com")
    result = auto_enrich.enrich_business_by_id(business.id, _hunter())

    assert result["success"] is False
    assert result["errors"] == ["No domain available for enrichment"]


def test_hunter_batch_without_key_is_skipped():
    assert auto_enrich.run_batch()["error"] == "HUNTER_API_KEY not configured"


def test_failed_hunter_attempt_does_not_block_the_queue(db_session, make_business):
    stuck = make_business(business_name="Unknown Co", website="unknown-co.com")
    make_business(business_name="Smith Law", website="smithlaw.com")

    assert auto_enrich.run_batch(limit=1, client=FakeProvider("hunter"))["failed"] == 1

    client = _hunter()
    assert auto_enrich.run_batch(limit=1, client=client)["processed"] == 1
    assert client.calls[0] == ("email_count", ("smithlaw.com",))

    db_session.expire_all()
    stored = db_session.get(Business, stuck.id)
    assert stored.hunter_attempted_at is not None
    assert stored.hunter_enriched_at is None

    assert auto_enrich.run_batch(limit=0, client=FakeProvider("hunter"))["processed"] == 0


def test_hunter_skips_malformed_domain(db_session, make_business):
    business = make_business(business_name="Nowhere", website="n/a")
    client = _hunter()

    result = auto_enrich.enrich_business_by_id(business.id, client)

    assert result["errors"] == ["No domain available for enrichment"]
    assert client.calls == []
    db_session.expire_all()
    assert db_session.get(Business, business.id).hunter_attempted_at is not None


def test_hunter_email_finder_uses_contact_name(db_session, make_business):
    business = make_business(business_name="Smith Law", website="smithlaw.com")
    business.contact_name = "Jane Doe"
    db_session.commit()
    client = _hunter(domain_search={"emails": []}, find_email={"email": "jane@smithlaw.com", "email_confidence": 88})

    result = auto_enrich.enrich_business_by_id(business.id, client)

    assert result["enrichments"]["email_finder"] is True
    assert ("find_email", ("smithlaw.com", "Jane", "Doe")) in client.calls
    db_session.expire_all()
    stored = db_session.get(Business, business.id)
    assert stored.email == "jane@smithlaw.com"
    assert stored.normalized_email == "jane@smithlaw.com"
    assert stored.email_confidence == 88


def test_company_enrichment_falls_back_and_logs_usage(db_session, make_business):
    business = make_business(business_name="Acme", website="acme.com")
    clients = CompanyClients(
        clearbit=FakeProvider("clearbit"),
        apollo=FakeProvider("apollo", {"enrich_company": {"company_size": "40", "industry": "Retail"}}),
    )

    stats = company_enrich.run_batch(limit=0, clients=clients)

    assert stats["successful"] == 1
    db_session.expire_all()
    stored = db_session.get(Business, business.id)
    assert stored.enriched_by_service == "apollo"
    assert stored.company_size == "40"
    assert stored.enriched_at is not None
    assert stored.lead_score is not None

    logs = db_session.execute(select(ApiUsageLog).order_by(ApiUsageLog.service)).scalars().all()
    assert [(log.service, log.success) for log in logs] == [("apollo", True), ("clearbit", False)]
    assert float(logs[0].estimated_cost) == 0.005
    assert logs[1].error_message == "enrich_company unavailable"


def test_company_enrichment_prefers_apollo_when_asked(db_session, make_business):
    business = make_business(business_name="Acme", website="acme.com")
    clearbit = FakeProvider("clearbit", {"enrich_company": {"company_size": "10"}})
    apollo = FakeProvider("apollo", {"enrich_company": {"company_size": "40"}})

    with_apollo = company_enrich.enrich_business_by_id(
        business.id, CompanyClients(clearbit=clearbit, apollo=apollo), preferred="apollo"
    )

    assert with_apollo["services"] == ["apollo"]
    assert clearbit.calls == []


def test_company_batch_without_keys_is_skipped():
    assert company_enrich.run_batch()["error"] == "No company enrichment API keys configured"


def test_failed_company_attempt_does_not_block_the_queue(db_session, make_business):
    stuck = make_business(business_name="Unknown Co", website="unknown-co.com")
    make_business(business_name="Acme", website="acme.com")

    failing = CompanyClients(clearbit=FakeProvider("clearbit"))
    assert company_enrich.run_batch(limit=1, clients=failing)["failed"] == 1

    clearbit = FakeProvider("clearbit", {"enrich_company": {"company_size": "10"}})
    assert company_enrich.run_batch(limit=1, clients=CompanyClients(clearbit=clearbit))["successful"] == 1
    assert clearbit.calls == [("enrich_company", ("acme.com",))]

    db_session.expire_all()
    stored = db_session.get(Business, stuck.id)
    assert stored.company_enrich_attempted_at is not None
    assert stored.enriched_at is None


def test_company_enrichment_skips_malformed_domain(make_business):
    business = make_business(business_name="Nowhere", website="n/a")
    clearbit = FakeProvider("clearbit", {"enrich_company": {"company_size": "10"}})

    result = company_enrich.enrich_business_by_id(business.id, CompanyClients(clearbit=clearbit))

    assert result["success"] is False
    assert result["errors"] == ["No domain found for enrichment"]
    assert clearbit.calls == []


def test_google_places_enrichment(db_session, make_business):
    match = make_business(business_name="Blue Cafe", city="Austin")
    miss = make_business(business_name="Green Grocer", city="Austin")

    class Places(FakeProvider):
        def text_search(self, query):
            self.calls.append(("text_search", (query,)))
            if query.startswith("Blue"):
                data = {"place_name": "Blue Cafe", "phone": "(512) 555-0100", "website": "bluecafe.com"}
            else:
                data = {"place_name": "Red Bakery", "phone": "(512) 555-0199"}
            return EnrichmentResult(success=True, service=self.service, data=data)

    client = Places("google_places")
    stats = google_places.run_batch(limit=0, client=client)

    assert stats == {"processed": 2, "enriched": 1, "phones_added": 1, "errors": 0, "api_calls": 2}
    assert ("text_search", ("Blue Cafe Austin",)) in client.calls

    db_session.expire_all()
    enriched = db_session.get(Business, match.id)
    assert enriched.phone == "(512) 555-0100"
    assert enriched.normalized_phone == "5125550100"
    assert enriched.domain_valid is True
    untouched = db_session.get(Business, miss.id)
    assert untouched.phone is None
    assert untouched.google_enriched_at is not None

    assert google_places.run_batch(limit=0, client=client)["processed"] == 0


def test_pipeline_skips_unconfigured_stages(db_session):
    _raw_business(db_session, 0, business_name="Acme", email="info@acme.com")

    result = run_once(sweep_duplicates=True)

    assert result["processed"] == 1
    assert result["errors"] == 0
    assert set(result["skipped"]) == {"google_places", "hunter", "company", "alerts"}
