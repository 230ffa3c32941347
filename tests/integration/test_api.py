from __future__ import annotations

import uuid
from datetime import datetime, timezone
from unittest import mock

import leadgen_pipeline.api as api_module
from leadgen_pipeline.alerts import TelegramDispatcher
from leadgen_pipeline.enrichment import EnrichmentResult
from leadgen_pipeline.models import ApiUsageLog, Business
from leadgen_pipeline.workers import auto_enrich


def _create(client, auth_headers, **fields):
    response = client.post("/api/businesses", json=fields, headers=auth_headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_health_sets_security_headers(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_mutations_require_api_key(client):
    response = client.post("/api/businesses", json={"businessName": "Acme"})
    assert response.status_code == 401

    response = client.post("/api/businesses", json={"businessName": "Acme"}, headers={"X-API-Key": "wrong"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid mutation API key"


def test_bearer_token_is_accepted(client, auth_headers):
    headers = {"Authorization": f"Bearer {auth_headers['X-API-Key']}"}
    response = client.post("/api/businesses", json={"businessName": "Acme"}, headers=headers)
    assert response.status_code == 201


def test_create_accepts_camel_case_and_processes(client, auth_headers):
    body = _create(
        client,
        auth_headers,
        businessName="  acme corp  ",
        email="INFO@ACME.COM",
        phone="(555) 123-4567",
        zipCode="73301",
    )

    assert body["normalized_business_name"] == "Acme Corp"
    assert body["normalized_email"] == "info@acme.com"
    assert body["normalized_phone"] == "5551234567"
    assert body["zip_code"] == "73301"
    assert body["is_generic_email"] is True
    assert body["relevance_score"] == 65
    assert body["lead_priority"] == "medium"
    assert body["review_status"] == "pending"


def test_create_without_name_is_rejected(client, auth_headers):
    response = client.post("/api/businesses", json={"email": "info@acme.com"}, headers=auth_headers)
    assert response.status_code == 422

    response = client.post("/api/businesses", json={"businessName": "   "}, headers=auth_headers)
    assert response.status_code == 422


def test_duplicate_is_reported_on_create(client, auth_headers):
    first = _create(client, auth_headers, businessName="Acme", email="info@acme.com")
    second = _create(client, auth_headers, businessName="Acme Two", email="info@acme.com")

    assert second["is_duplicate"] is True
    assert second["duplicate_of_id"] == first["id"]
    assert second["lead_status"] == "duplicate"


def test_get_and_patch_business(client, auth_headers):
    created = _create(client, auth_headers, businessName="Smith Law", email="info@smithlaw.com", industry="Legal")

    fetched = client.get(f"/api/businesses/{created['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["lead_priority"] == "medium"

    patched = client.patch(
        f"/api/businesses/{created['id']}",
        json={"phone": "555-000-1111"},
        headers=auth_headers,
    )
    assert patched.status_code == 200
    assert patched.json()["normalized_phone"] == "5550001111"
    assert patched.json()["lead_priority"] == "high"
    assert patched.json()["business_name"] == "Smith Law"


def test_patch_cannot_blank_the_name(client, auth_headers):
    created = _create(client, auth_headers, businessName="Acme")
    response = client.patch(f"/api/businesses/{created['id']}", json={"businessName": ""}, headers=auth_headers)

    assert response.status_code == 422
    assert client.get(f"/api/businesses/{created['id']}").json()["business_name"] == "Acme"


def test_unknown_business_is_404(client, auth_headers):
    missing = uuid.uuid4()
    assert client.get(f"/api/businesses/{missing}").status_code == 404
    response = client.patch(f"/api/businesses/{missing}", json={"city": "Austin"}, headers=auth_headers)
    assert response.status_code == 404
    assert client.get("/api/businesses/not-a-uuid").status_code == 422


def test_review_workflow(client, auth_headers):
    created = _create(client, auth_headers, businessName="Acme")

    response = client.post(f"/api/businesses/{created['id']}/review", json={"status": "approved"}, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["review_status"] == "approved"
    assert response.json()["approved_at"] is not None

    response = client.post(f"/api/businesses/{created['id']}/review", json={"status": "deleted"}, headers=auth_headers)
    assert response.status_code == 422


def test_lead_score_breakdown(client, auth_headers):
    created = _create(
        client,
        auth_headers,
        businessName="Smith Law",
        email="jane@smithlaw.com",
        website="smithlaw.com",
        industry="Legal",
        city="Austin",
    )
    response = client.get(f"/api/businesses/{created['id']}/lead-score")

    assert response.status_code == 200
    body = response.json()
    assert set(body["categories"]) == {
        "contact_quality",
        "email_quality",
        "company_data",
        "enrichment_depth",
        "industry_relevance",
    }
    assert body["categories"]["industry_relevance"]["score"] == 15
    assert body["total_score"] == sum(c["score"] for c in body["categories"].values())
    assert body["quality"]["label"]


def test_enrich_without_provider_key_is_400(client, auth_headers):
    created = _create(client, auth_headers, businessName="Acme", website="acme.com")
    response = client.post(f"/api/businesses/{created['id']}/enrich", json={"action": "hunter"}, headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["detail"] == "HUNTER_API_KEY not configured"


def test_enrich_with_hunter(client, auth_headers, monkeypatch):
    class Hunter:
        service = "hunter"
        calls_made = 0

        def email_count(self, domain):
            return EnrichmentResult(success=True, service="hunter", data={"total": 3})

        def enrich_company(self, domain):
            return EnrichmentResult(success=True, service="hunter", data={"company_size": "11-50"})

        def domain_search(self, domain, limit=10):
            return EnrichmentResult.failed("hunter", "quota exceeded")

    monkeypatch.setattr(auto_enrich, "build_client", lambda config=None: Hunter())
    created = _create(client, auth_headers, businessName="Acme", website="acme.com")

    response = client.post(f"/api/businesses/{created['id']}/enrich", headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["errors"] == ["Domain search failed: quota exceeded"]
    assert body["business"]["company_size"] == "11-50"
    assert body["business"]["lead_score"] is not None


def test_data_quality_metrics_and_actions(client, auth_headers, db_session):
    db_session.add(Business(business_name="Raw Import", email="info@raw.com", created_at=datetime.now(timezone.utc)))
    db_session.commit()

    metrics = client.get("/api/data-quality").json()
    assert metrics["total_businesses"] == 1
    assert metrics["data_quality"]["unprocessed"] == 1

    response = client.post(
        "/api/data-quality",
        json={"action": "process_businesses", "batch_size": 10},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()["result"]["processed"] == 1

    metrics = client.get("/api/data-quality").json()
    assert metrics["data_quality"]["unprocessed"] == 0
    assert metrics["data_quality"]["valid_emails"] == 1
    assert metrics["recent_jobs"][0]["job_name"] == "business_quality"

    response = client.post("/api/data-quality", json={"action": "find_duplicates"}, headers=auth_headers)
    assert response.json()["result"]["checked"] == 1

    response = client.post("/api/data-quality", json={"action": "send_alerts"}, headers=auth_headers)
    assert response.json()["result"]["error"] == "Telegram not configured"


def test_data_quality_rejects_unknown_action(client, auth_headers):
    response = client.post("/api/data-quality", json={"action": "drop_everything"}, headers=auth_headers)
    assert response.status_code == 422


def test_usage_totals_without_hunter_key(client, db_session):
    db_session.add_all([
        ApiUsageLog(service="clearbit", request_type="company_enrichment", success=True, estimated_cost=0.01),
        ApiUsageLog(service="clearbit", request_type="company_enrichment", success=False, estimated_cost=0.0),
        ApiUsageLog(service="apollo", request_type="company_enrichment", success=True, estimated_cost=0.005),
    ])
    db_session.commit()

    body = client.get("/api/usage").json()

    assert body["hunter_account"] is None
    assert body["services"] == [
        {"service": "apollo", "requests": 1, "successful": 1, "estimated_cost": 0.005},
        {"service": "clearbit", "requests": 2, "successful": 1, "estimated_cost": 0.01},
    ]
    assert body["totals"] == {"requests": 3, "estimated_cost": 0.015}


def test_usage_includes_hunter_account(client, monkeypatch):
    class Hunter:
        def account_info(self):
            return EnrichmentResult(success=True, service="hunter", data={"plan_name": "Free"})

    monkeypatch.setattr(auto_enrich, "build_client", lambda config=None: Hunter())

    body = client.get("/api/usage").json()

    assert body["hunter_account"] == {"plan_name": "Free"}
    assert body["totals"] == {"requests": 0, "estimated_cost": 0}


def test_telegram_send_without_config_is_400(client, auth_headers):
    created = _create(client, auth_headers, businessName="Acme")
    response = client.post(
        f"/api/businesses/{created['id']}/telegram", json={"alert_type": "enriched"}, headers=auth_headers
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Telegram not configured"


def test_telegram_send_business_alert(client, auth_headers, monkeypatch):
    http = mock.MagicMock()
    http.post.return_value.ok = True
    http.post.return_value.json.return_value = {"ok": True}
    dispatcher = TelegramDispatcher("bot-token", "chat-1", send_delay=0, session=http)
    monkeypatch.setattr(api_module, "build_dispatcher", lambda config: dispatcher)
    created = _create(client, auth_headers, businessName="Acme", email="me@acme.com")
    url = f"/api/businesses/{created['id']}/telegram"

    response = client.post(url, json={"alert_type": "enriched", "message": "New size data"}, headers=auth_headers)

    assert response.status_code == 200
    assert response.json() == {"business_id": created["id"], "alert_type": "enriched", "sent": True}
    assert "Lead Enriched" in http.post.call_args.kwargs["json"]["text"]

    response = client.post(url, json={"alert_type": "contact_ready"}, headers=auth_headers)
    assert response.status_code == 409
    assert http.post.call_count == 1
