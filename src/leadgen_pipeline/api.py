from __future__ import annotations

import hmac
import ipaddress
import os
import uuid
from typing import Literal, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from starlette.middleware.base import BaseHTTPMiddleware

from .alerts import build_dispatcher, is_contact_ready
from .config import load_config
from .db import session_scope
from .enhanced_scoring import calculate_enhanced_lead_score, lead_quality_label
from .metrics import collect_metrics, collect_usage
from .models import Business
from .processor import (
    REVIEW_STATUSES,
    BusinessInput,
    BusinessNotFoundError,
    BusinessUpdate,
    build_probe,
    create_processed_business,
    get_business,
    set_review_status,
    update_processed_business,
)
from .scoring import load_industry_table
from .workers import auto_enrich, company_enrich, google_places
from .workers.business_quality import find_and_mark_duplicates, run_batch as run_business_quality
from .workers.lead_alerts import run_batch as run_lead_alerts


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = "default-src 'self'"
        return response


def _parse_origins() -> list[str]:
    raw = os.getenv(
        "FRONTEND_ORIGINS",
        ",".join(
            [
                "http://localhost:3000",
                "http://127.0.0.1:3000",
                "http://localhost:5173",
                "http://127.0.0.1:5173",
            ]
        ),
    )
    return [entry.strip() for entry in raw.split(",") if entry.strip()]


def _is_loopback_host(host: Optional[str]) -> bool:
    if not host:
        return False
    candidate = host.strip()
    if not candidate:
        return False
    if candidate == "localhost":
        return True
    try:
        return ipaddress.ip_address(candidate).is_loopback
    except ValueError:
        return False


def require_mutation_auth(
    request: Request,
    x_api_key: Optional[str] = Header(default=None, alias="X-API-Key"),
    authorization: Optional[str] = Header(default=None),
) -> None:
    config = load_config()
    client_host = request.client.host if request.client else None
    if config.mutation_localhost_bypass and _is_loopback_host(client_host):
        return

    token = x_api_key
    if not token and authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()

    expected = config.mutation_api_key
    if not expected:
        raise HTTPException(status_code=401, detail="Mutation API key is required")
    if not token or not hmac.compare_digest(token, expected):
        raise HTTPException(status_code=401, detail="Invalid mutation API key")


class ReviewRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: Literal["pending", "approved", "archived"]


class EnrichRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    action: Literal["hunter", "google", "company"] = "hunter"
    preferred: Optional[Literal["clearbit", "apollo"]] = None


class TelegramAlertRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    alert_type: Literal[
        "high_priority_lead", "duplicate_detected", "invalid_data", "enriched", "contact_ready"
    ] = "contact_ready"
    message: Optional[str] = Field(None, max_length=500)


class DataQualityRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    action: Literal["process_businesses", "find_duplicates", "batch_enrich", "send_alerts", "daily_summary"]
    batch_size: Optional[int] = Field(None, ge=1, le=1000)
    scope: Optional[str] = Field(None, max_length=100)


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_business(business: Business) -> dict:
    return {
        "id": str(business.id),
        "business_name": business.business_name,
        "normalized_business_name": business.normalized_business_name,
        "business_type": business.business_type,
        "industry": business.industry,
        "address": business.address,
        "normalized_address": business.normalized_address,
        "city": business.city,
        "state": business.state,
        "zip_code": business.zip_code,
        "country": business.country,
        "email": business.email,
        "normalized_email": business.normalized_email,
        "phone": business.phone,
        "normalized_phone": business.normalized_phone,
        "website": business.website,
        "data_source": business.data_source,
        "source_url": business.source_url,
        "email_valid": business.email_valid,
        "is_disposable_email": business.is_disposable_email,
        "is_generic_email": business.is_generic_email,
        "email_validated_at": _iso(business.email_validated_at),
        "domain_valid": business.domain_valid,
        "domain_active": business.domain_active,
        "domain_validated_at": _iso(business.domain_validated_at),
        "is_duplicate": business.is_duplicate,
        "duplicate_of_id": str(business.duplicate_of_id) if business.duplicate_of_id else None,
        "service_segment": business.service_segment,
        "relevance_score": business.relevance_score,
        "lead_priority": business.lead_priority,
        "lead_status": business.lead_status,
        "lead_score": business.lead_score,
        "scored_at": _iso(business.scored_at),
        "contact_name": business.contact_name,
        "contact_position": business.contact_position,
        "company_size": business.company_size,
        "linkedin_url": business.linkedin_url,
        "google_rating": float(business.google_rating) if business.google_rating is not None else None,
        "google_review_count": business.google_review_count,
        "enriched_by_service": business.enriched_by_service,
        "enriched_at": _iso(business.enriched_at),
        "review_status": business.review_status,
        "approved_at": _iso(business.approved_at),
        "archived_at": _iso(business.archived_at),
        "created_at": _iso(business.created_at),
        "updated_at": _iso(business.updated_at),
    }


def _run_enrichment(business_id: uuid.UUID, payload: EnrichRequest) -> dict:
    config = load_config()
    if payload.action == "hunter":
        worker, client, missing = auto_enrich, auto_enrich.build_client(config), "HUNTER_API_KEY"
    elif payload.action == "google":
        worker, client, missing = google_places, google_places.build_client(config), "GOOGLE_PLACES_API_KEY"
    else:
        clients = company_enrich.build_clients(config)
        worker, client, missing = company_enrich, clients if clients.any_configured else None, "company enrichment API keys"
    if client is None:
        raise HTTPException(status_code=400, detail=f"{missing} not configured")

    probe = build_probe(config)
    table = load_industry_table(config.industry_table_file)
    with session_scope() as session:
        business = get_business(session, business_id)
        if payload.action == "company":
            result = worker.enrich_business(session, business, client, preferred=payload.preferred, probe=probe, table=table)
        else:
            result = worker.enrich_business(session, business, client, probe=probe, table=table)
        result["business"] = serialize_business(business)
    return result


def _run_data_quality_action(payload: DataQualityRequest) -> dict:
    limit = payload.batch_size
    if payload.action == "process_businesses":
        return run_business_quality(limit=limit, scope=payload.scope)
    if payload.action == "find_duplicates":
        return find_and_mark_duplicates(limit=limit, scope=payload.scope)
    if payload.action == "batch_enrich":
        return {
            "google_places": google_places.run_batch(limit=limit, scope=payload.scope),
            "hunter": auto_enrich.run_batch(limit=limit, scope=payload.scope),
            "company": company_enrich.run_batch(limit=limit, scope=payload.scope),
        }
    return run_lead_alerts(
        limit=limit,
        scope=payload.scope,
        daily_summary=payload.action == "daily_summary",
    )


def create_app() -> FastAPI:
    app = FastAPI(title="Lead Generation Pipeline API", version="0.1.0")

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_parse_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-API-Key"],
    )

    @app.exception_handler(BusinessNotFoundError)
    async def business_not_found(_: Request, exc: BusinessNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": f"Business {exc} not found"})

    @app.exception_handler(ValidationError)
    async def invalid_business(_: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"detail": jsonable_encoder(exc.errors(include_url=False, include_context=False))},
        )

    @app.get("/api/health")
    def health() -> dict:
        return {"status": "ok"}

    @app.post("/api/businesses", status_code=201, dependencies=[Depends(require_mutation_auth)])
    def api_create_business(payload: BusinessInput) -> dict:
        config = load_config()
        probe = build_probe(config)
        table = load_industry_table(config.industry_table_file)
        with session_scope() as session:
            business = create_processed_business(session, payload, probe=probe, table=table)
            return serialize_business(business)

    @app.get("/api/businesses/{business_id}")
    def api_get_business(business_id: uuid.UUID) -> dict:
        with session_scope() as session:
            return serialize_business(get_business(session, business_id))

    @app.patch("/api/businesses/{business_id}", dependencies=[Depends(require_mutation_auth)])
    def api_update_business(business_id: uuid.UUID, payload: BusinessUpdate) -> dict:
        config = load_config()
        probe = build_probe(config)
        table = load_industry_table(config.industry_table_file)
        with session_scope() as session:
            business = update_processed_business(session, business_id, payload, probe=probe, table=table)
            return serialize_business(business)

    @app.post("/api/businesses/{business_id}/review", dependencies=[Depends(require_mutation_auth)])
    def api_review_business(business_id: uuid.UUID, payload: ReviewRequest) -> dict:
        with session_scope() as session:
            business = set_review_status(get_business(session, business_id), payload.status)
            return {
                "id": str(business.id),
                "review_status": business.review_status,
                "allowed": list(REVIEW_STATUSES),
                "approved_at": _iso(business.approved_at),
                "archived_at": _iso(business.archived_at),
            }

    @app.get("/api/businesses/{business_id}/lead-score")
    def api_lead_score(business_id: uuid.UUID) -> dict:
        table = load_industry_table(load_config().industry_table_file)
        with session_scope() as session:
            breakdown = calculate_enhanced_lead_score(get_business(session, business_id), table=table)
        label, description = lead_quality_label(breakdown.total_score)
        return {
            "business_id": str(business_id),
            **breakdown.to_dict(),
            "quality": {"label": label, "description": description},
        }

    @app.post("/api/businesses/{business_id}/enrich", dependencies=[Depends(require_mutation_auth)])
    def api_enrich_business(business_id: uuid.UUID, payload: Optional[EnrichRequest] = None) -> dict:
        return _run_enrichment(business_id, payload or EnrichRequest())

    @app.post("/api/businesses/{business_id}/telegram", dependencies=[Depends(require_mutation_auth)])
    def api_send_business_alert(business_id: uuid.UUID, payload: TelegramAlertRequest) -> dict:
        dispatcher = build_dispatcher(load_config())
        if dispatcher is None:
            raise HTTPException(status_code=400, detail="Telegram not configured")
        with session_scope() as session:
            business = get_business(session, business_id)
            if payload.alert_type == "contact_ready" and not is_contact_ready(business):
                raise HTTPException(status_code=409, detail="Business is not ready to contact")
            sent = dispatcher.send_business_alert(business, payload.alert_type, payload.message)
        if not sent:
            raise HTTPException(status_code=502, detail="Failed to send Telegram message")
        return {"business_id": str(business_id), "alert_type": payload.alert_type, "sent": True}

    @app.get("/api/data-quality")
    def api_data_quality() -> dict:
        return collect_metrics()

    @app.post("/api/data-quality", dependencies=[Depends(require_mutation_auth)])
    def api_data_quality_action(payload: DataQualityRequest) -> dict:
        return {"action": payload.action, "result": _run_data_quality_action(payload)}

    @app.get("/api/usage")
    def api_usage() -> dict:
        usage = collect_usage()
        usage["hunter_account"] = None
        hunter = auto_enrich.build_client(load_config())
        if hunter is not None:
            account = hunter.account_info()
            usage["hunter_account"] = account.data if account.success else {"error": account.error}
        return usage

    @app.get("/api/alerts/status")
    def api_alert_status() -> dict:
        return {"telegram_configured": build_dispatcher(load_config()) is not None}

    return app


app = create_app()
