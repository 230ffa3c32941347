from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, Numeric, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import JSONB

from .db import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Business(Base):
    __tablename__ = "businesses"
    __table_args__ = (
        Index("businesses_email_hash_idx", "email_hash"),
        Index("businesses_phone_hash_idx", "phone_hash"),
        Index("businesses_domain_hash_idx", "domain_hash"),
        Index("businesses_priority_idx", "lead_priority", "is_duplicate"),
        Index("businesses_relevance_score_idx", "relevance_score"),
        Index("businesses_created_at_idx", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # Raw intake fields
    business_name: Mapped[str] = mapped_column(Text, nullable=False)
    business_type: Mapped[Optional[str]] = mapped_column(Text)
    address: Mapped[Optional[str]] = mapped_column(Text)
    city: Mapped[Optional[str]] = mapped_column(Text)
    state: Mapped[Optional[str]] = mapped_column(Text)
    zip_code: Mapped[Optional[str]] = mapped_column(Text)
    country: Mapped[Optional[str]] = mapped_column(Text)
    phone: Mapped[Optional[str]] = mapped_column(Text)
    email: Mapped[Optional[str]] = mapped_column(Text)
    website: Mapped[Optional[str]] = mapped_column(Text)
    industry: Mapped[Optional[str]] = mapped_column(Text)
    data_source: Mapped[Optional[str]] = mapped_column(Text)
    source_url: Mapped[Optional[str]] = mapped_column(Text)

    # Normalized values and identity hashes
    normalized_business_name: Mapped[Optional[str]] = mapped_column(Text)
    normalized_address: Mapped[Optional[str]] = mapped_column(Text)
    normalized_email: Mapped[Optional[str]] = mapped_column(Text)
    normalized_phone: Mapped[Optional[str]] = mapped_column(Text)
    email_hash: Mapped[Optional[str]] = mapped_column(Text)
    phone_hash: Mapped[Optional[str]] = mapped_column(Text)
    domain_hash: Mapped[Optional[str]] = mapped_column(Text)

    # Quality flags
    email_valid: Mapped[Optional[bool]] = mapped_column(Boolean)
    is_disposable_email: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_generic_email: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    email_validated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    domain_valid: Mapped[Optional[bool]] = mapped_column(Boolean)
    domain_active: Mapped[Optional[bool]] = mapped_column(Boolean)
    domain_validated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    # Deduplication
    is_duplicate: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    duplicate_of_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("businesses.id", ondelete="SET NULL")
    )

    # Classification and scores
    service_segment: Mapped[Optional[str]] = mapped_column(Text)
    relevance_score: Mapped[Optional[int]] = mapped_column(Integer)
    lead_priority: Mapped[Optional[str]] = mapped_column(Text)
    lead_status: Mapped[Optional[str]] = mapped_column(Text)
    lead_score: Mapped[Optional[int]] = mapped_column(Integer)
    score_reasons: Mapped[Optional[dict]] = mapped_column(JSONType)
    scored_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    # Contact person (enrichment)
    contact_name: Mapped[Optional[str]] = mapped_column(Text)
    contact_position: Mapped[Optional[str]] = mapped_column(Text)
    contact_seniority: Mapped[Optional[str]] = mapped_column(Text)
    contact_department: Mapped[Optional[str]] = mapped_column(Text)
    contact_linkedin: Mapped[Optional[str]] = mapped_column(Text)
    contact_twitter: Mapped[Optional[str]] = mapped_column(Text)
    contact_phone_number: Mapped[Optional[str]] = mapped_column(Text)
    contact_location: Mapped[Optional[str]] = mapped_column(Text)
    contact_timezone: Mapped[Optional[str]] = mapped_column(Text)

    # Company data (enrichment)
    company_size: Mapped[Optional[str]] = mapped_column(Text)
    company_revenue: Mapped[Optional[str]] = mapped_column(Text)
    founded_year: Mapped[Optional[int]] = mapped_column(Integer)
    company_description: Mapped[Optional[str]] = mapped_column(Text)
    linkedin_url: Mapped[Optional[str]] = mapped_column(Text)
    twitter_handle: Mapped[Optional[str]] = mapped_column(Text)
    facebook_url: Mapped[Optional[str]] = mapped_column(Text)

    # Google Places
    google_place_id: Mapped[Optional[str]] = mapped_column(Text)
    google_maps_url: Mapped[Optional[str]] = mapped_column(Text)
    google_rating: Mapped[Optional[float]] = mapped_column(Numeric)
    google_review_count: Mapped[Optional[int]] = mapped_column(Integer)
    google_enriched_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    # Hunter.io
    hunter_email_count: Mapped[Optional[int]] = mapped_column(Integer)
    hunter_email_pattern: Mapped[Optional[str]] = mapped_column(Text)
    email_confidence: Mapped[Optional[int]] = mapped_column(Integer)
    hunter_verification_status: Mapped[Optional[str]] = mapped_column(Text)
    hunter_verification_score: Mapped[Optional[int]] = mapped_column(Integer)
    hunter_verified_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    email_deliverability: Mapped[Optional[str]] = mapped_column(Text)
    email_risk_level: Mapped[Optional[str]] = mapped_column(Text)
    hunter_enriched_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    hunter_attempted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    enriched_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    enriched_by_service: Mapped[Optional[str]] = mapped_column(Text)
    company_enrich_attempted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    # Failed quality passes; records at the limit are skipped by the batch
    processing_errors: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    # Review workflow
    review_status: Mapped[str] = mapped_column(Text, nullable=False, default="pending")
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    archived_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    alerts: Mapped[list[LeadAlert]] = relationship("LeadAlert", back_populates="business", cascade="all, delete-orphan")
    usage_logs: Mapped[list[ApiUsageLog]] = relationship("ApiUsageLog", back_populates="business")


class LeadAlert(Base):
    __tablename__ = "lead_alerts"
    __table_args__ = (
        Index("lead_alerts_business_type_idx", "business_id", "alert_type"),
        Index("lead_alerts_pending_idx", "telegram_sent", "priority"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)
    alert_type: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[str] = mapped_column(Text, nullable=False, default="medium")
    message: Mapped[Optional[str]] = mapped_column(Text)
    telegram_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    telegram_sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    send_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)

    business: Mapped[Business] = relationship("Business", back_populates="alerts")


class ApiUsageLog(Base):
    __tablename__ = "api_usage_logs"
    __table_args__ = (
        Index("api_usage_logs_service_idx", "service", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    service: Mapped[str] = mapped_column(Text, nullable=False)
    business_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("businesses.id", ondelete="SET NULL"))
    request_type: Mapped[str] = mapped_column(Text, nullable=False)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    estimated_cost: Mapped[Optional[float]] = mapped_column(Numeric)
    response_data: Mapped[Optional[dict]] = mapped_column(JSONType)
    error_message: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)

    business: Mapped[Optional[Business]] = relationship("Business", back_populates="usage_logs")


class JobRun(Base):
    __tablename__ = "job_runs"
    __table_args__ = (
        Index("job_runs_name_status_idx", "job_name", "status"),
        Index("job_runs_started_at_idx", "started_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    job_name: Mapped[str] = mapped_column(Text, nullable=False)
    scope: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[str] = mapped_column(Text, nullable=False)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)
    finished_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    processed_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    details: Mapped[Optional[dict]] = mapped_column(JSONType)
    error: Mapped[Optional[str]] = mapped_column(Text)
