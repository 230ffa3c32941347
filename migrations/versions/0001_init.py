"""init

Revision ID: 0001_init
Revises: 
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def _ts(name, nullable=True):
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade():
    op.create_table(
        "businesses",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("business_name", sa.Text(), nullable=False),
        sa.Column("business_type", sa.Text()),
        sa.Column("address", sa.Text()),
        sa.Column("city", sa.Text()),
        sa.Column("state", sa.Text()),
        sa.Column("zip_code", sa.Text()),
        sa.Column("country", sa.Text()),
        sa.Column("phone", sa.Text()),
        sa.Column("email", sa.Text()),
        sa.Column("website", sa.Text()),
        sa.Column("industry", sa.Text()),
        sa.Column("data_source", sa.Text()),
        sa.Column("source_url", sa.Text()),
        sa.Column("normalized_business_name", sa.Text()),
        sa.Column("normalized_address", sa.Text()),
        sa.Column("normalized_email", sa.Text()),
        sa.Column("normalized_phone", sa.Text()),
        sa.Column("email_hash", sa.Text()),
        sa.Column("phone_hash", sa.Text()),
        sa.Column("domain_hash", sa.Text()),
        sa.Column("email_valid", sa.Boolean()),
        sa.Column("is_disposable_email", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_generic_email", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        _ts("email_validated_at"),
        sa.Column("domain_valid", sa.Boolean()),
        sa.Column("domain_active", sa.Boolean()),
        _ts("domain_validated_at"),
        sa.Column("is_duplicate", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column(
            "duplicate_of_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("businesses.id", ondelete="SET NULL"),
        ),
        sa.Column("service_segment", sa.Text()),
        sa.Column("relevance_score", sa.Integer()),
        sa.Column("lead_priority", sa.Text()),
        sa.Column("lead_status", sa.Text()),
        sa.Column("lead_score", sa.Integer()),
        sa.Column("score_reasons", postgresql.JSONB()),
        _ts("scored_at"),
        sa.Column("contact_name", sa.Text()),
        sa.Column("contact_position", sa.Text()),
        sa.Column("contact_seniority", sa.Text()),
        sa.Column("contact_department", sa.Text()),
        sa.Column("contact_linkedin", sa.Text()),
        sa.Column("contact_twitter", sa.Text()),
        sa.Column("contact_phone_number", sa.Text()),
        sa.Column("contact_location", sa.Text()),
        sa.Column("contact_timezone", sa.Text()),
        sa.Column("company_size", sa.Text()),
        sa.Column("company_revenue", sa.Text()),
        sa.Column("founded_year", sa.Integer()),
        sa.Column("company_description", sa.Text()),
        sa.Column("linkedin_url", sa.Text()),
        sa.Column("twitter_handle", sa.Text()),
        sa.Column("facebook_url", sa.Text()),
        sa.Column("google_place_id", sa.Text()),
        sa.Column("google_maps_url", sa.Text()),
        sa.Column("google_rating", sa.Numeric()),
        sa.Column("google_review_count", sa.Integer()),
        _ts("google_enriched_at"),
        sa.Column("hunter_email_count", sa.Integer()),
        sa.Column("hunter_email_pattern", sa.Text()),
        sa.Column("email_confidence", sa.Integer()),
        sa.Column("hunter_verification_status", sa.Text()),
        sa.Column("hunter_verification_score", sa.Integer()),
        _ts("hunter_verified_at"),
        sa.Column("email_deliverability", sa.Text()),
        sa.Column("email_risk_level", sa.Text()),
        _ts("hunter_enriched_at"),
        _ts("hunter_attempted_at"),
        _ts("enriched_at"),
        sa.Column("enriched_by_service", sa.Text()),
        _ts("company_enrich_attempted_at"),
        sa.Column("processing_errors", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("review_status", sa.Text(), nullable=False, server_default=sa.text("'pending'")),
        _ts("approved_at"),
        _ts("archived_at"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("businesses_email_hash_idx", "businesses", ["email_hash"])
    op.create_index("businesses_phone_hash_idx", "businesses", ["phone_hash"])
    op.create_index("businesses_domain_hash_idx", "businesses", ["domain_hash"])
    op.create_index("businesses_priority_idx", "businesses", ["lead_priority", "is_duplicate"])
    op.create_index("businesses_relevance_score_idx", "businesses", ["relevance_score"])
    op.create_index("businesses_created_at_idx", "businesses", ["created_at"])

    op.create_table(
        "lead_alerts",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "business_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("businesses.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("alert_type", sa.Text(), nullable=False),
        sa.Column("priority", sa.Text(), nullable=False, server_default=sa.text("'medium'")),
        sa.Column("message", sa.Text()),
        sa.Column("telegram_sent", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        _ts("telegram_sent_at"),
        sa.Column("send_attempts", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("lead_alerts_business_type_idx", "lead_alerts", ["business_id", "alert_type"])
    op.create_index("lead_alerts_pending_idx", "lead_alerts", ["telegram_sent", "priority"])

    op.create_table(
        "api_usage_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("service", sa.Text(), nullable=False),
        sa.Column(
            "business_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("businesses.id", ondelete="SET NULL"),
        ),
        sa.Column("request_type", sa.Text(), nullable=False),
        sa.Column("success", sa.Boolean(), nullable=False),
        sa.Column("estimated_cost", sa.Numeric()),
        sa.Column("response_data", postgresql.JSONB()),
        sa.Column("error_message", sa.Text()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("api_usage_logs_service_idx", "api_usage_logs", ["service", "created_at"])

    op.create_table(
        "job_runs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("job_name", sa.Text(), nullable=False),
        sa.Column("scope", sa.Text()),
        sa.Column("status", sa.Text(), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        _ts("finished_at"),
        sa.Column("processed_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("details", postgresql.JSONB()),
        sa.Column("error", sa.Text()),
    )
    op.create_index("job_runs_name_status_idx", "job_runs", ["job_name", "status"])
    op.create_index("job_runs_started_at_idx", "job_runs", ["started_at"])


def downgrade():
    op.drop_table("job_runs")
    op.drop_table("api_usage_logs")
    op.drop_table("lead_alerts")
    op.drop_table("businesses")
