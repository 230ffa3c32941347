from __future__ import annotations

from sqlalchemy import and_, case, func, or_, select

from .db import session_scope
from .models import ApiUsageLog, Business, JobRun, LeadAlert


def _pct(part: int, total: int) -> float:
    return round(part / total * 100, 2) if total else 0.0


def collect_metrics() -> dict:
    with session_scope() as session:
        contact_ready = and_(
            Business.email_valid.is_(True),
            Business.phone.isnot(None),
            Business.domain_valid.is_(True),
            Business.is_disposable_email.is_(False),
            Business.is_duplicate.is_(False),
        )
        totals = session.execute(
            select(
                func.count(Business.id),
                func.sum(case((Business.email_valid.is_(True), 1), else_=0)),
                func.sum(case((Business.email_valid.is_(False), 1), else_=0)),
                func.sum(case((Business.is_duplicate.is_(True), 1), else_=0)),
                func.sum(
                    case(
                        (and_(Business.lead_priority == "high", Business.is_duplicate.is_(False)), 1),
                        else_=0,
                    )
                ),
                func.sum(case((contact_ready, 1), else_=0)),
                func.sum(
                    case(
                        (
                            and_(
                                Business.enriched_at.is_(None),
                                Business.website.isnot(None),
                                Business.website != "",
                            ),
                            1,
                        ),
                        else_=0,
                    )
                ),
                func.sum(
                    case(
                        (or_(Business.relevance_score.is_(None), Business.email_validated_at.is_(None)), 1),
                        else_=0,
                    )
                ),
            )
        ).first()

        priority_rows = session.execute(
            select(Business.lead_priority, func.count(Business.id)).group_by(Business.lead_priority)
        ).all()

        pending_alerts = session.execute(
            select(func.count(LeadAlert.id)).where(LeadAlert.telegram_sent.is_(False))
        ).scalar() or 0

        recent_jobs = session.execute(
            select(JobRun.job_name, JobRun.status, JobRun.started_at, JobRun.finished_at, JobRun.processed_count)
            .order_by(JobRun.started_at.desc())
            .limit(10)
        ).all()

    total = int(totals[0] or 0)
    valid_emails = int(totals[1] or 0)
    invalid_emails = int(totals[2] or 0)
    duplicates = int(totals[3] or 0)

    return {
        "total_businesses": total,
        "data_quality": {
            "valid_emails": valid_emails,
            "invalid_emails": invalid_emails,
            "email_validation_rate": _pct(valid_emails, total),
            "unprocessed": int(totals[7] or 0),
        },
        "duplicates": {
            "count": duplicates,
            "percentage": _pct(duplicates, total),
        },
        "leads": {
            "high_priority": int(totals[4] or 0),
            "contact_ready": int(totals[5] or 0),
            "needs_enrichment": int(totals[6] or 0),
        },
        "priority_distribution": {
            (priority or "unscored"): int(count) for priority, count in priority_rows
        },
        "pending_alerts": int(pending_alerts),
        "recent_jobs": [
            {
                "job_name": job_name,
                "status": status,
                "started_at": started_at.isoformat() if started_at else None,
                "finished_at": finished_at.isoformat() if finished_at else None,
                "processed_count": processed_count,
            }
            for job_name, status, started_at, finished_at, processed_count in recent_jobs
        ],
    }


def collect_usage() -> dict:
    """Provider calls and estimated spend per service, from ``api_usage_logs``."""
    with session_scope() as session:
        rows = session.execute(
            select(
                ApiUsageLog.service,
                func.count(ApiUsageLog.id),
                func.sum(case((ApiUsageLog.success.is_(True), 1), else_=0)),
                func.sum(ApiUsageLog.estimated_cost),
            )
            .group_by(ApiUsageLog.service)
            .order_by(ApiUsageLog.service)
        ).all()

    services = [
        {
            "service": service,
            "requests": int(requests or 0),
            "successful": int(successful or 0),
            "estimated_cost": round(float(cost or 0), 4),
        }
        for service, requests, successful, cost in rows
    ]
    return {
        "services": services,
        "totals": {
            "requests": sum(entry["requests"] for entry in services),
            "estimated_cost": round(sum(entry["estimated_cost"] for entry in services), 4),
        },
    }
