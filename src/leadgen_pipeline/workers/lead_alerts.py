from __future__ import annotations

import logging
from typing import Optional

from ..alerts import TelegramDispatcher, build_dispatcher
from ..config import load_config
from ..db import session_scope
from ..jobs import record_job_failure, record_job_start, record_job_success

logger = logging.getLogger(__name__)

JOB_NAME = "lead_alerts"


def run_batch(
    limit: Optional[int] = None,
    scope: Optional[str] = None,
    daily_summary: bool = False,
    dispatcher: Optional[TelegramDispatcher] = None,
) -> dict:
    """Deliver pending high/medium alerts, and the daily summary if asked."""
    config = load_config()
    dispatcher = dispatcher or build_dispatcher(config)
    if dispatcher is None:
        return {"error": "Telegram not configured", "sent": 0, "summary_sent": False}

    run_id = record_job_start(JOB_NAME, scope=scope)
    stats = {"sent": 0, "summary_sent": False}
    try:
        with session_scope() as session:
            stats["sent"] = dispatcher.process_pending_alerts(session, limit=limit if limit and limit > 0 else None)
        if daily_summary:
            with session_scope() as session:
                stats["summary_sent"] = dispatcher.send_daily_summary(session)
    except Exception as exc:
        record_job_failure(run_id, str(exc), details=stats)
        raise

    logger.info("Lead alerts: %d sent, daily summary sent: %s", stats["sent"], stats["summary_sent"])
    record_job_success(run_id, processed_count=stats["sent"], details=stats)
    return stats
