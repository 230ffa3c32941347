"""Telegram delivery of lead alerts.

Alerts are created by the processor as ``LeadAlert`` rows; this module only
formats, sends and marks them sent. Sending never raises: failures are logged
and reported as ``False``.
"""
from __future__ import annotations

import html
import logging
import time
from datetime import datetime, timezone
from typing import Any, Optional

import requests
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .config import Config
from .models import Business, LeadAlert

logger = logging.getLogger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"

ALERT_HEADINGS = {
    "high_priority_lead": ("\U0001F525", "HIGH-PRIORITY LEAD"),
    "duplicate_detected": ("⚠️", "Duplicate Detected"),
    "invalid_data": ("❌", "Data Quality Issue"),
    "enriched": ("✨", "Lead Enriched"),
    "contact_ready": ("✅", "Ready to Contact"),
}
DISPATCHED_PRIORITIES = ("high", "medium")
# Alerts Telegram rejected this many times stay unsent
MAX_SEND_ATTEMPTS = 3


def _e(value: Any) -> str:
    return html.escape(str(value), quote=False)


def _attr(value: Any) -> str:
    return html.escape(str(value), quote=True)


def _yes_no(value: Optional[bool]) -> str:
    return "Yes" if value else "No"


def is_contact_ready(business: Business) -> bool:
    return bool(
        business.email_valid
        and business.phone
        and business.domain_valid
        and not business.is_disposable_email
        and not business.is_duplicate
    )


class TelegramDispatcher:
    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        app_url: str = "http://localhost:3000",
        timeout: int = 10,
        send_delay: float = 0.5,
        batch_size: int = 10,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.app_url = app_url.rstrip("/")
        self.timeout = timeout
        self.send_delay = send_delay
        self.batch_size = batch_size
        self.http = session or requests.Session()

    def send_message(self, text: str, disable_preview: bool = False) -> bool:
        url = f"{TELEGRAM_API_URL}/bot{self.bot_token}/sendMessage"
        payload = {
            "chat_id": self.chat_id,
            "text": text,
            "parse_mode": "HTML",
            "disable_web_page_preview": disable_preview,
        }
        try:
            resp = self.http.post(url, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("Telegram send failed: %s", exc)
            return False

        if not resp.ok:
            logger.warning("Telegram returned %d: %s", resp.status_code, resp.text[:200])
            return False
        try:
            return bool(resp.json().get("ok"))
        except ValueError:
            logger.warning("Telegram returned invalid JSON")
            return False

    def _details(self, business: Business, alert_type: str) -> list[str]:
        if alert_type == "high_priority_lead":
            return [
                f"<b>Relevance Score:</b> {_e(business.relevance_score if business.relevance_score is not None else 'N/A')}/100",
                f"<b>Lead Priority:</b> {_e((business.lead_priority or 'medium').upper())}",
                f"<b>Service Segment:</b> {_e(business.service_segment or 'Not classified')}",
            ]
        if alert_type == "duplicate_detected":
            return [
                "<b>Status:</b> Marked as duplicate",
                f"<b>May be duplicate of:</b> ID {_e(business.duplicate_of_id or 'Unknown')}",
            ]
        if alert_type == "invalid_data":
            return [
                f"<b>Email Valid:</b> {_yes_no(business.email_valid)}",
                f"<b>Domain Valid:</b> {_yes_no(business.domain_valid)}",
                f"<b>Is Disposable Email:</b> {_yes_no(business.is_disposable_email)}",
            ]
        if alert_type == "enriched":
            return [
                f"<b>Enriched by:</b> {_e(business.enriched_by_service or 'Unknown')}",
                f"<b>Company Size:</b> {_e(business.company_size or 'Unknown')}",
                f"<b>Industry:</b> {_e(business.industry or 'Unknown')}",
            ]
        if alert_type == "contact_ready":
            return [
                "<b>All contact methods verified</b>",
                f"<b>Email:</b> {'Valid' if business.email else 'Missing'}",
                f"<b>Phone:</b> {'Valid' if business.phone else 'Missing'}",
                f"<b>Website:</b> {'Active' if business.website else 'Missing'}",
            ]
        return []

    def format_alert_message(
        self,
        business: Business,
        alert_type: str,
        custom_message: Optional[str] = None,
    ) -> str:
        emoji, title = ALERT_HEADINGS.get(alert_type, ("\U0001F4E2", "Lead Alert"))
        lines = [
            f"{emoji} <b>{title}</b>",
            "",
            f"<b>Business:</b> {_e(business.normalized_business_name or business.business_name)}",
            f"<b>Type:</b> {_e(business.business_type or 'Unknown')}",
            f"<b>Industry:</b> {_e(business.industry or 'Not specified')}",
        ]
        location = [part for part in (business.city, business.state) if part]
        if location:
            lines.append(f"<b>Location:</b> {_e(', '.join(location))}")

        lines.append("")
        lines.extend(self._details(business, alert_type))

        contact = []
        if business.email:
            contact.append(f"Email: {_e(business.email)}")
        if business.phone:
            contact.append(f"Phone: {_e(business.phone)}")
        if business.website:
            contact.append(f"Web: {_e(business.website)}")
        if contact:
            lines.extend(["", "<b>Contact:</b>", *contact])

        if custom_message:
            lines.extend(["", f"<i>{_e(custom_message)}</i>"])

        lines.extend(["", f'<a href="{_attr(self.app_url)}/leads/{business.id}">View Full Details</a>'])
        return "\n".join(lines)

    def send_lead_alert(self, session: Session, alert: LeadAlert) -> bool:
        business = alert.business or session.get(Business, alert.business_id)
        if business is None:
            logger.warning("Alert %s references missing business %s", alert.id, alert.business_id)
            return False

        text = self.format_alert_message(business, alert.alert_type, alert.message)
        if not self.send_message(text):
            alert.send_attempts = (alert.send_attempts or 0) + 1
            session.flush()
            return False

        alert.telegram_sent = True
        alert.telegram_sent_at = datetime.now(timezone.utc)
        session.flush()
        return True

    def process_pending_alerts(self, session: Session, limit: Optional[int] = None) -> int:
        """Send unsent high/medium alerts, oldest first. Returns the number sent.

        Alerts that already failed are retried after fresh ones, and alerts
        that failed MAX_SEND_ATTEMPTS times are no longer picked up.
        """
        stmt = (
            select(LeadAlert)
            .where(LeadAlert.telegram_sent.is_(False))
            .where(LeadAlert.priority.in_(DISPATCHED_PRIORITIES))
            .where(LeadAlert.send_attempts < MAX_SEND_ATTEMPTS)
            .order_by(LeadAlert.send_attempts, LeadAlert.created_at)
            .limit(limit or self.batch_size)
        )
        sent = 0
        for alert in session.execute(stmt).scalars().all():
            if self.send_lead_alert(session, alert):
                sent += 1
                if self.send_delay:
                    time.sleep(self.send_delay)
        return sent

    def build_daily_summary(self, session: Session, now: Optional[datetime] = None) -> str:
        now = now or datetime.now(timezone.utc)
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)

        counts = dict(
            session.execute(
                select(Business.lead_priority, func.count(Business.id))
                .where(Business.created_at >= start_of_day)
                .group_by(Business.lead_priority)
            ).all()
        )
        high = counts.get("high", 0)
        medium = counts.get("medium", 0)
        low = counts.get("low", 0)

        top_leads = session.execute(
            select(Business)
            .where(Business.created_at >= start_of_day)
            .where(Business.lead_priority == "high")
            .where(Business.is_duplicate.is_(False))
            .order_by(Business.relevance_score.desc())
            .limit(5)
        ).scalars().all()

        lines = [
            "\U0001F4CA <b>Daily Lead Summary</b>",
            "",
            f"<b>Total New Leads:</b> {high + medium + low}",
            f"High Priority: {high}",
            f"Medium Priority: {medium}",
            f"Low Priority: {low}",
        ]
        if top_leads:
            lines.extend(["", f"<b>Top {len(top_leads)} High-Priority Leads:</b>"])
            for index, lead in enumerate(top_leads, start=1):
                lines.append(
                    f"{index}. <b>{_e(lead.normalized_business_name or lead.business_name)}</b> "
                    f"| {_e(lead.business_type or 'Unknown type')} | Score: {lead.relevance_score}/100 "
                    f'<a href="{_attr(self.app_url)}/leads/{lead.id}">View</a>'
                )
        lines.extend(["", f'<a href="{_attr(self.app_url)}/leads">View All Leads</a>'])
        return "\n".join(lines)

    def send_daily_summary(self, session: Session, now: Optional[datetime] = None) -> bool:
        return self.send_message(self.build_daily_summary(session, now=now), disable_preview=True)

    def send_contact_ready_alert(self, business: Business) -> bool:
        if not is_contact_ready(business):
            return False
        return self.send_message(self.format_alert_message(business, "contact_ready"))

    def send_business_alert(
        self,
        business: Business,
        alert_type: str,
        custom_message: Optional[str] = None,
    ) -> bool:
        """Send one business straight to the chat, without a stored alert."""
        if alert_type not in ALERT_HEADINGS:
            raise ValueError(f"unknown alert type: {alert_type}")
        if alert_type == "contact_ready":
            return self.send_contact_ready_alert(business)
        return self.send_message(self.format_alert_message(business, alert_type, custom_message))


def build_dispatcher(config: Config) -> Optional[TelegramDispatcher]:
    if not config.telegram_bot_token or not config.telegram_chat_id:
        return None
    return TelegramDispatcher(
        bot_token=config.telegram_bot_token,
        chat_id=config.telegram_chat_id,
        app_url=config.app_url,
        timeout=config.http_timeout,
        send_delay=config.alert_send_delay_seconds,
        batch_size=config.alert_batch_size,
    )
