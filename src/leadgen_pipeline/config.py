from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


def _env_bool(key: str, default: str = "false") -> bool:
    return os.getenv(key, default).strip().lower() in {"1", "true", "yes", "on"}


def _env_str(key: str) -> Optional[str]:
    return (os.getenv(key) or "").strip() or None


@dataclass(frozen=True)
class Config:
    database_url: Optional[str]
    batch_size: int
    http_timeout: int
    http_user_agent: str
    domain_probe_enabled: bool
    domain_probe_timeout: float
    enrichment_delay_seconds: float
    enrich_stale_days: int
    enrich_retry_hours: int
    alert_batch_size: int
    alert_send_delay_seconds: float
    industry_table_file: Optional[str]
    app_url: str
    mutation_api_key: Optional[str]
    mutation_localhost_bypass: bool

    hunter_api_key: Optional[str]
    clearbit_api_key: Optional[str]
    apollo_api_key: Optional[str]
    rapidapi_key: Optional[str]
    google_places_api_key: Optional[str]
    telegram_bot_token: Optional[str]
    telegram_chat_id: Optional[str]


def load_config() -> Config:
    return Config(
        database_url=_env_str("DATABASE_URL"),
        batch_size=int(os.getenv("BATCH_SIZE", "50")),
        http_timeout=int(os.getenv("HTTP_TIMEOUT", "10")),
        http_user_agent=os.getenv("HTTP_USER_AGENT", "leadgen-pipeline/0.1"),
        domain_probe_enabled=_env_bool("DOMAIN_PROBE_ENABLED", "true"),
        domain_probe_timeout=float(os.getenv("DOMAIN_PROBE_TIMEOUT", "5")),
        enrichment_delay_seconds=max(float(os.getenv("ENRICHMENT_DELAY_SECONDS", "1.0")), 0.0),
        enrich_stale_days=int(os.getenv("ENRICH_STALE_DAYS", "30")),
        enrich_retry_hours=int(os.getenv("ENRICH_RETRY_HOURS", "24")),
        alert_batch_size=int(os.getenv("ALERT_BATCH_SIZE", "10")),
        alert_send_delay_seconds=max(float(os.getenv("ALERT_SEND_DELAY_SECONDS", "0.5")), 0.0),
        industry_table_file=_env_str("INDUSTRY_TABLE_FILE"),
        app_url=os.getenv("APP_URL", "http://localhost:3000").rstrip("/"),
        mutation_api_key=_env_str("MUTATION_API_KEY"),
        mutation_localhost_bypass=_env_bool("MUTATION_LOCALHOST_BYPASS", "true"),
        hunter_api_key=_env_str("HUNTER_API_KEY"),
        clearbit_api_key=_env_str("CLEARBIT_API_KEY"),
        apollo_api_key=_env_str("APOLLO_API_KEY"),
        rapidapi_key=_env_str("RAPIDAPI_KEY"),
        google_places_api_key=_env_str("GOOGLE_PLACES_API_KEY"),
        telegram_bot_token=_env_str("TELEGRAM_BOT_TOKEN"),
        telegram_chat_id=_env_str("TELEGRAM_CHAT_ID"),
    )
