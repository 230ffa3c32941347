from __future__ import annotations

import logging
from typing import Any, Optional

import requests
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..enrichment import EnrichmentResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10


def _give_up(retry_state) -> None:
    exc = retry_state.outcome.exception()
    logger.warning("Provider request failed after %d attempts: %s", retry_state.attempt_number, exc)
    return None


class ProviderClient:
    """Shared plumbing for third-party enrichment APIs.

    Transient failures (connection errors, timeouts, 429 and 5xx responses)
    are retried. Everything else is reported as an unsuccessful
    ``EnrichmentResult``; nothing here raises to the caller.
    """

    service = "provider"

    def __init__(
        self,
        api_key: Optional[str],
        timeout: int = DEFAULT_TIMEOUT,
        user_agent: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()
        if user_agent:
            self.session.headers.update({"User-Agent": user_agent})
        self._calls_made = 0

    @property
    def calls_made(self) -> int:
        return self._calls_made

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        retry=retry_if_exception_type(requests.RequestException),
        retry_error_callback=_give_up,
    )
    def _send(self, method: str, url: str, **kwargs: Any) -> Optional[requests.Response]:
        resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        self._calls_made += 1
        if resp.status_code == 429 or resp.status_code >= 500:
            resp.raise_for_status()
        return resp

    def _error_detail(self, resp: requests.Response) -> str:
        return f"{self.service} HTTP {resp.status_code}: {resp.text[:200]}"

    def request_json(self, method: str, url: str, **kwargs: Any) -> tuple[Optional[Any], Optional[str]]:
        """Return ``(payload, None)`` on success or ``(None, error)``."""
        if not self.configured:
            return None, f"{self.service} API key not configured"

        resp = self._send(method, url, **kwargs)
        if resp is None:
            return None, f"{self.service} request failed"
        if resp.status_code != 200:
            logger.warning("%s error %d: %s", self.service, resp.status_code, resp.text[:200])
            return None, self._error_detail(resp)

        try:
            return resp.json(), None
        except ValueError:
            logger.warning("%s returned invalid JSON", self.service)
            return None, f"{self.service} returned invalid JSON"

    def failed(self, error: str) -> EnrichmentResult:
        return EnrichmentResult.failed(self.service, error)

    def succeeded(self, data: dict[str, Any]) -> EnrichmentResult:
        return EnrichmentResult(success=True, service=self.service, data=data)
