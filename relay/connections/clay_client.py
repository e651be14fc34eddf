"""clay_client.py – Submit enrichment jobs to Clay

Two transports are supported and chosen in this order:

1. **Webhook** (``CLAY_WEBHOOK_URL``) – the job is POSTed as a flat JSON
   object to a Clay table webhook.  ``CLAY_API_KEY``, when set, is sent as a
   bearer token.  The row id is read from ``id``, ``row_id`` or ``rowId``.
2. **Direct API** (``CLAY_API_BASE`` + ``CLAY_API_KEY``) – ``POST {base}/rows``
   with the job wrapped in ``{"fields": {...}}``.  The row id is read from
   ``id``.

The job always carries the Slack channel and placeholder ``ts`` so Clay can
echo them back and the callback resolves even after a relay restart.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from relay.cloud_logging import log_text
from relay.config import Settings
from relay.exceptions import ConfigurationError, TransportError

__all__ = [
    "CLAY_TIMEOUT_SECONDS",
    "ClayClient",
    "EnrichmentJob",
]

CLAY_TIMEOUT_SECONDS = 30


@dataclass(frozen=True)
class EnrichmentJob:
    linkedin_url: str
    slack_channel: str
    slack_message_ts: str
    callback_url: str
    callback_token: Optional[str]

    def as_payload(self) -> Dict[str, Any]:
        return {
            "linkedin_url": self.linkedin_url,
            "slack_channel": self.slack_channel,
            "slack_message_ts": self.slack_message_ts,
            "callback_url": self.callback_url,
            "callback_token": self.callback_token,
        }


def _row_id(data: Any, *keys: str) -> Optional[str]:
    if not isinstance(data, dict):
        return None
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return str(value)
    return None


class ClayClient:
    """Enrichment capability: ``submit(job) -> row id | None``."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    @property
    def mode(self) -> Optional[str]:
        return self._settings.transport_mode

    def submit(self, job: EnrichmentJob) -> Optional[str]:
        """Send *job* to Clay and return the row id Clay assigned, if any.

        Raises
        ------
        ConfigurationError
            Neither transport is configured.
        TransportError
            Network failure, timeout or non-2xx response.
        """
        mode = self.mode
        if mode == "webhook":
            headers = {"Content-Type": "application/json"}
            if self._settings.clay_api_key:
                headers["Authorization"] = f"Bearer {self._settings.clay_api_key}"
            data = self._post(self._settings.clay_webhook_url, job.as_payload(), headers)
            return _row_id(data, "id", "row_id", "rowId")

        if mode == "api":
            url = f"{self._settings.clay_api_base.rstrip('/')}/rows"
            headers = {
                "Authorization": f"Bearer {self._settings.clay_api_key}",
                "Content-Type": "application/json",
            }
            data = self._post(url, {"fields": job.as_payload()}, headers)
            return _row_id(data, "id")

        raise ConfigurationError(
            "Clay configuration missing. Please set CLAY_WEBHOOK_URL or CLAY_API_BASE+CLAY_API_KEY."
        )

    def _post(self, url: str, payload: Dict[str, Any], headers: Dict[str, str]) -> Any:
        try:
            response = requests.post(url, json=payload, headers=headers, timeout=CLAY_TIMEOUT_SECONDS)
        except requests.RequestException as exc:
            raise TransportError(f"Clay request failed: {exc}") from exc

        if not response.ok:
            raise TransportError(
                "Clay rejected the enrichment request",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            return response.json()
        except ValueError:
            # Clay webhooks may answer with plain text; no row id then.
            log_text(
                f"Clay answered HTTP {response.status_code} without a JSON body.",
                severity="DEBUG",
            )
            return None
