"""Exception hierarchy for the enrichment relay."""

from __future__ import annotations

from typing import Any, Optional


class RelayError(Exception):
    """Base class for every error raised by the relay."""


class ConfigurationError(RelayError):
    """A required setting is missing, e.g. no enrichment transport."""


class AuthError(RelayError):
    """A callback token or Slack request signature did not verify."""


class TransportError(RelayError):
    """Network failure, timeout or non-2xx answer from Slack or Clay."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        body: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    def __str__(self) -> str:
        base = super().__str__()
        if self.status_code is not None:
            base = f"{base} (HTTP {self.status_code})"
        if self.body:
            base = f"{base}: {self.body}"
        return base
