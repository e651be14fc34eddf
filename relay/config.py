"""config.py – Environment-driven settings

All knobs are read from the process environment (``main_driver`` loads a local
``.env`` first).  Secrets can alternatively live in Google Secret Manager: when
``<NAME>`` is unset but ``<NAME>_SECRET_ID`` is set, the value is fetched from
the project in ``GOOGLE_CLOUD_PROJECT``.

Variables
---------
SLACK_BOT_TOKEN, SLACK_SIGNING_SECRET      Slack app credentials.
ALLOWED_CHANNEL                            Only react in this channel (optional).
CLAY_WEBHOOK_URL                           Webhook transport (checked first).
CLAY_API_BASE, CLAY_API_KEY                Direct API transport; the key is also
                                           sent as bearer token to the webhook.
BOT_CALLBACK_SECRET                        Token Clay must echo in callbacks.
PUBLIC_BASE_URL                            Externally reachable base URL.
ENRICH_KEYWORD                             Trigger keyword (default ``enrich``).
RATE_LIMIT_PER_MIN, RATE_LIMIT_WINDOW_MS   Per-user limit (default 1 per 60000ms).
CALLBACK_PATH                              Callback route (default ``/clay/callback``).
SINGLE_FLIGHT_FALLBACK                     Resolve id-less callbacks to any pending
                                           entry (default ``true``).
HTTP_RATE_LIMITS                           flask-limiter defaults for the routes.
PORT                                       Listen port (default 3000).
TRUSTED_PROXY_HOPS                         Proxies in front of the app whose
                                           X-Forwarded-For is trusted (default 0).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Optional, Tuple
import os

from relay.exceptions import ConfigurationError

__all__ = [
    "Settings",
]

_SECRET_NAMES: Tuple[str, ...] = (
    "SLACK_BOT_TOKEN",
    "SLACK_SIGNING_SECRET",
    "CLAY_API_KEY",
    "BOT_CALLBACK_SECRET",
)

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _as_int(
    env: Mapping[str, str], name: str, default: int, *, minimum: Optional[int] = None
) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw.strip(), 10)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc
    if minimum is not None and value < minimum:
        raise ConfigurationError(f"{name} must be at least {minimum}, got {value}")
    return value


def _as_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    slack_bot_token: Optional[str] = None
    slack_signing_secret: Optional[str] = None
    allowed_channel: Optional[str] = None
    clay_webhook_url: Optional[str] = None
    clay_api_base: Optional[str] = None
    clay_api_key: Optional[str] = None
    callback_secret: Optional[str] = None
    public_base_url: str = ""
    enrich_keyword: str = "enrich"
    rate_limit_per_window: int = 1
    rate_limit_window_ms: int = 60_000
    callback_path: str = "/clay/callback"
    single_flight_fallback: bool = True
    http_rate_limits: str = "600 per minute"
    port: int = 3000
    proxy_hops: int = 0

    # ------------------------------------------------------------------

    @classmethod
    def from_env(
        cls,
        env: Optional[Mapping[str, str]] = None,
        *,
        secret_fetcher: Optional[Callable[[str, str], str]] = None,
    ) -> "Settings":
        """Build settings from *env* (defaults to ``os.environ``)."""
        source: Dict[str, str] = dict(os.environ if env is None else env)
        _resolve_secrets(source, secret_fetcher)

        def text(name: str) -> Optional[str]:
            value = source.get(name)
            return value.strip() if value and value.strip() else None

        callback_path = text("CALLBACK_PATH") or "/clay/callback"
        if not callback_path.startswith("/"):
            callback_path = "/" + callback_path

        return cls(
            slack_bot_token=text("SLACK_BOT_TOKEN"),
            slack_signing_secret=text("SLACK_SIGNING_SECRET"),
            allowed_channel=text("ALLOWED_CHANNEL"),
            clay_webhook_url=text("CLAY_WEBHOOK_URL"),
            clay_api_base=text("CLAY_API_BASE"),
            clay_api_key=text("CLAY_API_KEY"),
            callback_secret=text("BOT_CALLBACK_SECRET"),
            public_base_url=(text("PUBLIC_BASE_URL") or "").rstrip("/"),
            enrich_keyword=source.get("ENRICH_KEYWORD", "enrich"),
            rate_limit_per_window=_as_int(source, "RATE_LIMIT_PER_MIN", 1, minimum=1),
            rate_limit_window_ms=_as_int(source, "RATE_LIMIT_WINDOW_MS", 60_000, minimum=1),
            callback_path=callback_path,
            single_flight_fallback=_as_bool(source, "SINGLE_FLIGHT_FALLBACK", True),
            http_rate_limits=text("HTTP_RATE_LIMITS") or "600 per minute",
            port=_as_int(source, "PORT", 3000),
            proxy_hops=_as_int(source, "TRUSTED_PROXY_HOPS", 0, minimum=0),
        )

    # ------------------------------------------------------------------

    @property
    def callback_url(self) -> str:
        return f"{self.public_base_url}{self.callback_path}"

    @property
    def transport_mode(self) -> Optional[str]:
        """``"webhook"``, ``"api"`` or ``None`` when Clay is not configured."""
        if self.clay_webhook_url:
            return "webhook"
        if self.clay_api_base and self.clay_api_key:
            return "api"
        return None

    def require(self, *fields: str) -> None:
        """Raise :class:`ConfigurationError` listing every unset *field*."""
        missing = [name for name in fields if not getattr(self, name)]
        if missing:
            raise ConfigurationError(f"Missing required settings: {', '.join(missing)}")


def _resolve_secrets(
    source: Dict[str, str],
    secret_fetcher: Optional[Callable[[str, str], str]],
) -> None:
    """Fill unset secrets from Secret Manager where ``<NAME>_SECRET_ID`` is given."""
    wanted = {
        name: source[f"{name}_SECRET_ID"]
        for name in _SECRET_NAMES
        if not source.get(name) and source.get(f"{name}_SECRET_ID")
    }
    if not wanted:
        return

    project_id = source.get("GOOGLE_CLOUD_PROJECT")
    if not project_id:
        raise ConfigurationError(
            "GOOGLE_CLOUD_PROJECT must be set to resolve secrets from Secret Manager"
        )
    if secret_fetcher is None:
        from relay.helper_functions import get_secret_value

        secret_fetcher = get_secret_value

    for name, secret_id in wanted.items():
        source[name] = secret_fetcher(project_id, secret_id)
