"""verbs.py – The two actions the relay performs

``EnrichmentDispatcher``
    Slack message → rate limit → trigger check → placeholder reply → Clay job →
    correlation entry.

``CallbackResolver``
    Clay callback → token check → locate the Slack message → overwrite the
    placeholder with the results → retire the correlation entry.

Both verbs receive their collaborators explicitly (chat capability, Clay
client, :class:`relay.state.RelayState`) so tests can swap in fakes and a fresh
state per test.

Failure policy
--------------
The dispatcher never raises: every failure is logged and the user is left
with the placeholder (or an edited configuration notice).  The resolver maps
failures onto HTTP statuses: ``401`` for a bad token, ``500`` when Slack could
not be updated (Clay retries those), and ``200`` for everything else, including
callbacks that can no longer be matched, so Clay does not retry forever.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol, Tuple

from relay.cloud_logging import log_text
from relay.config import Settings
from relay.connections.clay_client import EnrichmentJob
from relay.correlation import CorrelationEntry, fallback_key
from relay.exceptions import ConfigurationError, TransportError
from relay.helper_functions import format_results
from relay.inputs.slack import InboundMessage
from relay.state import RelayState
from relay.trigger import detect

__all__ = [
    "CallbackOutcome",
    "CallbackResolver",
    "ChatCapability",
    "EnrichmentCapability",
    "EnrichmentDispatcher",
    "MISSING_VALUE",
    "NO_TRACKED_ENTRY",
]

MISSING_VALUE = "—"
NO_TRACKED_ENTRY = "No tracker/channel/ts; bot may have restarted."


class ChatCapability(Protocol):
    def post_message(self, channel: str, text: str, *, thread_ts: Optional[str] = None) -> str: ...

    def update_message(self, channel: str, ts: str, text: str) -> None: ...

    def post_ephemeral(self, channel: str, user: str, text: str) -> None: ...


class EnrichmentCapability(Protocol):
    def submit(self, job: EnrichmentJob) -> Optional[str]: ...


# ---------------------------------------------------------------------------
# Enrichment dispatch
# ---------------------------------------------------------------------------


class EnrichmentDispatcher:
    """Turn a watched-channel Slack message into a Clay enrichment request.

    Parameters
    ----------
    settings : Settings
        Supplies the watched channel, trigger keyword and callback URL.
    state : RelayState
        Rate limiter consulted per user; correlation store written on submit.
    chat : ChatCapability
        Posts the threaded placeholder and the rate-limit notice.
    enrichment : EnrichmentCapability
        Submits the job to Clay and may return a row id.
    """

    def __init__(
        self,
        settings: Settings,
        state: RelayState,
        chat: ChatCapability,
        enrichment: EnrichmentCapability,
    ) -> None:
        self._settings = settings
        self._state = state
        self._chat = chat
        self._enrichment = enrichment

    def handle(self, message: InboundMessage) -> None:
        """Process one Slack message; failures are logged, never raised."""
        try:
            self._handle(message)
        except TransportError as exc:
            log_text(f"Enrichment handler error: {exc}", severity="ERROR")
        except Exception as exc:  # noqa: BLE001 – one message must not break ingestion
            log_text(
                f"Unexpected enrichment handler error: {type(exc).__name__}: {exc}",
                severity="ERROR",
            )

    def _handle(self, message: InboundMessage) -> None:
        if not message.text:
            return
        allowed = self._settings.allowed_channel
        if allowed and message.channel != allowed:
            return
        if not message.user:
            return

        limiter = self._state.rate_limiter
        if not limiter.admit(message.user):
            log_text(f"Rate limit hit for user {message.user}.", severity="INFO")
            self._chat.post_ephemeral(
                message.channel,
                message.user,
                f"⏳ Rate limit: max {limiter.limit} per {limiter.window_seconds}s. Try again soon.",
            )
            return

        match = detect(message.text, self._settings.enrich_keyword)
        if not match.qualifies:
            return
        url = match.url

        placeholder_ts = self._chat.post_message(
            message.channel,
            f"Enriching {url} … one sec.",
            thread_ts=message.ts,
        )

        job = EnrichmentJob(
            linkedin_url=url,
            slack_channel=message.channel,
            slack_message_ts=placeholder_ts,
            callback_url=self._settings.callback_url,
            callback_token=self._settings.callback_secret,
        )
        try:
            row_id = self._enrichment.submit(job)
        except ConfigurationError as exc:
            log_text(str(exc), severity="ERROR")
            self._chat.update_message(message.channel, placeholder_ts, str(exc))
            return

        key = row_id or fallback_key(message.channel, placeholder_ts)
        self._state.store.put(
            key,
            CorrelationEntry(
                key=key,
                channel=message.channel,
                thread_ts=message.ts,
                message_ts=placeholder_ts,
                subject_url=url,
            ),
        )
        log_text(f"Enrichment submitted for {url} (key {key}).", severity="INFO")


# ---------------------------------------------------------------------------
# Callback resolution
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CallbackOutcome:
    status: int
    body: str


def _pick(payload: Mapping[str, Any], fields: Mapping[str, Any], name: str) -> Any:
    return payload.get(name) or fields.get(name)


class CallbackResolver:
    """Write a Clay callback's results into the placeholder it belongs to.

    The placeholder is located from the payload's ``channel``/``message_ts``,
    then by ``row_id`` in the correlation store, and finally (when enabled) by
    the single-flight fallback.

    Parameters
    ----------
    settings : Settings
        Supplies the callback secret and the fallback toggle.
    state : RelayState
        Correlation store entries are looked up and removed here.
    chat : ChatCapability
        Edits the placeholder message with the formatted results.
    """

    def __init__(self, settings: Settings, state: RelayState, chat: ChatCapability) -> None:
        self._settings = settings
        self._state = state
        self._chat = chat

    def handle(self, payload: Optional[Mapping[str, Any]]) -> CallbackOutcome:
        if not isinstance(payload, Mapping):
            payload = {}

        secret = self._settings.callback_secret
        if not secret or payload.get("callback_token") != secret:
            log_text("Rejected Clay callback with an invalid token.", severity="WARNING")
            return CallbackOutcome(401, "Unauthorized")

        try:
            return self._resolve(payload)
        except Exception as exc:  # noqa: BLE001 – reported to Clay as 500 so it retries
            log_text(f"Callback error: {type(exc).__name__}: {exc}", severity="ERROR")
            return CallbackOutcome(500, "error")

    def _resolve(self, payload: Mapping[str, Any]) -> CallbackOutcome:
        fields = payload.get("fields")
        if not isinstance(fields, Mapping):
            fields = {}

        email = _pick(payload, fields, "email") or MISSING_VALUE
        phone = _pick(payload, fields, "phone") or MISSING_VALUE
        row_id = payload.get("row_id")
        row_id = str(row_id) if row_id not in (None, "") else None
        store = self._state.store

        # (a) Clay echoed the Slack location: works without any tracked state.
        direct = self._direct_target(payload)
        if direct is not None:
            channel, ts = direct
            url = _pick(payload, fields, "linkedin_url") or ""
            self._chat.update_message(channel, ts, format_results(url, email, phone))
            if row_id:
                store.delete(row_id)
            log_text(f"Callback resolved directly to {channel}:{ts}.", severity="INFO")
            return CallbackOutcome(200, "ok")

        # (b) tracked row id, (c) any pending entry.
        key = row_id if row_id and row_id in store else self._single_flight_fallback()
        entry: Optional[CorrelationEntry] = store.get(key) if key else None
        if entry is None:
            log_text(
                f"Callback for row {row_id or '<none>'} matched no tracked entry.",
                severity="WARNING",
            )
            return CallbackOutcome(200, NO_TRACKED_ENTRY)

        self._chat.update_message(
            entry.channel,
            entry.message_ts,
            format_results(entry.subject_url, email, phone),
        )
        store.delete(key)
        log_text(f"Callback resolved via tracked entry {key}.", severity="INFO")
        return CallbackOutcome(200, "ok")

    @staticmethod
    def _direct_target(payload: Mapping[str, Any]) -> Optional[Tuple[str, str]]:
        channel = payload.get("channel") or payload.get("slack_channel")
        ts = payload.get("message_ts") or payload.get("slack_message_ts")
        if channel and ts:
            return str(channel), str(ts)
        return None

    def _single_flight_fallback(self) -> Optional[str]:
        """Best-effort single-flight fallback: pick *any* pending entry.

        Only correct while at most one enrichment is outstanding; with several
        in flight a result may land on the wrong placeholder.  Disable with
        ``SINGLE_FLIGHT_FALLBACK=false``.
        """
        if not self._settings.single_flight_fallback:
            return None
        return self._state.store.first_key()
