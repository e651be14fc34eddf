"""slack.py – Slack Events API input adapter

Purpose
-------
Turns raw Events API requests into :class:`InboundMessage` records the
dispatcher understands, and verifies that requests really come from Slack.

Key design considerations
-------------------------
1. **Signature verification** – ``X-Slack-Signature`` is checked with
   ``slack_sdk.signature.SignatureVerifier`` (HMAC-SHA256 over the raw body,
   five-minute replay window).
2. **Plain text only** – events with a ``subtype`` (edits, joins, bot posts,
   file shares) or without text are not turned into messages.  This also keeps
   the relay from reacting to its own placeholder replies.
3. **Retries** – Slack re-delivers events it thinks were not acknowledged
   (``X-Slack-Retry-Num``).  The HTTP layer acknowledges those without
   re-processing them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from slack_sdk.signature import SignatureVerifier

from relay.exceptions import AuthError

__all__ = [
    "InboundMessage",
    "parse_message_event",
    "verify_request",
]


@dataclass(frozen=True)
class InboundMessage:
    channel: str
    user: Optional[str]
    ts: str
    text: Optional[str]


def parse_message_event(event: Mapping[str, Any]) -> Optional[InboundMessage]:
    """Return an :class:`InboundMessage` for plain user messages, else ``None``."""

    if event.get("type") != "message":
        return None
    if event.get("subtype") or event.get("bot_id"):
        return None
    if "text" not in event:
        return None

    channel = event.get("channel")
    ts = event.get("ts")
    if not channel or not ts:
        return None

    return InboundMessage(
        channel=str(channel),
        user=event.get("user"),
        ts=str(ts),
        text=event.get("text"),
    )


def verify_request(
    signing_secret: Optional[str],
    body: bytes,
    headers: Mapping[str, str],
) -> None:
    """Raise :class:`AuthError` unless *body* carries a valid Slack signature."""

    if not signing_secret:
        raise AuthError("SLACK_SIGNING_SECRET is not configured")

    verifier = SignatureVerifier(signing_secret=signing_secret)
    if not verifier.is_valid_request(body, dict(headers)):
        raise AuthError("Invalid Slack request signature")
