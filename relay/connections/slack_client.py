"""slack_client.py – Outbound Slack Web API calls

Purpose
-------
The relay needs exactly three Slack capabilities: post a (threaded) message,
overwrite a message, and post an ephemeral notice.  :class:`SlackChat` wraps
``slack_sdk.WebClient`` for those and converts every SDK or network failure
into :class:`relay.exceptions.TransportError`, so the verbs only have to deal
with one error type.

Calls use a 15 second timeout.
"""

from __future__ import annotations

from typing import Any, Optional

from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError, SlackClientError

from relay.exceptions import TransportError

__all__ = [
    "SLACK_TIMEOUT_SECONDS",
    "SlackChat",
]

SLACK_TIMEOUT_SECONDS = 15


def _wrap(method: str, exc: Exception) -> TransportError:
    if isinstance(exc, SlackApiError):
        response = exc.response
        return TransportError(
            f"Slack {method} failed",
            status_code=getattr(response, "status_code", None),
            body=getattr(response, "data", None),
        )
    return TransportError(f"Slack {method} failed: {exc}")


class SlackChat:
    """Chat capability backed by the Slack Web API."""

    def __init__(self, token: Optional[str] = None, *, client: Optional[WebClient] = None) -> None:
        self._client = client or WebClient(token=token, timeout=SLACK_TIMEOUT_SECONDS)

    def post_message(self, channel: str, text: str, *, thread_ts: Optional[str] = None) -> str:
        """Post *text* (link previews disabled) and return the new message ``ts``."""
        try:
            response = self._client.chat_postMessage(
                channel=channel,
                thread_ts=thread_ts,
                text=text,
                unfurl_links=False,
                unfurl_media=False,
            )
        except (SlackClientError, OSError) as exc:
            raise _wrap("chat.postMessage", exc) from exc
        ts: Any = response.get("ts")
        if not ts:
            raise TransportError("Slack chat.postMessage returned no ts", body=response.data)
        return str(ts)

    def update_message(self, channel: str, ts: str, text: str) -> None:
        try:
            self._client.chat_update(channel=channel, ts=ts, text=text)
        except (SlackClientError, OSError) as exc:
            raise _wrap("chat.update", exc) from exc

    def post_ephemeral(self, channel: str, user: str, text: str) -> None:
        try:
            self._client.chat_postEphemeral(channel=channel, user=user, text=text)
        except (SlackClientError, OSError) as exc:
            raise _wrap("chat.postEphemeral", exc) from exc
