"""cli.py – Enrichment Relay Command-Line Interface

Operator helpers around the relay, either *locally* (pure functions run
in-process) or *remotely* against a running Flask/Gunicorn server.

Usage examples
--------------
# Does this message trigger enrichment?
$ python -m relay.cli detect "please enrich https://linkedin.com/in/jane-doe"

# Simulate Clay calling back (uses BOT_CALLBACK_SECRET from the environment)
$ python -m relay.cli --api-url http://localhost:3000 callback \\
      --row-id 42 --email a@b.com --phone 555-1234

# Start the server in-process
$ python -m relay.cli serve --port 3000

Environment variables
---------------------
RELAY_API_URL  If set, acts like the --api-url option (handy for scripts).
"""

from __future__ import annotations

from typing import Any, Dict, Optional
import json
import logging

import click
import requests

from relay.config import Settings
from relay.exceptions import ConfigurationError
from relay.trigger import detect

# ---------------------------------------------------------------------------
# HTTP helper (remote execution)
# ---------------------------------------------------------------------------


def _post_json(url: str, payload: Dict[str, Any]) -> requests.Response:
    """POST a JSON payload and return the raw response.

    Non-2xx answers are returned, not raised: a 401 or a diagnostic 200 is
    exactly what an operator wants to see.
    """

    logging.debug("POST %s – payload size: %d bytes", url, len(json.dumps(payload)))
    try:
        return requests.post(url, json=payload, timeout=30)
    except requests.RequestException as exc:
        raise click.ClickException(f"HTTP call failed: {exc}") from exc


# ---------------------------------------------------------------------------
# Click entry-point
# ---------------------------------------------------------------------------


@click.group()
@click.option(
    "--api-url",
    envvar="RELAY_API_URL",
    default=None,
    metavar="URL",
    help="Base URL of a running relay, used by commands that talk to the server.",
)
@click.pass_context
def cli(ctx: click.Context, api_url: Optional[str]):  # noqa: D401 – Click callback
    """Enrichment relay command-line interface."""

    ctx.obj = {"api_url": api_url}


# ---------------------------------------------------------------------------
# `detect` command – trigger check
# ---------------------------------------------------------------------------


@cli.command("detect", help="Check whether TEXT would trigger an enrichment.")
@click.argument("text")
@click.option(
    "-k",
    "--keyword",
    default=None,
    help="Trigger keyword (defaults to ENRICH_KEYWORD or 'enrich').",
)
def detect_command(text: str, keyword: Optional[str]) -> None:
    """Print the extracted profile URL and the verdict."""

    resolved = keyword if keyword is not None else Settings.from_env().enrich_keyword
    match = detect(text, resolved)
    click.echo(f"url: {match.url or '-'}")
    click.echo(f"qualifies: {'yes' if match.qualifies else 'no'}")
    if not match.qualifies:
        raise SystemExit(1)


# ---------------------------------------------------------------------------
# `callback` command – simulate a Clay callback
# ---------------------------------------------------------------------------


@cli.command("callback", help="POST a Clay-style callback to a running relay.")
@click.option("--row-id", default=None, help="Clay row id to resolve.")
@click.option("--channel", default=None, help="Slack channel for direct resolution.")
@click.option("--message-ts", default=None, help="Slack message ts for direct resolution.")
@click.option("--email", default=None)
@click.option("--phone", default=None)
@click.option("--linkedin-url", default=None)
@click.option(
    "--token",
    default=None,
    help="Callback token (defaults to BOT_CALLBACK_SECRET).",
)
@click.pass_context
def callback_command(
    ctx: click.Context,
    row_id: Optional[str],
    channel: Optional[str],
    message_ts: Optional[str],
    email: Optional[str],
    phone: Optional[str],
    linkedin_url: Optional[str],
    token: Optional[str],
) -> None:  # noqa: D401 – Click callback
    """Send the callback and echo the relay's answer."""

    api_url: Optional[str] = ctx.obj.get("api_url") if ctx.obj else None
    if not api_url:
        raise click.UsageError("--api-url (or RELAY_API_URL) is required for this command.")

    settings = Settings.from_env()
    payload: Dict[str, Any] = {
        "callback_token": token if token is not None else settings.callback_secret,
    }
    optional = {
        "row_id": row_id,
        "channel": channel,
        "message_ts": message_ts,
        "email": email,
        "phone": phone,
        "linkedin_url": linkedin_url,
    }
    payload.update({key: value for key, value in optional.items() if value is not None})

    endpoint = api_url.rstrip("/") + settings.callback_path
    response = _post_json(endpoint, payload)
    click.echo(f"{response.status_code} {response.text}")
    if response.status_code >= 400:
        raise SystemExit(1)


# ---------------------------------------------------------------------------
# `serve` command – run the Flask development server
# ---------------------------------------------------------------------------


@cli.command("serve", help="Run the relay with the Flask development server.")
@click.option("--port", type=int, default=None, help="Listen port (defaults to PORT).")
def serve_command(port: Optional[int]) -> None:
    from relay import create_app

    logging.basicConfig(level=logging.INFO)
    settings = Settings.from_env()
    try:
        settings.require("slack_bot_token", "slack_signing_secret", "callback_secret")
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc
    app = create_app(settings)
    app.run(host="0.0.0.0", port=port or settings.port, use_reloader=False)


# ---------------------------------------------------------------------------
# Entry-point shim for `python -m relay.cli`
# ---------------------------------------------------------------------------

if __name__ == "__main__":  # pragma: no cover – manual execution shortcut
    cli()  # pylint: disable=no-value-for-parameter
