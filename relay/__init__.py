"""
Enrichment Relay – Slack ⇄ Clay

This package houses the web application that watches a Slack channel for
LinkedIn profile links, hands them to Clay for enrichment, and writes Clay's
results back into the Slack thread once Clay calls back.

Routes
------
POST /slack/events     Slack Events API (signed requests only).
POST /clay/callback    Clay results (path configurable via CALLBACK_PATH).
GET  /healthz          Liveness probe.
"""

from typing import Any, Optional
from concurrent.futures import Executor, ThreadPoolExecutor
import json

from flask import Flask, jsonify, request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from werkzeug.middleware.proxy_fix import ProxyFix

from relay import cloud_logging
from relay.cloud_logging import log_text
from relay.config import Settings
from relay.connections.clay_client import ClayClient
from relay.connections.slack_client import SlackChat
from relay.exceptions import AuthError
from relay.inputs.slack import parse_message_event, verify_request
from relay.state import RelayState
from relay.verbs import CallbackResolver, EnrichmentDispatcher

# ---------------------------------------------------------------------------
# Rate limiter – instantiated at module level to avoid circular imports.
# This throttles HTTP clients by IP; per-user enrichment limits live in
# relay.rate_limiter.
# ---------------------------------------------------------------------------

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://",
)

_SLACK_WORKERS = 8

# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app(
    settings: Optional[Settings] = None,
    *,
    logger: Optional[Any] = None,
    chat: Optional[Any] = None,
    enrichment: Optional[Any] = None,
    state: Optional[RelayState] = None,
    executor: Optional[Executor] = None,
    start_sweeper: bool = True,
) -> Flask:
    """Create and configure the Flask application instance.

    Every collaborator can be injected; the defaults build the production
    wiring from *settings* (read from the environment when omitted).  A Google
    Cloud ``logger`` (anything exposing ``log_text``) is installed as the
    process-wide log sink.
    """

    if logger is not None:
        cloud_logging.configure(logger)

    settings = settings or Settings.from_env()
    state = state or RelayState.from_settings(settings)
    chat = chat or SlackChat(settings.slack_bot_token)
    enrichment = enrichment or ClayClient(settings)
    executor = executor or ThreadPoolExecutor(
        max_workers=_SLACK_WORKERS, thread_name_prefix="slack-event"
    )

    dispatcher = EnrichmentDispatcher(settings, state, chat, enrichment)
    resolver = CallbackResolver(settings, state, chat)

    if start_sweeper:
        state.rate_limiter.start_sweeper()

    # ---------------------------------------------------------------------
    # Initialise base Flask app
    # ---------------------------------------------------------------------
    app = Flask(__name__)
    app.config["RATELIMIT_DEFAULT"] = settings.http_rate_limits
    if settings.proxy_hops:
        # Cloud Run and other proxies hide the client address behind X-Forwarded-For.
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=settings.proxy_hops)  # type: ignore[method-assign]

    limiter.init_app(app)

    # ---------------------------------------------------------------------
    # Health check route – required by Cloud Run / load-balancers
    # ---------------------------------------------------------------------
    @app.route("/healthz", methods=["GET"])
    @limiter.exempt
    def health_check():  # type: ignore[return-value]
        """Light-weight liveness probe endpoint."""
        return "ok", 200

    # ---------------------------------------------------------------------
    # Slack Events API
    # ---------------------------------------------------------------------
    @app.route("/slack/events", methods=["POST"])
    def slack_events():  # type: ignore[return-value]
        body = request.get_data()
        try:
            verify_request(settings.slack_signing_secret, body, request.headers)
        except AuthError as exc:
            log_text(f"Rejected Slack request: {exc}", severity="WARNING")
            return "Unauthorized", 401

        try:
            envelope = json.loads(body or b"{}")
        except ValueError:
            return "Bad Request", 400
        if not isinstance(envelope, dict):
            return "Bad Request", 400

        if envelope.get("type") == "url_verification":
            return jsonify({"challenge": envelope.get("challenge")}), 200

        if envelope.get("type") == "event_callback":
            message = parse_message_event(envelope.get("event") or {})
            if message is not None:
                # Slack redelivers after timeouts, connection failures and
                # non-2xx answers; only a delivery already seen is dropped.
                event_key = envelope.get("event_id") or f"{message.channel}:{message.ts}"
                if not state.recent_events.first_sighting(str(event_key)):
                    log_text(
                        f"Ignoring duplicate Slack delivery {event_key} "
                        f"(retry {request.headers.get('X-Slack-Retry-Num', '0')}).",
                        severity="INFO",
                    )
                    return "", 200
                # Ack within Slack's 3s budget; the dispatcher is its own error boundary.
                executor.submit(dispatcher.handle, message)

        return "", 200

    # ---------------------------------------------------------------------
    # Clay callback
    # ---------------------------------------------------------------------
    @app.route(settings.callback_path, methods=["POST"])
    @limiter.exempt
    def clay_callback():  # type: ignore[return-value]
        payload = request.get_json(silent=True)
        outcome = resolver.handle(payload)
        return outcome.body, outcome.status, {"Content-Type": "text/plain; charset=utf-8"}

    # ---------------------------------------------------------------------
    # Rate-limit error handler – converts 429 into JSON response & structured log
    # ---------------------------------------------------------------------
    @app.errorhandler(429)  # type: ignore[arg-type]
    def _ratelimit_handler(error):  # noqa: D401 – internal handler
        client_ip = request.remote_addr or "unknown"
        log_text(f"Rate limit exceeded: {error} – IP: {client_ip}", severity="WARNING")
        return (
            jsonify({
                "status": "error",
                "message": "Rate limit exceeded. Please try again later.",
            }),
            429,
        )

    log_text(
        f"Flask application initialised (Clay transport: {settings.transport_mode or 'none'})",
        severity="INFO",
    )
    return app
