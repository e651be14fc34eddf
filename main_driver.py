import os
import sys
import logging as pylogging

from dotenv import load_dotenv
from google.cloud import logging

from relay import create_app
from relay.config import Settings

# Local development: pick up a .env file before reading any setting.
load_dotenv()

LOCAL_CREDS = os.getenv("LOCAL_CREDS")

if LOCAL_CREDS is not None:
    os.environ["GOOGLE_APPLICATION_CREDENTIALS"] = LOCAL_CREDS

ENV_NAME = os.getenv("ENV_NAME", "dev")
LOG_NAME = f"{ENV_NAME}_enrichment_relay"

# ---------------------------------------------------------------------------
# Google Cloud Logging – centralised configuration
# ---------------------------------------------------------------------------


class CloudLoggingHandler(pylogging.Handler):
    """Stdlib logging handler that forwards records to Google Cloud Logging."""

    def __init__(self, gcp_logger):  # noqa: D401 – simple pass-through
        super().__init__()
        self._gcp_logger = gcp_logger

    def emit(self, record: pylogging.LogRecord) -> None:  # noqa: D401
        try:
            msg = self.format(record)
            severity = record.levelname.upper()
            self._gcp_logger.log_text(msg, severity=severity)
        except Exception:  # pragma: no cover – never let logging crash the app
            super().handleError(record)


def build_logger():
    """Return a Cloud Logging logger, or ``None`` when running locally.

    Set ``DISABLE_CLOUD_LOGGING`` to log to stderr instead (no GCP credentials
    required).
    """
    root_logger = pylogging.getLogger()
    root_logger.setLevel(pylogging.INFO)

    if os.getenv("DISABLE_CLOUD_LOGGING"):
        pylogging.basicConfig(
            level=pylogging.INFO,
            format="%(asctime)s [%(levelname)s] %(name)s – %(message)s",
        )
        return None

    logging_client = logging.Client()
    gcp_logger = logging_client.logger(LOG_NAME)

    # Attach to the *root* logger so third-party libraries (slack_sdk,
    # werkzeug, gunicorn) are forwarded to GCP as well.
    handler = CloudLoggingHandler(gcp_logger)
    handler.setFormatter(
        pylogging.Formatter("%(asctime)s %(levelname)s %(name)s – %(message)s")
    )
    root_logger.addHandler(handler)
    return gcp_logger


logger = build_logger()

FLASK_ENV = os.getenv("FLASK_ENV", "development").lower()

settings = Settings.from_env()
settings.require("slack_bot_token", "slack_signing_secret", "callback_secret")

PORT = settings.port

app = create_app(settings, logger=logger)


def run_server() -> None:
    """
    Run the appropriate web server based on the environment configuration.

    For production, Gunicorn is configured programmatically.  It runs a
    *single* worker with several threads: correlation entries and rate-limit
    windows live in process memory, so a second worker would not see the
    first worker's pending enrichments.  For development, the Flask server
    runs with debug enabled (and without the reloader, which would start a
    second process).

    Environment Variables
    --------------------
    FLASK_ENV : str
        "production" selects Gunicorn; anything else the Flask dev server.
    PORT : int
        Listen port, defaults to 3000.
    """

    if FLASK_ENV == "production":
        from gunicorn.app.wsgiapp import run

        sys.argv = [
            "gunicorn",
            "main_driver:app",
            "--bind",
            f"0.0.0.0:{PORT}",
            "--workers",
            "1",
            "--threads",
            "8",
            "--timeout",
            "120",
        ]
        run()
    else:
        app.run(host="0.0.0.0", port=PORT, debug=True, use_reloader=False)


if __name__ == "__main__":
    run_server()
