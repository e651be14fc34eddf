import sys
from concurrent.futures import Executor, Future
from pathlib import Path

import pytest

# Ensure the repository root (parent directory of this file) is on the import path.
# This allows test modules to do `import relay...` even when pytest is executed from
# a sub-directory or when the working directory is not the project root.
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from relay.config import Settings  # noqa: E402
from relay.exceptions import ConfigurationError, TransportError  # noqa: E402
from relay.rate_limiter import RateLimiter  # noqa: E402
from relay.state import RelayState  # noqa: E402

SECRET = "s3cret-token"


# ---------------------------------------------------------------------------
# Fakes for the external capabilities
# ---------------------------------------------------------------------------


class FakeChat:
    """Records every Slack call; placeholder ts values are handed out in order."""

    def __init__(self):
        self.posts: list[dict] = []
        self.updates: list[dict] = []
        self.ephemerals: list[dict] = []
        self.fail_updates = False
        self._next_ts = 1000

    def post_message(self, channel, text, *, thread_ts=None):
        self._next_ts += 1
        ts = f"{self._next_ts}.000100"
        self.posts.append({"channel": channel, "text": text, "thread_ts": thread_ts, "ts": ts})
        return ts

    def update_message(self, channel, ts, text):
        if self.fail_updates:
            raise TransportError("Slack chat.update failed", status_code=500)
        self.updates.append({"channel": channel, "ts": ts, "text": text})

    def post_ephemeral(self, channel, user, text):
        self.ephemerals.append({"channel": channel, "user": user, "text": text})


class FakeEnrichment:
    """Returns queued row ids (``None`` when the queue is empty)."""

    def __init__(self, row_ids=None, error=None):
        self.jobs = []
        self._row_ids = list(row_ids or [])
        self.error = error

    def submit(self, job):
        self.jobs.append(job)
        if self.error is not None:
            raise self.error
        return self._row_ids.pop(0) if self._row_ids else None


class ManualClock:
    """Millisecond clock advanced explicitly by tests."""

    def __init__(self, start=1_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


class InlineExecutor(Executor):
    """Runs submitted work immediately so HTTP tests can assert on side effects."""

    def submit(self, fn, /, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as exc:  # pragma: no cover – surfaced through the future
            future.set_exception(exc)
        return future


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return Settings(
        slack_bot_token="xoxb-test",
        slack_signing_secret="signing-secret",
        allowed_channel="C-ENRICH",
        clay_webhook_url="https://clay.example/webhook",
        callback_secret=SECRET,
        public_base_url="https://relay.example",
    )


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def state(settings, clock) -> RelayState:
    return RelayState(
        rate_limiter=RateLimiter(
            limit=settings.rate_limit_per_window,
            window_ms=settings.rate_limit_window_ms,
            clock=clock,
        )
    )


@pytest.fixture
def chat() -> FakeChat:
    return FakeChat()


@pytest.fixture
def enrichment() -> FakeEnrichment:
    return FakeEnrichment(row_ids=["row-1"])


@pytest.fixture
def unconfigured_enrichment() -> FakeEnrichment:
    return FakeEnrichment(
        error=ConfigurationError(
            "Clay configuration missing. Please set CLAY_WEBHOOK_URL or CLAY_API_BASE+CLAY_API_KEY."
        )
    )
