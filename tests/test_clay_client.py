"""Tests for `relay.connections.clay_client`."""

from __future__ import annotations

from dataclasses import replace

import pytest
import requests

import relay.connections.clay_client as clay_client
from relay.connections.clay_client import ClayClient, EnrichmentJob
from relay.exceptions import ConfigurationError, TransportError


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


@pytest.fixture
def job() -> EnrichmentJob:
    return EnrichmentJob(
        linkedin_url="https://linkedin.com/in/jane-doe",
        slack_channel="C1",
        slack_message_ts="1.1",
        callback_url="https://relay.example/clay/callback",
        callback_token="tok",
    )


class _Calls(list):
    pass


@pytest.fixture
def http(monkeypatch):
    recorded = _Calls()
    recorded.responses = []

    def fake_post(url, json=None, headers=None, timeout=None):
        recorded.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        result = recorded.responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    monkeypatch.setattr(clay_client.requests, "post", fake_post)
    return recorded


@pytest.mark.parametrize(
    "payload, expected",
    [
        ({"id": "r1"}, "r1"),
        ({"row_id": "r2"}, "r2"),
        ({"rowId": 3}, "3"),
        ({"status": "queued"}, None),
        (None, None),
    ],
)
def test_webhook_transport(settings, job, http, payload, expected):
    http.responses.append(FakeResponse(200, payload))

    row_id = ClayClient(settings).submit(job)

    assert row_id == expected
    call = http[0]
    assert call["url"] == "https://clay.example/webhook"
    assert call["json"] == job.as_payload()
    assert call["timeout"] == 30
    assert "Authorization" not in call["headers"]


def test_webhook_sends_bearer_when_key_set(settings, job, http):
    http.responses.append(FakeResponse(200, {"id": "r1"}))
    ClayClient(replace(settings, clay_api_key="k")).submit(job)
    assert http[0]["headers"]["Authorization"] == "Bearer k"


def test_api_transport(settings, job, http):
    http.responses.append(FakeResponse(201, {"id": "row-9"}))
    client = ClayClient(
        replace(settings, clay_webhook_url=None, clay_api_base="https://api.clay.example/v1/", clay_api_key="k")
    )

    assert client.mode == "api"
    assert client.submit(job) == "row-9"
    assert http[0]["url"] == "https://api.clay.example/v1/rows"
    assert http[0]["json"] == {"fields": job.as_payload()}
    assert http[0]["headers"]["Authorization"] == "Bearer k"


def test_api_base_without_key_is_not_a_transport(settings, job, http):
    client = ClayClient(replace(settings, clay_webhook_url=None, clay_api_base="https://api.clay.example"))
    with pytest.raises(ConfigurationError):
        client.submit(job)
    assert len(http) == 0


def test_non_2xx_raises_transport_error(settings, job, http):
    http.responses.append(FakeResponse(502, None, text="bad gateway"))
    with pytest.raises(TransportError) as excinfo:
        ClayClient(settings).submit(job)
    assert excinfo.value.status_code == 502
    assert excinfo.value.body == "bad gateway"


def test_network_error_raises_transport_error(settings, job, http):
    http.responses.append(requests.Timeout("read timed out"))
    with pytest.raises(TransportError):
        ClayClient(settings).submit(job)
