"""HttpSyncUploader against a mocked transport."""

from __future__ import annotations

import json
import logging

import httpx
import pytest

from kestrel.contracts import EventMeta, EventSource, freeze
from kestrel.sync import (
    HttpSyncUploader,
    SyncUploadError,
    SyncUploaderConfig,
    encode_offline_batch,
)

URL = "https://sync.example/v1/events"

EVENTS = [
    (
        freeze({"sleep": {"hrv": 41.0, "duration": 6.5}}),
        EventMeta("HRV_MEASURED", source=EventSource.SYNC, timestamp=100.0),
    ),
    (
        freeze({"notifications": ["logged offline"]}),
        EventMeta("NOTE", timestamp=101.5, trigger_orchestrator=False),
    ),
]


def _uploader(handler, **config) -> HttpSyncUploader:
    transport = httpx.MockTransport(handler)
    return HttpSyncUploader(
        SyncUploaderConfig(url=URL, **config),
        client=httpx.AsyncClient(transport=transport),
    )


def test_encode_offline_batch():
    assert encode_offline_batch(EVENTS) == [
        {
            "event_type": "HRV_MEASURED",
            "source": "sync",
            "timestamp": 100.0,
            "changes": {"sleep": {"hrv": 41.0, "duration": 6.5}},
        },
        {
            "event_type": "NOTE",
            "source": "user",
            "timestamp": 101.5,
            "changes": {"notifications": ["logged offline"]},
        },
    ]


@pytest.mark.asyncio
async def test_batch_is_posted_in_order(caplog):
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"accepted": 2})

    with caplog.at_level(logging.INFO, logger="kestrel.sync.uploader"):
        await _uploader(handler, api_key="secret")(EVENTS)

    (request,) = seen
    assert request.method == "POST"
    assert str(request.url) == URL
    assert request.headers["Authorization"] == "Bearer secret"
    body = json.loads(request.content)
    assert [e["event_type"] for e in body["events"]] == ["HRV_MEASURED", "NOTE"]
    assert "Uploaded 2 offline events" in caplog.text


@pytest.mark.asyncio
async def test_no_authorization_without_key():
    def handler(request: httpx.Request) -> httpx.Response:
        assert "Authorization" not in request.headers
        return httpx.Response(204)

    await _uploader(handler)(EVENTS)


@pytest.mark.asyncio
async def test_empty_batch_sends_nothing():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    await _uploader(handler)([])


@pytest.mark.asyncio
async def test_server_error_raises(caplog):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="database unavailable")

    with caplog.at_level(logging.ERROR, logger="kestrel.sync.uploader"):
        with pytest.raises(SyncUploadError, match="500"):
            await _uploader(handler)(EVENTS)
    assert "database unavailable" in caplog.text


@pytest.mark.asyncio
async def test_transport_error_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(SyncUploadError, match="transport error"):
        await _uploader(handler)(EVENTS)


@pytest.mark.asyncio
async def test_close_keeps_injected_client_open():
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
    uploader = HttpSyncUploader(SyncUploaderConfig(url=URL), client=client)

    await uploader.close()

    assert not client.is_closed
    await client.aclose()
