"""Tests for stopping the SSE stream when the client goes away."""

import pytest

from proxy.sse import stream_events
from responses_compat import EventTranslator


class _Request:
    """Reports a disconnect once ``connected_checks`` checks have passed"""

    def __init__(self, connected_checks):
        self.connected_checks = connected_checks
        self.checks = 0

    async def is_disconnected(self):
        self.checks += 1
        return self.checks > self.connected_checks


class _Events:
    """Async iterator over translator events that records being closed"""

    def __init__(self, records):
        self._records = iter(records)
        self.pulled = 0
        self.closed = False

    def __aiter__(self):
        return self

    async def __anext__(self):
        try:
            record = next(self._records)
        except StopIteration:
            raise StopAsyncIteration
        self.pulled += 1
        return record

    async def aclose(self):
        self.closed = True


class _Tracer:
    def __init__(self):
        self.frames = []
        self.closed = False

    def log_emitted_frame(self, frame):
        self.frames.append(frame)

    def close(self):
        self.closed = True


def _records():
    content = [{"type": "text", "text": text} for text in ("a", "b", "c")]
    return list(EventTranslator().translate({"content": content}))


async def _collect(request, events, tracer=None):
    return [frame async for frame in stream_events(request, events, "req1", tracer)]


class TestClientDisconnect:
    @pytest.mark.asyncio
    async def test_stops_writing_after_disconnect(self):
        records = _records()
        events = _Events(records)
        tracer = _Tracer()

        frames = await _collect(_Request(connected_checks=2), events, tracer)

        assert len(frames) == 2
        assert frames[0].startswith("event: response.created\n")
        assert events.pulled == 3
        assert events.pulled < len(records)
        assert events.closed
        assert tracer.closed
        assert tracer.frames == frames

    @pytest.mark.asyncio
    async def test_disconnect_before_first_event(self):
        events = _Events(_records())
        tracer = _Tracer()

        assert await _collect(_Request(connected_checks=0), events, tracer) == []
        assert events.closed
        assert tracer.closed

    @pytest.mark.asyncio
    async def test_connected_client_gets_every_event(self):
        records = _records()
        events = _Events(records)

        frames = await _collect(_Request(connected_checks=len(records) + 1), events)

        assert len(frames) == len(records)
        assert frames[-1].startswith("event: response.completed\n")
        assert events.closed
