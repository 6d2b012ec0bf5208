"""Unit tests for index page fetching and the poll loop."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import httpx
import pytest

from modindex.errors import DecodeError, ProtocolError, TransportError
from modindex.models import format_since, parse_timestamp
from modindex.steps.index import decode_page, fetch_index_page, poll_index
from modindex.steps.queues import END
from tests.fakes import INDEX_URL, FakeGoServices, index_records

START = datetime(2022, 1, 1, tzinfo=timezone.utc)


def _drain(queue: asyncio.Queue) -> list:
    items = []
    while not queue.empty():
        items.append(queue.get_nowait())
    return items


def test_decode_page_parses_records() -> None:
    body = (
        '{"Path":"golang.org/x/text","Version":"v0.3.0",'
        '"Timestamp":"2019-04-10T19:08:52.997264Z"}\n'
        "\n"
        '{"Path":"github.com/A/b","Version":"v1.0.0-rc.1",'
        '"Timestamp":"2019-04-10T19:08:53.123456789Z"}\n'
    )

    events = decode_page(body)

    assert [e.path for e in events] == ["golang.org/x/text", "github.com/A/b"]
    assert events[1].timestamp == datetime(
        2019, 4, 10, 19, 8, 53, 123456, tzinfo=timezone.utc
    )
    assert events[0].is_prerelease is None


@pytest.mark.parametrize(
    "line",
    [
        "not json",
        "[1, 2]",
        '{"Path":"a","Timestamp":"2019-04-10T19:08:52Z"}',
        '{"Path":"a","Version":"v1.0.0","Timestamp":"yesterday"}',
    ],
)
def test_decode_page_rejects_malformed_records(line) -> None:
    """Malformed lines are fatal, never skipped."""
    with pytest.raises(DecodeError) as excinfo:
        decode_page(
            '{"Path":"a","Version":"v1.0.0","Timestamp":"2019-04-10T19:08:52Z"}\n'
            + line
        )

    assert excinfo.value.line_number == 2


@pytest.mark.asyncio
async def test_fetch_index_page_sends_limit_and_since() -> None:
    services = FakeGoServices(pages=[index_records(0, 3)])
    async with httpx.AsyncClient(
        base_url=INDEX_URL, transport=services.transport()
    ) as client:
        events = await fetch_index_page(client, START, limit=10)

    request = services.index_requests[0]
    assert len(events) == 3
    assert request.url.path == "/index"
    assert request.url.params["limit"] == "10"
    assert request.url.params["since"] == "2022-01-01T00:00:00Z"


@pytest.mark.asyncio
async def test_fetch_index_page_raises_on_bad_status() -> None:
    services = FakeGoServices(pages=[], index_status=503)
    async with httpx.AsyncClient(
        base_url=INDEX_URL, transport=services.transport()
    ) as client:
        with pytest.raises(ProtocolError) as excinfo:
            await fetch_index_page(client, START)

    assert excinfo.value.status_code == 503


@pytest.mark.asyncio
async def test_fetch_index_page_wraps_transport_failures() -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(
        base_url=INDEX_URL, transport=httpx.MockTransport(refuse)
    ) as client:
        with pytest.raises(TransportError):
            await fetch_index_page(client, START)


@pytest.mark.asyncio
async def test_fetch_index_page_rejects_invalid_utf8() -> None:
    """Undecodable bytes fail the page instead of becoming U+FFFD."""
    body = (
        b'{"Path":"example.com/a\xff","Version":"v1.0.0",'
        b'"Timestamp":"2019-04-10T19:08:52Z"}\n'
    )

    def serve(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=body)

    async with httpx.AsyncClient(
        base_url=INDEX_URL, transport=httpx.MockTransport(serve)
    ) as client:
        with pytest.raises(DecodeError):
            await fetch_index_page(client, START)


@pytest.mark.asyncio
async def test_poll_stops_on_short_page() -> None:
    """A page smaller than the limit is the head of the index."""
    services = FakeGoServices(pages=[index_records(0, 3)])
    queue: asyncio.Queue = asyncio.Queue()
    async with httpx.AsyncClient(
        base_url=INDEX_URL, transport=services.transport()
    ) as client:
        stats = await poll_index(client, START, queue, consumers=2, limit=5)

    items = _drain(queue)
    assert len(services.index_requests) == 1
    assert stats.pages == 1
    assert stats.events == 3
    assert stats.cursor == START
    assert items[-2:] == [END, END]
    assert [e.path for e in items[:-2]] == [r["Path"] for r in index_records(0, 3)]


@pytest.mark.asyncio
async def test_poll_continues_from_last_record_of_full_page() -> None:
    """A full page moves the cursor to its last record's timestamp."""
    first_page = index_records(0, 5)
    services = FakeGoServices(pages=[first_page, index_records(5, 2)])
    queue: asyncio.Queue = asyncio.Queue()
    async with httpx.AsyncClient(
        base_url=INDEX_URL, transport=services.transport()
    ) as client:
        stats = await poll_index(client, START, queue, limit=5)

    last_timestamp = parse_timestamp(first_page[-1]["Timestamp"])
    assert len(services.index_requests) == 2
    assert services.since_params[1] == format_since(last_timestamp)
    assert stats.cursor == last_timestamp
    assert stats.events == 7


@pytest.mark.asyncio
async def test_poll_switches_to_precise_since_when_stalled() -> None:
    """A full page inside one second must still advance the cursor."""
    services = FakeGoServices(pages=[index_records(0, 5), index_records(5, 1)])
    start = datetime(2023, 1, 1, tzinfo=timezone.utc)
    queue: asyncio.Queue = asyncio.Queue()
    async with httpx.AsyncClient(
        base_url=INDEX_URL, transport=services.transport()
    ) as client:
        await poll_index(client, start, queue, limit=5)

    assert services.since_params == [
        "2023-01-01T00:00:00Z",
        "2023-01-01T00:00:00.004000Z",
    ]


@pytest.mark.asyncio
async def test_poll_does_not_close_queue_on_error() -> None:
    services = FakeGoServices(pages=[], raw_pages=['{"Path": 1}\n'])
    queue: asyncio.Queue = asyncio.Queue()
    async with httpx.AsyncClient(
        base_url=INDEX_URL, transport=services.transport()
    ) as client:
        with pytest.raises(DecodeError):
            await poll_index(client, START, queue, limit=5)

    assert queue.empty()


@pytest.mark.asyncio
async def test_poll_blocks_on_full_queue() -> None:
    """The bounded queue throttles the poller."""
    services = FakeGoServices(pages=[index_records(0, 3)])
    queue: asyncio.Queue = asyncio.Queue(maxsize=2)
    async with httpx.AsyncClient(
        base_url=INDEX_URL, transport=services.transport()
    ) as client:
        task = asyncio.create_task(poll_index(client, START, queue, limit=5))
        await asyncio.sleep(0.05)
        assert not task.done()
        assert queue.full()

        received = []
        while True:
            item = await queue.get()
            if item is END:
                break
            received.append(item)
        await task

    assert len(received) == 3
