"""
Tests for StreamSummaryParser.
"""

import pytest

from conftest import content_line, stop_line
from vispark.services.stream_parser import StreamSummaryParser


class Recorder:
    def __init__(self):
        self.chunks: list[str] = []
        self.completed: list[str] = []
        self.errors: list[Exception] = []

    async def on_chunk(self, text):
        self.chunks.append(text)

    async def on_complete(self, text):
        self.completed.append(text)

    async def on_error(self, error):
        self.errors.append(error)


class ByteStream:
    """Async byte iterator recording how far it was read."""

    def __init__(self, *items):
        self.items = list(items)
        self.reads = 0
        self.closed = False

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self.reads >= len(self.items):
            raise StopAsyncIteration
        item = self.items[self.reads]
        self.reads += 1
        if isinstance(item, Exception):
            raise item
        return item

    async def aclose(self):
        self.closed = True


async def consume(*items) -> tuple[Recorder, ByteStream]:
    recorder = Recorder()
    stream = ByteStream(*items)
    await StreamSummaryParser().consume(
        stream, recorder.on_chunk, recorder.on_complete, recorder.on_error
    )
    return recorder, stream


@pytest.mark.asyncio
async def test_malformed_line_is_skipped():
    recorder, _ = await consume(
        b'{"bad json"\n',
        b'{"choices":[{"delta":{"content":"Hello"}}]}\n',
        b'{"choices":[{"delta":{"content":" world"}}]}\n',
        b'{"choices":[{"finish_reason":"stop"}]}\n',
    )

    assert recorder.chunks == ["Hello", " world"]
    assert recorder.completed == ["Hello world"]
    assert recorder.errors == []


@pytest.mark.asyncio
async def test_lines_split_across_reads():
    payload = content_line("Hello") + content_line(" world") + stop_line()
    pieces = [payload[i:i + 7] for i in range(0, len(payload), 7)]

    recorder, _ = await consume(*pieces)

    assert recorder.chunks == ["Hello", " world"]
    assert recorder.completed == ["Hello world"]


@pytest.mark.asyncio
async def test_multibyte_character_split_across_reads():
    line = content_line("café ☕")
    # Split inside the two-byte "é"
    split_at = line.index("é".encode()) + 1

    recorder, _ = await consume(line[:split_at], line[split_at:], stop_line())

    assert recorder.chunks == ["café ☕"]
    assert recorder.completed == ["café ☕"]


@pytest.mark.asyncio
async def test_stop_marker_stops_reading():
    recorder, stream = await consume(
        content_line("Done") + stop_line(),
        content_line("ignored"),
        content_line("also ignored"),
    )

    assert recorder.completed == ["Done"]
    assert recorder.chunks == ["Done"]
    assert stream.reads == 1
    assert stream.closed


@pytest.mark.asyncio
async def test_content_and_stop_in_same_record():
    recorder, _ = await consume(
        b'{"choices":[{"delta":{"content":"All at once"},"finish_reason":"stop"}]}\n'
    )

    assert recorder.chunks == ["All at once"]
    assert recorder.completed == ["All at once"]


@pytest.mark.asyncio
async def test_final_line_without_newline_is_processed():
    recorder, _ = await consume(
        content_line("Tail"),
        b'{"choices":[{"finish_reason":"stop"}]}',
    )

    assert recorder.completed == ["Tail"]


@pytest.mark.asyncio
async def test_end_of_stream_without_stop_does_not_complete():
    recorder, _ = await consume(content_line("Partial"), content_line(" text"))

    assert recorder.chunks == ["Partial", " text"]
    assert recorder.completed == []
    assert recorder.errors == []


@pytest.mark.asyncio
async def test_read_error_is_reported():
    error = ConnectionResetError("connection reset")

    recorder, _ = await consume(content_line("Half"), error, content_line("never"))

    assert recorder.chunks == ["Half"]
    assert recorder.completed == []
    assert recorder.errors == [error]


@pytest.mark.asyncio
async def test_records_without_content_are_ignored():
    recorder, _ = await consume(
        b"\n",
        b"   \n",
        b'{"choices":[]}\n',
        b'{"id":"chunk-1"}\n',
        b'["not", "an", "object"]\n',
        b'{"choices":[{"delta":{"role":"assistant"}}]}\n',
        b'{"choices":[{"delta":{"content":""}}]}\n',
        content_line("Only this"),
        stop_line(),
    )

    assert recorder.chunks == ["Only this"]
    assert recorder.completed == ["Only this"]
    assert recorder.errors == []


@pytest.mark.asyncio
async def test_callback_error_propagates():
    async def failing_chunk(text):
        raise RuntimeError("observer failed")

    recorder = Recorder()
    stream = ByteStream(content_line("x"), stop_line())

    with pytest.raises(RuntimeError, match="observer failed"):
        await StreamSummaryParser().consume(
            stream, failing_chunk, recorder.on_complete, recorder.on_error
        )

    assert recorder.errors == []
    assert stream.closed
