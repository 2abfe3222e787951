"""
Incremental parser for streamed summary output.

The summary service streams newline-delimited JSON records in the
OpenAI chunk shape:

    {"choices": [{"delta": {"content": "Hello"}}]}
    {"choices": [{"delta": {"content": " world"}}]}
    {"choices": [{"finish_reason": "stop"}]}

Network reads do not respect line (or UTF-8 character) boundaries, so
bytes are decoded incrementally and the trailing partial line is kept
for the next read. Garbled lines are dropped; the stream keeps going.
"""

import codecs
import json
import logging
from typing import Any, AsyncIterable, Awaitable, Callable

logger = logging.getLogger(__name__)

STOP_REASON = "stop"

ChunkCallback = Callable[[str], Awaitable[None]]
CompleteCallback = Callable[[str], Awaitable[None]]
ErrorCallback = Callable[[Exception], Awaitable[None]]


def _first_choice(record: Any) -> dict | None:
    """Return choices[0] if the record has the expected shape."""
    if not isinstance(record, dict):
        return None
    choices = record.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    choice = choices[0]
    return choice if isinstance(choice, dict) else None


class StreamSummaryParser:
    """
    Consumes a summary byte stream and reports content increments.

    One parser instance handles one stream; state is kept per consume()
    call, so an instance may be reused sequentially.

    Example:
        parser = StreamSummaryParser()
        await parser.consume(
            response.aiter_bytes(),
            on_chunk=show_delta,
            on_complete=store_summary,
            on_error=report_failure,
        )
    """

    async def consume(
        self,
        byte_stream: AsyncIterable[bytes],
        on_chunk: ChunkCallback,
        on_complete: CompleteCallback,
        on_error: ErrorCallback,
    ) -> None:
        """
        Read the stream until a stop marker, end of data, or a read error.

        Args:
            byte_stream: Async iterable of raw UTF-8 bytes
            on_chunk: Called with each content increment, in stream order
            on_complete: Called once with the full text when the stop
                marker is seen; never called if the stream ends without one
            on_error: Called with the read error if the stream faults
        """
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        buffer = ""
        accumulated: list[str] = []
        lines_seen = 0
        dropped = 0

        async def handle_line(line: str) -> bool:
            """Process one complete line. Returns True on stop marker."""
            nonlocal lines_seen, dropped

            line = line.strip()
            if not line:
                return False
            lines_seen += 1

            try:
                record = json.loads(line)
            except json.JSONDecodeError:
                dropped += 1
                preview = line[:100] + "..." if len(line) > 100 else line
                logger.debug(f"Skipping malformed stream line: {preview}")
                return False

            choice = _first_choice(record)
            if choice is None:
                return False

            delta = choice.get("delta")
            content = delta.get("content") if isinstance(delta, dict) else None
            if isinstance(content, str) and content:
                accumulated.append(content)
                await on_chunk(content)

            if choice.get("finish_reason") == STOP_REASON:
                full_text = "".join(accumulated)
                logger.debug(
                    f"Stop marker received: {len(full_text)} chars, "
                    f"{lines_seen} lines, {dropped} dropped"
                )
                await on_complete(full_text)
                return True

            return False

        iterator = byte_stream.__aiter__()
        try:
            while True:
                try:
                    raw = await iterator.__anext__()
                except StopAsyncIteration:
                    break
                except Exception as e:
                    logger.warning(f"Summary stream read failed: {e}")
                    await on_error(e)
                    return

                buffer += decoder.decode(raw)
                *lines, buffer = buffer.split("\n")
                for line in lines:
                    if await handle_line(line):
                        return

            # End of data: flush decoder and handle a final unterminated line
            buffer += decoder.decode(b"", final=True)
            for line in buffer.split("\n"):
                if await handle_line(line):
                    return

            logger.warning(
                f"Summary stream ended without stop marker "
                f"({len(''.join(accumulated))} chars received)"
            )
        finally:
            aclose = getattr(iterator, "aclose", None)
            if aclose is not None:
                await aclose()
