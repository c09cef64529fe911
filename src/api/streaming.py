"""Server-sent event framing for streamed assistant replies."""

import logging
from contextlib import aclosing
from typing import AsyncIterator

logger = logging.getLogger(__name__)

COMPLETION_SENTINEL = "[complete]"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no"  # Disable nginx buffering
}


def frame_event(text: str) -> str:
    """Render ``text`` as one SSE event.

    Every line of a multi-line fragment gets its own ``data:`` field so the
    client reassembles the original newlines.
    """
    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    return "".join(f"data: {line}\n" for line in lines) + "\n"


async def stream_events(fragments: AsyncIterator[str]) -> AsyncIterator[str]:
    """Frame each non-empty fragment, then the completion sentinel.

    The sentinel is sent only when ``fragments`` is exhausted normally. An
    upstream error is logged and ends the stream without it, and closing this
    generator closes ``fragments`` too.
    """
    async with aclosing(fragments) as source:
        try:
            async for fragment in source:
                if fragment:
                    yield frame_event(fragment)
        except Exception as e:
            logger.error(f"Stream ended abnormally: {str(e)}")
            return

    yield frame_event(COMPLETION_SENTINEL)
