"""Streaming pump: compose output as an async sequence of OutputLine."""

import asyncio
import logging

from .output import OutputLine, classify_line

logger = logging.getLogger(__name__)

STREAM_TIMEOUT = 30.0


class StreamingPump:
    """Async iterator over one ComposeStream.

    Every line is awaited with a per-line timeout. Iteration ends after
    exactly one terminal line: COMPLETE when the producer finishes or closes
    the channel, FATAL on a critical error or when the timeout expires. The
    pump cannot be restarted; once finished it only raises StopAsyncIteration.
    """

    def __init__(self, stream, timeout: float = STREAM_TIMEOUT):
        self.stream = stream
        self.timeout = timeout
        self._started = False
        self._finished = False

    @property
    def finished(self) -> bool:
        return self._finished

    def __aiter__(self) -> "StreamingPump":
        return self

    async def __anext__(self) -> OutputLine:
        if self._finished:
            raise StopAsyncIteration

        if not self._started:
            self._started = True
            await self.stream.start()

        try:
            text = await asyncio.wait_for(self.stream.get(), self.timeout)
        except asyncio.TimeoutError:
            logger.warning("No compose output for %ss, giving up on stream", self.timeout)
            self._finish()
            return OutputLine.fatal(
                f"ERROR: Timed out waiting for output after {self.timeout:g}s"
            )

        if text is None:
            self._finish()
            return OutputLine.complete()

        line = classify_line(text)
        if line.is_terminal:
            self._finish()
        return line

    def _finish(self) -> None:
        self._finished = True
        self.stream.detach()
