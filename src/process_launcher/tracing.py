"""Diagnostic trace sink and the tracing stream listener."""

from __future__ import annotations

import logging

from .runtime.streams import StreamListener

__all__ = ["TraceSink", "TracingStreamListener", "StreamListener"]

TRACE_LOGGER_NAME = "process_launcher.trace"


class TraceSink:
    """Trace and log sink backed by the ``logging`` module.

    ``trace()`` only emits when tracing is enabled. Handler failures are
    handled by ``logging`` itself and never reach the caller.

    Attributes:
        enabled: Whether trace() messages are emitted
    """

    def __init__(self, enabled: bool = False, logger: logging.Logger | None = None) -> None:
        self.enabled = enabled
        self._logger = logger or logging.getLogger(TRACE_LOGGER_NAME)

    def trace(self, message: str) -> None:
        if self.enabled:
            self._logger.debug(message)

    def log(self, level: int, message: str, exc: BaseException | None = None) -> None:
        self._logger.log(level, message, exc_info=exc)


class TracingStreamListener:
    """Listener wrapper that traces every chunk before forwarding it.

    The wrapped listener may be None, in which case the chunk is only traced.
    """

    def __init__(
        self,
        listener: StreamListener | None,
        sink: TraceSink,
        stream_name: str = "out",
    ) -> None:
        self.listener = listener
        self.stream_name = stream_name
        self._sink = sink

    def __call__(self, text: str) -> None:
        if not text:
            return
        self._sink.trace(f"[{self.stream_name}] {text}")
        if self.listener is not None:
            self.listener(text)

    def __repr__(self) -> str:
        return f"TracingStreamListener(stream={self.stream_name}, listener={self.listener!r})"
