"""Stream monitors for subprocess stdout/stderr.

Each StreamMonitor drains one pipe on a daemon thread, keeps everything it
has read in a buffer and forwards each decoded chunk to its listeners.
Appending to the buffer, notifying listeners and attaching a listener with
replay all happen under one lock, so a listener attached late receives the
earlier output exactly once and before any later chunk.
"""

from __future__ import annotations

import codecs
import logging
import threading
from typing import IO, Callable

__all__ = ["StreamListener", "StreamMonitor"]

logger = logging.getLogger(__name__)

StreamListener = Callable[[str], None]

READ_CHUNK_SIZE = 4096


class StreamMonitor:
    """Buffered, listener-driven reader for one process stream.

    Attributes:
        name: Stream name used in logs ("stdout"/"stderr")
    """

    def __init__(
        self,
        stream: IO[bytes] | None,
        name: str = "stdout",
        encoding: str = "utf-8",
    ) -> None:
        self.name = name
        self._stream = stream
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._lock = threading.RLock()
        self._buffer: list[str] = []
        self._listeners: list[StreamListener] = []
        self._closed = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        """Start the reader thread. A monitor without a stream is closed at once."""
        if self._stream is None:
            self._closed.set()
            return
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._read_loop,
            name=f"stream-monitor-{self.name}",
            daemon=True,
        )
        self._thread.start()

    def add_listener(self, listener: StreamListener, replay: bool = False) -> None:
        """Attach a listener.

        Args:
            listener: Callable receiving each new chunk of text
            replay: Deliver the contents buffered so far to the listener
                before any further chunk (ignored if already attached)
        """
        with self._lock:
            if listener in self._listeners:
                return
            self._listeners.append(listener)
            if replay:
                contents = "".join(self._buffer)
                if contents:
                    self._notify_one(listener, contents)

    def remove_listener(self, listener: StreamListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    @property
    def contents(self) -> str:
        """Everything read from the stream so far."""
        with self._lock:
            return "".join(self._buffer)

    def get_buffered_contents(self) -> str:
        return self.contents

    @property
    def is_closed(self) -> bool:
        return self._closed.is_set()

    def wait_closed(self, timeout: float | None = None) -> bool:
        """Wait until the stream reaches EOF.

        Returns:
            True if the stream is closed
        """
        return self._closed.wait(timeout)

    def _read_loop(self) -> None:
        stream = self._stream
        if stream is None:
            return
        read = getattr(stream, "read1", stream.read)
        try:
            while True:
                chunk = read(READ_CHUNK_SIZE)
                if not chunk:
                    break
                self._append(self._decoder.decode(chunk))
            self._append(self._decoder.decode(b"", final=True))
        except (OSError, ValueError) as e:
            # Pipe closed underneath us
            logger.debug(f"Stream {self.name} read ended: {e}")
        finally:
            try:
                stream.close()
            except OSError:
                pass
            self._closed.set()

    def _append(self, text: str) -> None:
        if not text:
            return
        with self._lock:
            self._buffer.append(text)
            for listener in list(self._listeners):
                self._notify_one(listener, text)

    def _notify_one(self, listener: StreamListener, text: str) -> None:
        try:
            listener(text)
        except Exception as e:
            logger.warning(f"Error in {self.name} listener {listener!r}: {e}")

    def __repr__(self) -> str:
        return f"StreamMonitor(name={self.name}, closed={self.is_closed})"
