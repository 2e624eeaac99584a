"""Bounded producer/consumer buffer for streamed response bodies."""

import queue
import threading

from spotify_remote.logging_config import get_logger, log_with_context

logger = get_logger(__name__)

# Completion marker pushed by the producer after the last chunk
_END_OF_STREAM = object()


class ResponseBuffer:
    """Ordered handoff of body chunks from a producer thread to one consumer.

    The producer calls :meth:`put` for every chunk and :meth:`finish` once
    the body is complete. The consumer calls :meth:`drain` exactly once.
    Draining stops at the completion marker; if no chunk arrives within
    ``inactivity_timeout`` seconds the stream is treated as finished and
    whatever has arrived so far is returned.
    """

    def __init__(self, max_chunks: int = 64, inactivity_timeout: float = 1.0):
        if max_chunks < 1:
            raise ValueError("max_chunks must be at least 1")
        if inactivity_timeout <= 0:
            raise ValueError("inactivity_timeout must be positive")
        self._queue: queue.Queue = queue.Queue(maxsize=max_chunks)
        self._inactivity_timeout = inactivity_timeout
        self._closed = threading.Event()
        self._timed_out = False

    @property
    def closed(self) -> bool:
        """True once the consumer has finished draining."""
        return self._closed.is_set()

    @property
    def timed_out(self) -> bool:
        """True if the drain ended on the inactivity timeout."""
        return self._timed_out

    def put(self, chunk: bytes, timeout: float | None = None) -> bool:
        """Queue a chunk for the consumer.

        Args:
            chunk: Body bytes in transmission order
            timeout: Max seconds to wait for free space (defaults to the inactivity timeout)

        Returns:
            False if the consumer is gone or the buffer stayed full.
        """
        if self._closed.is_set():
            return False
        if not chunk:
            return True
        try:
            self._queue.put(bytes(chunk), timeout=self._inactivity_timeout if timeout is None else timeout)
        except queue.Full:
            log_with_context(
                logger,
                "error",
                "Response buffer full, dropping chunk",
                chunk_size=len(chunk),
                event_type="response_buffer_overflow",
            )
            return False
        return True

    def finish(self) -> None:
        """Signal that the producer has delivered the whole body."""
        if self._closed.is_set():
            return
        try:
            self._queue.put(_END_OF_STREAM, timeout=self._inactivity_timeout)
        except queue.Full:
            # Consumer falls back to the inactivity timeout
            pass

    def close(self) -> None:
        """Stop accepting chunks; the producer sees put() return False."""
        self._closed.set()

    def drain(self) -> bytes:
        """Block until the body is complete and return it.

        Returns:
            Concatenated chunks in the order they were produced.
        """
        parts: list[bytes] = []
        try:
            while True:
                try:
                    item = self._queue.get(timeout=self._inactivity_timeout)
                except queue.Empty:
                    self._timed_out = True
                    log_with_context(
                        logger,
                        "warning",
                        "No data within inactivity timeout, treating stream as finished",
                        chunks=len(parts),
                        timeout=self._inactivity_timeout,
                        event_type="response_inactivity_timeout",
                    )
                    break
                if item is _END_OF_STREAM:
                    break
                parts.append(item)
        finally:
            self._closed.set()
        return b"".join(parts)
