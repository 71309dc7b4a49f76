"""Futures for request/reply messaging, keyed by correlation id."""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, Optional

DEFAULT_EXPIRATION = 300.0

RequestCallback = Callable[[Any, Optional[BaseException]], None]


class ReplyTimeoutError(Exception):
    """Raised when a request was sent but no reply came in time."""


class RequestResponseFuture:
    """Waits for the reply to one request message."""

    def __init__(
        self,
        correlation_id: str,
        timeout: float,
        callback: Optional[RequestCallback] = None,
    ) -> None:
        self.correlation_id = correlation_id
        self.timeout = timeout
        self.request_callback = callback
        self.response_msg: Any = None
        self.send_request_ok = False
        self.cause_err: Optional[BaseException] = None
        self.begin_time = time.monotonic()
        self.done = threading.Event()
        self._lock = threading.Lock()

    def execute_request_callback(self) -> None:
        if self.request_callback is None:
            return
        self.request_callback(self.response_msg, self.cause_err)

    def wait_response_message(self, request_topic: str) -> Any:
        """Block until a reply is put or the timeout passes."""
        if not self.done.wait(self.timeout):
            raise ReplyTimeoutError(
                f"send request message to {request_topic} OK, but wait reply "
                f"message timeout {int(self.timeout * 1000)} ms"
            )
        with self._lock:
            return self.response_msg

    def put_response_message(self, message: Any) -> None:
        with self._lock:
            self.response_msg = message
        self.done.set()

    def is_timeout(self) -> bool:
        return time.monotonic() - self.begin_time > self.timeout


class RequestResponseFutureMap:
    """Expiring map of pending request futures.

    Removing an entry, or purging it once expired, runs its callback; an
    expired future first gets a timeout error as its cause.
    """

    def __init__(
        self,
        default_expiration: float = DEFAULT_EXPIRATION,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._default_expiration = default_expiration
        self._clock = clock
        self._items: dict[str, tuple[RequestResponseFuture, Optional[float]]] = {}
        self._lock = threading.Lock()

    def _deadline(self, timeout: float) -> Optional[float]:
        if timeout == 0:
            timeout = self._default_expiration
        if timeout <= 0:
            return None
        return self._clock() + timeout

    def _on_evicted(self, correlation_id: str, future: RequestResponseFuture) -> None:
        if future.is_timeout():
            future.cause_err = ReplyTimeoutError(
                f"correlationId:{correlation_id} request timeout, no reply message"
            )
        future.execute_request_callback()

    def set(self, future: RequestResponseFuture) -> None:
        with self._lock:
            self._items[future.correlation_id] = (future, self._deadline(future.timeout))

    def get(self, correlation_id: str) -> Optional[RequestResponseFuture]:
        """Return the pending future, or None if absent or expired."""
        with self._lock:
            entry = self._items.get(correlation_id)
        if entry is None:
            return None
        future, deadline = entry
        if deadline is not None and self._clock() > deadline:
            return None
        return future

    def set_response(self, correlation_id: str, reply: Any) -> None:
        """Hand a reply to its future; raises KeyError if none is pending."""
        future = self.get(correlation_id)
        if future is None:
            raise KeyError(f"correlationId:{correlation_id} not exist in map")
        future.put_response_message(reply)
        if future.request_callback is not None:
            future.execute_request_callback()

    def remove(self, correlation_id: str) -> None:
        with self._lock:
            entry = self._items.pop(correlation_id, None)
        if entry is not None:
            self._on_evicted(correlation_id, entry[0])

    def purge_expired(self) -> list[str]:
        """Drop expired entries, run their callbacks, and return their ids."""
        now = self._clock()
        with self._lock:
            expired = [
                (cid, future)
                for cid, (future, deadline) in self._items.items()
                if deadline is not None and now > deadline
            ]
            for cid, _ in expired:
                del self._items[cid]
        for cid, future in expired:
            self._on_evicted(cid, future)
        return [cid for cid, _ in expired]