"""Pending response tracking for a single remote request."""

from __future__ import annotations

import threading
from typing import Callable, Optional

from rmqclient.remote.codec import RemotingCommand


class RequestTimeoutError(Exception):
    """Raised when no response arrives before the wait deadline."""

    def __init__(self, message: str = "request timeout") -> None:
        super().__init__(message)


class ResponseFuture:
    """Holds the eventual response (or error) for a request identified by its opaque."""

    def __init__(
        self,
        opaque: int,
        callback: Optional[Callable[["ResponseFuture"], None]] = None,
    ) -> None:
        self.opaque = opaque
        self.callback = callback
        self.response_command: Optional[RemotingCommand] = None
        self.err: Optional[BaseException] = None
        self.done = threading.Event()
        self._callback_lock = threading.Lock()
        self._callback_ran = False

    def execute_invoke_callback(self) -> None:
        """Run the callback at most once, however many threads call this."""
        with self._callback_lock:
            if self._callback_ran:
                return
            self._callback_ran = True
            if self.callback is not None:
                self.callback(self)

    def set_response(self, command: RemotingCommand) -> None:
        """Store the response, run the callback and wake any waiter."""
        self.response_command = command
        self.execute_invoke_callback()
        self.done.set()

    def set_error(self, error: BaseException) -> None:
        """Complete the future with an error and wake any waiter."""
        self.err = error
        self.done.set()

    def wait_response(self, timeout: Optional[float] = None) -> Optional[RemotingCommand]:
        """Block until completion or until ``timeout`` seconds pass.

        Raises the stored error, or RequestTimeoutError on timeout.
        """
        if not self.done.wait(timeout):
            self.err = RequestTimeoutError()
            raise self.err
        if self.err is not None:
            raise self.err
        return self.response_command