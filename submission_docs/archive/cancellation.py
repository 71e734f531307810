"""Cooperative cancellation for long-running archive exports.

A token is handed to the streamer by whoever owns the transport (a request
handler, a signal handler in the CLI). The streamer checks it between chunks
and stops writing once it is set.
"""

import threading


class CancellationToken:
    """Thread-safe flag checked between archive writes.

    Examples:
        >>> token = CancellationToken()
        >>> token.is_cancelled()
        False
        >>> token.cancel()
        >>> token.is_cancelled()
        True
    """

    def __init__(self) -> None:
        self._is_cancelled = threading.Event()

    def cancel(self) -> None:
        """Signal that cancellation has been requested."""
        self._is_cancelled.set()

    def is_cancelled(self) -> bool:
        return self._is_cancelled.is_set()
