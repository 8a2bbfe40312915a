"""Exceptions raised by nessus-rest.

The request layer itself is fail-soft and never raises for network or
server trouble; these are only raised when a caller asks for it, either
by unwrapping an outcome or by bounding a poll.
"""


class NessusError(Exception):
    """Base exception for nessus-rest errors."""


class DegradedResponseError(NessusError):
    """A request gave up after retries or never reached the server."""

    def __init__(self, message: str, reason: str | None = None):
        super().__init__(message)
        self.reason = reason


class PollTimeoutError(NessusError, TimeoutError):
    """A poll did not reach a terminal state before its deadline."""

    def __init__(self, message: str, last_value: object = None):
        super().__init__(message)
        self.last_value = last_value


class PollCancelledError(NessusError):
    """A poll was cancelled by the caller."""
