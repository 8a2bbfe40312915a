"""Polling loop for asynchronous scanner jobs.

Scans and report exports run server-side for an unknown amount of time.
``JobPoller.wait_until`` polls a status accessor until a predicate holds,
sleeping a fixed interval in between. Waits are unbounded unless the
caller passes a timeout or a cancellation event.
"""

import threading
import time
from collections.abc import Callable
from typing import TypeVar

from loguru import logger

from nessus_rest.errors import PollCancelledError, PollTimeoutError

T = TypeVar("T")


class JobPoller:
    """Wait-until-condition loop with deadline and cancellation."""

    def __init__(
        self,
        interval: float = 1,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize poller.

        Args:
            interval: Default seconds between polls.
            sleep: Sleep function, injectable for tests.
            clock: Monotonic clock used for deadlines.
        """
        self.interval = interval
        self._sleep = sleep
        self._clock = clock

    def wait_until(
        self,
        poll: Callable[[], T],
        done: Callable[[T], bool],
        interval: float | None = None,
        *,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> T:
        """Call ``poll`` until ``done`` accepts its result.

        Args:
            poll: Status accessor, called once per iteration.
            done: Predicate over the accessor's result.
            interval: Seconds between polls (defaults to the poller's).
            timeout: Give up after this many seconds.
            cancel: Event that aborts the wait when set. While waiting on
                it, the poller's own sleep function is not used.

        Returns:
            The first polled value accepted by ``done``.

        Raises:
            PollTimeoutError: The deadline passed first.
            PollCancelledError: ``cancel`` was set.
        """
        interval = self.interval if interval is None else interval
        deadline = None if timeout is None else self._clock() + timeout
        polls = 0

        while True:
            if cancel is not None and cancel.is_set():
                raise PollCancelledError(f"Poll cancelled after {polls} polls")

            value = poll()
            polls += 1
            if done(value):
                logger.debug(f"Poll finished after {polls} polls: {value!r}")
                return value

            delay = interval
            if deadline is not None:
                remaining = deadline - self._clock()
                if remaining <= 0:
                    raise PollTimeoutError(
                        f"Job not finished after {timeout}s ({polls} polls, last {value!r})",
                        last_value=value,
                    )
                delay = min(interval, remaining)

            logger.debug(f"Poll {polls}: {value!r}, sleeping {delay}s")
            if cancel is not None:
                if cancel.wait(delay):
                    raise PollCancelledError(f"Poll cancelled after {polls} polls")
            else:
                self._sleep(delay)
