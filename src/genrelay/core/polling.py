"""Cancellable bounded-retry polling.

:class:`BoundedPoller` turns "check again in a second, at most N times" into
a reusable task.  Each attempt waits the interval first, then runs the
action.  The action decides whether polling is finished by returning a
:class:`PollDecision`; raising one of the configured *transient* exception
types counts the attempt and carries on, while any other exception ends the
poll immediately.

Waiting is a non-blocking suspension, so many pollers can run side by side
on one event loop.  A poll ends early when:

- :meth:`BoundedPoller.cancel` is called (wakes a pending wait),
- the optional ``stop_when`` predicate returns ``True`` before an attempt,
- the surrounding asyncio task is cancelled.

Usage
-----
::

    async def check(attempt: int) -> PollDecision[dict]:
        body = await client.status(request_id)
        if body["status"] == "COMPLETE":
            return PollDecision.finish(body)
        return PollDecision.proceed()

    poller = BoundedPoller(check, interval=1.0, max_attempts=120,
                           transient=(UpstreamError,))
    body = await poller.run()
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class PollDecision(Generic[T]):
    """Outcome of one poll attempt."""

    done: bool
    value: T | None = None

    @classmethod
    def proceed(cls) -> PollDecision[T]:
        return cls(done=False)

    @classmethod
    def finish(cls, value: T) -> PollDecision[T]:
        return cls(done=True, value=value)


class PollAttemptsExhausted(Exception):
    """The attempt ceiling was reached without the action finishing."""

    def __init__(self, attempts: int) -> None:
        super().__init__(f"Polling gave up after {attempts} attempts")
        self.attempts = attempts


class PollCancelled(Exception):
    """Polling was stopped before it finished."""

    def __init__(self, attempts: int) -> None:
        super().__init__(f"Polling cancelled after {attempts} attempts")
        self.attempts = attempts


class BoundedPoller(Generic[T]):
    """Run an async action repeatedly with a fixed delay and attempt ceiling.

    Args:
        action: Coroutine function called with the 1-based attempt number.
        interval: Seconds to wait before every attempt.
        max_attempts: Attempt ceiling (must be at least 1).
        jitter: Upper bound of a uniform random delay added to each wait.
        transient: Exception types that count as a failed attempt rather
            than aborting the poll.
        stop_when: Optional coroutine function checked before each wait; a
            ``True`` result cancels the poll.
        name: Label used in log messages.
    """

    def __init__(
        self,
        action: Callable[[int], Awaitable[PollDecision[T]]],
        *,
        interval: float,
        max_attempts: int,
        jitter: float = 0.0,
        transient: tuple[type[BaseException], ...] = (),
        stop_when: Callable[[], Awaitable[bool]] | None = None,
        name: str = "poll",
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if interval < 0 or jitter < 0:
            raise ValueError("interval and jitter must not be negative")

        self._action = action
        self.interval = interval
        self.max_attempts = max_attempts
        self.jitter = jitter
        self._transient = transient
        self._stop_when = stop_when
        self.name = name
        self._attempts = 0
        self._cancelled = asyncio.Event()

    @property
    def attempts(self) -> int:
        """Number of attempts started so far, transient failures included."""
        return self._attempts

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        """Stop polling; a pending wait returns immediately."""
        self._cancelled.set()

    def _delay(self) -> float:
        if self.jitter:
            return self.interval + random.uniform(0.0, self.jitter)
        return self.interval

    async def _wait(self) -> None:
        if self._stop_when is not None and await self._stop_when():
            self.cancel()
        if self._cancelled.is_set():
            raise PollCancelled(self._attempts)
        try:
            await asyncio.wait_for(self._cancelled.wait(), timeout=self._delay())
        except asyncio.TimeoutError:
            return
        raise PollCancelled(self._attempts)

    async def run(self) -> T | None:
        """Poll until the action finishes, the ceiling is hit, or cancellation.

        Returns:
            The value carried by the finishing :class:`PollDecision`.

        Raises:
            PollAttemptsExhausted: ``max_attempts`` attempts ran without the
                action finishing.
            PollCancelled: :meth:`cancel` was called or ``stop_when`` fired.
        """
        while self._attempts < self.max_attempts:
            await self._wait()
            self._attempts += 1
            try:
                decision = await self._action(self._attempts)
            except self._transient as exc:
                logger.warning(
                    f"{self.name}: attempt {self._attempts}/{self.max_attempts} failed "
                    f"transiently ({exc}); continuing"
                )
                continue
            if decision.done:
                return decision.value

        raise PollAttemptsExhausted(self._attempts)
