"""
services/request_gate.py: Debounce and last-request-wins helpers for async lookups.

Used at the edge of the engine, where user typing triggers slow lookups
(exchange rates, category suggestions). The engine core stays synchronous and
pure; only these helpers know about time and ordering.

  LatestRequestGate  Every request takes a ticket. A result that resolves
                     after a newer ticket was issued is stale and must be
                     discarded, even if it arrived last. Newest request wins,
                     not fastest.
  Debouncer          Delays a call and drops the pending one when a newer
                     call is scheduled, so only the last input in a burst
                     reaches the lookup. Dropped calls resolve to a
                     non-current GateResult.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Awaitable, Callable
from typing import Any, NamedTuple


logger = logging.getLogger(__name__)


class GateResult(NamedTuple):
    current: bool  # False → a newer request was issued; ignore `value`
    value: Any


class LatestRequestGate:

    def __init__(self) -> None:
        self._tickets = itertools.count(1)
        self._latest = 0

    def issue(self) -> int:
        self._latest = next(self._tickets)
        return self._latest

    def is_current(self, ticket: int) -> bool:
        return ticket == self._latest

    async def run(self, awaitable: Awaitable) -> GateResult:
        """
        Awaits `awaitable` under a fresh ticket.

        Exceptions from a request that is still current propagate. Exceptions
        from a stale request are dropped with it: a newer request has already
        replaced whatever the caller would have done with them.
        """
        ticket = self.issue()
        try:
            value = await awaitable
        except Exception:
            if self.is_current(ticket):
                raise
            logger.debug("Discarding failure from stale request #%d.", ticket)
            return GateResult(False, None)

        if not self.is_current(ticket):
            logger.debug("Discarding result from stale request #%d.", ticket)
            return GateResult(False, None)
        return GateResult(True, value)


class Debouncer:
    """
    call() returns a task that resolves to a GateResult. A call superseded by
    a newer call() or by cancel() resolves to GateResult(False, None) instead
    of raising; only cancelling the returned task itself raises
    asyncio.CancelledError in the awaiting coroutine.
    """

    def __init__(self, delay_seconds: float, func: Callable[..., Awaitable]) -> None:
        self.delay_seconds = delay_seconds
        self._func = func
        self._pending: asyncio.Task | None = None
        self._generation = 0

    def call(self, *args, **kwargs) -> asyncio.Task:
        self.cancel()
        inner = asyncio.ensure_future(self._run(args, kwargs))
        self._pending = inner
        return asyncio.ensure_future(self._settle(inner, self._generation))

    def cancel(self) -> None:
        self._generation += 1
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    async def _run(self, args: tuple, kwargs: dict) -> Any:
        await asyncio.sleep(self.delay_seconds)
        return await self._func(*args, **kwargs)

    async def _settle(self, inner: asyncio.Task, generation: int) -> GateResult:
        try:
            value = await inner
        except asyncio.CancelledError:
            if generation == self._generation:
                raise
            logger.debug("Debounced call #%d superseded.", generation)
            return GateResult(False, None)
        return GateResult(True, value)

