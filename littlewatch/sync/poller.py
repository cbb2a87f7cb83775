"""Fallback REST poller.

Refreshes a projection on a fixed interval while the realtime channel is
degraded, or for screens that never subscribe to the channel.  The first
fetch fires one interval after ``start()``; ``refresh_now()`` covers pull to
refresh.  There is no jitter and no backoff: a failed fetch is logged and the
next tick simply tries again.

``stop()`` bumps a generation counter before cancelling the timer task, so a
fetch that is already in flight when the screen goes away is discarded
instead of being applied to torn-down state.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Mapping

from littlewatch.api.errors import AuthenticationError, LittleWatchError

logger = logging.getLogger("littlewatch.sync.poller")

FetchFn = Callable[[], Awaitable[Mapping[str, Any] | None]]
ApplyFn = Callable[[Mapping[str, Any]], None]


class FallbackPoller:
    """Periodically fetch a snapshot and hand it to ``apply``.

    Usage::

        poller = FallbackPoller(fetch=fetch_latest, apply=projection.apply_payload)
        poller.start(settings.poll_interval_seconds)
        ...
        poller.stop()

    Args:
        fetch: Async callable returning a payload, or ``None`` for "nothing new".
        apply: Callback receiving each successful payload.
        name:  Label used in log messages.
    """

    def __init__(self, fetch: FetchFn, apply: ApplyFn, *, name: str = "vitals") -> None:
        self._fetch = fetch
        self._apply = apply
        self._name = name
        self._task: asyncio.Task | None = None
        self._generation = 0
        self._interval: float | None = None
        self._stopped = False
        self.applied = 0
        self.failures = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def interval(self) -> float | None:
        return self._interval

    def start(self, interval_seconds: float) -> None:
        """Start ticking every ``interval_seconds``.  Restarts if already running.

        Must be called from inside a running event loop.
        """
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self.stop()
        self._stopped = False
        self._interval = interval_seconds
        generation = self._generation
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(interval_seconds, generation))
        logger.info("Poller %s started (every %.1fs)", self._name, interval_seconds)

    def stop(self) -> None:
        """Stop the timer.  No ``apply`` call happens after this returns."""
        self._generation += 1
        self._stopped = True
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            logger.info("Poller %s stopped", self._name)

    async def refresh_now(self) -> bool:
        """Fetch immediately, outside the timer.

        Returns:
            True if a payload was applied.  Always False once stopped.
        """
        if self._stopped:
            return False
        return await self._tick(self._generation)

    async def _run(self, interval: float, generation: int) -> None:
        while generation == self._generation:
            await asyncio.sleep(interval)
            if generation != self._generation:
                return
            await self._tick(generation)

    async def _tick(self, generation: int) -> bool:
        try:
            payload = await self._fetch()
        except AuthenticationError:
            # The unauthorized handler has already logged the user out.
            logger.warning("Poller %s stopping: session rejected", self._name)
            if generation == self._generation:
                self.stop()
            return False
        except LittleWatchError as exc:
            self.failures += 1
            logger.warning("Poller %s fetch failed, retrying next tick: %s", self._name, exc)
            return False
        except Exception:
            self.failures += 1
            logger.exception("Poller %s fetch raised unexpectedly", self._name)
            return False

        if generation != self._generation:
            logger.debug("Poller %s discarding response that arrived after stop", self._name)
            return False
        if payload is None:
            return False

        self._apply(payload)
        self.applied += 1
        return True
