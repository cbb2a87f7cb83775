"""Paginated vitals history for the timeline screen.

History is never retained by the projection; it is fetched on demand, one
page at a time, for a period of ``24H``, ``1W`` or ``1M``.
"""

from __future__ import annotations

import logging
from typing import Any

from littlewatch.api.client import LittleWatchClient
from littlewatch.api.errors import AuthenticationError, LittleWatchError
from littlewatch.api.models import HistorySummary
from littlewatch.config import get_settings

logger = logging.getLogger("littlewatch.vitals.history")

PERIODS: tuple[str, ...] = ("24H", "1W", "1M")


class HistoryPager:
    """Accumulates history pages for one device and period.

    The page size defaults to the ``history_page_size`` setting.

    Usage::

        pager = HistoryPager(api, "ABC123", period="1W")
        await pager.load_first()
        while pager.has_more:
            await pager.load_more()
    """

    def __init__(
        self,
        api: LittleWatchClient,
        device_serial: str,
        *,
        period: str = "24H",
        page_size: int | None = None,
    ) -> None:
        if period not in PERIODS:
            raise ValueError(f"Unknown period {period!r}. Expected one of {PERIODS}")
        self._api = api
        self._device_serial = device_serial
        self._period = period
        self._page_size = page_size or get_settings().history_page_size
        self._next_page = 1
        self._loading = False
        self.readings: list[dict[str, Any]] = []
        self.summary: HistorySummary | None = None
        self.has_more = True

    @property
    def period(self) -> str:
        return self._period

    async def set_period(self, period: str) -> None:
        """Switch period and reload from the first page."""
        if period not in PERIODS:
            raise ValueError(f"Unknown period {period!r}. Expected one of {PERIODS}")
        self._period = period
        await self.load_first()

    async def load_first(self) -> None:
        """Reset and fetch page 1, replacing readings and summary."""
        self._next_page = 1
        self.readings = []
        self.summary = None
        self.has_more = True
        await self._fetch(reset=True)

    async def load_more(self) -> None:
        """Append the next page.  No-op while loading or once exhausted."""
        if self._loading or not self.has_more or not self.readings:
            return
        await self._fetch(reset=False)

    async def _fetch(self, *, reset: bool) -> None:
        page = self._next_page
        self._loading = True
        try:
            history = await self._api.get_vitals_history(
                self._device_serial,
                period=self._period,
                page=page,
                limit=self._page_size,
            )
        except AuthenticationError:
            self.has_more = False
            raise
        except LittleWatchError as exc:
            logger.warning(
                "History fetch failed for %s (period=%s, page=%d): %s",
                self._device_serial, self._period, page, exc,
            )
            self.has_more = False
            return
        finally:
            self._loading = False

        if reset:
            self.readings = list(history.readings)
            self.summary = history.summary
        else:
            self.readings.extend(history.readings)

        if len(history.readings) < self._page_size:
            self.has_more = False
        else:
            self.has_more = True
            self._next_page = page + 1
        logger.debug(
            "History page %d for %s: %d readings (has_more=%s)",
            page, self._device_serial, len(history.readings), self.has_more,
        )
