"""
Weekly opening hours.

save_week() walks Sunday..Saturday and writes one record per day, each in
its own commit. When a write fails the loop stops: earlier days keep their
new values, later days keep their old ones, and HoursPersistenceError lists
what was saved.
"""

import logging
from dataclasses import dataclass
from datetime import time
from typing import Iterable, List, Optional

from storefront.core.config import get_settings
from storefront.core.errors import HoursPersistenceError, PersistenceError
from storefront.models import OpeningHours
from storefront.store import DataStore

logger = logging.getLogger(__name__)

WEEK = range(7)


@dataclass(frozen=True)
class DayHours:
    day_of_week: int
    open_time: time
    close_time: time
    is_closed: bool = False


class HoursManager:
    def __init__(self, store: DataStore):
        self.store = store

    async def list(self) -> List[OpeningHours]:
        return await self.store.fetch_all(OpeningHours, order_by="day_of_week")

    def effective_day(
        self, day: int, existing: Optional[OpeningHours], change: Optional[DayHours]
    ) -> DayHours:
        """What a day will be saved as: the change, else the stored row, else defaults."""
        if change is not None:
            return change
        settings = get_settings()
        if existing is not None:
            return DayHours(
                day_of_week=day,
                open_time=existing.open_time or settings.default_open_time,
                close_time=existing.close_time or settings.default_close_time,
                is_closed=existing.is_closed,
            )
        return DayHours(day, settings.default_open_time, settings.default_close_time, False)

    async def save_week(self, changes: Iterable[DayHours]) -> List[OpeningHours]:
        by_day = {c.day_of_week: c for c in changes}
        stored = {h.day_of_week: h for h in await self.list()}
        saved: List[int] = []

        for day in WEEK:
            hours = self.effective_day(day, stored.get(day), by_day.get(day))
            values = {
                "day_of_week": day,
                "open_time": hours.open_time,
                "close_time": hours.close_time,
                "is_closed": hours.is_closed,
            }
            try:
                if day in stored:
                    await self.store.update(OpeningHours, stored[day].id, values)
                else:
                    await self.store.insert(OpeningHours, values)
            except PersistenceError as e:
                logger.error(f"Saving hours for day {day} failed after days {saved}: {e.detail}")
                raise HoursPersistenceError(day, saved) from e
            saved.append(day)

        logger.info("Opening hours saved for the whole week")
        return await self.list()
