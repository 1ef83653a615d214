"""
Cadence scheduler.

One base tick is one simulated minute.  ``step()`` advances the monotonic
tick counter and fires the registered callbacks for that tick: every-tick
callbacks first, then hour, day, week and season callbacks for each period
that divides the new tick, in that order.  Minute effects therefore always
precede the same tick's market resolution.

``run()`` loops until a stop event is set.  The stop is only checked between
ticks, so an in-flight tick always completes.
"""

from __future__ import annotations

import logging
import threading
import time
from enum import Enum
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from worldsim.core.config import WorldConfig

logger = logging.getLogger(__name__)

TickCallback = Callable[[int], None]


class Season(str, Enum):
    SPRING = "spring"
    SUMMER = "summer"
    AUTUMN = "autumn"
    WINTER = "winter"


_SEASON_ORDER = (Season.SPRING, Season.SUMMER, Season.AUTUMN, Season.WINTER)


class Cadence(str, Enum):
    TICK = "tick"
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    SEASON = "season"


class Calendar:
    """Maps tick numbers onto hours, days, seasons and years."""

    def __init__(
        self,
        ticks_per_hour: int = 60,
        ticks_per_day: int = 1440,
        ticks_per_week: int = 10080,
        ticks_per_season: int = 90000,
    ) -> None:
        self.ticks_per_hour = ticks_per_hour
        self.ticks_per_day = ticks_per_day
        self.ticks_per_week = ticks_per_week
        self.ticks_per_season = ticks_per_season

    @classmethod
    def from_config(cls, config: WorldConfig) -> Calendar:
        return cls(
            config.ticks_per_hour, config.ticks_per_day,
            config.ticks_per_week, config.ticks_per_season,
        )

    def period(self, cadence: Cadence) -> int:
        return {
            Cadence.TICK: 1,
            Cadence.HOUR: self.ticks_per_hour,
            Cadence.DAY: self.ticks_per_day,
            Cadence.WEEK: self.ticks_per_week,
            Cadence.SEASON: self.ticks_per_season,
        }[cadence]

    def season(self, tick: int) -> Season:
        return _SEASON_ORDER[(tick // self.ticks_per_season) % 4]

    def day(self, tick: int) -> int:
        """Absolute simulated day, starting at 0."""
        return tick // self.ticks_per_day

    def sim_time(self, tick: int) -> str:
        """Human-readable time, e.g. ``Spring Day 1, 0:00 Year 1``."""
        minutes = tick % self.ticks_per_hour
        hours = (tick // self.ticks_per_hour) % (self.ticks_per_day // self.ticks_per_hour)
        day_in_season = (tick % self.ticks_per_season) // self.ticks_per_day + 1
        year = tick // (self.ticks_per_season * 4) + 1
        season = self.season(tick).value.capitalize()
        return f"{season} Day {day_in_season}, {hours}:{minutes:02d} Year {year}"


class CadenceScheduler:
    """Drives registered callbacks at fixed multiples of the base tick."""

    _ORDER = (Cadence.TICK, Cadence.HOUR, Cadence.DAY, Cadence.WEEK, Cadence.SEASON)

    def __init__(self, calendar: Calendar | None = None, start_tick: int = 0) -> None:
        self.calendar = calendar or Calendar()
        self.tick = start_tick
        self._callbacks: dict[Cadence, list[TickCallback]] = {c: [] for c in self._ORDER}

    def on(self, cadence: Cadence, callback: TickCallback) -> None:
        self._callbacks[cadence].append(callback)

    def step(self) -> int:
        """Advance one tick and fire every callback due on it."""
        self.tick += 1
        tick = self.tick
        for cadence in self._ORDER:
            if tick % self.calendar.period(cadence) != 0:
                continue
            for callback in self._callbacks[cadence]:
                callback(tick)
        return tick

    def run(
        self,
        stop_event: threading.Event,
        max_ticks: int | None = None,
        interval: float = 0.0,
        step: Callable[[], int] | None = None,
    ) -> int:
        """
        Step until *stop_event* is set or *max_ticks* ticks have run.

        ``interval`` is the wall-clock seconds per tick (0 runs flat out).
        ``step`` replaces ``self.step`` when the owner wraps each tick
        (the simulation does, to hold its lock and apply queued work).
        Returns the number of ticks executed.
        """
        advance = step or self.step
        executed = 0
        logger.info("Scheduler started at tick %d", self.tick)
        while not stop_event.is_set():
            if max_ticks is not None and executed >= max_ticks:
                break
            start = time.monotonic()
            advance()
            executed += 1
            if interval > 0:
                remaining = interval - (time.monotonic() - start)
                if remaining > 0:
                    stop_event.wait(remaining)
        logger.info("Scheduler stopped at tick %d after %d ticks", self.tick, executed)
        return executed
