"""
Schedule specifications.

Config holds schedules as strings; they are parsed once, at registration,
into one of two shapes:

    DailyAt(hour, minute)   "30 7 * * *"   or  "daily 07:30"
    Every(seconds)          "0 */6 * * *"  or  "every 6h"
                            "*/15 * * * *" or  "every 15m"

Anything else raises ScheduleError, so a bad config stops the process at
startup instead of silently never firing.
"""

import re
from dataclasses import dataclass
from typing import Union

from apscheduler.triggers.base import BaseTrigger
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from fleetalert.errors import ScheduleError


@dataclass(frozen=True)
class DailyAt:
    hour: int
    minute: int

    def __str__(self) -> str:
        return f"daily {self.hour:02d}:{self.minute:02d}"


@dataclass(frozen=True)
class Every:
    seconds: int

    def __str__(self) -> str:
        if self.seconds % 3600 == 0:
            return f"every {self.seconds // 3600}h"
        if self.seconds % 60 == 0:
            return f"every {self.seconds // 60}m"
        return f"every {self.seconds}s"


Schedule = Union[DailyAt, Every]

_DAILY_RE = re.compile(r"^daily\s+(\d{1,2}):(\d{2})$")
_EVERY_RE = re.compile(r"^every\s+(\d+)\s*([hm])$")
_STEP_RE = re.compile(r"^\*/(\d+)$")

_UNIT_SECONDS = {"h": 3600, "m": 60}


def _daily(spec: str, hour: int, minute: int) -> DailyAt:
    if not 0 <= hour <= 23:
        raise ScheduleError(spec, f"hour {hour} out of range 0-23")
    if not 0 <= minute <= 59:
        raise ScheduleError(spec, f"minute {minute} out of range 0-59")
    return DailyAt(hour=hour, minute=minute)


def _every(spec: str, amount: int, unit: str) -> Every:
    if amount <= 0:
        raise ScheduleError(spec, "interval must be positive")
    return Every(seconds=amount * _UNIT_SECONDS[unit])


def _parse_cron(spec: str, fields: list[str]) -> Schedule:
    minute, hour, day, month, weekday = fields
    if (day, month, weekday) != ("*", "*", "*"):
        raise ScheduleError(spec, "only daily or hourly/minutely cron expressions are supported")

    if minute.isdigit() and hour.isdigit():
        return _daily(spec, int(hour), int(minute))

    hour_step = _STEP_RE.match(hour)
    if minute == "0" and hour_step:
        return _every(spec, int(hour_step.group(1)), "h")

    minute_step = _STEP_RE.match(minute)
    if minute_step and hour == "*":
        return _every(spec, int(minute_step.group(1)), "m")

    raise ScheduleError(spec, "unsupported cron expression")


def parse_schedule(spec: Union[str, Schedule]) -> Schedule:
    """Parse a schedule string. Already-parsed schedules pass through."""
    if isinstance(spec, (DailyAt, Every)):
        return spec
    if not isinstance(spec, str):
        raise ScheduleError(repr(spec), "expected a string")

    text = spec.strip().lower()
    if not text:
        raise ScheduleError(spec, "empty schedule")

    match = _DAILY_RE.match(text)
    if match:
        return _daily(spec, int(match.group(1)), int(match.group(2)))

    match = _EVERY_RE.match(text)
    if match:
        return _every(spec, int(match.group(1)), match.group(2))

    fields = text.split()
    if len(fields) == 5:
        return _parse_cron(spec, fields)

    raise ScheduleError(spec, "expected cron 'M H * * *', 'daily HH:MM' or 'every N[h|m]'")


def to_trigger(schedule: Schedule, timezone: str = "UTC") -> BaseTrigger:
    """APScheduler trigger firing on ``schedule`` in ``timezone``."""
    if isinstance(schedule, DailyAt):
        return CronTrigger(hour=schedule.hour, minute=schedule.minute, timezone=timezone)
    return IntervalTrigger(seconds=schedule.seconds, timezone=timezone)
