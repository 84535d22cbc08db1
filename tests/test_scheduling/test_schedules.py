"""
Tests for schedule parsing and trigger mapping.
"""

import pytest
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from fleetalert.errors import ConfigurationError, ScheduleError
from fleetalert.scheduling import DailyAt, Every, parse_schedule, to_trigger


class TestParseSchedule:
    @pytest.mark.parametrize(
        "spec, expected",
        [
            ("0 6 * * *", DailyAt(6, 0)),
            ("30 7 * * *", DailyAt(7, 30)),
            ("daily 07:30", DailyAt(7, 30)),
            ("  Daily 23:59 ", DailyAt(23, 59)),
            ("0 */6 * * *", Every(6 * 3600)),
            ("0 */12 * * *", Every(12 * 3600)),
            ("*/15 * * * *", Every(15 * 60)),
            ("every 6h", Every(6 * 3600)),
            ("every 30m", Every(30 * 60)),
        ],
    )
    def test_valid(self, spec, expected):
        assert parse_schedule(spec) == expected

    @pytest.mark.parametrize(
        "spec",
        [
            "",
            "whenever",
            "0 6 * * 1",        # weekday restriction
            "0 6 1 * *",        # day-of-month restriction
            "61 6 * * *",
            "0 24 * * *",
            "daily 25:00",
            "every 0h",
            "every 5d",
            "5 */6 * * *",
            "0 6 * *",
        ],
    )
    def test_invalid_raises(self, spec):
        with pytest.raises(ScheduleError) as exc:
            parse_schedule(spec)
        assert isinstance(exc.value, ConfigurationError)
        assert exc.value.spec == spec

    def test_parsed_schedule_passes_through(self):
        schedule = DailyAt(3, 0)
        assert parse_schedule(schedule) is schedule

    def test_str_round_trips_through_parser(self):
        for schedule in (DailyAt(7, 5), Every(6 * 3600), Every(45 * 60)):
            assert parse_schedule(str(schedule)) == schedule


class TestToTrigger:
    def test_daily_maps_to_cron(self):
        trigger = to_trigger(DailyAt(7, 30), "UTC")
        assert isinstance(trigger, CronTrigger)
        fields = {f.name: str(f) for f in trigger.fields}
        assert fields["hour"] == "7"
        assert fields["minute"] == "30"

    def test_every_maps_to_interval(self):
        trigger = to_trigger(Every(6 * 3600), "UTC")
        assert isinstance(trigger, IntervalTrigger)
        assert trigger.interval.total_seconds() == 6 * 3600
