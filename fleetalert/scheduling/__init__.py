from fleetalert.scheduling.schedules import DailyAt, Every, Schedule, parse_schedule, to_trigger

__all__ = ["DailyAt", "Every", "Schedule", "parse_schedule", "to_trigger"]
