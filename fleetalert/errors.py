"""
Engine error taxonomy.

Per-entity evaluation errors never surface here; they are logged and
skipped inside a check. These types cover what callers can act on.
"""


class AlertEngineError(Exception):
    """Base class for alert engine errors."""


class ConfigurationError(AlertEngineError):
    """Invalid engine configuration. Fatal at startup."""


class ScheduleError(ConfigurationError):
    """A schedule specification could not be parsed."""

    def __init__(self, spec: str, reason: str):
        self.spec = spec
        self.reason = reason
        super().__init__(f"Invalid schedule {spec!r}: {reason}")


class UnknownCheckError(AlertEngineError, KeyError):
    """No check or job is registered under the requested name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(name)

    def __str__(self) -> str:
        return f"No check registered under {self.name!r}"
