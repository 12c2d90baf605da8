"""
Schedule expressions for EventBridge rules.
"""
from typing import Optional

from aws_cdk import Duration
from cdktf import Annotations
from constructs import Construct

from ...errors import UnscopedValidationError

MILLIS_PER_MINUTE = 60 * 1000
MINUTES_PER_HOUR = 60
MINUTES_PER_DAY = 24 * 60

MINUTE_MISSING_WARNING = (
    "cron: If you don't pass 'minute', by default the event runs every minute. "
    "Pass 'minute: '*'' if that's what you intend, or 'minute: 0' to run once per hour instead."
)


class Schedule:
    """
    Schedule for scheduled event rules.

    Use ``Schedule.rate``, ``Schedule.cron`` or ``Schedule.expression``.
    """

    def __init__(self, expression_string: str, minute_missing: bool = False) -> None:
        self.expression_string = expression_string
        self._minute_missing = minute_missing

    @staticmethod
    def expression(expression: str) -> "Schedule":
        """Construct a schedule from a literal schedule expression."""
        return Schedule(expression)

    @staticmethod
    def rate(duration: Duration) -> "Schedule":
        """Construct a schedule from an interval and a time unit."""
        millis = duration.to_milliseconds()
        if millis == 0:
            raise UnscopedValidationError("Duration cannot be 0")
        if millis % MILLIS_PER_MINUTE:
            raise UnscopedValidationError(
                "Allowed units for scheduling are: 'minute', 'minutes', 'hour', 'hours', 'day', 'days'"
            )

        minutes = millis // MILLIS_PER_MINUTE
        if minutes % MINUTES_PER_DAY == 0:
            return Schedule(_rate(minutes // MINUTES_PER_DAY, "day"))
        if minutes % MINUTES_PER_HOUR == 0:
            return Schedule(_rate(minutes // MINUTES_PER_HOUR, "hour"))
        return Schedule(_rate(minutes, "minute"))

    @staticmethod
    def cron(
        *,
        minute: Optional[str] = None,
        hour: Optional[str] = None,
        day: Optional[str] = None,
        month: Optional[str] = None,
        week_day: Optional[str] = None,
        year: Optional[str] = None,
    ) -> "Schedule":
        """Create a schedule from a set of cron fields."""
        if week_day is not None and day is not None:
            raise UnscopedValidationError("Cannot supply both 'day' and 'weekDay', use at most one")

        # weekday defaults to '?', and day must become '?' when it is given
        fields = [
            minute or "*",
            hour or "*",
            day or ("?" if week_day is not None else "*"),
            month or "*",
            week_day or "?",
            year or "*",
        ]
        return Schedule(f"cron({' '.join(fields)})", minute_missing=minute is None)

    def bind(self, scope: Construct) -> None:
        """Attach warnings about this schedule to the construct using it."""
        if self._minute_missing:
            Annotations.of(scope).add_warning(MINUTE_MISSING_WARNING)


def _rate(value: int, unit: str) -> str:
    return f"rate({value} {unit}{'' if value == 1 else 's'})"
