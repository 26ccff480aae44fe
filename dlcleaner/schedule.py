"""Cron schedule calculation for archive jobs."""

from datetime import datetime, timezone

from croniter import croniter

from .errors import InvalidScheduleError

CRON_FIELD_COUNT = 5


class ScheduleCalculator:
    """Evaluates five-field cron expressions."""

    @staticmethod
    def next_fire_time(expression: str, reference_time: datetime) -> datetime:
        """
        Get the earliest time strictly after reference_time matching the schedule.

        Args:
            expression: Cron schedule 'minute hour day-of-month month day-of-week'
            reference_time: Reference instant (naive values are taken as UTC)

        Returns:
            Next fire time, in the timezone of reference_time

        Raises:
            InvalidScheduleError: If the expression is malformed
        """
        schedule = expression.strip()
        if len(schedule.split()) != CRON_FIELD_COUNT:
            raise InvalidScheduleError(
                f"Schedule '{expression}' must have 5 fields: "
                "'minute hour day-of-month month day-of-week'"
            )

        if reference_time.tzinfo is None:
            reference_time = reference_time.replace(tzinfo=timezone.utc)

        try:
            cron = croniter(schedule, reference_time)
            return cron.get_next(datetime)
        except (ValueError, KeyError) as e:
            raise InvalidScheduleError(
                f"Invalid cron schedule '{expression}': {e}"
            ) from e

    @staticmethod
    def validate_schedule_format(expression: str) -> bool:
        """
        Validate that a schedule string is a valid cron expression.

        Args:
            expression: Cron schedule string

        Returns:
            True if valid, False otherwise
        """
        try:
            ScheduleCalculator.next_fire_time(
                expression, datetime(2000, 1, 1, tzinfo=timezone.utc)
            )
            return True
        except InvalidScheduleError:
            return False
