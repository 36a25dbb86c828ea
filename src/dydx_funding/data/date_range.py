"""Processing date range, isolated from the wall clock for testability."""

from collections.abc import Callable
from datetime import date, datetime, timedelta, timezone


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


class DateRangeProvider:
    """Yields the calendar days a run has to fetch.

    With a deployment date only that day is processed. Otherwise every day
    from start_date through today (UTC) inclusive, ascending.
    """

    def __init__(
        self,
        start_date: date,
        deployment_date: date | None = None,
        today: Callable[[], date] = utc_today,
    ) -> None:
        self._start_date = start_date
        self._deployment_date = deployment_date
        self._today = today

    @property
    def deployment_date(self) -> date | None:
        return self._deployment_date

    def processing_dates(self) -> list[date]:
        if self._deployment_date is not None:
            return [self._deployment_date]

        end = self._today()
        days = (end - self._start_date).days
        return [self._start_date + timedelta(days=i) for i in range(days + 1)]
