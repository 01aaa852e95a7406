"""
Period Selector

Holds the reference date the monthly view is derived from. Navigation moves
by calendar months, not by 30 days: Jan 31 -> Feb 28 (or 29) keeps "same day
of month, clipped to the month's length".
"""

from datetime import date, datetime, time
from typing import Any, Callable, Optional, Union

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta


def normalize_datetime(value: Any) -> Any:
    """
    Accept ISO 8601 strings, dates and datetimes.

    Timezone-aware values are converted to local time and made naive so that
    they compare cleanly against month windows.
    """
    if isinstance(value, str):
        value = date_parser.isoparse(value)
    elif isinstance(value, date) and not isinstance(value, datetime):
        value = datetime.combine(value, time.min)
    if isinstance(value, datetime) and value.tzinfo is not None:
        value = value.astimezone().replace(tzinfo=None)
    return value


def start_of_month(moment: datetime) -> datetime:
    """First instant of `moment`'s month."""
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def end_of_month(moment: datetime) -> datetime:
    """Last representable instant of `moment`'s month."""
    return start_of_month(moment) + relativedelta(months=1, microseconds=-1)


def month_window(moment: datetime) -> tuple[datetime, datetime]:
    """[start, end] of the calendar month containing `moment`, both inclusive."""
    return start_of_month(moment), end_of_month(moment)


def within_month(value: datetime, reference: datetime) -> bool:
    start, end = month_window(reference)
    return start <= value <= end


class PeriodSelector:
    """
    The selected period for the monthly view. Not persisted.

    Dates, aware datetimes and ISO strings are stored as naive local
    datetimes, the form transaction dates are kept in.

    Args:
        initial: Reference date; defaults to now
        on_change: Called with the new date after every change
    """

    def __init__(
        self,
        initial: Optional[Union[datetime, date, str]] = None,
        on_change: Optional[Callable[[datetime], None]] = None,
    ):
        self._selected = normalize_datetime(initial) if initial else datetime.now()
        self._listeners: list[Callable[[datetime], None]] = []
        if on_change:
            self._listeners.append(on_change)

    @property
    def selected_date(self) -> datetime:
        return self._selected

    @property
    def window(self) -> tuple[datetime, datetime]:
        return month_window(self._selected)

    def subscribe(self, listener: Callable[[datetime], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_date(self, value: Union[datetime, date, str]) -> None:
        self._selected = normalize_datetime(value)
        for listener in list(self._listeners):
            listener(self._selected)

    def next(self) -> datetime:
        self.set_date(self._selected + relativedelta(months=1))
        return self._selected

    def previous(self) -> datetime:
        self.set_date(self._selected - relativedelta(months=1))
        return self._selected
