# replenishment_engine/utils/date_utils.py
from datetime import date, datetime, timedelta
from typing import List, Tuple, Union

def convert_to_date(value: Union[date, datetime, str]) -> date:
    """Convert a datetime, date or ISO string to a date.

    Args:
        value: Value to convert

    Returns:
        Date object
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value).date()
        except ValueError:
            raise ValueError(f"Invalid date string: {value}")
    raise TypeError(f"Cannot convert {type(value).__name__} to date")

def week_start(value: Union[date, datetime]) -> date:
    """Monday of the calendar week containing the given day."""
    day = convert_to_date(value)
    return day - timedelta(days=day.weekday())

def week_end(value: Union[date, datetime]) -> date:
    """Sunday of the calendar week containing the given day."""
    return week_start(value) + timedelta(days=6)

def completed_weeks(as_of: Union[date, datetime], weeks: int) -> List[date]:
    """Week-start dates of the last `weeks` fully completed weeks before `as_of`.

    The current (partial) week is excluded. Dates are ordered oldest first.

    Args:
        as_of: Reference day
        weeks: Number of weeks in the window

    Returns:
        List of Monday dates
    """
    current = week_start(as_of)
    return [current - timedelta(weeks=weeks - i) for i in range(weeks)]

def window_bounds(as_of: Union[date, datetime], weeks: int) -> Tuple[datetime, datetime]:
    """Half-open [start, end) datetime bounds of the completed-week window."""
    current = week_start(as_of)
    start = current - timedelta(weeks=weeks)
    return (
        datetime.combine(start, datetime.min.time()),
        datetime.combine(current, datetime.min.time())
    )

def next_period(as_of: Union[date, datetime]) -> Tuple[date, date]:
    """Start and end of the week following the week containing `as_of`."""
    start = week_start(as_of) + timedelta(weeks=1)
    return start, start + timedelta(days=6)
