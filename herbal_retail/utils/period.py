from datetime import date, datetime, timedelta
from typing import List, Tuple


def month_start(value) -> date:
    """Normalise any date/datetime to the first day of its month (the month key)."""
    if isinstance(value, datetime):
        value = value.date()
    return value.replace(day=1)


def next_month(value: date) -> date:
    first = month_start(value)
    if first.month == 12:
        return first.replace(year=first.year + 1, month=1)
    return first.replace(month=first.month + 1)


def month_bounds(value) -> Tuple[datetime, datetime]:
    """
    Closed window [start, end] covering the whole month.

    end is the last microsecond of the month so `between(start, end)` never
    picks up a record from the following month.
    """
    start = month_start(value)
    end = datetime.combine(next_month(start), datetime.min.time()) - timedelta(microseconds=1)
    return datetime.combine(start, datetime.min.time()), end


def quarter_months(value) -> List[date]:
    """The three month keys of the calendar quarter containing value."""
    first = month_start(value)
    start_month = (first.month - 1) // 3 * 3 + 1
    return [first.replace(month=start_month + i) for i in range(3)]


def quarter_start(year: int, quarter: int) -> date:
    if quarter not in (1, 2, 3, 4):
        raise ValueError(f"quarter must be 1-4, got {quarter}")
    return date(year, (quarter - 1) * 3 + 1, 1)


def quarter_bounds(value) -> Tuple[datetime, datetime]:
    months = quarter_months(value)
    return month_bounds(months[0])[0], month_bounds(months[-1])[1]
