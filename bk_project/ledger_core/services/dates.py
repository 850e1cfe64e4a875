import calendar
import datetime


def add_months(day, months, anchor_day=None):
    """Move `day` by whole months, clamping to the month's last day.

    anchor_day keeps the intended day-of-month across short months:
    Jan 31 → Feb 29 → Mar 31 when anchored on 31.

    >>> add_months(datetime.date(2024, 1, 31), 1)
    datetime.date(2024, 2, 29)
    """
    index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    last = calendar.monthrange(year, month)[1]
    return datetime.date(year, month, min(anchor_day or day.day, last))


def previous_year(day):
    """Same calendar date one year earlier (Feb 29 → Feb 28)."""
    return add_months(day, -12)
