"""Date manipulation utilities"""

import calendar
from datetime import date
from typing import List, Tuple

from dateutil.relativedelta import relativedelta


def add_months(from_date: date, months: int) -> date:
    """Shift a date by whole months, clamping the day to the target month's end"""
    return from_date + relativedelta(months=months)


def month_bounds(any_day: date) -> Tuple[date, date]:
    """First and last day of the month containing any_day"""
    last_day = calendar.monthrange(any_day.year, any_day.month)[1]
    return any_day.replace(day=1), any_day.replace(day=last_day)


def generate_month_starts(start: date, count: int) -> List[date]:
    """First day of `count` consecutive months, starting with start's month"""
    first = start.replace(day=1)
    return [add_months(first, i) for i in range(count)]


def same_month(a: date, b: date) -> bool:
    return a.year == b.year and a.month == b.month
