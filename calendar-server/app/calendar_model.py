"""
Date grid and day classification for the month calendars.
Pure functions of dates and the loaded holiday/anniversary sets.
"""
from __future__ import annotations

import calendar
import math
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Protocol, Tuple, Union

# datetime.weekday() numbering
MONDAY = 0
SATURDAY = 5
SUNDAY = 6

WILDCARDS = ("*", "any")


@dataclass(frozen=True)
class ExactDate:
    year: int
    month: int
    day: int


@dataclass(frozen=True)
class YearlyDate:
    """Same month and day in every year."""
    month: int
    day: int


@dataclass(frozen=True)
class MonthlyDate:
    """Same day in every month of every year."""
    day: int


DateKey = Union[ExactDate, YearlyDate, MonthlyDate]


@dataclass(frozen=True)
class LabeledDate:
    key: DateKey
    label: str = ""

    def to_date(self) -> Optional[date]:
        if not isinstance(self.key, ExactDate):
            return None
        try:
            return date(self.key.year, self.key.month, self.key.day)
        except ValueError:
            return None


def _is_wildcard(value: str) -> bool:
    return value.strip().lower() in WILDCARDS


def _parse_int(value: str) -> Optional[int]:
    value = value.strip()
    if not re.fullmatch(r"[+-]?\d+", value):
        return None
    return int(value)


def parse_date_entry(text: str) -> Optional[LabeledDate]:
    """Parse ``Y/M/D[,label]`` or ``Y-M-D[,label]``.

    ``*`` (or ``any``) is accepted for the year, or for both year and month.
    Returns None for anything that does not parse; such entries are skipped by
    callers rather than widened into wildcards.
    """
    if not text:
        return None
    head, _, label = str(text).partition(",")
    fields = head.strip().split("/")
    if len(fields) != 3:
        fields = head.strip().split("-")
    if len(fields) != 3:
        return None
    y_str, m_str, d_str = fields

    day = _parse_int(d_str)
    if day is None or not 1 <= day <= 31:
        return None
    label = label.strip()

    if _is_wildcard(y_str):
        if _is_wildcard(m_str):
            return LabeledDate(MonthlyDate(day), label)
        month = _parse_int(m_str)
        if month is None or not 1 <= month <= 12:
            return None
        return LabeledDate(YearlyDate(month, day), label)

    year = _parse_int(y_str)
    month = _parse_int(m_str)
    if year is None or year <= 0 or month is None or not 1 <= month <= 12:
        return None
    return LabeledDate(ExactDate(year, month, day), label)


# -------- Day classification --------
class DayOffRule(Protocol):
    """Capability used by the renderer to pick the accent color."""

    def is_day_off(self, day: date) -> bool:
        ...


class AnniversaryRule(Protocol):
    """Capability used by the renderer to underline a day."""

    def is_anniversary(self, day: date) -> bool:
        ...


def is_weekend(day: date) -> bool:
    return day.weekday() in (SATURDAY, SUNDAY)


class HolidayCalendar(DayOffRule):
    """Weekends plus an exact-date holiday set."""

    def __init__(self, holidays: Optional[Dict[ExactDate, str]] = None):
        self.holidays: Dict[ExactDate, str] = dict(holidays or {})

    @classmethod
    def from_entries(cls, entries: Iterable[LabeledDate]) -> "HolidayCalendar":
        holidays: Dict[ExactDate, str] = {}
        for entry in entries:
            if isinstance(entry.key, ExactDate):
                holidays[entry.key] = entry.label
        return cls(holidays)

    def label_for(self, day: date) -> Optional[str]:
        return self.holidays.get(ExactDate(day.year, day.month, day.day))

    def is_day_off(self, day: date) -> bool:
        if is_weekend(day):
            return True
        return ExactDate(day.year, day.month, day.day) in self.holidays

    def __len__(self) -> int:
        return len(self.holidays)


class AnniversarySet(AnniversaryRule):
    def __init__(self, entries: Iterable[LabeledDate] = ()):
        self.entries: Dict[DateKey, str] = {}
        for entry in entries:
            self.entries[entry.key] = entry.label

    def lookup(self, day: date) -> Optional[str]:
        # exact, then any year, then any year and month
        for key in (
            ExactDate(day.year, day.month, day.day),
            YearlyDate(day.month, day.day),
            MonthlyDate(day.day),
        ):
            if key in self.entries:
                return self.entries[key]
        return None

    def is_anniversary(self, day: date) -> bool:
        return self.lookup(day) is not None

    def __len__(self) -> int:
        return len(self.entries)


# -------- Month grid --------
@dataclass(frozen=True)
class DayCell:
    day: date
    column: int
    row: int


@dataclass(frozen=True)
class MonthView:
    first_day: date
    day_count: int
    first_column: int
    cells: Tuple[DayCell, ...]
    selected_index: Optional[int]

    @property
    def rows(self) -> int:
        return self.cells[-1].row + 1 if self.cells else 0


def next_month(year: int, month: int) -> Tuple[int, int]:
    if month == 12:
        return year + 1, 1
    return year, month + 1


def weekday_column(day: date, first_weekday: int = SUNDAY) -> int:
    return (day.weekday() - first_weekday) % 7


def build_month_view(year: int, month: int, selected: Optional[date] = None,
                     first_weekday: int = SUNDAY) -> MonthView:
    first = date(year, month, 1)
    day_count = calendar.monthrange(year, month)[1]

    cells: List[DayCell] = []
    row = 0
    for d in range(day_count):
        day = date(year, month, d + 1)
        column = weekday_column(day, first_weekday)
        cells.append(DayCell(day, column, row))
        if column == 6:
            row += 1

    selected_index = None
    if selected is not None and (selected.year, selected.month) == (year, month):
        selected_index = selected.day - 1

    return MonthView(
        first_day=first,
        day_count=day_count,
        first_column=weekday_column(first, first_weekday),
        cells=tuple(cells),
        selected_index=selected_index,
    )


def elapsed_days(selected: Union[date, datetime], since: Union[date, datetime]) -> int:
    """Whole days from ``since`` to ``selected``, truncated toward zero."""
    if not isinstance(selected, datetime):
        selected = datetime(selected.year, selected.month, selected.day)
    if not isinstance(since, datetime):
        since = datetime(since.year, since.month, since.day, tzinfo=selected.tzinfo)
    elif since.tzinfo is None and selected.tzinfo is not None:
        since = since.replace(tzinfo=selected.tzinfo)
    return math.trunc((selected - since).total_seconds() / 86400)
