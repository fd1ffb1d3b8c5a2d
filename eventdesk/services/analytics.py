from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

MONTH_LABELS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


@dataclass(slots=True)
class TicketBreakdown:
    total: int = 0
    per_category: dict[str, int] = field(default_factory=dict)

    @property
    def labels(self) -> list[str]:
        return list(self.per_category)

    @property
    def series(self) -> list[int]:
        return list(self.per_category.values())


@dataclass(slots=True)
class GenderSeries:
    categories: list[date]
    male: list[int]
    female: list[int]


def _as_date(value: date | datetime | None) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    return value


def normalize_gender(raw: str | None) -> str | None:
    value = str(raw or "").strip().lower()
    return value if value in {"male", "female"} else None


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def sales_trend(
    event_start: date | datetime,
    order_dates: Iterable[date | datetime],
    months: int = 3,
) -> tuple[list[str], list[int]]:
    """Order counts for the ``months`` calendar months ending at the event's start month."""
    anchor = _as_date(event_start)
    buckets = [shift_month(anchor.year, anchor.month, -offset) for offset in range(months - 1, -1, -1)]
    counts = Counter()
    for raw in order_dates:
        day = _as_date(raw)
        if day is not None:
            counts[(day.year, day.month)] += 1
    return [MONTH_LABELS[m - 1] for _, m in buckets], [counts[key] for key in buckets]


def tickets_per_category(rows: Iterable[tuple[str | None, int | None]]) -> TicketBreakdown:
    out = TicketBreakdown()
    for ticket_type, quantity in rows:
        qty = int(quantity or 0)
        label = str(ticket_type or "-")
        out.total += qty
        out.per_category[label] = out.per_category.get(label, 0) + qty
    return out


def date_range(start: date | datetime, end: date | datetime) -> list[date]:
    first, last = _as_date(start), _as_date(end)
    if first is None or last is None or last < first:
        return []
    return [first + timedelta(days=i) for i in range((last - first).days + 1)]


def gender_comparison(
    start: date | datetime,
    end: date | datetime,
    rows: Iterable[tuple[date | datetime | None, str | None]],
) -> GenderSeries:
    categories = date_range(start, end)
    grouped = {day: {"male": 0, "female": 0} for day in categories}
    for event_date, gender in rows:
        day = _as_date(event_date)
        key = normalize_gender(gender)
        if day in grouped and key:
            grouped[day][key] += 1
    return GenderSeries(
        categories=categories,
        male=[grouped[d]["male"] for d in categories],
        female=[grouped[d]["female"] for d in categories],
    )


def checkin_by_gender(genders: Iterable[str | None], total_tickets: int) -> list[int]:
    """``[male, female, not_checked_in]`` for completed check-ins."""
    counts = Counter(normalize_gender(g) for g in genders)
    male, female = counts["male"], counts["female"]
    return [male, female, max(int(total_tickets) - male - female, 0)]


def group_checkins_by_day(timestamps: Iterable[datetime | None]) -> list[tuple[date, int]]:
    counts = Counter(ts.date() for ts in timestamps if ts is not None)
    return sorted(counts.items())
