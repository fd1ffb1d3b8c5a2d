from __future__ import annotations

from collections.abc import Iterable
from datetime import date, time
from typing import Any


def _or_dash(value: Any) -> str:
    text = str(value or "").strip()
    return text or "-"


def ensure_within_event(start: date | None, end: date | None, schedule_date: date) -> None:
    if (start is not None and schedule_date < start) or (end is not None and schedule_date > end):
        raise ValueError(f"Date must be within the event dates ({start} to {end})")


def ensure_time_window(start_time: time, end_time: time) -> None:
    if end_time <= start_time:
        raise ValueError("end_time must be after start_time")


def group_schedules_by_day(rows: Iterable[tuple[Any, Any]]) -> list[dict[str, Any]]:
    """Group ``(schedule, guest)`` pairs into days sorted by date, preserving row order inside a day."""
    days: dict[date, list[dict[str, Any]]] = {}
    for schedule, guest in rows:
        days.setdefault(schedule.schedule_date, []).append(
            {
                "schedule_id": schedule.id,
                "name": _or_dash(getattr(guest, "name", None)),
                "email": _or_dash(getattr(guest, "email", None)),
                "phone": _or_dash(getattr(guest, "phone", None)),
                "stage": _or_dash(schedule.stage),
                "schedule_date": schedule.schedule_date,
                "start_time": schedule.start_time,
                "end_time": schedule.end_time,
            }
        )
    return [{"date": day, "guests": days[day]} for day in sorted(days)]
