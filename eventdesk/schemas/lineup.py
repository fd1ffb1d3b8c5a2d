from __future__ import annotations

from datetime import date, time

from pydantic import BaseModel, Field


class GuestOut(BaseModel):
    id: int
    name: str
    email: str | None = None
    phone: str | None = None


class ScheduleCreate(BaseModel):
    guest_id: int
    schedule_date: date
    start_time: time
    end_time: time
    stage: str | None = Field(default=None, max_length=120)


class SchedulePatch(BaseModel):
    schedule_date: date | None = None
    start_time: time | None = None
    end_time: time | None = None
    stage: str | None = Field(default=None, max_length=120)


class LineupGuestOut(BaseModel):
    schedule_id: int
    name: str
    email: str
    phone: str
    stage: str
    schedule_date: date
    start_time: time
    end_time: time


class LineupDayOut(BaseModel):
    date: date
    guests: list[LineupGuestOut]
