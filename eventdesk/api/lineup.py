from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eventdesk.api.deps import get_owned_event
from eventdesk.db.session import get_db
from eventdesk.models.event import Event, Guest, GuestSchedule
from eventdesk.schemas.common import MessageResponse
from eventdesk.schemas.lineup import GuestOut, LineupDayOut, ScheduleCreate, SchedulePatch
from eventdesk.services.auth import MerchantSession, get_current_session
from eventdesk.services.lineup import ensure_time_window, ensure_within_event, group_schedules_by_day

router = APIRouter(tags=["lineup"])


async def _owned_schedule(db: AsyncSession, session: MerchantSession, schedule_id: int) -> tuple[GuestSchedule, Event]:
    row = (
        await db.execute(
            select(GuestSchedule, Event)
            .join(Event, Event.id == GuestSchedule.event_id)
            .where(GuestSchedule.id == schedule_id, Event.merchant_id == session.merchant_id)
        )
    ).first()
    if row is None:
        raise HTTPException(status_code=404, detail="Schedule not found")
    return row[0], row[1]


def _validate(event: Event, schedule: GuestSchedule) -> None:
    try:
        ensure_within_event(event.start_date, event.end_date, schedule.schedule_date)
        ensure_time_window(schedule.start_time, schedule.end_time)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


async def _lineup(db: AsyncSession, event_id: int) -> list[LineupDayOut]:
    rows = (
        await db.execute(
            select(GuestSchedule, Guest)
            .outerjoin(Guest, Guest.id == GuestSchedule.guest_id)
            .where(GuestSchedule.event_id == event_id)
            .order_by(GuestSchedule.schedule_date.asc(), GuestSchedule.start_time.asc(), GuestSchedule.id.asc())
        )
    ).all()
    return [LineupDayOut(**day) for day in group_schedules_by_day((r[0], r[1]) for r in rows)]


@router.get("/guests", response_model=list[GuestOut])
async def list_guests(
    db: AsyncSession = Depends(get_db),
    _session: MerchantSession = Depends(get_current_session),
) -> list[GuestOut]:
    rows = (await db.execute(select(Guest).order_by(Guest.name.asc()))).scalars().all()
    return [GuestOut(id=g.id, name=g.name, email=g.email, phone=g.phone) for g in rows]


@router.get("/events/{event_id}/lineup", response_model=list[LineupDayOut])
async def get_lineup(
    event_id: int,
    db: AsyncSession = Depends(get_db),
    session: MerchantSession = Depends(get_current_session),
) -> list[LineupDayOut]:
    event = await get_owned_event(db, session, event_id)
    return await _lineup(db, event.id)


@router.post("/events/{event_id}/lineup", response_model=list[LineupDayOut], status_code=201)
async def add_to_lineup(
    event_id: int,
    payload: ScheduleCreate,
    db: AsyncSession = Depends(get_db),
    session: MerchantSession = Depends(get_current_session),
) -> list[LineupDayOut]:
    event = await get_owned_event(db, session, event_id)
    if await db.get(Guest, payload.guest_id) is None:
        raise HTTPException(status_code=404, detail="Guest not found")

    schedule = GuestSchedule(
        event_id=event.id,
        guest_id=payload.guest_id,
        schedule_date=payload.schedule_date,
        start_time=payload.start_time,
        end_time=payload.end_time,
        stage=(payload.stage or "").strip() or None,
    )
    _validate(event, schedule)
    db.add(schedule)
    await db.commit()
    return await _lineup(db, event.id)


@router.patch("/lineup/{schedule_id}", response_model=list[LineupDayOut])
async def update_schedule(
    schedule_id: int,
    payload: SchedulePatch,
    db: AsyncSession = Depends(get_db),
    session: MerchantSession = Depends(get_current_session),
) -> list[LineupDayOut]:
    schedule, event = await _owned_schedule(db, session, schedule_id)

    if payload.schedule_date is not None:
        schedule.schedule_date = payload.schedule_date
    if payload.start_time is not None:
        schedule.start_time = payload.start_time
    if payload.end_time is not None:
        schedule.end_time = payload.end_time
    if payload.stage is not None:
        schedule.stage = payload.stage.strip() or None
    _validate(event, schedule)

    await db.commit()
    return await _lineup(db, event.id)


@router.delete("/lineup/{schedule_id}", response_model=MessageResponse)
async def delete_schedule(
    schedule_id: int,
    db: AsyncSession = Depends(get_db),
    session: MerchantSession = Depends(get_current_session),
) -> MessageResponse:
    schedule, _event = await _owned_schedule(db, session, schedule_id)
    await db.delete(schedule)
    await db.commit()
    return MessageResponse(message="Schedule deleted")
