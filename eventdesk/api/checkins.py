from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from eventdesk.api.deps import get_owned_event
from eventdesk.db.session import get_db
from eventdesk.models.common import utcnow
from eventdesk.models.event import Event
from eventdesk.models.order import Checkin, Order, TicketDetail
from eventdesk.schemas.order import CheckinDayOut, CheckinIn, CheckinOut, CheckinResultOut
from eventdesk.services.analytics import group_checkins_by_day
from eventdesk.services.auth import MerchantSession, get_current_session

logger = logging.getLogger(__name__)

router = APIRouter(tags=["checkins"])


def _event_checkins(event_id: int):
    return (
        select(Checkin, TicketDetail)
        .join(TicketDetail, TicketDetail.id == Checkin.ticket_detail_id)
        .join(Order, Order.id == TicketDetail.order_id)
        .where(Order.event_id == event_id)
    )


@router.post("/checkin", response_model=CheckinResultOut)
async def check_in(
    payload: CheckinIn,
    db: AsyncSession = Depends(get_db),
    session: MerchantSession = Depends(get_current_session),
) -> CheckinResultOut:
    row = (
        await db.execute(
            select(Checkin, TicketDetail)
            .join(TicketDetail, TicketDetail.id == Checkin.ticket_detail_id)
            .join(Order, Order.id == TicketDetail.order_id)
            .join(Event, Event.id == Order.event_id)
            .where(Checkin.id == payload.id, Event.merchant_id == session.merchant_id)
        )
    ).first()
    if row is None:
        raise HTTPException(status_code=404, detail="Participant not found")

    checkin, detail = row
    if checkin.checked_in_at is not None:
        raise HTTPException(status_code=400, detail="Participant already checked in")

    # Conditional update so two scanners cannot both admit the same ticket.
    result = await db.execute(
        update(Checkin)
        .where(Checkin.id == checkin.id, Checkin.checked_in_at.is_(None))
        .values(checked_in_at=utcnow())
    )
    if result.rowcount == 0:
        await db.rollback()
        raise HTTPException(status_code=400, detail="Participant already checked in")
    await db.commit()

    logger.info("Checked in ticket detail id=%s", detail.id)
    return CheckinResultOut(success=True, message="Checkin Success", name=detail.name or "-")


@router.get("/checkins", response_model=list[CheckinOut])
async def list_checkins(
    event_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
    session: MerchantSession = Depends(get_current_session),
) -> list[CheckinOut]:
    event = await get_owned_event(db, session, event_id)
    rows = (await db.execute(_event_checkins(event.id).order_by(Checkin.id.asc()))).all()
    return [
        CheckinOut(
            id=checkin.id,
            ticket_detail_id=detail.id,
            name=detail.name or "-",
            email=detail.email or "-",
            gender=detail.gender or "-",
            checked_in_at=checkin.checked_in_at,
        )
        for checkin, detail in rows
    ]


@router.get("/checkins/daily", response_model=list[CheckinDayOut])
async def daily_checkins(
    event_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
    session: MerchantSession = Depends(get_current_session),
) -> list[CheckinDayOut]:
    event = await get_owned_event(db, session, event_id)
    rows = (
        await db.execute(_event_checkins(event.id).where(Checkin.checked_in_at.is_not(None)))
    ).all()
    return [
        CheckinDayOut(date=day, count=count)
        for day, count in group_checkins_by_day(checkin.checked_in_at for checkin, _detail in rows)
    ]
