from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eventdesk.api.deps import get_owned_event
from eventdesk.api.orders import as_buyer
from eventdesk.db.session import get_db
from eventdesk.models.order import Checkin, Customer, Order, Ticket, TicketDetail
from eventdesk.schemas.dashboard import (
    CheckinSummaryOut,
    DashboardOut,
    GenderComparisonOut,
    OrdersSummaryOut,
    RecentOrderOut,
    SalesTrendOut,
    TicketsSummaryOut,
)
from eventdesk.services.analytics import checkin_by_gender, gender_comparison, sales_trend, tickets_per_category
from eventdesk.services.auth import MerchantSession, get_current_session

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

RECENT_ORDERS = 5


@router.get("", response_model=DashboardOut)
async def get_dashboard(
    event_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
    session: MerchantSession = Depends(get_current_session),
) -> DashboardOut:
    event = await get_owned_event(db, session, event_id)

    paid = (
        await db.execute(
            select(Order, Customer)
            .outerjoin(Customer, Customer.id == Order.customer_id)
            .where(Order.event_id == event.id, Order.status == "paid")
            .order_by(Order.order_date.desc(), Order.id.desc())
        )
    ).all()
    recent = [
        RecentOrderOut(id=o.id, order_date=o.order_date, status=o.status, user=as_buyer(c))
        for o, c in paid[:RECENT_ORDERS]
    ]

    categories, series = sales_trend(event.start_date or date.today(), (o.order_date for o, _c in paid))

    ticket_rows = (
        await db.execute(
            select(Ticket.ticket_type, Order.quantity)
            .select_from(Order)
            .outerjoin(Ticket, Ticket.id == Order.ticket_id)
            .where(Order.event_id == event.id, Order.status == "paid")
            .order_by(Order.id.asc())
        )
    ).all()
    tickets = tickets_per_category((t, q) for t, q in ticket_rows)

    gender = GenderComparisonOut()
    if event.start_date and event.end_date:
        detail_rows = (
            await db.execute(
                select(TicketDetail.event_date, TicketDetail.gender)
                .join(Order, Order.id == TicketDetail.order_id)
                .where(Order.event_id == event.id)
            )
        ).all()
        comparison = gender_comparison(event.start_date, event.end_date, ((d, g) for d, g in detail_rows))
        gender = GenderComparisonOut(
            categories=comparison.categories,
            male=comparison.male,
            female=comparison.female,
        )

    checked_in_genders = (
        await db.execute(
            select(TicketDetail.gender)
            .select_from(Checkin)
            .join(TicketDetail, TicketDetail.id == Checkin.ticket_detail_id)
            .join(Order, Order.id == TicketDetail.order_id)
            .where(Order.event_id == event.id, Checkin.checked_in_at.is_not(None))
        )
    ).scalars().all()
    checkin_series = checkin_by_gender(checked_in_genders, tickets.total)

    return DashboardOut(
        event_id=event.id,
        orders=OrdersSummaryOut(total_orders=len(paid), recent_orders=recent),
        sales_trend=SalesTrendOut(categories=categories, series=series),
        tickets=TicketsSummaryOut(
            total_tickets=tickets.total,
            tickets_per_category=tickets.per_category,
            labels=tickets.labels,
            series=tickets.series,
        ),
        gender_comparison=gender,
        checkin_by_gender=CheckinSummaryOut(series=checkin_series, checked_in=checkin_series[0] + checkin_series[1]),
    )
