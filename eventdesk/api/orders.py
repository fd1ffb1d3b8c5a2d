from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from eventdesk.api.deps import get_owned_event
from eventdesk.db.session import get_db
from eventdesk.models.event import Event
from eventdesk.models.order import Checkin, Customer, Order, Ticket, TicketDetail
from eventdesk.schemas.order import BuyerOut, OrderChartOut, OrderListOut, OrderOut, TicketDetailOut
from eventdesk.services.auth import MerchantSession, get_current_session

router = APIRouter(tags=["orders"])


def as_buyer(customer: Customer | None) -> BuyerOut:
    if customer is None:
        return BuyerOut()
    return BuyerOut(
        name=customer.name or "-",
        email=customer.email or "-",
        phone=customer.phone or "-",
    )


@router.get("/events/{event_id}/orders", response_model=OrderListOut)
async def list_orders(
    event_id: int,
    search: str | None = Query(default=None, max_length=120),
    db: AsyncSession = Depends(get_db),
    session: MerchantSession = Depends(get_current_session),
) -> OrderListOut:
    event = await get_owned_event(db, session, event_id)

    stmt = (
        select(Order, Customer)
        .outerjoin(Customer, Customer.id == Order.customer_id)
        .where(Order.event_id == event.id)
    )
    term = (search or "").strip()
    if term:
        pattern = f"%{term}%"
        stmt = stmt.where(
            or_(
                Customer.name.ilike(pattern),
                Customer.email.ilike(pattern),
                Customer.phone.ilike(pattern),
            )
        )
    rows = (await db.execute(stmt.order_by(Order.order_date.asc(), Order.id.asc()))).all()

    orders = [
        OrderOut(
            id=order.id,
            order_date=order.order_date,
            status=order.status,
            quantity=int(order.quantity or 0),
            price=order.price or Decimal("0"),
            user=as_buyer(customer),
        )
        for order, customer in rows
    ]
    return OrderListOut(
        orders=orders,
        total_quantity=sum(o.quantity for o in orders),
        total_revenue=sum((o.price for o in orders), Decimal("0")),
        chart=OrderChartOut(
            categories=[o.order_date.date() for o in orders],
            qty=[o.quantity for o in orders],
            price=[o.price for o in orders],
        ),
    )


@router.get("/orders/{order_id}", response_model=list[TicketDetailOut])
async def get_order_details(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    session: MerchantSession = Depends(get_current_session),
) -> list[TicketDetailOut]:
    order = (
        await db.execute(
            select(Order)
            .join(Event, Event.id == Order.event_id)
            .where(Order.id == order_id, Event.merchant_id == session.merchant_id)
        )
    ).scalar_one_or_none()
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")

    ticket = await db.get(Ticket, order.ticket_id) if order.ticket_id is not None else None
    rows = (
        await db.execute(
            select(TicketDetail, Checkin)
            .outerjoin(Checkin, Checkin.ticket_detail_id == TicketDetail.id)
            .where(TicketDetail.order_id == order.id)
            .order_by(TicketDetail.id.asc())
        )
    ).all()

    return [
        TicketDetailOut(
            id=detail.id,
            name=detail.name or "-",
            email=detail.email or "-",
            phone=detail.phone or "-",
            gender=detail.gender or "-",
            ticket_type=ticket.ticket_type if ticket else "-",
            price=ticket.price if ticket else None,
            status=detail.ticket_status,
            checked_in_at=checkin.checked_in_at if checkin else None,
        )
        for detail, checkin in rows
    ]
