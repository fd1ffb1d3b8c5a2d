from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class BuyerOut(BaseModel):
    name: str = "-"
    email: str = "-"
    phone: str = "-"


class OrderOut(BaseModel):
    id: int
    order_date: datetime
    status: str
    quantity: int
    price: Decimal
    user: BuyerOut


class OrderChartOut(BaseModel):
    categories: list[date] = Field(default_factory=list)
    qty: list[int] = Field(default_factory=list)
    price: list[Decimal] = Field(default_factory=list)


class OrderListOut(BaseModel):
    orders: list[OrderOut]
    total_quantity: int = 0
    total_revenue: Decimal = Decimal("0")
    chart: OrderChartOut


class TicketDetailOut(BaseModel):
    id: int
    name: str = "-"
    email: str = "-"
    phone: str = "-"
    gender: str = "-"
    ticket_type: str = "-"
    price: Decimal | None = None
    status: str | None = None
    checked_in_at: datetime | None = None


class CheckinIn(BaseModel):
    id: int


class CheckinResultOut(BaseModel):
    success: bool = True
    message: str
    name: str


class CheckinOut(BaseModel):
    id: int
    ticket_detail_id: int
    name: str = "-"
    email: str = "-"
    gender: str = "-"
    checked_in_at: datetime | None = None


class CheckinDayOut(BaseModel):
    date: date
    count: int
