from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field

from eventdesk.schemas.order import BuyerOut


class RecentOrderOut(BaseModel):
    id: int
    order_date: datetime
    status: str
    user: BuyerOut


class OrdersSummaryOut(BaseModel):
    total_orders: int = 0
    recent_orders: list[RecentOrderOut] = Field(default_factory=list)


class SalesTrendOut(BaseModel):
    categories: list[str] = Field(default_factory=list)
    series: list[int] = Field(default_factory=list)


class TicketsSummaryOut(BaseModel):
    total_tickets: int = 0
    tickets_per_category: dict[str, int] = Field(default_factory=dict)
    labels: list[str] = Field(default_factory=list)
    series: list[int] = Field(default_factory=list)


class GenderComparisonOut(BaseModel):
    categories: list[date] = Field(default_factory=list)
    male: list[int] = Field(default_factory=list)
    female: list[int] = Field(default_factory=list)


class CheckinSummaryOut(BaseModel):
    labels: list[str] = Field(default_factory=lambda: ["Male", "Female", "Not Checkin"])
    series: list[int] = Field(default_factory=lambda: [0, 0, 0])
    checked_in: int = 0


class DashboardOut(BaseModel):
    event_id: int
    orders: OrdersSummaryOut
    sales_trend: SalesTrendOut
    tickets: TicketsSummaryOut
    gender_comparison: GenderComparisonOut
    checkin_by_gender: CheckinSummaryOut
