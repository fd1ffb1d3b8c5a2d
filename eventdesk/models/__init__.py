from eventdesk.models.asset import MirroredUpload
from eventdesk.models.event import Event, Guest, GuestSchedule, Template, TemplateFeature
from eventdesk.models.merchant import Merchant, MerchantSessionRecord
from eventdesk.models.order import Checkin, Customer, Order, Ticket, TicketDetail

__all__ = [
    "Checkin",
    "Customer",
    "Event",
    "Guest",
    "GuestSchedule",
    "Merchant",
    "MerchantSessionRecord",
    "MirroredUpload",
    "Order",
    "Template",
    "TemplateFeature",
    "Ticket",
    "TicketDetail",
]
