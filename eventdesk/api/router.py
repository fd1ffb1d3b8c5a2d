from fastapi import APIRouter

from eventdesk.api.auth import router as auth_router
from eventdesk.api.checkins import router as checkins_router
from eventdesk.api.dashboard import router as dashboard_router
from eventdesk.api.events import router as events_router
from eventdesk.api.lineup import router as lineup_router
from eventdesk.api.merchants import router as merchants_router
from eventdesk.api.orders import router as orders_router
from eventdesk.api.templates import router as templates_router
from eventdesk.api.uploads import router as uploads_router

api_router = APIRouter()
api_router.include_router(auth_router)
api_router.include_router(merchants_router)
api_router.include_router(events_router)
api_router.include_router(templates_router)
api_router.include_router(lineup_router)
api_router.include_router(orders_router)
api_router.include_router(checkins_router)
api_router.include_router(dashboard_router)
api_router.include_router(uploads_router)
