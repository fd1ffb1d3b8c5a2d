from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from eventdesk.api.router import api_router
from eventdesk.core.config import settings
from eventdesk.core.logging import configure_logging
from eventdesk.middleware.rate_limit import RedisRateLimitMiddleware


configure_logging()

app = FastAPI(title=settings.app_name, default_response_class=ORJSONResponse, version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RedisRateLimitMiddleware)

app.include_router(api_router, prefix=settings.api_prefix)

Instrumentator().instrument(app).expose(app)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
