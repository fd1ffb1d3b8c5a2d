from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from eventdesk.api.merchants import as_merchant_out
from eventdesk.db.session import get_db
from eventdesk.schemas.auth import LoginIn, LoginOut
from eventdesk.schemas.common import MessageResponse
from eventdesk.services.auth import MerchantSession, authenticate, close_session, get_current_session, open_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=LoginOut)
async def login(payload: LoginIn, db: AsyncSession = Depends(get_db)) -> LoginOut:
    merchant = await authenticate(db, payload.email, payload.password)
    if merchant is None:
        logger.info("Failed login for %s", payload.email.strip().lower())
        raise HTTPException(status_code=401, detail="Invalid email or password")

    token = await open_session(db, merchant)
    return LoginOut(access_token=token, merchant=as_merchant_out(merchant))


@router.post("/logout", response_model=MessageResponse)
async def logout(
    db: AsyncSession = Depends(get_db),
    session: MerchantSession = Depends(get_current_session),
) -> MessageResponse:
    await close_session(db, session)
    return MessageResponse(message="Logged out")

