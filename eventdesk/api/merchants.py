from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eventdesk.api.deps import asset_http_error, get_session_merchant, read_incoming_file
from eventdesk.db.session import get_db
from eventdesk.models.merchant import Merchant
from eventdesk.schemas.merchant import MerchantOut, MerchantPatch
from eventdesk.services.assets import AssetSyncFlow, get_asset_flow, replace_merchant_logo
from eventdesk.services.auth import MerchantSession, get_current_session
from eventdesk.services.exceptions import AssetError

router = APIRouter(prefix="/merchants", tags=["merchants"])


def as_merchant_out(merchant: Merchant) -> MerchantOut:
    return MerchantOut(
        id=merchant.id,
        name=merchant.name,
        email=merchant.email,
        logo=merchant.logo,
        created_at=merchant.created_at,
    )


@router.get("/me", response_model=MerchantOut)
async def get_me(
    db: AsyncSession = Depends(get_db),
    session: MerchantSession = Depends(get_current_session),
) -> MerchantOut:
    return as_merchant_out(await get_session_merchant(db, session))


@router.patch("/me", response_model=MerchantOut)
async def patch_me(
    payload: MerchantPatch,
    db: AsyncSession = Depends(get_db),
    session: MerchantSession = Depends(get_current_session),
) -> MerchantOut:
    merchant = await get_session_merchant(db, session)

    if payload.name is not None:
        merchant.name = payload.name.strip()
    if payload.email is not None:
        clean_email = payload.email.strip().lower()
        taken = (
            await db.execute(select(Merchant.id).where(Merchant.email == clean_email, Merchant.id != merchant.id))
        ).scalar_one_or_none()
        if taken is not None:
            raise HTTPException(status_code=409, detail="Email already in use")
        merchant.email = clean_email

    await db.commit()
    await db.refresh(merchant)
    return as_merchant_out(merchant)


@router.put("/me/logo", response_model=MerchantOut)
async def replace_logo(
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    session: MerchantSession = Depends(get_current_session),
    flow: AssetSyncFlow = Depends(get_asset_flow),
) -> MerchantOut:
    merchant = await get_session_merchant(db, session)
    upload = await read_incoming_file(file)
    try:
        await replace_merchant_logo(db, flow, merchant, upload)
    except AssetError as exc:
        raise asset_http_error(exc) from exc

    await db.refresh(merchant)
    return as_merchant_out(merchant)
