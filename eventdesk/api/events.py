from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from eventdesk.api.deps import asset_http_error, get_owned_event, is_past, read_incoming_file
from eventdesk.db.session import get_db
from eventdesk.models.event import Event
from eventdesk.schemas.event import ApplyTemplateIn, AssetSlotOut, EventCreate, EventOut, EventPatch
from eventdesk.services.assets import (
    EVENT_ASSET_SLOTS,
    AssetSyncFlow,
    apply_template,
    get_asset_flow,
    remove_event_asset,
    replace_event_asset,
)
from eventdesk.services.auth import MerchantSession, get_current_session
from eventdesk.services.exceptions import AssetError

router = APIRouter(prefix="/events", tags=["events"])


def as_event_out(event: Event) -> EventOut:
    return EventOut(
        id=event.id,
        name=event.name,
        description=event.description,
        location=event.location,
        start_date=event.start_date,
        end_date=event.end_date,
        capacity=event.capacity,
        status=event.status,
        is_past=is_past(event.end_date),
        template_id=event.template_id,
        image_venue=event.image_venue,
        hero_image=event.hero_image,
    )


def _check_dates(event: Event) -> None:
    if event.start_date and event.end_date and event.start_date > event.end_date:
        raise HTTPException(status_code=422, detail="start_date must not be after end_date")


def _check_slot(slot: str) -> None:
    if slot not in EVENT_ASSET_SLOTS:
        raise HTTPException(status_code=404, detail="Unknown asset slot")


@router.get("", response_model=list[EventOut])
async def list_events(
    search: str | None = Query(default=None, max_length=120),
    db: AsyncSession = Depends(get_db),
    session: MerchantSession = Depends(get_current_session),
) -> list[EventOut]:
    stmt = select(Event).where(Event.merchant_id == session.merchant_id)
    term = (search or "").strip()
    if term:
        pattern = f"%{term}%"
        stmt = stmt.where(
            or_(
                Event.name.ilike(pattern),
                Event.description.ilike(pattern),
                Event.location.ilike(pattern),
            )
        )
    rows = (await db.execute(stmt.order_by(Event.id.asc()))).scalars().all()
    return [as_event_out(row) for row in rows]


@router.post("", response_model=EventOut, status_code=201)
async def create_event(
    payload: EventCreate,
    db: AsyncSession = Depends(get_db),
    session: MerchantSession = Depends(get_current_session),
) -> EventOut:
    event = Event(
        merchant_id=session.merchant_id,
        name=payload.name.strip(),
        description=payload.description or None,
        location=payload.location or None,
        start_date=payload.start_date,
        end_date=payload.end_date,
        capacity=payload.capacity,
        status=payload.status,
    )
    _check_dates(event)
    db.add(event)
    await db.commit()
    await db.refresh(event)
    return as_event_out(event)


@router.get("/{event_id}", response_model=EventOut)
async def get_event(
    event_id: int,
    db: AsyncSession = Depends(get_db),
    session: MerchantSession = Depends(get_current_session),
) -> EventOut:
    return as_event_out(await get_owned_event(db, session, event_id))


@router.patch("/{event_id}", response_model=EventOut)
async def patch_event(
    event_id: int,
    payload: EventPatch,
    db: AsyncSession = Depends(get_db),
    session: MerchantSession = Depends(get_current_session),
) -> EventOut:
    event = await get_owned_event(db, session, event_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        if field == "name" and value is None:
            continue
        setattr(event, field, value)
    _check_dates(event)

    await db.commit()
    await db.refresh(event)
    return as_event_out(event)


@router.post("/{event_id}/template", response_model=EventOut)
async def set_event_template(
    event_id: int,
    payload: ApplyTemplateIn,
    db: AsyncSession = Depends(get_db),
    session: MerchantSession = Depends(get_current_session),
    flow: AssetSyncFlow = Depends(get_asset_flow),
) -> EventOut:
    event = await get_owned_event(db, session, event_id)
    try:
        event = await apply_template(db, flow, event, payload.template_id)
    except AssetError as exc:
        raise asset_http_error(exc) from exc
    return as_event_out(event)


@router.put("/{event_id}/assets/{slot}", response_model=AssetSlotOut)
async def put_event_asset(
    event_id: int,
    slot: str,
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    session: MerchantSession = Depends(get_current_session),
    flow: AssetSyncFlow = Depends(get_asset_flow),
) -> AssetSlotOut:
    _check_slot(slot)
    event = await get_owned_event(db, session, event_id)
    upload = await read_incoming_file(file)
    try:
        result = await replace_event_asset(db, flow, event, slot, upload)
    except AssetError as exc:
        raise asset_http_error(exc) from exc
    return AssetSlotOut(slot=slot, path=result.path, remote=result.remote)


@router.delete("/{event_id}/assets/{slot}", response_model=AssetSlotOut)
async def delete_event_asset(
    event_id: int,
    slot: str,
    db: AsyncSession = Depends(get_db),
    session: MerchantSession = Depends(get_current_session),
    flow: AssetSyncFlow = Depends(get_asset_flow),
) -> AssetSlotOut:
    _check_slot(slot)
    event = await get_owned_event(db, session, event_id)
    try:
        await remove_event_asset(db, flow, event, slot)
    except AssetError as exc:
        raise asset_http_error(exc) from exc
    return AssetSlotOut(slot=slot, path=None)
