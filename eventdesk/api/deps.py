from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from datetime import date

from fastapi import Depends, Header, HTTPException, UploadFile
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eventdesk.core.config import settings
from eventdesk.db.session import get_db
from eventdesk.models.event import Event
from eventdesk.models.merchant import Merchant
from eventdesk.services.auth import MerchantSession, bearer, load_session
from eventdesk.services.exceptions import (
    AssetError,
    AssetExists,
    InvalidAssetPath,
    InvalidFile,
    LocalFileNotFound,
    LocalWriteFailed,
    RemoteError,
    ReplaceInProgress,
    TemplateNotFound,
)
from eventdesk.services.storage import IncomingFile

logger = logging.getLogger(__name__)

_ASSET_ERROR_STATUS: list[tuple[type[AssetError], int]] = [
    (InvalidFile, 400),
    (InvalidAssetPath, 400),
    (LocalFileNotFound, 404),
    (TemplateNotFound, 404),
    (ReplaceInProgress, 409),
    (AssetExists, 409),
    (RemoteError, 502),
    (LocalWriteFailed, 500),
]


def asset_http_error(exc: AssetError) -> HTTPException:
    for kind, status_code in _ASSET_ERROR_STATUS:
        if isinstance(exc, kind):
            return HTTPException(status_code=status_code, detail=str(exc) or kind.__name__)
    return HTTPException(status_code=500, detail=str(exc) or "Asset operation failed")


def is_past(end_date: date | None, today: date | None = None) -> bool:
    if end_date is None:
        return False
    return end_date < (today or date.today())


async def get_owned_event(db: AsyncSession, session: MerchantSession, event_id: int) -> Event:
    event = (
        await db.execute(select(Event).where(Event.id == event_id, Event.merchant_id == session.merchant_id))
    ).scalar_one_or_none()
    if event is None:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


async def get_session_merchant(db: AsyncSession, session: MerchantSession) -> Merchant:
    merchant = await db.get(Merchant, session.merchant_id)
    if merchant is None:
        raise HTTPException(status_code=401, detail="Merchant not found")
    return merchant


async def read_incoming_file(file: UploadFile) -> IncomingFile:
    data = await file.read()
    return IncomingFile(
        filename=str(file.filename or "file"),
        content_type=str(file.content_type or "application/octet-stream"),
        data=data,
    )


@dataclass(slots=True)
class UploadCaller:
    session: MerchantSession | None = None
    mirror: bool = False


def _is_mirror_token(value: str | None) -> bool:
    expected = str(settings.mirror_token or "")
    presented = str(value or "")
    return bool(expected and presented) and hmac.compare_digest(expected, presented)


async def get_upload_caller(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
    db: AsyncSession = Depends(get_db),
    x_mirror_token: str | None = Header(default=None, alias="X-Mirror-Token"),
) -> UploadCaller:
    """Either a merchant session or a peer deployment presenting the mirror token."""
    if x_mirror_token is not None:
        if not _is_mirror_token(x_mirror_token):
            logger.warning("Rejected upload call with invalid mirror token")
            raise HTTPException(status_code=401, detail="Invalid mirror token")
        return UploadCaller(mirror=True)

    if credentials is None:
        raise HTTPException(status_code=401, detail="Missing bearer token or mirror token")
    return UploadCaller(session=await load_session(db, credentials.credentials))
