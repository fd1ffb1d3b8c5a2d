from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

import bcrypt
import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eventdesk.core.config import settings
from eventdesk.db.session import get_db
from eventdesk.models.common import utcnow
from eventdesk.models.merchant import Merchant, MerchantSessionRecord


bearer = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("ascii")


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("ascii"))
    except ValueError:
        # Not a bcrypt hash, e.g. a placeholder seeded by hand.
        return False


@dataclass(slots=True)
class MerchantSession:
    """The logged-in merchant, created at login and invalidated at logout."""

    session_id: str
    merchant_id: int
    email: str
    name: str


def issue_token(merchant_id: int, session_id: str, expires_at: datetime) -> str:
    payload = {
        "sub": str(merchant_id),
        "sid": session_id,
        "iat": utcnow(),
        "exp": expires_at,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def _decode_token(token: str) -> dict[str, Any]:
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            leeway=settings.jwt_exp_leeway_seconds,
        )
    except jwt.PyJWTError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc


def _parse_claims(payload: dict[str, Any]) -> tuple[int, str]:
    try:
        merchant_id = int(payload.get("sub"))
    except Exception as exc:
        raise HTTPException(status_code=401, detail="Invalid sub claim") from exc

    session_id = str(payload.get("sid") or "").strip()
    if not session_id:
        raise HTTPException(status_code=401, detail="Missing sid claim")
    return merchant_id, session_id


async def authenticate(db: AsyncSession, email: str, password: str) -> Merchant | None:
    clean_email = (email or "").strip().lower()
    merchant = (await db.execute(select(Merchant).where(Merchant.email == clean_email))).scalar_one_or_none()
    if merchant is None or not verify_password(password or "", merchant.password_hash):
        return None
    return merchant


async def open_session(db: AsyncSession, merchant: Merchant) -> str:
    record = MerchantSessionRecord(
        merchant_id=merchant.id,
        token_id=secrets.token_hex(16),
        expires_at=utcnow() + timedelta(hours=max(int(settings.session_ttl_hours), 1)),
    )
    db.add(record)
    await db.commit()
    return issue_token(merchant.id, record.token_id, record.expires_at)


async def close_session(db: AsyncSession, session: MerchantSession) -> None:
    record = (
        await db.execute(select(MerchantSessionRecord).where(MerchantSessionRecord.token_id == session.session_id))
    ).scalar_one_or_none()
    if record is not None and record.revoked_at is None:
        record.revoked_at = utcnow()
        await db.commit()


async def load_session(db: AsyncSession, token: str) -> MerchantSession:
    merchant_id, session_id = _parse_claims(_decode_token(token))
    row = (
        await db.execute(
            select(MerchantSessionRecord, Merchant)
            .join(Merchant, Merchant.id == MerchantSessionRecord.merchant_id)
            .where(
                MerchantSessionRecord.token_id == session_id,
                MerchantSessionRecord.merchant_id == merchant_id,
            )
        )
    ).first()
    if row is None:
        raise HTTPException(status_code=401, detail="Unknown session")

    record, merchant = row
    if record.revoked_at is not None:
        raise HTTPException(status_code=401, detail="Session ended")
    if record.expires_at <= utcnow():
        raise HTTPException(status_code=401, detail="Session expired")

    return MerchantSession(
        session_id=record.token_id,
        merchant_id=merchant.id,
        email=merchant.email,
        name=merchant.name,
    )


async def get_current_session(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
    db: AsyncSession = Depends(get_db),
) -> MerchantSession:
    if credentials is None:
        raise HTTPException(status_code=401, detail="Missing bearer token")
    return await load_session(db, credentials.credentials)
