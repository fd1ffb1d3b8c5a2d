from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class MerchantOut(BaseModel):
    id: int
    name: str
    email: str
    logo: str | None = None
    created_at: datetime | None = None


class MerchantPatch(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: str | None = Field(default=None, min_length=3, max_length=255)
