from __future__ import annotations

from pydantic import BaseModel, Field

from eventdesk.schemas.merchant import MerchantOut


class LoginIn(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1, max_length=255)


class LoginOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    merchant: MerchantOut
