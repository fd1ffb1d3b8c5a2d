from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel, Field


class TemplateOut(BaseModel):
    id: int
    title: str
    category: str
    thumbnail: str | None = None
    description: str | None = None
    url: str | None = None
    features: list[str] = Field(default_factory=list)


class EventCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    location: str | None = Field(default=None, max_length=255)
    start_date: date | None = None
    end_date: date | None = None
    capacity: int | None = Field(default=None, ge=0)
    status: bool = True


class EventPatch(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    location: str | None = Field(default=None, max_length=255)
    start_date: date | None = None
    end_date: date | None = None
    capacity: int | None = Field(default=None, ge=0)
    status: bool | None = None


class EventOut(BaseModel):
    id: int
    name: str
    description: str | None = None
    location: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    capacity: int | None = None
    status: bool
    is_past: bool = False
    template_id: int | None = None
    image_venue: str | None = None
    hero_image: str | None = None


class ApplyTemplateIn(BaseModel):
    template_id: int


class AssetSlotOut(BaseModel):
    slot: str
    path: str | None = None
    remote: Any = None
