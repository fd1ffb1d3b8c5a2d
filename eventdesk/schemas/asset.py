from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class UploadOut(BaseModel):
    url: str
    remote: Any = None


class DeleteFileIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    file_path: str = Field(alias="filePath", min_length=1)
    scope: str | None = None
    template_id: int | None = Field(default=None, alias="templateId")
    template_url: str | None = Field(default=None, alias="templateUrl")


class DeleteFileOut(BaseModel):
    success: bool = True
    remote: Any = None
