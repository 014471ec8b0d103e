"""Pydantic schemas for the theme asset upload API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateSessionRequest(_CamelModel):
    theme_id: str | None = None


class SessionResponse(_CamelModel):
    session_id: str
    theme_id: str | None
    created_at: datetime


class UploadResponse(_CamelModel):
    slot_key: str
    url: str


class DeleteCardAssetsResponse(_CamelModel):
    deleted_count: int
