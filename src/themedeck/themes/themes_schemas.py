"""Pydantic schemas for the theme API.

Request models are deliberately lenient: missing or blank fields are reported
by :mod:`.themes_validation` as a collected ``{field: message}`` map instead of
failing one field at a time at the framework level.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ImageQuizOptionPayload(_CamelModel):
    image_url: str | None = None


class ImageQuizPayload(_CamelModel):
    question: str | None = None
    options: list[ImageQuizOptionPayload] = Field(default_factory=list)
    correct_index: int | None = None


class TextQuizOptionPayload(_CamelModel):
    text: str | None = None


class TextQuizPayload(_CamelModel):
    question: str | None = None
    options: list[TextQuizOptionPayload] = Field(default_factory=list)
    correct_index: int | None = None


class TrueFalseQuizPayload(_CamelModel):
    statement: str | None = None
    answer: bool = False


class CorrelationItemPayload(_CamelModel):
    image_url: str | None = None
    text: str | None = None


class CorrelationQuizPayload(_CamelModel):
    items: list[CorrelationItemPayload] = Field(default_factory=list)


class EventCardPayload(_CamelModel):
    order_index: int = 0
    year: int = 0
    era: str | None = None
    caption: str | None = None
    image_url: str | None = None
    image_quiz: ImageQuizPayload | None = None
    text_quiz: TextQuizPayload | None = None
    true_false_quiz: TrueFalseQuizPayload | None = None
    correlation_quiz: CorrelationQuizPayload | None = None


class ThemePayload(_CamelModel):
    """Body of ``POST /api/themes`` and ``PUT /api/themes/{id}``."""

    name: str | None = None
    image: str | None = None
    resume: str | None = None
    recommendation: str | None = None
    upload_session_id: str | None = None
    cards: list[EventCardPayload] = Field(default_factory=list)


class ThemeCreatedResponse(_CamelModel):
    id: str


class ThemeSummaryResponse(_CamelModel):
    id: str
    name: str
    image: str
    resume: str | None = None
    recommendation: str | None = None
    ready_to_play: bool
    card_count: int
    updated_at: datetime


class ThemeResponse(ThemeSummaryResponse):
    creator_user_id: str
    created_at: datetime
    cards: list[EventCardPayload]


class ThemeStorageItem(_CamelModel):
    id: str
    name: str
    image: str
    resume: str | None = None
    recommendation: str | None = None
    ready_to_play: bool
    creator_user_id: str
    created_at: datetime
    number_of_cards: int


class ThemeStoragePage(_CamelModel):
    """Body of ``GET /api/themes/storage``."""

    items: list[ThemeStorageItem]
    page: int
    page_size: int
    total_count: int
    total_pages: int
