"""Domain structures for themes and their event cards."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

READY_TO_PLAY_MIN_CARDS = 12


@dataclass(slots=True)
class EventCard:
    order_index: int
    year: int
    era: str
    caption: str
    image_url: str
    image_quiz: dict[str, Any] = field(default_factory=dict)
    text_quiz: dict[str, Any] = field(default_factory=dict)
    true_false_quiz: dict[str, Any] = field(default_factory=dict)
    correlation_quiz: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class Theme:
    id: str
    creator_user_id: str
    name: str
    image: str
    resume: str | None
    recommendation: str | None
    cards: list[EventCard] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def ready_to_play(self) -> bool:
        return len(self.cards) >= READY_TO_PLAY_MIN_CARDS


@dataclass(slots=True)
class ThemePage:
    """One page of the ready-to-play catalog."""

    items: list[Theme]
    page: int
    page_size: int
    total_count: int

    @property
    def total_pages(self) -> int:
        return -(-self.total_count // self.page_size)
