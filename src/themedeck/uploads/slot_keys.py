"""Slot key grammar and slot -> relative path addressing.

A slot key names exactly one image field inside a card of a theme payload::

    cards[i].imageUrl                              -> cards/i/main.webp
    cards[i].imageQuiz.options[k].imageUrl         -> cards/i/imageQuiz/options/k.webp
    cards[i].correlationQuiz.items[k].imageUrl     -> cards/i/correlation/items/k.webp

Keys are parsed once at the boundary into one of the tagged variants below;
downstream code works with the parsed value and never re-matches strings.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

from .uploads_errors import InvalidSlotKeyError

MAX_SLOT_KEY_LENGTH = 200
IMAGE_QUIZ_OPTIONS = 4
CORRELATION_ITEMS = 3
IMAGES_PER_CARD = 1 + IMAGE_QUIZ_OPTIONS + CORRELATION_ITEMS

_CARD_IMAGE = re.compile(r"cards\[([0-9]+)\]\.imageUrl", re.ASCII)
_IMAGE_QUIZ_OPTION = re.compile(
    r"cards\[([0-9]+)\]\.imageQuiz\.options\[([0-9]+)\]\.imageUrl", re.ASCII
)
_CORRELATION_ITEM = re.compile(
    r"cards\[([0-9]+)\]\.correlationQuiz\.items\[([0-9]+)\]\.imageUrl", re.ASCII
)


@dataclass(frozen=True, slots=True)
class CardImage:
    card: int

    def __str__(self) -> str:
        return f"cards[{self.card}].imageUrl"

    def relative_path(self) -> str:
        return f"cards/{self.card}/main.webp"


@dataclass(frozen=True, slots=True)
class ImageQuizOption:
    card: int
    option: int

    def __str__(self) -> str:
        return f"cards[{self.card}].imageQuiz.options[{self.option}].imageUrl"

    def relative_path(self) -> str:
        return f"cards/{self.card}/imageQuiz/options/{self.option}.webp"


@dataclass(frozen=True, slots=True)
class CorrelationItem:
    card: int
    item: int

    def __str__(self) -> str:
        return f"cards[{self.card}].correlationQuiz.items[{self.item}].imageUrl"

    def relative_path(self) -> str:
        return f"cards/{self.card}/correlation/items/{self.item}.webp"


SlotKey = Union[CardImage, ImageQuizOption, CorrelationItem]


def parse_slot_key(raw: str) -> SlotKey:
    """Parse ``raw`` into a slot key variant or raise :class:`InvalidSlotKeyError`."""
    if not raw:
        raise InvalidSlotKeyError("slotKey is required")
    if len(raw) > MAX_SLOT_KEY_LENGTH:
        raise InvalidSlotKeyError(f"slotKey exceeds {MAX_SLOT_KEY_LENGTH} characters")

    match = _CARD_IMAGE.fullmatch(raw)
    if match:
        return CardImage(card=int(match.group(1)))

    match = _IMAGE_QUIZ_OPTION.fullmatch(raw)
    if match:
        return ImageQuizOption(card=int(match.group(1)), option=int(match.group(2)))

    match = _CORRELATION_ITEM.fullmatch(raw)
    if match:
        return CorrelationItem(card=int(match.group(1)), item=int(match.group(2)))

    raise InvalidSlotKeyError(
        "invalid slotKey, expected cards[i].imageUrl | "
        "cards[i].imageQuiz.options[k].imageUrl | "
        "cards[i].correlationQuiz.items[k].imageUrl"
    )


def card_slot_keys(card_index: int) -> list[SlotKey]:
    """All image slots of one card: main image, quiz options, correlation items."""
    keys: list[SlotKey] = [CardImage(card_index)]
    keys.extend(ImageQuizOption(card_index, k) for k in range(IMAGE_QUIZ_OPTIONS))
    keys.extend(CorrelationItem(card_index, k) for k in range(CORRELATION_ITEMS))
    return keys
