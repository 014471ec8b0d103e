"""Check declared image URLs of a theme payload against the upload session."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from ..media.public_media_links import base_path_of, normalize_public_url
from ..themes.themes_schemas import ThemePayload
from .slot_keys import CardImage, CorrelationItem, ImageQuizOption

MISSING_URL = "Image URL is missing."
FOREIGN_URL = "URL is not served by this storage."
SLOT_NOT_IN_SESSION = "Slot was not uploaded in this session."
URL_MISMATCH = "URL does not match the file uploaded for this slot."
URL_OUTSIDE_THEME = "URL belongs neither to the theme nor to the current upload session."


@dataclass(slots=True)
class SlotValidationResult:
    errors: dict[str, str] = field(default_factory=dict)
    slots_requiring_promotion: set[str] = field(default_factory=set)

    @property
    def ok(self) -> bool:
        return not self.errors


def build_expected_slots(payload: ThemePayload) -> dict[str, str | None]:
    """Every image field of the payload keyed by its slot key.

    Cards are addressed by their ``orderIndex``, not their list position.
    """
    expected: dict[str, str | None] = {}
    for card in payload.cards:
        i = card.order_index
        expected[str(CardImage(i))] = card.image_url
        options = card.image_quiz.options if card.image_quiz else []
        for k, option in enumerate(options):
            expected[str(ImageQuizOption(i, k))] = option.image_url
        items = card.correlation_quiz.items if card.correlation_quiz else []
        for k, item in enumerate(items):
            expected[str(CorrelationItem(i, k))] = item.image_url
    return expected


def _prefix(public_base: str, owner_id: str) -> str:
    return f"{base_path_of(public_base)}/themes/{owner_id}/".casefold()


def _check_session_slot(
    slot_key: str,
    normalized: str,
    assets: Mapping[str, str],
    public_base: str,
) -> str | None:
    recorded = assets.get(slot_key)
    if recorded is None:
        return SLOT_NOT_IN_SESSION
    recorded_normalized = normalize_public_url(recorded, public_base)
    if recorded_normalized is None or recorded_normalized.casefold() != normalized.casefold():
        return URL_MISMATCH
    return None


def validate_for_create(
    expected: Mapping[str, str | None],
    assets: Mapping[str, str],
    public_base: str,
) -> dict[str, str]:
    """Each declared URL must equal what the session recorded for its slot."""
    errors: dict[str, str] = {}
    for slot_key, url in expected.items():
        if not url or not url.strip():
            errors[slot_key] = MISSING_URL
            continue
        normalized = normalize_public_url(url, public_base)
        if normalized is None:
            errors[slot_key] = FOREIGN_URL
            continue
        problem = _check_session_slot(slot_key, normalized, assets, public_base)
        if problem:
            errors[slot_key] = problem
    return errors


def validate_for_update(
    expected: Mapping[str, str | None],
    *,
    theme_id: str,
    session_id: str | None,
    assets: Mapping[str, str],
    public_base: str,
) -> SlotValidationResult:
    """URLs under the theme pass untouched; session URLs pass and need promotion."""
    result = SlotValidationResult()
    theme_prefix = _prefix(public_base, theme_id)
    session_prefix = _prefix(public_base, session_id) if session_id else None

    for slot_key, url in expected.items():
        if not url or not url.strip():
            result.errors[slot_key] = MISSING_URL
            continue
        normalized = normalize_public_url(url, public_base)
        if normalized is None:
            result.errors[slot_key] = FOREIGN_URL
            continue

        folded = normalized.casefold()
        if folded.startswith(theme_prefix):
            continue
        if session_prefix is not None and folded.startswith(session_prefix):
            problem = _check_session_slot(slot_key, normalized, assets, public_base)
            if problem:
                result.errors[slot_key] = problem
            else:
                result.slots_requiring_promotion.add(slot_key)
            continue
        result.errors[slot_key] = URL_OUTSIDE_THEME
    return result
