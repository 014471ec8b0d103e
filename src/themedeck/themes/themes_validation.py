"""Field-level validation of theme payloads."""

from __future__ import annotations

from collections import Counter
from urllib.parse import urlsplit

from ..media.public_media_links import normalize_public_url
from ..uploads.slot_keys import CORRELATION_ITEMS, IMAGE_QUIZ_OPTIONS
from .themes_schemas import EventCardPayload, ThemePayload

MAX_NAME_LENGTH = 50
MAX_RESUME_LENGTH = 100
MAX_RECOMMENDATION_LENGTH = 50
MAX_QUESTION_LENGTH = 70
MAX_OPTION_TEXT_LENGTH = 150
MAX_STATEMENT_LENGTH = 200
TEXT_QUIZ_OPTIONS = 4
ERAS = ("BC", "AD")


def is_data_url(value: str | None) -> bool:
    return bool(value) and value.lstrip().lower().startswith("data:image/")


def is_http_url(value: str | None) -> bool:
    if not value:
        return False
    parts = urlsplit(value.strip())
    return parts.scheme in ("http", "https") and bool(parts.netloc)


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


def _required_text(errors: dict[str, str], key: str, value: str | None, limit: int, label: str) -> None:
    if _blank(value):
        errors[key] = f"{label} is required."
    elif len(value) > limit:
        errors[key] = f"{label} must be at most {limit} characters."


def _image_reference(errors: dict[str, str], key: str, value: str | None) -> None:
    if _blank(value):
        errors[key] = "Image is required."
    elif is_data_url(value):
        errors[key] = "Image must be a URL, not an inline data URL."


def _validate_card(errors: dict[str, str], position: int, card: EventCardPayload) -> None:
    prefix = f"cards[{position}]"

    if card.year <= 0:
        errors[f"{prefix}.year"] = "Year must be greater than 0."
    if _blank(card.era):
        errors[f"{prefix}.era"] = "Era is required."
    elif card.era not in ERAS:
        errors[f"{prefix}.era"] = "Era must be BC or AD."
    if _blank(card.caption):
        errors[f"{prefix}.caption"] = "Caption is required."
    _image_reference(errors, f"{prefix}.imageUrl", card.image_url)
    if card.order_index < 0:
        errors[f"{prefix}.orderIndex"] = "orderIndex must not be negative."

    quiz = card.image_quiz
    if quiz is None:
        errors[f"{prefix}.imageQuiz"] = "imageQuiz is required."
    else:
        _required_text(errors, f"{prefix}.imageQuiz.question", quiz.question, MAX_QUESTION_LENGTH, "Question")
        if len(quiz.options) != IMAGE_QUIZ_OPTIONS:
            errors[f"{prefix}.imageQuiz.options"] = f"imageQuiz needs {IMAGE_QUIZ_OPTIONS} options."
        else:
            for k, option in enumerate(quiz.options):
                _image_reference(errors, f"{prefix}.imageQuiz.options[{k}].imageUrl", option.image_url)
        if quiz.correct_index is None or not 0 <= quiz.correct_index <= 3:
            errors[f"{prefix}.imageQuiz.correctIndex"] = "correctIndex must be between 0 and 3."

    text_quiz = card.text_quiz
    if text_quiz is None:
        errors[f"{prefix}.textQuiz"] = "textQuiz is required."
    else:
        _required_text(errors, f"{prefix}.textQuiz.question", text_quiz.question, MAX_QUESTION_LENGTH, "Question")
        if len(text_quiz.options) != TEXT_QUIZ_OPTIONS:
            errors[f"{prefix}.textQuiz.options"] = f"textQuiz needs {TEXT_QUIZ_OPTIONS} options."
        else:
            for k, option in enumerate(text_quiz.options):
                _required_text(
                    errors,
                    f"{prefix}.textQuiz.options[{k}].text",
                    option.text,
                    MAX_OPTION_TEXT_LENGTH,
                    "Option text",
                )
        if text_quiz.correct_index is None or not 0 <= text_quiz.correct_index <= 3:
            errors[f"{prefix}.textQuiz.correctIndex"] = "correctIndex must be between 0 and 3."

    if card.true_false_quiz is None:
        errors[f"{prefix}.trueFalseQuiz"] = "trueFalseQuiz is required."
    else:
        _required_text(
            errors,
            f"{prefix}.trueFalseQuiz.statement",
            card.true_false_quiz.statement,
            MAX_STATEMENT_LENGTH,
            "Statement",
        )

    correlation = card.correlation_quiz
    if correlation is None:
        errors[f"{prefix}.correlationQuiz"] = "correlationQuiz is required."
    elif len(correlation.items) != CORRELATION_ITEMS:
        errors[f"{prefix}.correlationQuiz.items"] = f"correlationQuiz needs {CORRELATION_ITEMS} items."
    else:
        for k, item in enumerate(correlation.items):
            _required_text(
                errors,
                f"{prefix}.correlationQuiz.items[{k}].text",
                item.text,
                MAX_OPTION_TEXT_LENGTH,
                "Text",
            )
            _image_reference(errors, f"{prefix}.correlationQuiz.items[{k}].imageUrl", item.image_url)


def validate_common(payload: ThemePayload) -> dict[str, str]:
    """Checks shared by create and update, collected per field."""
    errors: dict[str, str] = {}
    _required_text(errors, "theme.name", payload.name, MAX_NAME_LENGTH, "Name")
    _required_text(errors, "theme.resume", payload.resume, MAX_RESUME_LENGTH, "Resume")
    _required_text(
        errors, "theme.recommendation", payload.recommendation, MAX_RECOMMENDATION_LENGTH, "Recommendation"
    )

    counts = Counter(card.order_index for card in payload.cards)
    for order_index, count in sorted(counts.items()):
        if count > 1:
            errors[f"cards.orderIndex[{order_index}]"] = "Duplicate orderIndex."

    for position, card in enumerate(payload.cards):
        _validate_card(errors, position, card)
    return errors


def validate_for_create(payload: ThemePayload) -> dict[str, str]:
    errors = validate_common(payload)
    if _blank(payload.image):
        errors["theme.image"] = "Theme image is required."
    elif not is_data_url(payload.image):
        errors["theme.image"] = "On create the theme image must be a data URL."
    if _blank(payload.upload_session_id):
        errors["theme.uploadSessionId"] = "uploadSessionId is required."
    return errors


def validate_for_update(payload: ThemePayload, public_base: str) -> dict[str, str]:
    """Like create, but the cover may stay a stored URL and no session is required."""
    errors = validate_common(payload)
    image = payload.image
    if _blank(image):
        errors["theme.image"] = "Theme image is required."
    elif not (
        is_data_url(image)
        or is_http_url(image)
        or normalize_public_url(image, public_base) is not None
    ):
        errors["theme.image"] = "Theme image must be a data URL or a valid URL."
    return errors
