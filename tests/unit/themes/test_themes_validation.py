from __future__ import annotations

from src.themedeck.themes.themes_schemas import ThemePayload
from src.themedeck.themes.themes_validation import (
    is_data_url,
    is_http_url,
    validate_for_create,
    validate_for_update,
)
from tests.helpers.theme_payloads import card_payload, staged_urls, theme_payload


def _valid(**overrides) -> dict:
    payload = theme_payload([card_payload(0, staged_urls("s1", 0))], session_id="s1")
    payload.update(overrides)
    return payload


def test_valid_create_payload_has_no_errors():
    assert validate_for_create(ThemePayload.model_validate(_valid())) == {}


def test_theme_level_fields():
    payload = ThemePayload.model_validate(
        _valid(name="n" * 51, resume="  ", recommendation=None, image="/media/themes/s1/cover.png", uploadSessionId=None)
    )

    errors = validate_for_create(payload)

    assert set(errors) == {
        "theme.name",
        "theme.resume",
        "theme.recommendation",
        "theme.image",
        "theme.uploadSessionId",
    }


def test_update_accepts_stored_or_remote_cover():
    for image in ("/media/themes/t/cover.png", "https://cdn.example.com/cover.png", "data:image/png;base64,AAAA"):
        payload = ThemePayload.model_validate(_valid(image=image, uploadSessionId=None))
        assert validate_for_update(payload, "/media") == {}

    payload = ThemePayload.model_validate(_valid(image="ftp://host/cover.png"))
    assert "theme.image" in validate_for_update(payload, "/media")


def test_card_rules_are_reported_by_list_position():
    card = card_payload(4, staged_urls("s1", 4))
    card.update(year=0, era="CE", caption="")
    card["imageQuiz"]["options"] = card["imageQuiz"]["options"][:3]
    card["imageQuiz"]["correctIndex"] = 4
    card["textQuiz"]["question"] = "q" * 71
    card["textQuiz"]["options"][2]["text"] = ""
    card["trueFalseQuiz"]["statement"] = "s" * 201
    card["correlationQuiz"]["items"][1]["imageUrl"] = "data:image/png;base64,AAAA"
    card["imageUrl"] = None
    payload = ThemePayload.model_validate(_valid(cards=[card]))

    errors = validate_for_create(payload)

    assert errors == {
        "cards[0].year": "Year must be greater than 0.",
        "cards[0].era": "Era must be BC or AD.",
        "cards[0].caption": "Caption is required.",
        "cards[0].imageUrl": "Image is required.",
        "cards[0].imageQuiz.options": "imageQuiz needs 4 options.",
        "cards[0].imageQuiz.correctIndex": "correctIndex must be between 0 and 3.",
        "cards[0].textQuiz.question": "Question must be at most 70 characters.",
        "cards[0].textQuiz.options[2].text": "Option text is required.",
        "cards[0].trueFalseQuiz.statement": "Statement must be at most 200 characters.",
        "cards[0].correlationQuiz.items[1].imageUrl": "Image must be a URL, not an inline data URL.",
    }


def test_missing_quizzes_and_duplicate_order_index():
    bare = {"orderIndex": 1, "year": 10, "era": "BC", "caption": "c", "imageUrl": "/media/x.webp"}
    payload = ThemePayload.model_validate(_valid(cards=[bare, dict(bare)]))

    errors = validate_for_create(payload)

    assert errors["cards.orderIndex[1]"] == "Duplicate orderIndex."
    for position in (0, 1):
        for quiz in ("imageQuiz", "textQuiz", "trueFalseQuiz", "correlationQuiz"):
            assert f"cards[{position}].{quiz}" in errors


def test_url_helpers():
    assert is_data_url("  DATA:image/png;base64,xx")
    assert not is_data_url("data:text/plain;base64,xx")
    assert is_http_url("https://example.com/a.png")
    assert not is_http_url("/media/a.png")
