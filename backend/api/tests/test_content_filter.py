import pytest

from messaging.content_filter import REDACTION_TOKEN, contains_personal_info, filter_text


@pytest.mark.parametrize(
    "text,category,leaked",
    [
        ("Call me on 01012345678 tonight", "phone", "01012345678"),
        ("Email me: sara.k@example.com", "email", "sara.k@example.com"),
        ("Photos here https://shop.example.com/item/9", "url", "shop.example.com"),
        ("Add me on whatsapp: sara_k", "social", "sara_k"),
        ("my insta is @souq_seller", "social", "souq_seller"),
    ],
)
def test_contact_details_are_redacted(text, category, leaked):
    result = filter_text(text)

    assert result.was_filtered is True
    assert category in result.categories
    assert leaked not in result.filtered_text
    assert REDACTION_TOKEN in result.filtered_text


def test_clean_text_is_untouched():
    text = "Is the desk still available? I can offer 450 and pick up Friday."
    result = filter_text(text)

    assert result.was_filtered is False
    assert result.filtered_text == text
    assert result.matches == {}
    assert contains_personal_info(text) is False


def test_every_category_is_applied_in_one_pass():
    result = filter_text("Call 01012345678 or mail a.b@example.com")

    assert "01012345678" not in result.filtered_text
    assert "a.b@example.com" not in result.filtered_text
    assert {"phone", "email"} <= set(result.categories)
    assert result.filtered_text.startswith("Call [HIDDEN] or mail ")


def test_custom_replacement_token():
    result = filter_text("ring 01123456789", replacement="***")
    assert result.filtered_text == "ring ***"
