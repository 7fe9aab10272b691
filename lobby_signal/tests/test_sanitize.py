import pytest

from lobby_signal.sanitize import reason_terms, sanitize_text


@pytest.mark.parametrize("raw, expected", [
    ("see https://example.com/x for details", "see for details"),
    ("mail me: jane.doe+1@example.org", "mail me:"),
    ("ping @jane_doe or u/janedoe", "ping or"),
    ("call +1 (555) 010-9999 today", "call today"),
    ("  lots   of\n\nspace ", "lots of space"),
])
def test_sanitize_text_strips_contact_details(raw, expected):
    assert sanitize_text(raw) == expected


def test_sanitize_text_handles_none():
    assert sanitize_text(None) == ""


def test_reason_terms_are_distinct_lowercase_content_words():
    terms = reason_terms("Vegan VEGAN option, because I'd like a vegan option!")
    assert terms == {"vegan", "option"}


def test_reason_terms_respect_min_length():
    assert reason_terms("big tub now", min_length=3) == {"big", "tub", "now"}
    assert reason_terms("big tub now") == set()
