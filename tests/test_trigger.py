"""Tests for `relay.trigger`."""

from __future__ import annotations

import pytest

from relay.trigger import detect


@pytest.mark.parametrize(
    "text, url",
    [
        ("please enrich https://linkedin.com/in/jane-doe", "https://linkedin.com/in/jane-doe"),
        ("ENRICH http://www.linkedin.com/in/John_Smith/", "http://www.linkedin.com/in/John_Smith/"),
        ("Enrichment: https://LinkedIn.com/in/ma%C3%AFa-42 thanks", "https://LinkedIn.com/in/ma%C3%AFa-42"),
        ("<https://linkedin.com/in/jane-doe> pls enrich", "https://linkedin.com/in/jane-doe"),
    ],
)
def test_url_and_keyword_qualify(text: str, url: str):
    match = detect(text, "enrich")
    assert match.qualifies is True
    assert match.url == url


def test_url_without_keyword_does_not_qualify():
    match = detect("look at https://linkedin.com/in/jane-doe", "enrich")
    assert match.qualifies is False
    assert match.url == "https://linkedin.com/in/jane-doe"


def test_keyword_without_url_does_not_qualify():
    match = detect("please enrich this person for me", "enrich")
    assert match.qualifies is False
    assert match.url is None


@pytest.mark.parametrize(
    "text",
    [
        "enrich https://linkedin.com/company/acme",
        "enrich https://notlinkedin.org/in/jane",
        "enrich linkedin.com/in/jane-doe",
        "",
    ],
)
def test_non_profile_links_are_ignored(text: str):
    assert detect(text, "enrich").qualifies is False


def test_first_url_wins():
    text = (
        "enrich https://linkedin.com/in/first-person and "
        "https://linkedin.com/in/second-person"
    )
    assert detect(text, "enrich").url == "https://linkedin.com/in/first-person"


def test_keyword_is_a_substring_match():
    assert detect("re-ENRICHED? https://linkedin.com/in/x", "enrich").qualifies is True


def test_none_text():
    match = detect(None, "enrich")
    assert match.url is None
    assert match.qualifies is False
